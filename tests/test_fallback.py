from ggb2tikz.fallback import BUCKETS, list_objects, render_object_listing


class FakeQuery:
    def __init__(self, objects):
        self._objects = objects

    def get_all_object_names(self):
        return list(self._objects)

    def get_object_type(self, name):
        return self._objects[name]


def test_objects_are_grouped_by_type():
    listing = list_objects(FakeQuery({"A": "point", "f": "Line", "c": "conic", "t": "text", "n": None}))

    assert set(listing) == set(BUCKETS)
    assert listing["points"] == [{"label": "A", "type": "point"}]
    assert listing["lines"] == [{"label": "f", "type": "line"}]
    assert listing["conics"] == [{"label": "c", "type": "conic"}]
    assert listing["others"] == [{"label": "t", "type": "text"}, {"label": "n", "type": "other"}]


def test_missing_query_gives_empty_listing():
    listing = list_objects(None)

    assert all(items == [] for items in listing.values())


def test_render_listing_as_comments():
    text = render_object_listing(list_objects(FakeQuery({"A": "point", "B": "point", "s": "segment"})))

    assert text.split("\n") == [
        r"\begin{tikzpicture}",
        "    % Construction document unavailable, object listing only",
        "    % points: A, B",
        "    % segments: s",
        r"\end{tikzpicture}",
    ]


def test_render_empty_listing():
    text = render_object_listing(list_objects(None))

    assert "% (no objects)" in text
