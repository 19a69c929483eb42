import json

import pytest

from ggb2tikz.classify import classify
from ggb2tikz.reader import read_construction
from ggb2tikz.semantics import build_semantics

XML = """
<geogebra>
  <construction>
    <element type="point" label="P"><coords x="3" y="1" z="1"/></element>
    <element type="point" label="O"><coords x="0" y="0" z="1"/></element>
    <command name="Circle"><input a0="O" a1="1"/><output a0="c"/></command>
    <element type="conic" label="c"><matrix A0="1" A1="1" A2="-1" A3="0" A4="0" A5="0"/></element>
    <command name="Tangent"><input a0="P" a1="c"/><output a0="f" a1="g"/></command>
    <element type="line" label="f"><coords x="0" y="1" z="-1"/></element>
    <element type="line" label="broken"/>
    <element type="conic" label="empty"/>
  </construction>
</geogebra>
"""


def _semantics():
    return build_semantics(classify(read_construction(XML)))


def test_report_is_json_serializable():
    report = _semantics()

    assert json.loads(json.dumps(report)) == report
    assert report["mode"] == "semantic+resolved"


def test_command_graph_keeps_declaration_order():
    graph = _semantics()["commandGraph"]

    assert [cmd["name"] for cmd in graph] == ["Circle", "Tangent"]
    assert graph[1] == {"name": "Tangent", "inputs": ["P", "c"], "outputs": ["f", "g"]}


def test_tangent_relation_and_derived_point():
    report = _semantics()
    relation = next(r for r in report["lineRelations"] if r["label"] == "f")

    assert relation["tangent"]["conicLabel"] == "c"
    assert relation["tangent"]["throughPoint"]["label"] == "P"
    assert relation["tangent"]["tangentPoint"] == pytest.approx({"x": 0.0, "y": 1.0})
    assert report["derivedPoints"][0]["label"] == "f_T"
    assert report["derivedPoints"][0]["ownerLine"] == "f"


def test_conic_relation_carries_normalized_form():
    conic = next(r for r in _semantics()["conicRelations"] if r["label"] == "c")

    assert conic["semanticType"] == "circle_by_center_radius"
    assert conic["normalized"] == {"type": "circle", "source": "command", "center": {"x": 0.0, "y": 0.0}, "radius": 1.0}
    assert conic["matrix"] == [1.0, 1.0, -1.0, 0.0, 0.0, 0.0]


def test_unresolved_items_are_listed():
    unresolved = _semantics()["unresolved"]

    assert {"label": "broken", "type": "line", "reason": "missing_resolved_points"} in unresolved
    assert {"label": "empty", "type": "conic", "reason": "no_canonical_form"} in unresolved


def test_point_relations_and_stats():
    report = _semantics()
    points = {p["label"]: p for p in report["pointRelations"]}

    assert points["P"]["sourceType"] == "free_point_coords"
    assert points["P"]["coord"] == {"x": 3.0, "y": 1.0}
    assert report["stats"]["total"] == 6
    assert report["stats"]["byType"]["line"] == 2
