import math

import pytest

from ggb2tikz.classify import classify, infer_conic_type_from_equation, normalize_equation
from ggb2tikz.reader import read_construction
from ggb2tikz.solvers import CircleForm, EllipseForm, HyperbolaForm, ParabolaForm


def _point(label, x, y, z=1, visible=True):
    show = "" if visible else '<show object="false" label="true"/>'
    return f'<element type="point" label="{label}">{show}<coords x="{x}" y="{y}" z="{z}"/></element>'


def _element(kind, label, inner=""):
    return f'<element type="{kind}" label="{label}">{inner}</element>'


def _command(name, inputs, outputs):
    ins = " ".join(f'a{i}="{v}"' for i, v in enumerate(inputs))
    outs = " ".join(f'a{i}="{v}"' for i, v in enumerate(outputs))
    return f'<command name="{name}"><input {ins}/><output {outs}/></command>'


def _classify(*parts):
    xml = "<geogebra><construction>" + "".join(parts) + "</construction></geogebra>"
    return classify(read_construction(xml))


def _by_label(items, label):
    return next(item for item in items if item.label == label)


UNIT_CIRCLE = '<matrix A0="1" A1="1" A2="-1" A3="0" A4="0" A5="0"/>'


def test_point_provenance():
    model = _classify(
        '<expression label="B" exp="(1, 2)"/>',
        _point("A", 0, 0),
        _point("B", 1, 2),
        _command("Point", ["c"], ["C"]),
        _point("C", 1, 0),
        _command("Intersect", ["f", "g"], ["D"]),
        _point("D", 2, 2),
        _command("Midpoint", ["A", "B"], ["M"]),
        _point("M", 0.5, 1),
        _command("Rotate", ["A", "90°", "B"], ["A'"]),
        _point("A'", 3, 1),
        _element("conic", "c", UNIT_CIRCLE),
    )

    tags = {p.label: p.provenance for p in model.points}
    assert tags == {
        "A": "free_point_coords",
        "B": "free_point_expression",
        "C": "point_on_object",
        "D": "intersection_point",
        "M": "midpoint",
        "A'": "derived_point",
    }
    assert _by_label(model.points, "C").source_objects == ("c",)
    assert _by_label(model.points, "D").source_objects == ("f", "g")


def test_homogeneous_point_coordinates_are_normalized():
    model = _classify(_point("P", 6, 8, z=2))

    assert model.points[0].coord == pytest.approx((3.0, 4.0))


def test_polygon_edges_recover_endpoints_from_input_order():
    model = _classify(
        _point("A", 0, 0),
        _point("B", 4, 0),
        _point("C", 0, 3),
        _command("Polygon", ["A", "B", "C"], ["poly1", "c", "a", "b"]),
        _element("polygon", "poly1"),
        _element("segment", "c"),
        _element("segment", "a"),
        _element("segment", "b"),
    )

    poly = model.polygons[0]
    assert [v.label for v in poly.vertices] == ["A", "B", "C"]
    assert poly.edge_labels == ("c", "a", "b")

    edges = {s.label: (s.start.label, s.end.label) for s in model.segments}
    assert edges == {"c": ("A", "B"), "a": ("B", "C"), "b": ("C", "A")}
    assert all(s.from_polygon and s.polygon_label == "poly1" for s in model.segments)


def test_segment_from_segment_command():
    model = _classify(
        _point("A", 0, 0),
        _point("B", 1, 1),
        _command("Segment", ["A", "B"], ["s"]),
        _element("segment", "s"),
    )

    seg = model.segments[0]
    assert (seg.start.label, seg.end.label) == ("A", "B")
    assert seg.end.coord == (1.0, 1.0)
    assert not seg.from_polygon


def test_vectors_from_command_and_from_start_point():
    model = _classify(
        _point("A", 1, 1),
        _point("B", 2, 3),
        _command("Vector", ["A", "B"], ["u"]),
        _element("vector", "u", '<coords x="1" y="2" z="0"/>'),
        _element("vector", "v", '<coords x="2" y="-1" z="0"/><startPoint exp="A"/>'),
    )

    u = _by_label(model.vectors, "u")
    v = _by_label(model.vectors, "v")
    assert (u.start.label, u.end.label) == ("A", "B")
    assert v.start.coord == (1.0, 1.0)
    assert v.end.coord == pytest.approx((3.0, 0.0))


def test_ray_keeps_start_through_and_coefficients():
    model = _classify(
        _point("A", 0, 0),
        _point("B", 1, 0),
        _command("Ray", ["A", "B"], ["r"]),
        _element("ray", "r", '<coords x="0" y="1" z="0"/>'),
    )

    ray = model.rays[0]
    assert (ray.start.label, ray.through.label) == ("A", "B")
    assert (ray.coeffs.a, ray.coeffs.b, ray.coeffs.c) == (0.0, 1.0, 0.0)


def test_line_relations_and_derived_points():
    model = _classify(
        _point("P", 3, 1),
        _point("A", 0, 0),
        _point("B", 1, 0),
        _point("C", 0, 1),
        _element("conic", "c", UNIT_CIRCLE),
        _command("Tangent", ["P", "c"], ["f", "f2"]),
        _element("line", "f", '<coords x="0" y="1" z="-1"/>'),
        _element("line", "g", '<coords x="0" y="1" z="0"/>'),
        _command("OrthogonalLine", ["P", "g"], ["h"]),
        _element("line", "h", '<coords x="1" y="0" z="-3"/>'),
        _command("AngularBisector", ["B", "A", "C"], ["k"]),
        _element("line", "k", '<coords x="1" y="-1" z="0"/>'),
    )

    f = model.line_by_label("f")
    assert f.tangent.conic_label == "c"
    assert f.tangent.through.label == "P"
    assert f.tangent.tangent_point == pytest.approx((0.0, 1.0))

    h = model.line_by_label("h")
    assert h.orthogonal.target_label == "g"
    assert h.orthogonal.target_type == "line"
    assert h.orthogonal.foot == pytest.approx((3.0, 0.0))

    k = model.line_by_label("k")
    assert (k.bisector.point1.label, k.bisector.vertex.label, k.bisector.point2.label) == ("B", "A", "C")

    derived = {d.label: (d.kind, d.owner_line) for d in model.derived_points}
    assert derived == {"f_T": ("tangent_point", "f"), "h_H": ("orthogonal_foot", "h")}


def test_line_points_fall_back_to_general_form():
    model = _classify(
        _point("A", 0, 0),
        _point("B", 2, 2),
        _command("Line", ["A", "B"], ["l"]),
        _element("line", "l", '<coords x="1" y="-1" z="0"/>'),
        _element("line", "m", '<coords x="1" y="-1" z="0"/>'),
    )

    l = model.line_by_label("l")
    assert (l.point1.label, l.point2.label) == ("A", "B")

    m = model.line_by_label("m")
    assert m.point1.label is None
    assert m.point1.coord == pytest.approx((0.0, 0.0))
    assert m.point2.coord == pytest.approx((1.0, 1.0))


def test_circle_commands():
    model = _classify(
        _point("O", 1, 1),
        _point("A", 4, 5),
        _command("Circle", ["O", "2"], ["c1"]),
        _element("conic", "c1"),
        _command("Circle", ["O", "A"], ["c2"]),
        _element("conic", "c2"),
        _command("Circle", ["(0, 0)", "(2, 0)", "(0, 2)"], ["c3"]),
        _element("conic", "c3"),
    )

    c1 = _by_label(model.conics, "c1")
    assert c1.semantic_type == "circle_by_center_radius"
    assert c1.canonical == CircleForm(1.0, 1.0, 2.0)
    assert c1.canonical_source == "command"

    c2 = _by_label(model.conics, "c2")
    assert c2.semantic_type == "circle_by_center_point_label"
    assert c2.canonical.r == pytest.approx(5.0)

    c3 = _by_label(model.conics, "c3")
    assert c3.semantic_type == "circle_by_three_points"
    assert (c3.canonical.h, c3.canonical.k, c3.canonical.r) == pytest.approx((1.0, 1.0, math.sqrt(2)))


def test_command_parameters_win_over_stored_matrix():
    model = _classify(
        _point("O", 0, 0),
        _command("Circle", ["O", "2"], ["c"]),
        _element("conic", "c", '<matrix A0="1" A1="1" A2="-9" A3="0" A4="0" A5="0"/>'),
    )

    conic = model.conics[0]
    assert conic.provenance == ("command", "element_matrix")
    assert conic.canonical.r == pytest.approx(2.0)


def test_incomplete_command_falls_back_to_matrix():
    model = _classify(
        _command("Circle", ["Missing", "2"], ["c"]),
        _element("conic", "c", '<matrix A0="1" A1="1" A2="-9" A3="0" A4="0" A5="0"/>'),
    )

    conic = model.conics[0]
    assert conic.canonical_source == "element_matrix"
    assert conic.canonical.r == pytest.approx(3.0)


def test_foci_and_directrix_commands():
    model = _classify(
        _point("F1", -4, 0),
        _point("F2", 4, 0),
        _point("F", 0, 1),
        _command("Ellipse", ["F1", "F2", "10"], ["e"]),
        _element("conic", "e"),
        _command("Hyperbola", ["F1", "F2", "6"], ["hy"]),
        _element("conic", "hy"),
        _command("Parabola", ["F", "y = -1"], ["p"]),
        _element("conic", "p"),
    )

    e = _by_label(model.conics, "e")
    assert e.semantic_type == "ellipse_by_foci_axis_length"
    assert isinstance(e.canonical, EllipseForm)
    assert (e.canonical.a, e.canonical.b) == pytest.approx((5.0, 3.0))

    hy = _by_label(model.conics, "hy")
    assert hy.semantic_type == "hyperbola_by_foci_axis_length"
    assert isinstance(hy.canonical, HyperbolaForm)

    p = _by_label(model.conics, "p")
    assert p.semantic_type == "parabola_by_focus_directrix"
    assert isinstance(p.canonical, ParabolaForm)
    assert p.params.directrix == "y = -1"


def test_equation_and_matrix_conics():
    model = _classify(
        '<expression label="c" exp="x² + y² = 4"/>',
        _element("conic", "c", '<matrix A0="1" A1="1" A2="-4" A3="0" A4="0" A5="0"/>'),
        _element("conic", "h", '<matrix A0="1" A1="-1" A2="-1" A3="0" A4="0" A5="0"/>'),
    )

    c = _by_label(model.conics, "c")
    assert c.conic_type == "circle"
    assert c.semantic_type == "circle_by_equation"
    assert c.provenance == ("expression", "element_matrix")
    assert c.canonical_source == "expression"
    assert c.equation == "x^2+y^2=4"

    h = _by_label(model.conics, "h")
    assert h.conic_type == "hyperbola"
    assert h.semantic_type == "hyperbola_by_matrix"
    assert h.canonical_source == "element_matrix"


def test_conic_without_any_data_has_no_canonical_form():
    model = _classify(_element("conic", "c"))

    conic = model.conics[0]
    assert conic.canonical is None
    assert conic.semantic_type == "conic_inferred"


def test_equation_type_inference():
    assert normalize_equation("x^(2) + 2 * y = 1") == "x^2+2y=1"
    assert infer_conic_type_from_equation("x^2 - y^2 = 1") == "hyperbola"
    assert infer_conic_type_from_equation("x^2 + 4y^2 = 4") == "ellipse"
    assert infer_conic_type_from_equation("y = x^2") == "parabola"
    assert infer_conic_type_from_equation("x + y = 1") is None


def test_angles_from_points_lines_and_polygons():
    model = _classify(
        _point("A", 0, 0),
        _point("B", 4, 0),
        _point("C", 0, 3),
        _command("Polygon", ["A", "B", "C"], ["poly1", "c", "a", "b"]),
        _element("polygon", "poly1"),
        _command("Angle", ["B", "A", "C"], ["α"]),
        _element("angle", "α", '<value val="1.5707963"/>'),
        _command("Angle", ["f", "g"], ["β"]),
        _element("angle", "β"),
        _command("InteriorAngles", ["poly1"], ["γ", "δ", "ε"]),
        _element("angle", "γ"),
        _element("angle", "δ"),
    )

    alpha = _by_label(model.angles, "α")
    assert (alpha.point1.label, alpha.vertex.label, alpha.point2.label) == ("B", "A", "C")
    assert alpha.value_deg == pytest.approx(90.0, abs=1e-4)

    beta = _by_label(model.angles, "β")
    assert (beta.line1_label, beta.line2_label) == ("f", "g")

    gamma = _by_label(model.angles, "γ")
    assert gamma.polygon_label == "poly1"
    assert (gamma.point1.label, gamma.vertex.label, gamma.point2.label) == ("C", "A", "B")
    delta = _by_label(model.angles, "δ")
    assert (delta.point1.label, delta.vertex.label, delta.point2.label) == ("A", "B", "C")


def test_conic_parts_keep_defining_points():
    model = _classify(
        _point("O", 0, 0),
        _point("A", 1, 0),
        _point("B", 0, 1),
        _command("CircleArc", ["O", "A", "B"], ["arc"]),
        _element("conicpart", "arc"),
        _command("Semicircle", ["A", "B"], ["s"]),
        _element("conicpart", "s"),
    )

    arc = _by_label(model.conic_parts, "arc")
    assert arc.kind == "CircleArc"
    assert [p.label for p in arc.points] == ["O", "A", "B"]
    assert len(_by_label(model.conic_parts, "s").points) == 2


def test_unknown_elements_and_statistics():
    model = _classify(
        _point("A", 0, 0),
        _point("B", 1, 0, visible=False),
        _element("text", "t"),
    )

    assert [o.label for o in model.others] == ["t"]
    assert model.others[0].type == "text"
    assert model.stats.as_dict() == {"total": 3, "visible": 2, "byType": {"point": 2, "text": 1}}
