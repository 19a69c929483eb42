import pytest

from ggb2tikz.layout import (
    Box,
    collect_points,
    compute_picture_scale,
    coordinate_map,
    estimate_label_width_cm,
    fit_picture_scale,
    picture_extent,
    refine_point_labels,
)


def _picture(*points):
    lines = [r"\begin{tikzpicture}[scale=1, >=Stealth]"]
    for label, x, y in points:
        lines.append(rf"    \coordinate ({label}) at ({x:.2f},{y:.2f});")
    for label, _, _ in points:
        lines.append(
            rf"    \fill[black] ({label}) circle[radius=0.1pt] node[above right, xshift=0pt, yshift=0pt] {{${label}$}};"
        )
    lines.append(r"\end{tikzpicture}")
    return "\n".join(lines)


def _label_line(code, label):
    return next(line for line in code.split("\n") if line.endswith(f"{{${label}$}};"))


def test_coordinate_map_and_point_collection():
    code = _picture(("A", 0, 0), ("B", 4, 0)) + "\n" + r"\draw[black, thick] (A) circle[radius=2.00]; % c"

    assert coordinate_map(code) == {"A": (0.0, 0.0), "B": (4.0, 0.0)}
    assert collect_points(code) == [(0.0, 0.0), (4.0, 0.0), (2.0, 0.0), (-2.0, 0.0), (0.0, 2.0), (0.0, -2.0)]


def test_labels_point_away_from_the_centroid():
    code = refine_point_labels(_picture(("A", 0, 0), ("B", 4, 0)))

    assert _label_line(code, "A") == (
        r"    \fill[black] (A) circle[radius=0.1pt] "
        r"node[above left, xshift=-1pt, yshift=1pt, font=\fontsize{12pt}{13pt}\selectfont] {$A$};"
    )
    assert "node[above right, xshift=1pt, yshift=1pt," in _label_line(code, "B")


def test_labels_avoid_nearby_points():
    code = refine_point_labels(_picture(("P", 0, 0)), points=[(0.0, 0.0), (0.25, 0.2)])

    assert "node[above left," in _label_line(code, "P")


def test_close_points_get_different_anchors():
    code = refine_point_labels(_picture(("A", 0, 0), ("B", 0.05, 0)))

    assert "node[above left," in _label_line(code, "A")
    assert "node[above right," in _label_line(code, "B")


def test_offset_and_font_are_clamped():
    code = refine_point_labels(_picture(("A", 1, 1)), offset_pt=20, font_pt=40)

    line = _label_line(code, "A")
    assert "xshift=8pt, yshift=8pt" in line
    assert r"font=\fontsize{20pt}{21pt}\selectfont" in line


def test_other_lines_are_left_alone():
    code = _picture(("A", 0, 0)) + "\n" + r"\fill[black] (Z) circle[radius=0.1pt] node[above] {$Z$};"
    refined = refine_point_labels(code)

    assert refined.split("\n")[0] == r"\begin{tikzpicture}[scale=1, >=Stealth]"
    assert refined.endswith(r"\fill[black] (Z) circle[radius=0.1pt] node[above] {$Z$};")


def test_label_width_grows_with_text():
    assert estimate_label_width_cm("A") == pytest.approx(0.22)
    assert estimate_label_width_cm("ABCDEF") > estimate_label_width_cm("A")
    assert estimate_label_width_cm(r"\alpha") == estimate_label_width_cm("a")


def test_box_geometry():
    box = Box(0, 0, 1, 1)

    assert box.intersects(Box(0.5, 0.5, 2, 2))
    assert not box.intersects(Box(1.5, 0, 2, 1))
    assert box.distance_to((0.5, 0.5)) == 0.0
    assert box.distance_to((4, 5)) == pytest.approx(5.0)


def test_picture_extent_includes_origin():
    assert picture_extent([(2, 3)]) == (3.0, 4.0)
    assert picture_extent([]) == (6.0, 6.0)


def test_scale_priorities_and_clamping():
    assert compute_picture_scale([]) == 1.5
    assert compute_picture_scale([(0, 0), (4, 0)], target_width_cm=4, priority="width") == 0.8
    assert compute_picture_scale([(0, 0), (0, 7)], target_height_cm=6, priority="height") == 0.75
    assert compute_picture_scale([(-20, -20), (20, 20)]) == 0.5
    assert compute_picture_scale([(0, 0), (4, 0)]) == 1.6


def test_fit_picture_scale_rewrites_picture_options():
    code = fit_picture_scale(_picture(("A", 0, 0), ("B", 4, 0)), target_width_cm=4, priority="width")

    assert code.startswith(r"\begin{tikzpicture}[scale=0.8, >=Stealth]")


def test_fit_picture_scale_adds_missing_scale():
    code = "\\begin{tikzpicture}[>=Stealth]\n\\end{tikzpicture}"

    assert fit_picture_scale(code).startswith(r"\begin{tikzpicture}[scale=1.5, >=Stealth]")
