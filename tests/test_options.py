import math

import pytest

from ggb2tikz.bounds import Bounds
from ggb2tikz.options import OptionsError, TranslateOptions


def test_defaults_validate():
    options = TranslateOptions().validate()

    assert options.bounds == Bounds(-10, 10, -10, 10)
    assert options.output_mode == "standalone"
    assert options.bounds_overrides == frozenset()


@pytest.mark.parametrize(
    "kwargs, message",
    [
        ({"xmin": 5, "xmax": 1}, "xmin"),
        ({"ymin": math.nan}, "ymin must be a finite number"),
        ({"output_mode": "pdf"}, "output_mode"),
        ({"line_line_angle_selector": "inside"}, "line_line_angle_selector"),
        ({"scale_priority": "area"}, "scale_priority"),
        ({"tikz_scale": 0}, "tikz_scale"),
        ({"point_radius_pt": -1.0}, "point_radius_pt"),
        ({"line_extension_end": -0.1}, "line_extension_end"),
        ({"label_font_pt": 30}, "label_font_pt must be within 8..20"),
        ({"target_width_cm": 2}, "target_width_cm"),
        ({"category_thickness": {"curve": "thin"}}, "unknown thickness category"),
        ({"bounds_overrides": frozenset({"zmin"})}, "unknown bounds override"),
    ],
)
def test_invalid_options_are_rejected(kwargs, message):
    with pytest.raises(OptionsError) as info:
        TranslateOptions(**kwargs).validate()
    assert message in str(info.value)


def test_booleans_are_not_numbers():
    with pytest.raises(OptionsError):
        TranslateOptions(tikz_scale=True).validate()


def test_from_mapping_records_explicit_axes():
    options = TranslateOptions.from_mapping({"xmin": -3, "ymax": 4, "output_mode": "figure"})

    assert options.bounds_overrides == frozenset({"xmin", "ymax"})
    assert options.xmin == -3
    assert options.output_mode == "figure"


def test_from_mapping_rejects_unknown_keys():
    with pytest.raises(OptionsError) as info:
        TranslateOptions.from_mapping({"colour": "red"})
    assert "colour" in str(info.value)


def test_with_bounds_marks_overrides():
    options = TranslateOptions().with_bounds(xmax=3.0)

    assert options.xmax == 3.0
    assert options.bounds_overrides == frozenset({"xmax"})


def test_thickness_lookup():
    options = TranslateOptions(category_thickness={"conic": "very thick"})

    assert options.thickness_for("conic") == "very thick"
    assert options.thickness_for("line") is None
    assert options.thickness_for("axis") == "semithick"
    assert TranslateOptions(axis_thickness="").thickness_for("axis") is None
