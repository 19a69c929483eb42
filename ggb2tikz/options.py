"""Translation options."""

from __future__ import annotations

import math
from dataclasses import dataclass, field, fields, replace
from typing import Any, Dict, FrozenSet, Mapping, Optional

from .bounds import Bounds

OUTPUT_MODES = ("standalone", "figure", "tikz")
ANGLE_SELECTORS = ("auto", "left", "right", "above", "below")
SCALE_PRIORITIES = ("fit", "width", "height")
BOUND_AXES = ("xmin", "xmax", "ymin", "ymax")
THICKNESS_CATEGORIES = ("axis", "conic", "function", "line", "segment", "polygon")

LABEL_OFFSET_RANGE = (0.0, 8.0)
LABEL_FONT_RANGE = (8.0, 20.0)
TARGET_SIZE_RANGE = (4.0, 20.0)


class OptionsError(ValueError):
    pass


@dataclass(frozen=True)
class TranslateOptions:
    """Rendering options, validated once at the pipeline entry point."""

    xmin: float = -10.0
    xmax: float = 10.0
    ymin: float = -10.0
    ymax: float = 10.0
    # axes set explicitly by the caller; they win over smart bounds
    bounds_overrides: FrozenSet[str] = frozenset()
    smart_bounds: bool = True

    show_axis: bool = True
    show_grid: bool = False
    use_source_style: bool = False
    stroke_color: str = "black"
    point_color: str = "black"
    stroke_thickness: str = "thick"
    axis_thickness: str = "semithick"
    category_thickness: Mapping[str, str] = field(default_factory=dict)
    point_radius_pt: Optional[float] = None
    polygon_fill_color: str = ""

    line_extension_start: float = 0.25
    line_extension_end: float = 0.25
    define_point_coordinates: bool = True
    draw_derived_points: bool = False
    semantic_first: bool = True
    strict_static: bool = True
    line_line_angle_selector: str = "auto"

    output_mode: str = "standalone"
    tikz_scale: float = 1.0
    tikz_picture_options: str = ">=Stealth"
    figure_caption: str = "Figure"
    figure_label: str = "fig:ggb"

    refine_labels: bool = False
    label_offset_pt: float = 1.0
    label_font_pt: float = 12.0
    label_max_shift_pt: float = 8.0
    fit_scale: bool = False
    target_width_cm: float = 9.0
    target_height_cm: float = 9.0
    scale_priority: str = "fit"

    @property
    def bounds(self) -> Bounds:
        return Bounds(self.xmin, self.xmax, self.ymin, self.ymax)

    def thickness_for(self, category: str) -> Optional[str]:
        if category == "axis":
            return self.axis_thickness or None
        return self.category_thickness.get(category) or None

    def validate(self) -> "TranslateOptions":
        for axis in BOUND_AXES:
            value = getattr(self, axis)
            if not _finite_number(value):
                raise OptionsError(f"{axis} must be a finite number, got {value!r}")
        if self.xmin >= self.xmax:
            raise OptionsError(f"xmin ({self.xmin}) must be less than xmax ({self.xmax})")
        if self.ymin >= self.ymax:
            raise OptionsError(f"ymin ({self.ymin}) must be less than ymax ({self.ymax})")
        unknown_axes = set(self.bounds_overrides) - set(BOUND_AXES)
        if unknown_axes:
            raise OptionsError(f"unknown bounds override(s): {', '.join(sorted(unknown_axes))}")
        unknown_categories = set(self.category_thickness) - set(THICKNESS_CATEGORIES)
        if unknown_categories:
            raise OptionsError(f"unknown thickness category: {', '.join(sorted(unknown_categories))}")

        if self.output_mode not in OUTPUT_MODES:
            raise OptionsError(f"output_mode must be one of {OUTPUT_MODES}, got {self.output_mode!r}")
        if self.line_line_angle_selector not in ANGLE_SELECTORS:
            raise OptionsError(
                f"line_line_angle_selector must be one of {ANGLE_SELECTORS}, "
                f"got {self.line_line_angle_selector!r}"
            )
        if self.scale_priority not in SCALE_PRIORITIES:
            raise OptionsError(f"scale_priority must be one of {SCALE_PRIORITIES}, got {self.scale_priority!r}")

        if not _finite_number(self.tikz_scale) or self.tikz_scale <= 0:
            raise OptionsError(f"tikz_scale must be positive, got {self.tikz_scale!r}")
        if self.point_radius_pt is not None and (
            not _finite_number(self.point_radius_pt) or self.point_radius_pt < 0
        ):
            raise OptionsError(f"point_radius_pt must be non-negative, got {self.point_radius_pt!r}")
        for name in ("line_extension_start", "line_extension_end"):
            value = getattr(self, name)
            if not _finite_number(value) or value < 0:
                raise OptionsError(f"{name} must be a non-negative number, got {value!r}")

        _check_range("label_offset_pt", self.label_offset_pt, LABEL_OFFSET_RANGE)
        _check_range("label_font_pt", self.label_font_pt, LABEL_FONT_RANGE)
        _check_range("label_max_shift_pt", self.label_max_shift_pt, LABEL_OFFSET_RANGE)
        _check_range("target_width_cm", self.target_width_cm, TARGET_SIZE_RANGE)
        _check_range("target_height_cm", self.target_height_cm, TARGET_SIZE_RANGE)
        return self

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> "TranslateOptions":
        """Build options from a plain mapping such as a parsed JSON object.

        Bound axes present in ``data`` are recorded as explicit overrides.
        """
        known = {f.name for f in fields(cls)}
        unknown = sorted(set(data) - known)
        if unknown:
            raise OptionsError(f"unknown option(s): {', '.join(unknown)}")

        values: Dict[str, Any] = dict(data)
        overrides = set(values.get("bounds_overrides", ()))
        overrides.update(axis for axis in BOUND_AXES if axis in data)
        values["bounds_overrides"] = frozenset(overrides)
        if "category_thickness" in values:
            values["category_thickness"] = dict(values["category_thickness"] or {})
        options = cls(**values)
        return options.validate()

    def with_bounds(self, **axes: float) -> "TranslateOptions":
        """Copy with the given axes set and marked as overridden."""
        return replace(self, bounds_overrides=self.bounds_overrides | frozenset(axes), **axes)


def _finite_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool) and math.isfinite(value)


def _check_range(name: str, value: Any, bounds) -> None:
    lo, hi = bounds
    if not _finite_number(value) or not lo <= value <= hi:
        raise OptionsError(f"{name} must be within {lo:g}..{hi:g}, got {value!r}")


__all__ = ["OptionsError", "TranslateOptions", "OUTPUT_MODES", "ANGLE_SELECTORS", "SCALE_PRIORITIES"]
