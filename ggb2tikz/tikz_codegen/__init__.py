"""Geometric model → TikZ code generation helpers."""

from .generator import (
    RenderContext,
    generate_tikz_code,
    generate_tikz_document,
    point_ref,
    scene_bounds,
    wrap_output,
)
from .utils import latex_escape_keep_math, to_latex_math_label

__all__ = [
    "RenderContext",
    "generate_tikz_code",
    "generate_tikz_document",
    "latex_escape_keep_math",
    "point_ref",
    "scene_bounds",
    "to_latex_math_label",
    "wrap_output",
]
