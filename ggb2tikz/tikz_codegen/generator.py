"""TikZ renderer for the classified geometric model."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass, field
from typing import Callable, Dict, Iterable, List, Optional, Sequence, Set, Tuple

import numpy as np

from .utils import (
    fmt2,
    fmt6,
    format_float,
    format_point,
    is_valid_coord_name,
    latex_escape_keep_math,
    tikz_color,
    to_latex_math_label,
)
from ..bounds import Bounds, clip_line, clip_ray, compute_bounds, find_visible_param_segments
from ..document import ElementStyle
from ..expressions import ExpressionError, split_function_domains, to_tikz_expression
from ..model import (
    AngleEntity,
    ConicEntity,
    ConicPartEntity,
    DerivedPoint,
    Entity,
    FunctionEntity,
    GeometricModel,
    LineEntity,
    PointEntity,
    PointRef,
    PolygonEntity,
    RayEntity,
    SegmentEntity,
    VectorEntity,
)
from ..options import TranslateOptions
from ..solvers import (
    EPS_LABEL_MATCH,
    EPS_POINT_ON_LINE,
    EPS_RADIUS,
    CircleForm,
    EllipseForm,
    HyperbolaForm,
    LineCoeffs,
    ParabolaForm,
    Point2,
    angle_deg,
    angle_diff_abs,
    circumcenter,
    end_angle_through_mid,
    intersect_lines,
    is_right_angle,
    line_through_points,
    normalize_angle_deg,
    shortest_signed_delta,
)

logger = logging.getLogger(__name__)

LINE_PATTERNS = {
    10: "dashed",
    15: "dash pattern=on 8pt off 4pt",
    20: "dotted",
    30: "dash dot",
    40: "dash dot dot",
}

DEFAULT_FILL_OPACITY = 0.12
DEFAULT_ANGLE_RADIUS = 0.75
ANGLE_RADIUS_RANGE = (0.35, 1.6)
ARC_SIZE_DIVISOR = 40.0
RIGHT_ANGLE_MARK_SIZE = "0.25"
AXIS_ORIGIN_RADIUS_PT = 0.25
DEFAULT_POINT_SIZE = 2

PARABOLA_SAMPLES = 320
HYPERBOLA_SAMPLES = 420
HYPERBOLA_PARAM_RANGE = (-4.0, 4.0)
HYPERBOLA_FALLBACK_RANGE = (-2.0, 2.0)

# two-line angle scoring weights
DIRECTION_PREFERENCE_WEIGHT = 0.2
REGION_PREFERENCE_WEIGHT = 0.6
REGION_TARGETS = {"right": 0.0, "above": 90.0, "left": 180.0, "below": 270.0}

PREAMBLE = r"""% TikZ code generated from a GeoGebra construction
\documentclass[tikz,border=5pt]{standalone}
\usepackage{tikz}
\usetikzlibrary{arrows.meta,calc,intersections}
\usepackage{tkz-euclide}

\begin{document}"""


@dataclass
class RenderContext:
    """Per-call rendering state; never shared between translations."""

    options: TranslateOptions
    bounds: Bounds
    point_index: Dict[str, Point2]
    scene_points: List[PointEntity]
    lines: Dict[str, LineEntity]
    defined: Set[str] = field(default_factory=set)

    def resolve(self, ref: PointRef) -> Optional[Point2]:
        coord = ref.resolve(self.point_index)
        if coord is None or not (math.isfinite(coord[0]) and math.isfinite(coord[1])):
            return None
        return coord


def scene_bounds(model: GeometricModel, options: TranslateOptions) -> Bounds:
    return compute_bounds(
        ((p.x, p.y, p.visible) for p in model.points),
        options.bounds,
        smart=options.smart_bounds,
        overrides=sorted(options.bounds_overrides),
    )


def generate_tikz_document(
    model: GeometricModel,
    options: Optional[TranslateOptions] = None,
    bounds: Optional[Bounds] = None,
) -> str:
    """Complete output wrapped according to ``options.output_mode``."""

    options = options or TranslateOptions()
    return wrap_output(generate_tikz_code(model, options, bounds), options)


def wrap_output(picture: str, options: TranslateOptions) -> str:
    lines: List[str] = []
    if options.output_mode == "standalone":
        lines.append(PREAMBLE)
    elif options.output_mode == "figure":
        lines.append("\\begin{figure}[htbp]")
        lines.append("\\centering")
    lines.append(picture)
    if options.output_mode == "figure":
        lines.append(f"\\caption{{{latex_escape_keep_math(options.figure_caption)}}}")
        lines.append(f"\\label{{{options.figure_label}}}")
        lines.append("\\end{figure}")
    elif options.output_mode == "standalone":
        lines.append("\\end{document}")
    return "\n".join(lines) + "\n"


def generate_tikz_code(
    model: GeometricModel,
    options: Optional[TranslateOptions] = None,
    bounds: Optional[Bounds] = None,
) -> str:
    """The ``tikzpicture`` environment, categories in their fixed order."""

    options = options or TranslateOptions()
    if bounds is None:
        bounds = scene_bounds(model, options)
    ctx = RenderContext(
        options=options,
        bounds=bounds,
        point_index=model.point_index,
        scene_points=[p for p in model.points if p.visible and p.label in model.point_index],
        lines={line.label: line for line in model.lines},
    )

    lines: List[str] = []
    lines.extend(_render_begin(ctx))
    if options.define_point_coordinates:
        lines.extend(_render_coordinate_defs(ctx, model.points))

    if model.functions:
        lines.extend(_render_functions(ctx, model.functions))
    if model.conics:
        lines.extend(_render_conics(ctx, model.conics))
    if model.conic_parts:
        lines.extend(_render_conic_parts(ctx, model.conic_parts))
    if model.lines:
        lines.extend(_render_lines(ctx, model.lines))
    if model.rays:
        lines.extend(_render_rays(ctx, model.rays))
    if model.polygons:
        lines.extend(_render_polygons(ctx, model.polygons))
    if model.vectors:
        lines.extend(_render_vectors(ctx, model.vectors))
    if model.segments:
        lines.extend(_render_segments(ctx, model.segments))
    if model.angles:
        lines.extend(_render_angles(ctx, model.angles))
    if model.points or options.show_axis:
        lines.extend(_render_points(ctx, model.points))
    if options.draw_derived_points and model.derived_points:
        lines.extend(_render_derived_points(model.derived_points))

    lines.append("\\end{tikzpicture}")
    logger.debug("Rendered %d TikZ line(s) within %s", len(lines), bounds)
    return "\n".join(lines)


# ---------------------------------------------------------------------------
# Style resolution
# ---------------------------------------------------------------------------

def convert_thickness(thickness: Optional[int]) -> str:
    t = thickness or 2
    if t <= 1:
        return "very thin"
    if t <= 2:
        return "thin"
    if t <= 3:
        return "thick"
    if t <= 5:
        return "very thick"
    return "ultra thick"


def _stroke_color(ctx: RenderContext, style: ElementStyle) -> str:
    if ctx.options.use_source_style and style.color:
        return tikz_color(style.color) or ctx.options.stroke_color
    return ctx.options.stroke_color


def _point_color(ctx: RenderContext, style: ElementStyle) -> str:
    if ctx.options.use_source_style and style.color:
        return tikz_color(style.color) or ctx.options.point_color
    return ctx.options.point_color


def _thickness(ctx: RenderContext, category: str, style: Optional[ElementStyle] = None) -> str:
    override = ctx.options.thickness_for(category)
    if override:
        return override
    if ctx.options.use_source_style:
        return convert_thickness(style.line_thickness if style else None)
    return ctx.options.stroke_thickness


def _line_style(ctx: RenderContext, category: str, style: ElementStyle) -> str:
    thickness = _thickness(ctx, category, style)
    pattern = LINE_PATTERNS.get(style.line_type) if style.line_type is not None else None
    return f"{thickness}, {pattern}" if pattern else thickness


def _color_option(color: str) -> str:
    """Draw-option form of a color; braced xcolor specs need an explicit key."""
    return f"color={color}" if color.startswith("{") else color


def _stroke(ctx: RenderContext, category: str, entity: Entity) -> str:
    return f"{_color_option(_stroke_color(ctx, entity.style))}, {_line_style(ctx, category, entity.style)}"


def _label_suffix(label: Optional[str]) -> str:
    return f" % {label}" if label else ""


# ---------------------------------------------------------------------------
# Point references
# ---------------------------------------------------------------------------

def _label_near(ctx: RenderContext, coord: Point2, tol: float = EPS_LABEL_MATCH) -> Optional[str]:
    best = None
    best_d = math.inf
    for label, p in ctx.point_index.items():
        d = math.hypot(p[0] - coord[0], p[1] - coord[1])
        if d < best_d:
            best_d = d
            best = label
    return best if best is not None and best_d <= tol else None


def point_ref(ctx: RenderContext, coord: Point2, label: Optional[str] = None) -> str:
    """``(A)`` when a defined coordinate matches, else the literal ``(x,y)``."""
    if ctx.options.define_point_coordinates:
        if label and label in ctx.defined:
            return f"({label})"
        inferred = _label_near(ctx, coord)
        if inferred and inferred in ctx.defined:
            return f"({inferred})"
    return format_point(*coord)


def _extended_segment(p1: Point2, p2: Point2, e1: float, e2: float) -> str:
    a = format_point(*p1)
    b = format_point(*p2)
    return f"(${a}!-{format_float(e1)}!{b}$) -- (${b}!-{format_float(e2)}!{a}$)"


def _extended_named_segment(l1: str, l2: str, e1: float, e2: float) -> str:
    return f"($({l1})!-{format_float(e1)}!({l2})$) -- ($({l2})!-{format_float(e2)}!({l1})$)"


def _ray_path(start: str, end: str, extension: float) -> str:
    """Path from the ray start, extended only past the far end."""
    return f"{start} -- (${end}!-{format_float(extension)}!{start}$)"


# ---------------------------------------------------------------------------
# Environment, axes and coordinates
# ---------------------------------------------------------------------------

def _render_begin(ctx: RenderContext) -> List[str]:
    opts = [f"scale={format_float(ctx.options.tikz_scale)}"]
    if ctx.options.tikz_picture_options:
        opts.append(ctx.options.tikz_picture_options)
    lines = [f"\\begin{{tikzpicture}}[{', '.join(opts)}]"]
    b = ctx.bounds
    if ctx.options.show_grid:
        lines.append("    % Grid")
        lines.append(
            f"    \\draw[help lines, step=1] ({format_float(b.xmin)},{format_float(b.ymin)}) "
            f"grid ({format_float(b.xmax)},{format_float(b.ymax)});"
        )
    if ctx.options.show_axis:
        thickness = _thickness(ctx, "axis")
        lines.append("    % Axes")
        lines.append(
            f"    \\draw[->, {thickness}] ({format_float(b.xmin)},0) -- ({format_float(b.xmax)},0) node[right] {{$x$}};"
        )
        lines.append(
            f"    \\draw[->, {thickness}] (0,{format_float(b.ymin)}) -- (0,{format_float(b.ymax)}) node[above] {{$y$}};"
        )
    return lines


def _render_coordinate_defs(ctx: RenderContext, points: Sequence[PointEntity]) -> List[str]:
    lines = ["% Point coordinates"]
    for p in points:
        if not is_valid_coord_name(p.label) or p.label not in ctx.point_index:
            continue
        lines.append(f"\\coordinate ({p.label}) at {format_point(p.x, p.y)};")
        ctx.defined.add(p.label)
    return lines if len(lines) > 1 else []


def _clip_scope(ctx: RenderContext, body: Sequence[str], note: str = "") -> List[str]:
    if not body:
        return []
    b = ctx.bounds
    lines = ["\\begin{scope}"]
    if note:
        lines.append(f"% {note}")
    lines.append(
        f"\\clip ({format_float(b.xmin)},{format_float(b.ymin)}) rectangle ({format_float(b.xmax)},{format_float(b.ymax)});"
    )
    lines.extend(body)
    lines.append("\\end{scope}")
    return lines


# ---------------------------------------------------------------------------
# Functions
# ---------------------------------------------------------------------------

def _render_functions(ctx: RenderContext, functions: Sequence[FunctionEntity]) -> List[str]:
    lines = ["% Functions"]
    plots: List[str] = []
    for f in functions:
        if not f.visible or not f.exp:
            continue
        try:
            expr = to_tikz_expression(f.exp)
        except ExpressionError as exc:
            logger.warning("Function %s: cannot translate %r (%s)", f.label, f.exp, exc)
            lines.append(f"% Function {f.label}: unsupported expression")
            continue
        domains = split_function_domains(f.exp, ctx.bounds)
        if not domains:
            lines.append(f"% Function {f.label}: no drawable interval")
            continue
        stroke = _stroke(ctx, "function", f)
        for start, end in domains:
            plots.append(
                f"\\draw[{stroke}, smooth, domain={format_float(start)}:{format_float(end)}, samples=100] "
                f"plot (\\x,{{{expr}}});"
            )
    lines.extend(_clip_scope(ctx, plots, "function plots clipped to the axes"))
    return lines


# ---------------------------------------------------------------------------
# Conics
# ---------------------------------------------------------------------------

def _render_conics(ctx: RenderContext, conics: Sequence[ConicEntity]) -> List[str]:
    lines = ["% Conics"]
    plots: List[str] = []
    for conic in conics:
        if not conic.visible:
            continue
        stroke = _stroke(ctx, "conic", conic)
        form = conic.canonical
        if isinstance(form, CircleForm):
            lines.append(_circle_line(ctx, conic, form, stroke))
        elif isinstance(form, EllipseForm):
            lines.append(_ellipse_line(form, stroke, conic.label))
        elif isinstance(form, ParabolaForm):
            plots.extend(_parabola_lines(ctx, form, stroke, conic.label))
        elif isinstance(form, HyperbolaForm):
            plots.extend(_hyperbola_lines(ctx, form, stroke, conic.label))
        else:
            lines.append(f"% {conic.conic_type.capitalize()} {conic.label}: incomplete parameters")
    lines.extend(_clip_scope(ctx, plots, "parabola and hyperbola plots clipped to the axes"))
    return lines


def _circle_line(ctx: RenderContext, conic: ConicEntity, form: CircleForm, stroke: str) -> str:
    center_label = None
    if conic.canonical_source == "command" and not conic.params.third_point:
        center_label = conic.params.center.label
    center = point_ref(ctx, (form.h, form.k), center_label)
    return f"\\draw[{stroke}] {center} circle[radius={fmt2(form.r)}];{_label_suffix(conic.label)}"


def _ellipse_line(form: EllipseForm, stroke: str, label: str) -> str:
    h, k = fmt2(form.h), fmt2(form.k)
    options = stroke
    if abs(form.theta_deg) > 1e-6:
        options += f", rotate around={{{fmt2(form.theta_deg)}:({h},{k})}}"
    return (
        f"\\draw[{options}] ({h},{k}) ellipse[x radius={fmt2(form.a)}, y radius={fmt2(form.b)}];"
        f"{_label_suffix(label)}"
    )


def _domains(segments: List[Tuple[float, float]], fallback: Tuple[float, float]) -> List[Tuple[float, float]]:
    return segments if segments else [(round(fallback[0], 2), round(fallback[1], 2))]


def _parabola_lines(ctx: RenderContext, form: ParabolaForm, stroke: str, label: str) -> List[str]:
    b = ctx.bounds
    quad = f"{fmt6(form.a)}*\\t*\\t + {fmt6(form.b)}*\\t + {fmt6(form.c)}"
    cos_t, sin_t = math.cos(form.theta), math.sin(form.theta)
    flipped = form.mode == "x_of_y"

    def evaluate_xy(ts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        value = form.a * ts * ts + form.b * ts + form.c
        u, v = (value, ts) if flipped else (ts, value)
        return u * cos_t - v * sin_t, u * sin_t + v * cos_t

    # the parameter runs along v for x_of_y and along u otherwise
    corners = [(x, y) for x in (b.xmin, b.xmax) for y in (b.ymin, b.ymax)]
    params = [(-x * sin_t + y * cos_t) if flipped else (x * cos_t + y * sin_t) for x, y in corners]
    param_range = (min(params), max(params))
    u_expr, v_expr = (quad, "\\t") if flipped else ("\\t", quad)
    if form.theta == 0.0:
        plot = f"plot ({{{u_expr}}}, {{{v_expr}}})"
    else:
        c, s = fmt6(cos_t), fmt6(sin_t)
        plot = (
            f"plot ({{({u_expr})*({c}) - ({v_expr})*({s})}}, "
            f"{{({u_expr})*({s}) + ({v_expr})*({c})}})"
        )

    segments = find_visible_param_segments(evaluate_xy, *param_range, ctx.bounds, samples=PARABOLA_SAMPLES)
    domains = _domains(segments, param_range)
    out = []
    for i, (start, end) in enumerate(domains):
        suffix = _label_suffix(label) if i == len(domains) - 1 else ""
        out.append(
            f"\\draw[{stroke}, samples=120, domain={format_float(start)}:{format_float(end)}, variable=\\t] "
            f"{plot};{suffix}"
        )
    return out


def _hyperbola_branch_xy(form: HyperbolaForm, sign: float) -> Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]]:
    cos_t, sin_t = math.cos(form.theta), math.sin(form.theta)

    def evaluate(ts: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        if form.main_axis == "u":
            u, v = sign * form.a * np.cosh(ts), form.b * np.sinh(ts)
        else:
            u, v = form.b * np.sinh(ts), sign * form.a * np.cosh(ts)
        return form.h + u * cos_t - v * sin_t, form.k + u * sin_t + v * cos_t

    return evaluate


def _hyperbola_lines(ctx: RenderContext, form: HyperbolaForm, stroke: str, label: str) -> List[str]:
    cos_t, sin_t = fmt6(math.cos(form.theta)), fmt6(math.sin(form.theta))
    h, k = fmt6(form.h), fmt6(form.k)
    out: List[str] = []
    for sign, prefix in ((1.0, ""), (-1.0, "-")):
        if form.main_axis == "u":
            u = f"{prefix}{fmt6(form.a)}*cosh(\\t)"
            v = f"{fmt6(form.b)}*sinh(\\t)"
        else:
            u = f"{fmt6(form.b)}*sinh(\\t)"
            v = f"{prefix}{fmt6(form.a)}*cosh(\\t)"
        segments = find_visible_param_segments(
            _hyperbola_branch_xy(form, sign), *HYPERBOLA_PARAM_RANGE, ctx.bounds, samples=HYPERBOLA_SAMPLES
        )
        for start, end in segments or [HYPERBOLA_FALLBACK_RANGE]:
            out.append(
                f"\\draw[{stroke}, samples=140, variable=\\t, domain={format_float(start)}:{format_float(end)}] "
                f"plot ({{{h} + ({u})*{cos_t} - ({v})*{sin_t}}}, {{{k} + ({u})*{sin_t} + ({v})*{cos_t}}});"
            )
    if label:
        out.append(f"% {label}")
    return out


# ---------------------------------------------------------------------------
# Arcs and sectors
# ---------------------------------------------------------------------------

def _fill_opacity(style: ElementStyle) -> str:
    alpha = style.alpha if style.alpha is not None and math.isfinite(style.alpha) else DEFAULT_FILL_OPACITY
    return fmt2(alpha)


def _render_conic_parts(ctx: RenderContext, parts: Sequence[ConicPartEntity]) -> List[str]:
    lines = ["% Arcs and sectors"]
    for part in parts:
        if not part.visible:
            continue
        renderer = _CONIC_PART_RENDERERS.get(part.kind or "")
        if renderer is None:
            lines.append(f"% Conic part {part.label}: unsupported command {part.kind}")
            continue
        lines.append(renderer(ctx, part, _stroke(ctx, "conic", part)))
    return lines


def _part_points(ctx: RenderContext, part: ConicPartEntity, count: int) -> Optional[List[Point2]]:
    if len(part.points) < count:
        return None
    coords = [ctx.resolve(ref) for ref in part.points[:count]]
    if any(c is None for c in coords):
        return None
    return coords  # type: ignore[return-value]


def _semicircle(ctx: RenderContext, part: ConicPartEntity, stroke: str) -> str:
    pts = _part_points(ctx, part, 2)
    if pts is None:
        return f"% Semicircle {part.label}: endpoints missing"
    a, b = pts
    center = ((a[0] + b[0]) / 2.0, (a[1] + b[1]) / 2.0)
    radius = math.dist(a, b) / 2.0
    if radius < EPS_RADIUS:
        return f"% Semicircle {part.label}: invalid radius"
    start = angle_deg(center, a)
    # left-hand side of the directed segment AB
    a_ref = point_ref(ctx, a, part.points[0].label)
    return (
        f"\\draw[{stroke}] {a_ref} arc[start angle={fmt2(start)}, delta angle=-180.00, radius={fmt2(radius)}];"
        f"{_label_suffix(part.label)}"
    )


def _centered_arc(ctx: RenderContext, part: ConicPartEntity, stroke: str, sector: bool) -> str:
    kind = "Circle sector" if sector else "Circle arc"
    pts = _part_points(ctx, part, 3)
    if pts is None:
        return f"% {kind} {part.label}: points missing"
    c, s, e = pts
    radius = math.dist(s, c)
    if not math.isfinite(radius) or radius < EPS_RADIUS:
        return f"% {kind} {part.label}: invalid radius"
    start = angle_deg(c, s)
    end = angle_deg(c, e)
    while end < start:
        end += 360.0
    s_ref = point_ref(ctx, s, part.points[1].label)
    arc = f"arc[start angle={fmt2(start)}, end angle={fmt2(end)}, radius={fmt2(radius)}]"
    if sector:
        color = _stroke_color(ctx, part.style)
        c_ref = point_ref(ctx, c, part.points[0].label)
        return (
            f"\\draw[{stroke}, fill={color}, fill opacity={_fill_opacity(part.style)}] "
            f"{c_ref} -- {s_ref} {arc} -- cycle;{_label_suffix(part.label)}"
        )
    return f"\\draw[{stroke}] {s_ref} {arc};{_label_suffix(part.label)}"


def _circumcircle_arc(ctx: RenderContext, part: ConicPartEntity, stroke: str, sector: bool) -> str:
    kind = "Circumcircle sector" if sector else "Circumcircle arc"
    pts = _part_points(ctx, part, 3)
    if pts is None:
        return f"% {kind} {part.label}: points missing"
    a, b, c = pts
    o = circumcenter(a, b, c)
    if o is None:
        return f"% {kind} {part.label}: points nearly collinear"
    radius = math.dist(a, o)
    if not math.isfinite(radius) or radius < EPS_RADIUS:
        return f"% {kind} {part.label}: invalid radius"
    start = angle_deg(o, a)
    end = end_angle_through_mid(start, angle_deg(o, c), angle_deg(o, b))
    a_ref = point_ref(ctx, a, part.points[0].label)
    arc = f"arc[start angle={fmt2(start)}, end angle={fmt2(end)}, radius={fmt2(radius)}]"
    if sector:
        color = _stroke_color(ctx, part.style)
        return (
            f"\\draw[{stroke}, fill={color}, fill opacity={_fill_opacity(part.style)}] "
            f"{point_ref(ctx, o)} -- {a_ref} {arc} -- cycle;{_label_suffix(part.label)}"
        )
    return f"\\draw[{stroke}] {a_ref} {arc};{_label_suffix(part.label)}"


_CONIC_PART_RENDERERS: Dict[str, Callable[[RenderContext, ConicPartEntity, str], str]] = {
    "Semicircle": _semicircle,
    "CircleArc": lambda ctx, part, stroke: _centered_arc(ctx, part, stroke, sector=False),
    "CircleSector": lambda ctx, part, stroke: _centered_arc(ctx, part, stroke, sector=True),
    "CircumcircleArc": lambda ctx, part, stroke: _circumcircle_arc(ctx, part, stroke, sector=False),
    "CircumcircleSector": lambda ctx, part, stroke: _circumcircle_arc(ctx, part, stroke, sector=True),
}


# ---------------------------------------------------------------------------
# Lines and rays
# ---------------------------------------------------------------------------

def _line_points(ctx: RenderContext, line: LineEntity) -> Tuple[Optional[Point2], Optional[Point2]]:
    return ctx.resolve(line.point1), ctx.resolve(line.point2)


def line_coeffs(ctx: RenderContext, line: Optional[LineEntity]) -> Optional[LineCoeffs]:
    """General form of a line, from its coefficients or its two points."""
    if line is None:
        return None
    if line.coeffs is not None and line.coeffs.is_finite():
        return line.coeffs
    p1, p2 = _line_points(ctx, line)
    if p1 is None or p2 is None:
        return None
    return line_through_points(p1, p2)


def points_on_line(ctx: RenderContext, coeffs: LineCoeffs, tol: float = EPS_POINT_ON_LINE) -> List[str]:
    return [p.label for p in ctx.scene_points if coeffs.distance(p.coord) <= tol]


def _farthest_pair(ctx: RenderContext, labels: Iterable[str]) -> Optional[Tuple[str, str]]:
    unique = list(dict.fromkeys(l for l in labels if l in ctx.point_index))
    if len(unique) < 2:
        return None
    best = (unique[0], unique[1])
    best_d = -1.0
    for i, first in enumerate(unique):
        for second in unique[i + 1:]:
            d = math.dist(ctx.point_index[first], ctx.point_index[second])
            if d > best_d:
                best_d = d
                best = (first, second)
    return best


def _passing_comment(labels: Sequence[str]) -> str:
    unique = list(dict.fromkeys(labels))
    return f"through {', '.join(unique)}" if unique else ""


def _pair_comment(ref1: PointRef, ref2: PointRef, p1: Optional[Point2], p2: Optional[Point2]) -> str:
    def name(ref: PointRef, coord: Optional[Point2]) -> Optional[str]:
        if ref.label:
            return ref.label
        return format_point(*coord) if coord is not None else None

    n1, n2 = name(ref1, p1), name(ref2, p2)
    return f"through {n1}, {n2}" if n1 and n2 else ""


def _bisector_comment(line: LineEntity) -> str:
    rel = line.bisector
    if rel is None or not (rel.point1.label and rel.vertex.label and rel.point2.label):
        return ""
    return f"bisector of angle {rel.point1.label}{rel.vertex.label}{rel.point2.label}"


def _relation_points(ctx: RenderContext, line: LineEntity) -> Tuple[Optional[Point2], Optional[Point2]]:
    p1, p2 = _line_points(ctx, line)
    if p1 is None and line.tangent is not None:
        p1 = ctx.resolve(line.tangent.through)
    if p1 is None and line.orthogonal is not None:
        p1 = ctx.resolve(line.orthogonal.from_point)
    if p2 is None and line.tangent is not None:
        p2 = line.tangent.tangent_point
    if p2 is None and line.orthogonal is not None:
        p2 = line.orthogonal.foot
    return p1, p2


def _render_lines(ctx: RenderContext, lines: Sequence[LineEntity]) -> List[str]:
    out = ["% Lines"]
    e1, e2 = ctx.options.line_extension_start, ctx.options.line_extension_end
    drawn: Set[str] = set()

    if ctx.options.semantic_first and not ctx.options.strict_static:
        for line in lines:
            if not line.visible:
                continue
            p1, p2 = _relation_points(ctx, line)
            coeffs = line_through_points(p1, p2) if p1 is not None and p2 is not None else None
            ends = clip_line(coeffs, ctx.bounds) if coeffs is not None else None
            if ends is None:
                continue
            comment = _bisector_comment(line) or _pair_comment(line.point1, line.point2, p1, p2)
            out.append(
                f"\\draw[{_stroke(ctx, 'line', line)}] {_extended_segment(*ends, e1, e2)};{_label_suffix(comment)}"
            )
            drawn.add(line.label)

    for line in lines:
        if not line.visible or line.label in drawn:
            continue
        coeffs = line_coeffs(ctx, line)
        ends = clip_line(coeffs, ctx.bounds) if coeffs is not None else None
        if ends is None:
            out.append(f"% Line {line.label}: outside the viewport or undetermined")
            continue
        p1, p2 = _line_points(ctx, line)
        on_line = points_on_line(ctx, coeffs)
        pair = _farthest_pair(ctx, on_line)
        comment = (
            _bisector_comment(line)
            or _passing_comment(on_line)
            or _pair_comment(line.point1, line.point2, p1, p2)
        )
        stroke = _stroke(ctx, "line", line)
        if ctx.options.define_point_coordinates and pair and all(l in ctx.defined for l in pair):
            path = _extended_named_segment(pair[0], pair[1], e1, e2)
        else:
            path = _extended_segment(*ends, e1, e2)
        out.append(f"\\draw[{stroke}] {path};{_label_suffix(comment)}")
    return out


def _points_on_ray(ctx: RenderContext, coeffs: LineCoeffs, start: Point2, through: Point2) -> List[str]:
    vx, vy = through[0] - start[0], through[1] - start[1]
    vv = vx * vx + vy * vy
    labels = points_on_line(ctx, coeffs)
    if vv < 1e-12:
        return labels
    out = []
    for label in labels:
        p = ctx.point_index[label]
        t = ((p[0] - start[0]) * vx + (p[1] - start[1]) * vy) / vv
        if t >= -1e-6:
            out.append(label)
    return out


def _render_rays(ctx: RenderContext, rays: Sequence[RayEntity]) -> List[str]:
    out = ["% Rays"]
    # the start point is not a viewport crossing
    extension = ctx.options.line_extension_end
    for ray in rays:
        if not ray.visible:
            continue
        start, through = ctx.resolve(ray.start), ctx.resolve(ray.through)
        if start is None or through is None:
            out.append(f"% Ray {ray.label}: start or direction point missing")
            continue
        ends = clip_ray(start, through, ctx.bounds)
        if ends is None:
            out.append(f"% Ray {ray.label}: outside the viewport")
            continue
        coeffs = ray.coeffs if ray.coeffs is not None and ray.coeffs.is_finite() else line_through_points(start, through)
        on_ray = _points_on_ray(ctx, coeffs, start, through) if coeffs is not None else []
        s_label, t_label = ray.start.label, ray.through.label
        comment = _passing_comment(on_ray) or (f"ray {s_label}{t_label}" if s_label and t_label else "")
        stroke = _stroke(ctx, "line", ray)
        if ctx.options.define_point_coordinates and s_label in ctx.defined and t_label in ctx.defined:
            path = _ray_path(f"({s_label})", f"({t_label})", extension)
        else:
            path = _ray_path(format_point(*ends[0]), format_point(*ends[1]), extension)
        out.append(f"\\draw[{stroke}] {path};{_label_suffix(comment)}")
    return out


# ---------------------------------------------------------------------------
# Polygons, vectors and segments
# ---------------------------------------------------------------------------

def _render_polygons(ctx: RenderContext, polygons: Sequence[PolygonEntity]) -> List[str]:
    out = ["% Polygons"]
    for poly in polygons:
        if not poly.visible:
            continue
        refs = []
        for vertex in poly.vertices:
            coord = ctx.resolve(vertex)
            if coord is not None:
                refs.append(point_ref(ctx, coord, vertex.label))
        if len(refs) < 3:
            out.append(f"% Polygon {poly.label}: fewer than three vertices")
            continue
        color = _stroke_color(ctx, poly.style)
        stroke = f"{_color_option(color)}, {_line_style(ctx, 'polygon', poly.style)}"
        fill = ctx.options.polygon_fill_color.strip() or color
        path = " -- ".join(refs) + " -- cycle"
        if fill.lower() == "none":
            out.append(f"\\draw[{stroke}] {path};{_label_suffix(poly.label)}")
        else:
            out.append(
                f"\\draw[{stroke}, fill={fill}, fill opacity={_fill_opacity(poly.style)}] {path};"
                f"{_label_suffix(poly.label)}"
            )
    return out


def _render_vectors(ctx: RenderContext, vectors: Sequence[VectorEntity]) -> List[str]:
    out = ["% Vectors"]
    for vec in vectors:
        if not vec.visible:
            continue
        start = ctx.resolve(vec.start)
        end = ctx.resolve(vec.end)
        if end is None and start is not None and vec.components is not None:
            end = (start[0] + vec.components[0], start[1] + vec.components[1])
        if start is None or end is None:
            out.append(f"% Vector {vec.label}: endpoints missing")
            continue
        s_ref = point_ref(ctx, start, vec.start.label)
        e_ref = point_ref(ctx, end, vec.end.label)
        comment = f"vector {vec.label}" if vec.label else ""
        out.append(f"\\draw[->, {_stroke(ctx, 'line', vec)}] {s_ref} -- {e_ref};{_label_suffix(comment)}")
    return out


def _render_segments(ctx: RenderContext, segments: Sequence[SegmentEntity]) -> List[str]:
    out = ["% Segments"]
    for seg in segments:
        # polygon edges are drawn with their polygon
        if not seg.visible or seg.from_polygon:
            continue
        start, end = ctx.resolve(seg.start), ctx.resolve(seg.end)
        if start is None or end is None:
            out.append(f"% Segment {seg.label}: endpoints missing")
            continue
        s_ref = point_ref(ctx, start, seg.start.label)
        e_ref = point_ref(ctx, end, seg.end.label)
        out.append(f"\\draw[{_stroke(ctx, 'segment', seg)}] {s_ref} -- {e_ref};")
    return out


# ---------------------------------------------------------------------------
# Angles
# ---------------------------------------------------------------------------

def angle_radius(arc_size: Optional[float]) -> float:
    if arc_size is None or not math.isfinite(arc_size):
        return DEFAULT_ANGLE_RADIUS
    lo, hi = ANGLE_RADIUS_RANGE
    return max(lo, min(hi, arc_size / ARC_SIZE_DIVISOR))


def normalize_delta_by_value(value_deg: Optional[float]) -> Optional[float]:
    if value_deg is None or not math.isfinite(value_deg):
        return None
    d = value_deg % 360.0
    return 360.0 if abs(d) < 1e-6 else d


def _label_pos(radius: float) -> str:
    return "0.55" if radius <= 0.45 else "0.95"


def _angle_arc(center: Point2, start: float, delta: float, radius: float, stroke: str, label: str) -> str:
    latex = to_latex_math_label(label)
    node = f" node[midway, fill=white, inner sep=1pt] {{${latex}$}}" if latex else ""
    s, r = fmt2(start), fmt2(radius)
    return (
        f"\\draw[{stroke}] {format_point(*center)} ++({s}:{r}) "
        f"arc[start angle={s}, delta angle={fmt2(delta)}, radius={r}]{node};"
    )


def _right_angle_square(center: Point2, start: float, delta: float, stroke: str, label: str) -> List[str]:
    """Square corner mark drawn from the first arm toward the second."""
    side = RIGHT_ANGLE_MARK_SIZE
    turn = 90.0 if delta > 0 else -90.0
    out = [
        f"\\draw[{stroke}] {format_point(*center)} ++({fmt2(start)}:{side}) "
        f"-- ++({fmt2(start + turn)}:{side}) -- ++({fmt2(start + 180.0)}:{side});"
    ]
    latex = to_latex_math_label(label)
    if latex:
        out.append(f"\\path {format_point(*center)} ++({fmt2(start + turn / 2.0)}:0.6) node {{${latex}$}};")
    return out


def _tkz_mark(names: Tuple[str, str, str], radius: float, label: str, right: bool) -> List[str]:
    triple = ",".join(names)
    latex = to_latex_math_label(label)
    if right:
        out = [f"\\tkzMarkRightAngle[draw,size={RIGHT_ANGLE_MARK_SIZE}]({triple})"]
        if latex:
            out.append(f"\\tkzLabelAngle[pos=0.6]({triple}){{${latex}$}}")
        return out
    out = [f"\\tkzMarkAngle[size={fmt2(radius)}]({triple})"]
    if latex:
        out.append(f"\\tkzLabelAngle[pos={_label_pos(radius)}]({triple}){{${latex}$}}")
    return out


def _counterclockwise_names(ctx: RenderContext, p1: str, v: str, p2: str) -> Tuple[str, str, str]:
    """Order the triple so that the tkz mark sweeps the short way round."""
    pv, pp1, pp2 = ctx.point_index[v], ctx.point_index[p1], ctx.point_index[p2]
    d = shortest_signed_delta(angle_deg(pv, pp1), angle_deg(pv, pp2))
    return (p2, v, p1) if d < 0 else (p1, v, p2)


def line_direction_angle(ctx: RenderContext, line: LineEntity) -> Optional[float]:
    p1, p2 = _line_points(ctx, line)
    if p1 is not None and p2 is not None:
        return math.degrees(math.atan2(p2[1] - p1[1], p2[0] - p1[0]))
    if line.coeffs is not None and line.coeffs.is_finite():
        return line.coeffs.direction_deg
    return None


def candidate_directions(ctx: RenderContext, line: LineEntity, vertex: Point2) -> List[float]:
    out: List[float] = []

    def push(value: float) -> None:
        if not math.isfinite(value):
            return
        a = normalize_angle_deg(value)
        if any(abs(v - a) < 1e-6 or abs(abs(v - a) - 360.0) < 1e-6 for v in out):
            return
        out.append(a)

    for p in _line_points(ctx, line):
        if p is None:
            continue
        dx, dy = p[0] - vertex[0], p[1] - vertex[1]
        if math.hypot(dx, dy) < 1e-9:
            continue
        push(math.degrees(math.atan2(dy, dx)))
    direction = line_direction_angle(ctx, line)
    if direction is not None:
        push(direction)
        push(direction + 180.0)
    return out


def region_penalty(selector: str, start: float, delta: float) -> float:
    target = REGION_TARGETS.get(selector)
    if target is None:
        return 0.0
    return angle_diff_abs(normalize_angle_deg(start + delta / 2.0), target)


def choose_line_line_directions(
    ctx: RenderContext,
    line1: LineEntity,
    line2: LineEntity,
    vertex: Point2,
    target_deg: Optional[float],
) -> Optional[Tuple[float, float, float]]:
    """Pick ``(d1, d2, signed_delta)`` for an angle between two lines.

    Candidates are scored by how well their magnitude matches ``target_deg``
    (or by the magnitude itself when no target is known), with small weights
    for agreeing with each line's own point order and for the configured
    region. The first candidate wins on equal scores.
    """
    cand1 = candidate_directions(ctx, line1, vertex)
    cand2 = candidate_directions(ctx, line2, vertex)
    if not cand1 or not cand2:
        return None

    target_mag = None
    if target_deg is not None and math.isfinite(target_deg):
        d = target_deg % 360.0
        target_mag = abs(d if d <= 180.0 else d - 360.0)

    pref1 = line_direction_angle(ctx, line1)
    pref2 = line_direction_angle(ctx, line2)
    selector = ctx.options.line_line_angle_selector

    best = None
    best_score = math.inf
    for d1 in cand1:
        for d2 in cand2:
            sd = shortest_signed_delta(d1, d2)
            mag = abs(sd)
            if mag < 1e-6 or mag > 180.0 + 1e-6:
                continue
            score = abs(mag - target_mag) if target_mag is not None else mag
            if pref1 is not None:
                score += DIRECTION_PREFERENCE_WEIGHT * angle_diff_abs(d1, normalize_angle_deg(pref1))
            if pref2 is not None:
                score += DIRECTION_PREFERENCE_WEIGHT * angle_diff_abs(d2, normalize_angle_deg(pref2))
            score += REGION_PREFERENCE_WEIGHT * region_penalty(selector, d1, sd)
            if score < best_score:
                best_score = score
                best = (d1, d2, sd)
    return best


def _line_name(ctx: RenderContext, line: Optional[LineEntity], fallback: str) -> str:
    coeffs = line_coeffs(ctx, line)
    labels = list(dict.fromkeys(points_on_line(ctx, coeffs))) if coeffs is not None else []
    if labels:
        return "line " + "".join(labels)
    if line is not None:
        names = [n for n in (line.point1.label, line.point2.label) if n]
        if names:
            return "line " + "".join(dict.fromkeys(names))
    return f"line {fallback}"


def _angle_comment(ctx: RenderContext, angle: AngleEntity, vertex_label: str) -> str:
    parts = []
    if angle.line1_label and angle.line2_label:
        n1 = _line_name(ctx, ctx.lines.get(angle.line1_label), angle.line1_label)
        n2 = _line_name(ctx, ctx.lines.get(angle.line2_label), angle.line2_label)
        parts.append(f"between {n1} and {n2}")
    if vertex_label:
        parts.append(f"vertex {vertex_label}")
    if not parts and angle.point1.label and angle.vertex.label and angle.point2.label:
        parts.append(f"angle {angle.point1.label}{angle.vertex.label}{angle.point2.label}")
    return ", ".join(parts)


def _shared_vertex_label(ctx: RenderContext, line1: LineEntity, line2: LineEntity) -> str:
    def endpoints(line: LineEntity) -> List[str]:
        labels = [r.label for r in (line.point1, line.point2) if r.label and r.label in ctx.point_index]
        return list(dict.fromkeys(labels))

    second = set(endpoints(line2))
    return next((label for label in endpoints(line1) if label in second), "")


def safe_temp_name(base: str, suffix: str) -> str:
    core = re.sub(r"[^A-Za-z0-9_]", "", base or "ang")
    head = core if core[:1].isalpha() and core[:1].isascii() else f"A{core or 'ng'}"
    return f"{head}{suffix}"


def _render_three_point_angle(ctx: RenderContext, angle: AngleEntity, stroke: str) -> Optional[List[str]]:
    p1, v, p2 = ctx.resolve(angle.point1), ctx.resolve(angle.vertex), ctx.resolve(angle.point2)
    if p1 is None or v is None or p2 is None:
        return None
    start, end = angle_deg(v, p1), angle_deg(v, p2)
    delta = shortest_signed_delta(start, end)
    if abs(delta) < 1e-6:
        by_value = normalize_delta_by_value(angle.value_deg)
        delta = by_value if by_value is not None else (end - start) % 360.0
    if abs(delta) < 1e-6:
        return [f"% Angle {angle.label}: degenerate"]

    radius = angle_radius(angle.arc_size)
    right = is_right_angle(abs(delta)) or is_right_angle(angle.value_deg)
    names = (angle.point1.label, angle.vertex.label, angle.point2.label)
    if all(n and n in ctx.defined for n in names):
        out = []
        comment = _angle_comment(ctx, angle, angle.vertex.label or "")
        if comment:
            out.append(f"% {comment}")
        triple = names if right else _counterclockwise_names(ctx, *names)
        out.extend(_tkz_mark(triple, radius, angle.label, right))
        return out
    if right:
        return _right_angle_square(v, start, delta, stroke, angle.label)
    return [_angle_arc(v, start, delta, radius, stroke, angle.label)]


def _render_two_line_angle(ctx: RenderContext, angle: AngleEntity, idx: int) -> List[str]:
    l1 = ctx.lines.get(angle.line1_label or "")
    l2 = ctx.lines.get(angle.line2_label or "")
    c1, c2 = line_coeffs(ctx, l1), line_coeffs(ctx, l2)
    if c1 is None or c2 is None:
        return [f"% Angle {angle.label}: lines not resolved"]
    o = intersect_lines(c1, c2)
    if o is None:
        return [f"% Angle {angle.label}: lines do not intersect"]
    chosen = choose_line_line_directions(ctx, l1, l2, o, angle.value_deg)
    if chosen is None:
        return [f"% Angle {angle.label}: no direction pair"]
    d1, d2, delta = chosen

    out = []
    vertex_label = _shared_vertex_label(ctx, l1, l2) or _label_near(ctx, o) or ""
    comment = _angle_comment(ctx, angle, vertex_label)
    if comment:
        out.append(f"% {comment}")
    base = safe_temp_name(angle.label or f"ang{idx}", str(idx))
    v_name, p_name, q_name = (safe_temp_name(base, s) for s in ("V", "P", "Q"))
    t1, t2 = math.radians(d1), math.radians(d2)
    out.append(f"\\coordinate ({v_name}) at {format_point(*o)};")
    out.append(f"\\coordinate ({p_name}) at {format_point(o[0] + math.cos(t1), o[1] + math.sin(t1))};")
    out.append(f"\\coordinate ({q_name}) at {format_point(o[0] + math.cos(t2), o[1] + math.sin(t2))};")
    right = is_right_angle(abs(delta)) or is_right_angle(angle.value_deg)
    out.extend(_tkz_mark((p_name, v_name, q_name), angle_radius(angle.arc_size), angle.label, right))
    return out


def _render_angles(ctx: RenderContext, angles: Sequence[AngleEntity]) -> List[str]:
    out = ["% Angles"]
    for idx, angle in enumerate(angles):
        if not angle.visible:
            continue
        stroke = _stroke(ctx, "line", angle)
        rendered = _render_three_point_angle(ctx, angle, stroke)
        if rendered is None and angle.line1_label and angle.line2_label:
            rendered = _render_two_line_angle(ctx, angle, idx)
        if rendered is None:
            rendered = [f"% Angle {angle.label}: defining points missing"]
        out.extend(rendered)
    return out


# ---------------------------------------------------------------------------
# Points
# ---------------------------------------------------------------------------

def _point_node(label: str) -> str:
    return f" node[above right, xshift=0pt, yshift=0pt] {{${label}$}}"


def _render_points(ctx: RenderContext, points: Sequence[PointEntity]) -> List[str]:
    out = ["% Points"]
    has_origin_label = False
    radius_override = ctx.options.point_radius_pt
    for p in points:
        if not p.visible:
            continue
        if (p.label or "").strip() == "O":
            has_origin_label = True
        if not (math.isfinite(p.x) and math.isfinite(p.y)):
            out.append(f"% Point {p.label}: undefined coordinates")
            continue
        radius = radius_override if radius_override is not None else (p.style.point_size or DEFAULT_POINT_SIZE) / 20.0
        node = _point_node(p.label) if p.label else ""
        out.append(
            f"\\fill[{_color_option(_point_color(ctx, p.style))}] {point_ref(ctx, p.coord, p.label)} "
            f"circle[radius={format_float(radius)}pt]{node};"
        )
    # the origin gets a marker like any other point when axes are shown
    if ctx.options.show_axis and not has_origin_label:
        radius = radius_override if radius_override is not None else AXIS_ORIGIN_RADIUS_PT
        out.append(
            f"\\fill[black] (0.00,0.00) circle[radius={format_float(radius)}pt]{_point_node('O')}; % axis-origin"
        )
    return out


def _render_derived_points(points: Sequence[DerivedPoint]) -> List[str]:
    out = ["% Derived points (debug)"]
    for p in points:
        x, y = p.coord
        if not (math.isfinite(x) and math.isfinite(y)):
            continue
        out.append(
            f"\\fill[orange!80!black] {format_point(x, y)} circle[radius=0.8pt] node[below right] {{${p.label}$}};"
        )
    return out
