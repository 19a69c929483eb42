"""Semantic classifier: construction document to :class:`GeometricModel`.

Each element is classified by its type and, when one exists, by the tagged
variant of the command that produced it. Missing or degenerate data never
aborts classification; the affected field is simply left unresolved.
"""

from __future__ import annotations

import logging
import math
import re
from collections import Counter
from typing import Dict, List, Optional, Tuple

from .commands import (
    AngleCommand,
    AngularBisectorCommand,
    CenterCommand,
    CircleArcCommand,
    CircleCommand,
    CircleSectorCommand,
    CircumcircleArcCommand,
    CircumcircleSectorCommand,
    CommandVariant,
    EllipseCommand,
    HyperbolaCommand,
    InteriorAnglesCommand,
    IntersectCommand,
    LineCommand,
    MidpointCommand,
    OrthogonalLineCommand,
    ParabolaCommand,
    PointCommand,
    PolygonCommand,
    RayCommand,
    SemicircleCommand,
    TangentCommand,
    TriangleCircleCommand,
    VectorCommand,
    dispatch_command,
)
from .document import CommandArg, ConstructionDocument, ElementNode
from .expressions import equation_to_conic_matrix
from .logging_utils import apply_debug_logging
from .model import (
    NO_POINT,
    AngleEntity,
    BisectorRelation,
    ConicEntity,
    ConicParams,
    ConicPartEntity,
    DerivedPoint,
    DocumentStats,
    FunctionEntity,
    GeometricModel,
    LineEntity,
    OrthogonalRelation,
    OtherEntity,
    PointEntity,
    PointRef,
    PolygonEntity,
    RayEntity,
    SegmentEntity,
    TangentRelation,
    VectorEntity,
)
from .reader import parse_coordinate
from .solvers import (
    EPS_HOMOGENEOUS,
    EPS_RADIUS,
    CanonicalConic,
    CircleForm,
    ConicMatrix,
    LineCoeffs,
    Point2,
    circumcenter,
    decompose_conic,
    ellipse_from_foci,
    hyperbola_from_foci,
    infer_conic_type,
    parabola_from_focus_directrix,
    points_from_line,
    project_point_to_line,
    solve_tangent_point,
)

logger = logging.getLogger(__name__)

LINE_LIKE_TYPES = ("line", "segment", "ray")


# --- lookups -----------------------------------------------------------------


def _homogeneous_point(coords: Tuple[float, float, float]) -> Optional[Point2]:
    x, y, z = coords
    if math.isfinite(z) and abs(z) > EPS_HOMOGENEOUS:
        x, y = x / z, y / z
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return (x, y)


def resolve_point(document: ConstructionDocument, label: Optional[str]) -> Optional[Point2]:
    """Coordinates of a point element, or of a coordinate-literal expression."""

    if not label:
        return None
    element = document.elements.get(label)
    if element is not None and element.type == "point" and element.coords is not None:
        return _homogeneous_point(element.coords)
    exp = document.expressions.get(label)
    if exp is not None:
        return parse_coordinate(exp.exp)
    return None


def _point_ref(document: ConstructionDocument, arg: Optional[CommandArg]) -> PointRef:
    if arg is None:
        return NO_POINT
    if arg.coord is not None:
        return PointRef(coord=arg.coord)
    return PointRef(label=arg.value, coord=resolve_point(document, arg.value))


def _is_point_arg(document: ConstructionDocument, arg: CommandArg) -> bool:
    return arg.is_coordinate or document.element_type(arg.value) == "point"


def _line_coeffs(element: Optional[ElementNode]) -> Optional[LineCoeffs]:
    if element is None or element.coords is None:
        return None
    line = LineCoeffs(*element.coords)
    return line if line.is_finite() else None


def _line_coeffs_by_label(document: ConstructionDocument, label: Optional[str]) -> Optional[LineCoeffs]:
    if document.element_type(label) not in LINE_LIKE_TYPES:
        return None
    return _line_coeffs(document.elements.get(label))


def _conic_matrix(element: Optional[ElementNode]) -> Optional[ConicMatrix]:
    if element is None or element.matrix is None:
        return None
    matrix = ConicMatrix.from_ggb(element.matrix)
    return matrix if matrix.is_finite() else None


def _numeric_arg(document: ConstructionDocument, arg: Optional[CommandArg]) -> Optional[float]:
    """Literal number, or the value of a numeric element referenced by label."""
    if arg is None:
        return None
    if arg.is_number:
        return arg.number
    element = document.elements.get(arg.value)
    if element is not None and element.type == "numeric" and element.value is not None:
        return element.value
    return None


def _entity_fields(element: ElementNode, variant: Optional[CommandVariant]) -> Dict[str, object]:
    return {
        "label": element.label,
        "visible": element.visible,
        "style": element.style,
        "command_name": variant.name if variant else None,
        "command_inputs": variant.input_values if variant else (),
    }


# --- points and simple paths -------------------------------------------------


def point_provenance(document: ConstructionDocument, label: str, variant: Optional[CommandVariant]) -> Tuple[str, Tuple[str, ...]]:
    """Provenance tag and source object labels of a point."""

    if variant is not None:
        sources = tuple(v for v in variant.input_values if v)
        if isinstance(variant, PointCommand):
            obj = next((a for a in variant.inputs if not a.is_coordinate), None)
            if obj is not None:
                return "point_on_object", (obj.value,)
            return "point_by_coordinate_command", sources
        if isinstance(variant, IntersectCommand):
            return "intersection_point", sources
        if isinstance(variant, MidpointCommand):
            return "midpoint", sources
        if isinstance(variant, CenterCommand):
            return "center_point", sources
        return "derived_point", sources

    exp = document.expressions.get(label)
    if exp is not None and parse_coordinate(exp.exp) is not None:
        return "free_point_expression", ()
    return "free_point_coords", ()


def _classify_point(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> PointEntity:
    x = y = 0.0
    if element.coords is not None:
        coord = _homogeneous_point(element.coords)
        if coord is not None:
            x, y = coord
    provenance, sources = point_provenance(document, element.label, variant)
    exp = document.expressions.get(element.label)
    return PointEntity(
        **_entity_fields(element, variant),
        x=x,
        y=y,
        provenance=provenance,
        source_objects=sources,
        exp=exp.exp if exp else None,
        exp_type=exp.type if exp else None,
    )


def _classify_function(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> FunctionEntity:
    exp = document.expressions.get(element.label)
    return FunctionEntity(**_entity_fields(element, variant), exp=exp.exp if exp else None)


def polygon_vertices(document: ConstructionDocument, variant: CommandVariant) -> Tuple[PointRef, ...]:
    """Ordered polygon vertices.

    Input points come first, then point outputs (new vertices of a regular
    polygon). The regular-polygon idiom ``Polygon(A, B, n)`` keeps that order;
    otherwise three or more resolved vertices are sorted by angle around their
    centroid.
    """
    inputs = [
        ref for ref in (_point_ref(document, a) for a in variant.inputs if not a.is_number) if ref.coord is not None
    ]
    seen = {ref.label for ref in inputs if ref.label}
    extra = []
    for out in variant.outputs:
        if out not in seen and document.element_type(out) == "point":
            coord = resolve_point(document, out)
            if coord is not None:
                extra.append(PointRef(label=out, coord=coord))
                seen.add(out)
    vertices = inputs + extra

    if isinstance(variant, PolygonCommand) and variant.is_regular:
        return tuple(vertices)
    if len(vertices) >= 3:
        cx = sum(v.coord[0] for v in vertices) / len(vertices)
        cy = sum(v.coord[1] for v in vertices) / len(vertices)
        vertices.sort(key=lambda v: math.atan2(v.coord[1] - cy, v.coord[0] - cx))
    return tuple(vertices)


def _classify_polygon(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> PolygonEntity:
    if variant is None:
        return PolygonEntity(**_entity_fields(element, variant))
    return PolygonEntity(
        **_entity_fields(element, variant),
        vertices=polygon_vertices(document, variant),
        edge_labels=tuple(variant.outputs[1:]),
    )


def _classify_segment(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> SegmentEntity:
    fields = _entity_fields(element, variant)
    if isinstance(variant, PolygonCommand) and variant.outputs:
        start = end = NO_POINT
        if variant.name != "RegularPolygon":
            edge = variant.output_index(element.label) - 1
            n = len(variant.inputs)
            if edge >= 0 and n >= 2:
                start = _point_ref(document, variant.inputs[edge % n])
                end = _point_ref(document, variant.inputs[(edge + 1) % n])
        return SegmentEntity(
            **fields, start=start, end=end, from_polygon=True, polygon_label=variant.outputs[0]
        )
    if variant is not None and len(variant.inputs) >= 2:
        return SegmentEntity(
            **fields, start=_point_ref(document, variant.arg(0)), end=_point_ref(document, variant.arg(1))
        )
    return SegmentEntity(**fields)


def _classify_vector(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> VectorEntity:
    components = None
    if element.coords is not None:
        vx, vy, _ = element.coords
        if math.isfinite(vx) and math.isfinite(vy):
            components = (vx, vy)

    start = end = NO_POINT
    if element.start_point:
        start = PointRef(label=element.start_point, coord=resolve_point(document, element.start_point))
    if isinstance(variant, VectorCommand) and len(variant.inputs) >= 2:
        start = _point_ref(document, variant.arg(0))
        end = _point_ref(document, variant.arg(1))
    if end.coord is None and start.coord is not None and components is not None:
        end = PointRef(label=end.label, coord=(start.coord[0] + components[0], start.coord[1] + components[1]))
    return VectorEntity(**_entity_fields(element, variant), start=start, end=end, components=components)


def _classify_ray(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> RayEntity:
    start = through = NO_POINT
    if isinstance(variant, RayCommand) and len(variant.inputs) >= 2:
        start = _point_ref(document, variant.arg(0))
        through = _point_ref(document, variant.arg(1))
    return RayEntity(**_entity_fields(element, variant), start=start, through=through, coeffs=_line_coeffs(element))


# --- lines -------------------------------------------------------------------


def _through_point_input(document: ConstructionDocument, variant: CommandVariant) -> Optional[CommandArg]:
    return next((a for a in variant.inputs if _is_point_arg(document, a)), None)


def _tangent_relation(document: ConstructionDocument, variant: TangentCommand, coeffs: Optional[LineCoeffs]) -> TangentRelation:
    conic_arg = next((a for a in variant.inputs if document.element_type(a.value) == "conic"), None)
    point_arg = _through_point_input(document, variant)
    tangent_point = None
    if conic_arg is not None and coeffs is not None:
        matrix = _conic_matrix(document.elements.get(conic_arg.value))
        if matrix is not None:
            tangent_point = solve_tangent_point(coeffs, matrix)
        if tangent_point is None:
            logger.debug("No tangent point for line %s on %s", variant.outputs, conic_arg.value)
    return TangentRelation(
        conic_label=conic_arg.value if conic_arg else None,
        through=_point_ref(document, point_arg),
        tangent_point=tangent_point,
    )


def _orthogonal_relation(document: ConstructionDocument, variant: OrthogonalLineCommand) -> OrthogonalRelation:
    point_arg = _through_point_input(document, variant)
    target_arg = next((a for a in variant.inputs if a is not point_arg), None)
    from_point = _point_ref(document, point_arg)
    foot = None
    target_label = target_arg.value if target_arg else None
    if from_point.coord is not None and target_label:
        target = _line_coeffs_by_label(document, target_label)
        if target is not None:
            foot = project_point_to_line(from_point.coord, target)
    return OrthogonalRelation(
        from_point=from_point,
        target_label=target_label,
        target_type=document.element_type(target_label),
        foot=foot,
    )


def _classify_line(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> LineEntity:
    coeffs = _line_coeffs(element)
    point1 = point2 = NO_POINT
    if isinstance(variant, LineCommand):
        point_args = [a for a in variant.inputs[:2] if _is_point_arg(document, a)]
        if len(point_args) == 2:
            point1, point2 = (_point_ref(document, a) for a in point_args)

    if (point1.coord is None or point2.coord is None) and coeffs is not None:
        pair = points_from_line(coeffs)
        if pair is not None:
            point1 = PointRef(label=point1.label, coord=pair[0]) if point1.coord is None else point1
            point2 = PointRef(label=point2.label, coord=pair[1]) if point2.coord is None else point2

    tangent = bisector = orthogonal = None
    if isinstance(variant, TangentCommand):
        tangent = _tangent_relation(document, variant, coeffs)
    elif isinstance(variant, AngularBisectorCommand) and len(variant.inputs) >= 3:
        bisector = BisectorRelation(*(_point_ref(document, variant.arg(i)) for i in range(3)))
    elif isinstance(variant, OrthogonalLineCommand):
        orthogonal = _orthogonal_relation(document, variant)

    return LineEntity(
        **_entity_fields(element, variant),
        point1=point1,
        point2=point2,
        coeffs=coeffs,
        tangent=tangent,
        bisector=bisector,
        orthogonal=orthogonal,
    )


# --- conics ------------------------------------------------------------------

_COMMAND_CONIC_TYPES = (
    (CircleCommand, "circle"),
    (TriangleCircleCommand, "circle"),
    (EllipseCommand, "ellipse"),
    (HyperbolaCommand, "hyperbola"),
    (ParabolaCommand, "parabola"),
)


def normalize_equation(equation: Optional[str]) -> Optional[str]:
    """Compact spelling used for type inference: ``^(2)`` -> ``^2``, no spaces or ``*``."""
    if not equation:
        return None
    text = equation.replace("²", "^2")
    text = re.sub(r"\^\(\s*([^)]+?)\s*\)", r"^\1", text)
    return re.sub(r"[\s*]", "", text)


def infer_conic_type_from_equation(equation: Optional[str]) -> Optional[str]:
    n = normalize_equation(equation)
    if not n:
        return None
    has_x2 = "x^2" in n
    has_y2 = "y^2" in n
    if has_x2 and has_y2:
        if "-y^2" in n or "-x^2" in n:
            return "hyperbola"
        if re.search(r"x\^2\+y\^2=", n) or re.search(r"y\^2\+x\^2=", n):
            return "circle"
        return "ellipse"
    if has_x2 or has_y2:
        return "parabola"
    return None


def _conic_params(document: ConstructionDocument, variant: Optional[CommandVariant]) -> ConicParams:
    if isinstance(variant, CircleCommand):
        radius = _numeric_arg(document, variant.arg(1))
        return ConicParams(
            center=_point_ref(document, variant.arg(0)),
            radius=radius,
            pass_point=_point_ref(document, variant.arg(1)) if radius is None else NO_POINT,
            third_point=_point_ref(document, variant.arg(2)),
        )
    if isinstance(variant, (EllipseCommand, HyperbolaCommand)):
        axis_length = _numeric_arg(document, variant.arg(2))
        return ConicParams(
            focus1=_point_ref(document, variant.arg(0)),
            focus2=_point_ref(document, variant.arg(1)),
            axis_length=axis_length,
            pass_point=_point_ref(document, variant.arg(2)) if axis_length is None else NO_POINT,
        )
    if isinstance(variant, ParabolaCommand):
        directrix = variant.arg(1)
        return ConicParams(
            focus=_point_ref(document, variant.arg(0)),
            directrix=directrix.value if directrix else None,
        )
    return ConicParams()


def _circle_semantic_type(params: ConicParams) -> str:
    center, passing, third = params.center, params.pass_point, params.third_point
    if center and params.radius is not None:
        return "circle_by_center_radius"
    if center and passing and third:
        literal = all(ref.label is None for ref in (center, passing, third))
        return "circle_by_three_points" if literal else "circle_by_three_points_label"
    if center and passing:
        literal = center.label is None and passing.label is None
        return "circle_by_center_point" if literal else "circle_by_center_point_label"
    return "circle_generic"


def _semantic_type(variant: Optional[CommandVariant], params: ConicParams, canonical_type: str, equation: Optional[str], matrix: Optional[ConicMatrix]) -> str:
    if isinstance(variant, CircleCommand):
        return _circle_semantic_type(params)
    if isinstance(variant, EllipseCommand):
        return "ellipse_by_foci_axis_length" if params.axis_length is not None else "ellipse_by_foci_point"
    if isinstance(variant, HyperbolaCommand):
        return "hyperbola_by_foci_axis_length" if params.axis_length is not None else "hyperbola_by_foci_point"
    if isinstance(variant, ParabolaCommand):
        return "parabola_by_focus_directrix"
    if equation:
        return f"{canonical_type}_by_equation"
    if matrix is not None:
        return f"{canonical_type}_by_matrix"
    return "conic_inferred"


def _canonical_from_params(variant: Optional[CommandVariant], params: ConicParams) -> Optional[CanonicalConic]:
    if isinstance(variant, CircleCommand):
        center = params.center.coord
        if center is None:
            return None
        if params.radius is not None:
            return CircleForm(center[0], center[1], params.radius) if params.radius > EPS_RADIUS else None
        passing = params.pass_point.coord
        if passing is None:
            return None
        third = params.third_point.coord
        if params.third_point and third is None:
            return None
        if third is not None:
            cc = circumcenter(center, passing, third)
            if cc is None:
                return None
            return CircleForm(cc[0], cc[1], math.dist(cc, center))
        radius = math.dist(center, passing)
        return CircleForm(center[0], center[1], radius) if radius > EPS_RADIUS else None

    if isinstance(variant, (EllipseCommand, HyperbolaCommand)):
        f1, f2 = params.focus1.coord, params.focus2.coord
        if f1 is None or f2 is None:
            return None
        build = ellipse_from_foci if isinstance(variant, EllipseCommand) else hyperbola_from_foci
        return build(f1, f2, params.axis_length, params.pass_point.coord)

    if isinstance(variant, ParabolaCommand):
        focus = params.focus.coord
        if focus is None:
            return None
        return parabola_from_focus_directrix(focus, params.directrix)
    return None


def _classify_conic(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> ConicEntity:
    exp = document.expressions.get(element.label)
    raw_equation = exp.exp if exp is not None and exp.exp else None
    matrix = _conic_matrix(element)
    params = _conic_params(document, variant)

    provenance: List[str] = []
    if variant is not None:
        provenance.append("command")
    if raw_equation:
        provenance.append("expression")
    if element.matrix is not None:
        provenance.append("element_matrix")

    type_from_command = next((t for cls, t in _COMMAND_CONIC_TYPES if isinstance(variant, cls)), None)
    type_from_equation = infer_conic_type_from_equation(raw_equation)
    type_from_matrix = infer_conic_type(matrix) if matrix is not None else None
    conic_type = type_from_command or type_from_equation or type_from_matrix or "conic"

    candidates = (
        ("command", lambda: _canonical_from_params(variant, params)),
        ("expression", lambda: _decompose_equation(raw_equation)),
        ("element_matrix", lambda: decompose_conic(matrix) if matrix is not None else None),
    )
    canonical = canonical_source = None
    for source, build in candidates:
        canonical = build()
        if canonical is not None:
            canonical_source = source
            break
    if canonical is None:
        logger.warning("Conic %s has no canonical form", element.label)

    return ConicEntity(
        **_entity_fields(element, variant),
        conic_type=conic_type,
        semantic_type=_semantic_type(variant, params, conic_type, raw_equation, matrix),
        provenance=tuple(provenance),
        equation=normalize_equation(raw_equation),
        matrix=matrix,
        params=params,
        canonical=canonical,
        canonical_source=canonical_source,
    )


def _decompose_equation(equation: Optional[str]) -> Optional[CanonicalConic]:
    if not equation:
        return None
    matrix = equation_to_conic_matrix(equation)
    return decompose_conic(matrix) if matrix is not None else None


def _classify_conic_part(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> ConicPartEntity:
    points: Tuple[PointRef, ...] = ()
    if isinstance(variant, SemicircleCommand) and len(variant.inputs) >= 2:
        points = tuple(_point_ref(document, variant.arg(i)) for i in range(2))
    elif isinstance(
        variant, (CircleArcCommand, CircleSectorCommand, CircumcircleArcCommand, CircumcircleSectorCommand)
    ) and len(variant.inputs) >= 3:
        points = tuple(_point_ref(document, variant.arg(i)) for i in range(3))
    return ConicPartEntity(
        **_entity_fields(element, variant),
        kind=variant.name if variant else None,
        points=points,
        matrix=_conic_matrix(element),
    )


# --- angles ------------------------------------------------------------------


def _classify_angle(document: ConstructionDocument, element: ElementNode, variant: Optional[CommandVariant]) -> AngleEntity:
    value = element.value if element.value is not None and math.isfinite(element.value) else None
    fields = dict(
        _entity_fields(element, variant),
        value_rad=value,
        arc_size=element.arc_size,
        angle_style=element.angle_style,
    )
    if isinstance(variant, AngleCommand):
        if len(variant.inputs) >= 3:
            p1, vertex, p2 = (_point_ref(document, variant.arg(i)) for i in range(3))
            return AngleEntity(**fields, point1=p1, vertex=vertex, point2=p2)
        if len(variant.inputs) == 2:
            return AngleEntity(**fields, line1_label=variant.inputs[0].value, line2_label=variant.inputs[1].value)
    if isinstance(variant, InteriorAnglesCommand) and variant.inputs:
        polygon_label = variant.inputs[0].value
        index = variant.output_index(element.label)
        triple = {}
        polygon_cmd = dispatch_command(document.command_for(polygon_label))
        if polygon_cmd is not None and index >= 0:
            vertices = polygon_vertices(document, polygon_cmd)
            n = len(vertices)
            if n >= 3:
                i = index % n
                triple = {
                    "point1": vertices[(i - 1) % n],
                    "vertex": vertices[i],
                    "point2": vertices[(i + 1) % n],
                }
        return AngleEntity(
            **fields,
            polygon_label=polygon_label,
            output_index=index if index >= 0 else None,
            **triple,
        )
    return AngleEntity(**fields)


# --- model -------------------------------------------------------------------


def derive_points(lines: Tuple[LineEntity, ...]) -> Tuple[DerivedPoint, ...]:
    derived: List[DerivedPoint] = []
    for line in lines:
        if line.tangent is not None and line.tangent.tangent_point is not None:
            derived.append(DerivedPoint(f"{line.label}_T", "tangent_point", line.label, line.tangent.tangent_point))
        if line.orthogonal is not None and line.orthogonal.foot is not None:
            derived.append(DerivedPoint(f"{line.label}_H", "orthogonal_foot", line.label, line.orthogonal.foot))
    return tuple(derived)


def document_stats(document: ConstructionDocument) -> DocumentStats:
    counts = Counter(el.type for el in document.iter_elements())
    return DocumentStats(
        total=len(document.element_list),
        visible=sum(1 for el in document.iter_elements() if el.visible),
        by_type=tuple(counts.items()),
    )


_CLASSIFIERS = {
    "point": ("points", _classify_point),
    "function": ("functions", _classify_function),
    "segment": ("segments", _classify_segment),
    "polygon": ("polygons", _classify_polygon),
    "vector": ("vectors", _classify_vector),
    "line": ("lines", _classify_line),
    "ray": ("rays", _classify_ray),
    "angle": ("angles", _classify_angle),
    "conic": ("conics", _classify_conic),
    "conicpart": ("conic_parts", _classify_conic_part),
}


def classify(document: ConstructionDocument) -> GeometricModel:
    """Build the immutable geometric model of a construction document."""

    buckets: Dict[str, list] = {name: [] for name, _ in _CLASSIFIERS.values()}
    others: List[OtherEntity] = []
    for element in document.iter_elements():
        variant = dispatch_command(document.command_for(element.label))
        entry = _CLASSIFIERS.get(element.type)
        if entry is None:
            others.append(OtherEntity(**_entity_fields(element, variant), type=element.type, raw=element.raw))
            continue
        bucket, handler = entry
        buckets[bucket].append(handler(document, element, variant))

    lines = tuple(buckets["lines"])
    model = GeometricModel(
        points=tuple(buckets["points"]),
        functions=tuple(buckets["functions"]),
        segments=tuple(buckets["segments"]),
        polygons=tuple(buckets["polygons"]),
        vectors=tuple(buckets["vectors"]),
        lines=lines,
        rays=tuple(buckets["rays"]),
        angles=tuple(buckets["angles"]),
        conics=tuple(buckets["conics"]),
        conic_parts=tuple(buckets["conic_parts"]),
        others=tuple(others),
        derived_points=derive_points(lines),
        command_graph=tuple(document.command_list),
        stats=document_stats(document),
    )
    logger.debug(
        "Classified %d point(s), %d line(s), %d conic(s), %d angle(s)",
        len(model.points),
        len(model.lines),
        len(model.conics),
        len(model.angles),
    )
    return model


apply_debug_logging(globals(), logger=logger)
