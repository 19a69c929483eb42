"""Normalized geometric model built by the classifier.

All entities are frozen: the model is built once per translation pass and
only read by the code generator.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Mapping, Optional, Tuple

from .document import CommandNode, ElementStyle
from .solvers import CanonicalConic, ConicMatrix, LineCoeffs, Point2


@dataclass(frozen=True)
class PointRef:
    """A reference to a point by label, by literal coordinate, or both."""

    label: Optional[str] = None
    coord: Optional[Point2] = None

    def resolve(self, index: Mapping[str, Point2]) -> Optional[Point2]:
        if self.coord is not None:
            return self.coord
        if self.label:
            return index.get(self.label)
        return None

    def __bool__(self) -> bool:
        return bool(self.label) or self.coord is not None


NO_POINT = PointRef()


@dataclass(frozen=True)
class Entity:
    label: str
    visible: bool = True
    style: ElementStyle = field(default_factory=ElementStyle)
    command_name: Optional[str] = None
    command_inputs: Tuple[str, ...] = ()


@dataclass(frozen=True)
class PointEntity(Entity):
    x: float = 0.0
    y: float = 0.0
    provenance: str = "free_point_coords"
    source_objects: Tuple[str, ...] = ()
    exp: Optional[str] = None
    exp_type: Optional[str] = None

    @property
    def coord(self) -> Point2:
        return (self.x, self.y)


@dataclass(frozen=True)
class FunctionEntity(Entity):
    exp: Optional[str] = None


@dataclass(frozen=True)
class SegmentEntity(Entity):
    start: PointRef = NO_POINT
    end: PointRef = NO_POINT
    from_polygon: bool = False
    polygon_label: Optional[str] = None


@dataclass(frozen=True)
class VectorEntity(Entity):
    start: PointRef = NO_POINT
    end: PointRef = NO_POINT
    components: Optional[Point2] = None


@dataclass(frozen=True)
class TangentRelation:
    conic_label: Optional[str] = None
    through: PointRef = NO_POINT
    tangent_point: Optional[Point2] = None


@dataclass(frozen=True)
class BisectorRelation:
    point1: PointRef = NO_POINT
    vertex: PointRef = NO_POINT
    point2: PointRef = NO_POINT


@dataclass(frozen=True)
class OrthogonalRelation:
    from_point: PointRef = NO_POINT
    target_label: Optional[str] = None
    target_type: Optional[str] = None
    foot: Optional[Point2] = None


@dataclass(frozen=True)
class LineEntity(Entity):
    point1: PointRef = NO_POINT
    point2: PointRef = NO_POINT
    coeffs: Optional[LineCoeffs] = None
    tangent: Optional[TangentRelation] = None
    bisector: Optional[BisectorRelation] = None
    orthogonal: Optional[OrthogonalRelation] = None


@dataclass(frozen=True)
class RayEntity(Entity):
    start: PointRef = NO_POINT
    through: PointRef = NO_POINT
    coeffs: Optional[LineCoeffs] = None


@dataclass(frozen=True)
class ConicParams:
    """Explicit construction parameters, whichever the command supplied."""

    center: PointRef = NO_POINT
    radius: Optional[float] = None
    pass_point: PointRef = NO_POINT
    third_point: PointRef = NO_POINT
    focus1: PointRef = NO_POINT
    focus2: PointRef = NO_POINT
    axis_length: Optional[float] = None
    focus: PointRef = NO_POINT
    directrix: Optional[str] = None


@dataclass(frozen=True)
class ConicEntity(Entity):
    conic_type: str = "conic"
    semantic_type: str = "conic_inferred"
    provenance: Tuple[str, ...] = ()
    equation: Optional[str] = None
    matrix: Optional[ConicMatrix] = None
    params: ConicParams = field(default_factory=ConicParams)
    canonical: Optional[CanonicalConic] = None
    canonical_source: Optional[str] = None


@dataclass(frozen=True)
class ConicPartEntity(Entity):
    kind: Optional[str] = None
    points: Tuple[PointRef, ...] = ()
    matrix: Optional[ConicMatrix] = None


@dataclass(frozen=True)
class AngleEntity(Entity):
    value_rad: Optional[float] = None
    arc_size: Optional[float] = None
    angle_style: Optional[int] = None
    point1: PointRef = NO_POINT
    vertex: PointRef = NO_POINT
    point2: PointRef = NO_POINT
    line1_label: Optional[str] = None
    line2_label: Optional[str] = None
    polygon_label: Optional[str] = None
    output_index: Optional[int] = None

    @property
    def value_deg(self) -> Optional[float]:
        if self.value_rad is None:
            return None
        return math.degrees(self.value_rad)


@dataclass(frozen=True)
class PolygonEntity(Entity):
    vertices: Tuple[PointRef, ...] = ()
    edge_labels: Tuple[str, ...] = ()


@dataclass(frozen=True)
class OtherEntity(Entity):
    type: str = "other"
    raw: Optional[str] = None


@dataclass(frozen=True)
class DerivedPoint:
    label: str
    kind: str
    owner_line: str
    coord: Point2


@dataclass(frozen=True)
class DocumentStats:
    total: int = 0
    visible: int = 0
    by_type: Tuple[Tuple[str, int], ...] = ()

    def as_dict(self) -> Dict[str, object]:
        return {"total": self.total, "visible": self.visible, "byType": dict(self.by_type)}


@dataclass(frozen=True)
class GeometricModel:
    points: Tuple[PointEntity, ...] = ()
    functions: Tuple[FunctionEntity, ...] = ()
    segments: Tuple[SegmentEntity, ...] = ()
    polygons: Tuple[PolygonEntity, ...] = ()
    vectors: Tuple[VectorEntity, ...] = ()
    lines: Tuple[LineEntity, ...] = ()
    rays: Tuple[RayEntity, ...] = ()
    angles: Tuple[AngleEntity, ...] = ()
    conics: Tuple[ConicEntity, ...] = ()
    conic_parts: Tuple[ConicPartEntity, ...] = ()
    others: Tuple[OtherEntity, ...] = ()
    derived_points: Tuple[DerivedPoint, ...] = ()
    command_graph: Tuple[CommandNode, ...] = ()
    stats: DocumentStats = field(default_factory=DocumentStats)

    @property
    def point_index(self) -> Dict[str, Point2]:
        """Finite coordinates of every labelled point, visible or not."""
        return {
            p.label: p.coord
            for p in self.points
            if p.label and math.isfinite(p.x) and math.isfinite(p.y)
        }

    def line_by_label(self, label: Optional[str]) -> Optional[LineEntity]:
        for line in self.lines:
            if line.label == label:
                return line
        return None
