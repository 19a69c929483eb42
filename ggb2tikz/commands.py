"""Tagged command variants.

Every recognized builder command maps to exactly one variant class; the
classifier dispatches on the variant type instead of comparing raw command
names. Unrecognized commands become :class:`GenericCommand`.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, Tuple, Type

from .document import CommandArg, CommandNode


@dataclass(frozen=True)
class CommandVariant:
    name: str
    inputs: Tuple[CommandArg, ...]
    outputs: Tuple[str, ...]

    def arg(self, index: int) -> Optional[CommandArg]:
        return self.inputs[index] if 0 <= index < len(self.inputs) else None

    @property
    def input_values(self) -> Tuple[str, ...]:
        return tuple(arg.value for arg in self.inputs)

    def output_index(self, label: str) -> int:
        try:
            return self.outputs.index(label)
        except ValueError:
            return -1


class PointCommand(CommandVariant):
    pass


class IntersectCommand(CommandVariant):
    pass


class MidpointCommand(CommandVariant):
    pass


class CenterCommand(CommandVariant):
    pass


class LineCommand(CommandVariant):
    pass


class RayCommand(CommandVariant):
    pass


class SegmentCommand(CommandVariant):
    pass


class VectorCommand(CommandVariant):
    pass


class TangentCommand(CommandVariant):
    pass


class AngularBisectorCommand(CommandVariant):
    pass


class OrthogonalLineCommand(CommandVariant):
    pass


class CircleCommand(CommandVariant):
    pass


class TriangleCircleCommand(CommandVariant):
    """Incircle, circumcircle and excircle: circle type, parameters from the matrix."""


class EllipseCommand(CommandVariant):
    pass


class HyperbolaCommand(CommandVariant):
    pass


class ParabolaCommand(CommandVariant):
    pass


class PolygonCommand(CommandVariant):
    @property
    def is_regular(self) -> bool:
        """``Polygon(A, B, n)``: the regular-polygon idiom of the general command."""
        return self.name == "Polygon" and len(self.inputs) >= 3 and any(a.is_number for a in self.inputs)


class SemicircleCommand(CommandVariant):
    pass


class CircleArcCommand(CommandVariant):
    pass


class CircleSectorCommand(CommandVariant):
    pass


class CircumcircleArcCommand(CommandVariant):
    pass


class CircumcircleSectorCommand(CommandVariant):
    pass


class AngleCommand(CommandVariant):
    pass


class InteriorAnglesCommand(CommandVariant):
    pass


class GenericCommand(CommandVariant):
    pass


COMMAND_VARIANTS: Dict[str, Type[CommandVariant]] = {
    "Point": PointCommand,
    "Intersect": IntersectCommand,
    "IntersectPath": IntersectCommand,
    "Midpoint": MidpointCommand,
    "Center": CenterCommand,
    "Line": LineCommand,
    "Ray": RayCommand,
    "Segment": SegmentCommand,
    "Vector": VectorCommand,
    "Tangent": TangentCommand,
    "AngularBisector": AngularBisectorCommand,
    "OrthogonalLine": OrthogonalLineCommand,
    "PerpendicularLine": OrthogonalLineCommand,
    "Circle": CircleCommand,
    "Incircle": TriangleCircleCommand,
    "Circumcircle": TriangleCircleCommand,
    "Excircle": TriangleCircleCommand,
    "Ellipse": EllipseCommand,
    "Hyperbola": HyperbolaCommand,
    "Parabola": ParabolaCommand,
    "Polygon": PolygonCommand,
    "RigidPolygon": PolygonCommand,
    "RegularPolygon": PolygonCommand,
    "VectorPolygon": PolygonCommand,
    "Semicircle": SemicircleCommand,
    "CircleArc": CircleArcCommand,
    "CircleSector": CircleSectorCommand,
    "CircumcircleArc": CircumcircleArcCommand,
    "CircumcircleSector": CircumcircleSectorCommand,
    "Angle": AngleCommand,
    "InteriorAngles": InteriorAnglesCommand,
}


def dispatch_command(node: Optional[CommandNode]) -> Optional[CommandVariant]:
    if node is None:
        return None
    cls = COMMAND_VARIANTS.get(node.name, GenericCommand)
    return cls(name=node.name, inputs=node.inputs, outputs=node.outputs)
