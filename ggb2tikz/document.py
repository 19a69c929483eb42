"""Raw construction document records produced by the reader."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Dict, Iterator, List, Optional, Tuple

Coord = Tuple[float, float]


@dataclass(frozen=True)
class ElementStyle:
    """Stroke and marker style attached to an element."""

    color: Optional[str] = None
    alpha: Optional[float] = None
    line_thickness: Optional[int] = None
    line_type: Optional[int] = None
    opacity: Optional[int] = None
    point_size: Optional[int] = None


@dataclass(frozen=True)
class ElementNode:
    type: str
    label: str
    visible: bool = True
    style: ElementStyle = field(default_factory=ElementStyle)
    coords: Optional[Tuple[float, float, float]] = None
    matrix: Optional[Tuple[float, float, float, float, float, float]] = None
    value: Optional[float] = None
    angle_style: Optional[int] = None
    arc_size: Optional[float] = None
    start_point: Optional[str] = None
    raw: Optional[str] = None


@dataclass(frozen=True)
class CommandArg:
    """One positional command argument, pre-classified by its textual shape."""

    index: int
    value: str
    coord: Optional[Coord] = None
    is_number: bool = False
    is_equation: bool = False

    @property
    def is_coordinate(self) -> bool:
        return self.coord is not None

    @property
    def number(self) -> Optional[float]:
        return float(self.value) if self.is_number else None


@dataclass(frozen=True)
class CommandNode:
    name: str
    inputs: Tuple[CommandArg, ...]
    outputs: Tuple[str, ...]


@dataclass(frozen=True)
class ExpressionNode:
    label: str
    exp: Optional[str]
    type: Optional[str] = None


@dataclass
class ConstructionDocument:
    """Three lookup indexes plus the command declaration order."""

    elements: Dict[str, ElementNode] = field(default_factory=dict)
    element_list: List[ElementNode] = field(default_factory=list)
    expressions: Dict[str, ExpressionNode] = field(default_factory=dict)
    commands: Dict[str, CommandNode] = field(default_factory=dict)
    command_list: List[CommandNode] = field(default_factory=list)
    others: List[ElementNode] = field(default_factory=list)

    def element_type(self, label: Optional[str]) -> Optional[str]:
        if not label:
            return None
        element = self.elements.get(label)
        return element.type if element is not None else None

    def command_for(self, label: str) -> Optional[CommandNode]:
        return self.commands.get(label)

    def iter_elements(self) -> Iterator[ElementNode]:
        return iter(self.element_list)
