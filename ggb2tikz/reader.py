"""Construction document reader.

Parses the XML markup of a dynamic-geometry construction into the three
lookup indexes used by the classifier: elements by label, expressions by
label, and commands by output label (plus the command declaration order).
"""

from __future__ import annotations

import logging
import math
import re
import xml.etree.ElementTree as ET
import zipfile
from pathlib import Path
from typing import Iterator, List, Optional, Tuple, Union

from .document import (
    CommandArg,
    CommandNode,
    ConstructionDocument,
    ElementNode,
    ElementStyle,
    ExpressionNode,
)

logger = logging.getLogger(__name__)

KNOWN_ELEMENT_TYPES = frozenset(
    {
        "point",
        "function",
        "segment",
        "polygon",
        "vector",
        "line",
        "ray",
        "angle",
        "conic",
        "conicpart",
    }
)

ARCHIVE_MEMBER = "geogebra.xml"

_NUM = r"-?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?"
_COORD_RE = re.compile(rf"^\s*\(\s*({_NUM})\s*,\s*({_NUM})\s*\)\s*$")
_NUMBER_RE = re.compile(rf"^\s*{_NUM}\s*$")


class DocumentError(Exception):
    pass


def parse_coordinate(text: Optional[str]) -> Optional[Tuple[float, float]]:
    if not text:
        return None
    m = _COORD_RE.match(text)
    if not m:
        return None
    x, y = float(m.group(1)), float(m.group(2))
    if not (math.isfinite(x) and math.isfinite(y)):
        return None
    return x, y


def is_number(text: Optional[str]) -> bool:
    if not text or _NUMBER_RE.match(text) is None:
        return False
    # literals like 1e400 overflow to inf
    return math.isfinite(float(text))


def _float_attr(node: Optional[ET.Element], name: str) -> Optional[float]:
    if node is None:
        return None
    raw = node.get(name)
    if raw is None:
        return None
    try:
        value = float(raw)
    except ValueError:
        return None
    return value if math.isfinite(value) else None


def _int_attr(node: Optional[ET.Element], name: str, default: int) -> int:
    if node is None:
        return default
    raw = node.get(name)
    if raw is None:
        return default
    try:
        return int(float(raw))
    except (ValueError, OverflowError):
        return default


def _rgb_to_hex(r: int, g: int, b: int) -> str:
    return "#" + "".join(f"{max(0, min(255, c)):02x}" for c in (r, g, b))


def _read_style(el: ET.Element) -> ElementStyle:
    color = None
    alpha = None
    obj_color = el.find("objColor")
    if obj_color is not None:
        color = _rgb_to_hex(
            _int_attr(obj_color, "r", 0),
            _int_attr(obj_color, "g", 0),
            _int_attr(obj_color, "b", 0),
        )
        alpha = _float_attr(obj_color, "alpha")

    thickness = line_type = opacity = None
    line_style = el.find("lineStyle")
    if line_style is not None:
        thickness = _int_attr(line_style, "thickness", 5)
        line_type = _int_attr(line_style, "type", 0)
        opacity = _int_attr(line_style, "opacity", 255)

    point_size = None
    size_node = el.find("pointSize")
    if size_node is not None:
        point_size = _int_attr(size_node, "val", 5)

    return ElementStyle(
        color=color,
        alpha=alpha,
        line_thickness=thickness,
        line_type=line_type,
        opacity=opacity,
        point_size=point_size,
    )


def _read_coords(el: ET.Element) -> Optional[Tuple[float, float, float]]:
    node = el.find("coords")
    if node is None:
        return None
    x = _float_attr(node, "x")
    y = _float_attr(node, "y")
    z = _float_attr(node, "z")
    if x is None or y is None:
        return None
    return x, y, 1.0 if z is None else z


def _read_matrix(el: ET.Element) -> Optional[Tuple[float, float, float, float, float, float]]:
    node = el.find("matrix")
    if node is None:
        return None
    values = []
    for idx in range(6):
        value = _float_attr(node, f"A{idx}")
        values.append(0.0 if value is None else value)
    return tuple(values)  # type: ignore[return-value]


def _read_element(el: ET.Element) -> ElementNode:
    el_type = el.get("type") or "other"
    show = el.find("show")
    visible = show.get("object") != "false" if show is not None else True

    value_node = el.find("value")
    angle_style = el.find("angleStyle")
    arc_size = el.find("arcSize")
    start_point = el.find("startPoint")

    raw = None
    if el_type not in KNOWN_ELEMENT_TYPES:
        raw = ET.tostring(el, encoding="unicode")

    return ElementNode(
        type=el_type,
        label=el.get("label") or "",
        visible=visible,
        style=_read_style(el),
        coords=_read_coords(el),
        matrix=_read_matrix(el),
        value=_float_attr(value_node, "val"),
        angle_style=_int_attr(angle_style, "val", 0) if angle_style is not None else None,
        arc_size=_float_attr(arc_size, "val"),
        start_point=start_point.get("exp") if start_point is not None else None,
        raw=raw,
    )


def _indexed_attributes(node: ET.Element) -> Iterator[str]:
    """Yield ``a0``, ``a1``, ... until the first absent index."""
    idx = 0
    while True:
        value = node.get(f"a{idx}")
        if value is None:
            return
        yield value
        idx += 1


def _read_argument(index: int, value: str) -> CommandArg:
    return CommandArg(
        index=index,
        value=value,
        coord=parse_coordinate(value),
        is_number=is_number(value),
        is_equation="=" in value,
    )


def _read_command(cmd: ET.Element) -> Optional[CommandNode]:
    input_node = cmd.find("input")
    output_node = cmd.find("output")
    if input_node is None or output_node is None:
        return None
    inputs = tuple(
        _read_argument(idx, value) for idx, value in enumerate(_indexed_attributes(input_node))
    )
    outputs = tuple(value for value in _indexed_attributes(output_node) if value != "")
    return CommandNode(name=cmd.get("name") or "", inputs=inputs, outputs=outputs)


def _find_construction(root: ET.Element) -> Optional[ET.Element]:
    if root.tag == "construction":
        return root
    return root.find(".//construction")


def read_construction(xml_text: str) -> ConstructionDocument:
    """Parse construction XML text into a :class:`ConstructionDocument`."""

    try:
        root = ET.fromstring(xml_text)
    except ET.ParseError as exc:
        raise DocumentError(f"malformed construction XML: {exc}") from exc

    document = ConstructionDocument()
    construction = _find_construction(root)
    if construction is None:
        logger.warning("Document has no construction node")
        return document

    for exp in construction.iter("expression"):
        label = exp.get("label")
        if label:
            document.expressions[label] = ExpressionNode(label=label, exp=exp.get("exp"), type=exp.get("type"))

    for cmd in construction.iter("command"):
        node = _read_command(cmd)
        if node is None:
            logger.debug("Skipping command %r without input/output", cmd.get("name"))
            continue
        for output in node.outputs:
            document.commands[output] = node
        document.command_list.append(node)

    for el in construction.iter("element"):
        element = _read_element(el)
        document.element_list.append(element)
        if element.label:
            document.elements[element.label] = element
        if element.type not in KNOWN_ELEMENT_TYPES:
            document.others.append(element)

    logger.info(
        "Read %d element(s), %d command(s), %d expression(s)",
        len(document.element_list),
        len(document.command_list),
        len(document.expressions),
    )
    return document


def read_ggb_file(path: Union[str, Path]) -> ConstructionDocument:
    """Read a ``.ggb`` archive or a plain XML file from disk."""

    path = Path(path)
    if zipfile.is_zipfile(path):
        try:
            with zipfile.ZipFile(path) as archive:
                text = archive.read(ARCHIVE_MEMBER).decode("utf-8")
        except KeyError as exc:
            raise DocumentError(f"{path}: archive has no {ARCHIVE_MEMBER}") from exc
    else:
        text = path.read_text(encoding="utf-8")
    return read_construction(text)


__all__: List[str] = [
    "DocumentError",
    "KNOWN_ELEMENT_TYPES",
    "is_number",
    "parse_coordinate",
    "read_construction",
    "read_ggb_file",
]
