"""Post-processing of emitted TikZ: point label placement and picture scale."""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Tuple

from .solvers import Point2

logger = logging.getLogger(__name__)

CM_PER_PT = 0.0353
OVERLAP_PENALTY = 800.0
NEAR_POINT_DISTANCE = 0.18
NEAR_POINT_WEIGHT = 350.0
INWARD_PENALTY = 12.0
SCALE_RANGE = (0.5, 1.6)
MIN_PICTURE_EXTENT = 0.5

# (anchor, dx, dy) in preference order
CANDIDATES: Tuple[Tuple[str, int, int], ...] = (
    ("above right", 1, 1),
    ("above left", -1, 1),
    ("below right", 1, -1),
    ("below left", -1, -1),
    ("above", 0, 1),
    ("below", 0, -1),
    ("right", 1, 0),
    ("left", -1, 0),
)

_NUM = r"-?\d+(?:\.\d+)?"
_COORD_DEF_RE = re.compile(rf"\\coordinate\s*\(([A-Za-z][A-Za-z0-9_]*)\)\s*at\s*\(\s*({_NUM})\s*,\s*({_NUM})\s*\)")
_POINT_LINE_RE = re.compile(
    r"^(\s*\\fill\[[^\]]*\]\s*)(\([^)]+\))(\s*circle\[radius=[^\]]+\]\s*)node\[[^\]]*\]\s*\{\$([^$]*)\$\}(;.*)$"
)
_POINT_MARK_RE = re.compile(r"\\fill\[[^\]]*\]\s*(\([^)]+\))\s*circle\[radius=[^\]]*pt\]")
_CIRCLE_RE = re.compile(rf"(\([^)]+\))\s*circle\[radius=({_NUM})\]")
_NUMERIC_REF_RE = re.compile(rf"^\(\s*({_NUM})\s*,\s*({_NUM})\s*\)$")
_NAMED_REF_RE = re.compile(r"^\(\s*([A-Za-z][A-Za-z0-9_]*)\s*\)$")
_PICTURE_RE = re.compile(r"\\begin\{tikzpicture\}\[([^\]]*)\]")
_SCALE_OPT_RE = re.compile(r"(^|,)\s*scale\s*=\s*[^,\]]+", re.IGNORECASE)


@dataclass(frozen=True)
class Box:
    x1: float
    y1: float
    x2: float
    y2: float

    def intersects(self, other: "Box") -> bool:
        return not (self.x2 < other.x1 or self.x1 > other.x2 or self.y2 < other.y1 or self.y1 > other.y2)

    def distance_to(self, p: Point2) -> float:
        dx = max(0.0, self.x1 - p[0], p[0] - self.x2)
        dy = max(0.0, self.y1 - p[1], p[1] - self.y2)
        return math.hypot(dx, dy)


def _clamp(value: float, lo: float, hi: float) -> float:
    return max(lo, min(hi, value))


def coordinate_map(code: str) -> Dict[str, Point2]:
    """Named coordinates defined by ``\\coordinate`` statements."""
    return {m.group(1): (float(m.group(2)), float(m.group(3))) for m in _COORD_DEF_RE.finditer(code)}


def ref_to_coord(ref: str, coords: Dict[str, Point2]) -> Optional[Point2]:
    ref = ref.strip()
    m = _NUMERIC_REF_RE.match(ref)
    if m:
        return (float(m.group(1)), float(m.group(2)))
    m = _NAMED_REF_RE.match(ref)
    if m:
        return coords.get(m.group(1))
    return None


def collect_points(code: str) -> List[Point2]:
    """Point markers of the picture plus the extreme points of plain circles."""
    coords = coordinate_map(code)
    points: List[Point2] = []
    for m in _POINT_MARK_RE.finditer(code):
        p = ref_to_coord(m.group(1), coords)
        if p is not None:
            points.append(p)
    for m in _CIRCLE_RE.finditer(code):
        center = ref_to_coord(m.group(1), coords)
        r = abs(float(m.group(2)))
        if center is None or r <= 1e-9:
            continue
        cx, cy = center
        points.extend(((cx + r, cy), (cx - r, cy), (cx, cy + r), (cx, cy - r)))
    return points


def estimate_label_width_cm(text: str, font_pt: float = 12.0) -> float:
    n = max(1, len(re.sub(r"\\[A-Za-z]+", "x", text)))
    return max(0.22, (font_pt / 12.0) * (0.09 * n + 0.12))


def _format_pt(value: float) -> str:
    return f"{value:g}"


def refine_point_labels(
    code: str,
    points: Optional[Sequence[Point2]] = None,
    offset_pt: float = 1.0,
    font_pt: float = 12.0,
    max_shift_pt: float = 8.0,
) -> str:
    """Re-anchor point label nodes to avoid overlaps.

    Labels are placed greedily in document order. Each of the eight anchors
    is scored by overlap with labels placed so far, by closeness to other
    points and by a small penalty for pointing towards the centroid.
    """
    offset_pt = _clamp(float(offset_pt), 0.0, max_shift_pt)
    font_pt = _clamp(float(font_pt), 8.0, 20.0)
    offset_cm = offset_pt * CM_PER_PT
    coords = coordinate_map(code)
    scene = list(points) if points is not None else collect_points(code)
    if scene:
        centroid = (sum(p[0] for p in scene) / len(scene), sum(p[1] for p in scene) / len(scene))
    else:
        centroid = (0.0, 0.0)

    lines = code.split("\n")
    placed: List[Box] = []
    height = max(0.16, 0.14 * font_pt / 12.0)
    font = f"font=\\fontsize{{{_format_pt(font_pt)}pt}}{{{round(font_pt + 1)}pt}}\\selectfont"
    moved = 0
    for i, line in enumerate(lines):
        m = _POINT_LINE_RE.match(line)
        if m is None:
            continue
        prefix, ref, middle, label, suffix = m.groups()
        p = ref_to_coord(ref, coords)
        if p is None:
            continue
        width = estimate_label_width_cm(label, font_pt)

        best: Optional[Tuple[str, int, int]] = None
        best_box: Optional[Box] = None
        best_score = math.inf
        for key, dx, dy in CANDIDATES:
            cx = p[0] + dx * (offset_cm + width * 0.35)
            cy = p[1] + dy * (offset_cm + height * 0.55)
            box = Box(cx - width / 2, cy - height / 2, cx + width / 2, cy + height / 2)
            score = sum(OVERLAP_PENALTY for other in placed if box.intersects(other))
            for q in scene:
                if abs(q[0] - p[0]) < 1e-9 and abs(q[1] - p[1]) < 1e-9:
                    continue
                d = box.distance_to(q)
                if d < NEAR_POINT_DISTANCE:
                    score += (NEAR_POINT_DISTANCE - d) * NEAR_POINT_WEIGHT
            if (p[0] - centroid[0]) * dx + (p[1] - centroid[1]) * dy < 0:
                score += INWARD_PENALTY
            if score < best_score:
                best_score = score
                best = (key, dx, dy)
                best_box = box
        if best is None or best_box is None:
            continue
        placed.append(best_box)
        key, dx, dy = best
        shift_x = _format_pt(dx * offset_pt) if dx else "0"
        shift_y = _format_pt(dy * offset_pt) if dy else "0"
        lines[i] = f"{prefix}{ref}{middle}node[{key}, xshift={shift_x}pt, yshift={shift_y}pt, {font}] {{${label}$}}{suffix}"
        moved += 1
    logger.debug("Placed %d point label(s)", moved)
    return "\n".join(lines)


def picture_extent(points: Sequence[Point2]) -> Tuple[float, float]:
    """Width and height of the padded bounding box, origin included."""
    clean = [p for p in points if math.isfinite(p[0]) and math.isfinite(p[1])]
    if not clean:
        return (6.0, 6.0)
    xmin = math.floor(min(min(p[0] for p in clean) - 0.5, -0.5) * 2) / 2
    xmax = math.ceil(max(max(p[0] for p in clean) + 0.5, 0.5) * 2) / 2
    ymin = math.floor(min(min(p[1] for p in clean) - 0.5, -0.5) * 2) / 2
    ymax = math.ceil(max(max(p[1] for p in clean) + 0.5, 0.5) * 2) / 2
    return (max(MIN_PICTURE_EXTENT, xmax - xmin), max(MIN_PICTURE_EXTENT, ymax - ymin))


def compute_picture_scale(
    points: Sequence[Point2],
    target_width_cm: float = 9.0,
    target_height_cm: float = 9.0,
    priority: str = "fit",
) -> float:
    width, height = picture_extent(points)
    target_w = _clamp(float(target_width_cm), 4.0, 20.0)
    target_h = _clamp(float(target_height_cm), 4.0, 20.0)
    if priority == "width":
        scale = target_w / width
    elif priority == "height":
        scale = target_h / height
    else:
        scale = min(target_w / width, target_h / height)
    return _clamp(round(scale, 2), *SCALE_RANGE)


def fit_picture_scale(
    code: str,
    target_width_cm: float = 9.0,
    target_height_cm: float = 9.0,
    priority: str = "fit",
) -> str:
    """Rewrite the picture's ``scale=`` so its content fits the target size."""
    scale = compute_picture_scale(collect_points(code), target_width_cm, target_height_cm, priority)

    def replace(m: re.Match) -> str:
        rest = _SCALE_OPT_RE.sub("", m.group(1)).strip().strip(",").strip()
        opts = f"scale={scale:g}" + (f", {rest}" if rest else "")
        return f"\\begin{{tikzpicture}}[{opts}]"

    logger.debug("Picture scale set to %s", scale)
    return _PICTURE_RE.sub(replace, code, count=1)


__all__ = [
    "CANDIDATES",
    "collect_points",
    "compute_picture_scale",
    "coordinate_map",
    "estimate_label_width_cm",
    "fit_picture_scale",
    "picture_extent",
    "refine_point_labels",
]
