"""Viewport bounds: defaults, smart bounds from visible points, clipping."""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

import numpy as np

from .solvers import EPS_LINE, EPS_POINT_COINCIDENCE, LineCoeffs, Point2

logger = logging.getLogger(__name__)

MIN_EXTENT = 1e-6
DEGENERATE_EXTENT = 2.0
MIN_PADDING = 0.8
PADDING_FRACTION = 0.2

Interval = Tuple[float, float]


@dataclass(frozen=True)
class Bounds:
    xmin: float = -10.0
    xmax: float = 10.0
    ymin: float = -10.0
    ymax: float = 10.0

    def contains(self, x: float, y: float, eps: float = 1e-9) -> bool:
        return (
            math.isfinite(x)
            and math.isfinite(y)
            and self.xmin - eps <= x <= self.xmax + eps
            and self.ymin - eps <= y <= self.ymax + eps
        )

    def contains_many(self, xs: np.ndarray, ys: np.ndarray, eps: float = 1e-9) -> np.ndarray:
        with np.errstate(invalid="ignore"):
            return (
                np.isfinite(xs)
                & np.isfinite(ys)
                & (xs >= self.xmin - eps)
                & (xs <= self.xmax + eps)
                & (ys >= self.ymin - eps)
                & (ys <= self.ymax + eps)
            )

    def as_tuple(self) -> Tuple[float, float, float, float]:
        return (self.xmin, self.xmax, self.ymin, self.ymax)


def compute_bounds(
    points: Iterable[Tuple[float, float, bool]],
    defaults: Bounds = Bounds(),
    *,
    smart: bool = True,
    overrides: Sequence[str] = (),
) -> Bounds:
    """Viewport for a scene.

    ``points`` yields ``(x, y, visible)``. Smart mode fits the visible points,
    pads each axis by ``max(0.8, 0.2 * extent)`` and rounds to two decimals;
    axes named in ``overrides`` keep the value from ``defaults``.
    """
    if not smart:
        return defaults

    xs: List[float] = []
    ys: List[float] = []
    for x, y, visible in points:
        if not visible or not (math.isfinite(x) and math.isfinite(y)):
            continue
        xs.append(float(x))
        ys.append(float(y))
    if not xs:
        return defaults

    xmin, xmax = min(xs), max(xs)
    ymin, ymax = min(ys), max(ys)
    dx = xmax - xmin
    dy = ymax - ymin
    if dx < MIN_EXTENT:
        dx = DEGENERATE_EXTENT
    if dy < MIN_EXTENT:
        dy = DEGENERATE_EXTENT
    pad_x = max(MIN_PADDING, dx * PADDING_FRACTION)
    pad_y = max(MIN_PADDING, dy * PADDING_FRACTION)

    values = {
        "xmin": round(xmin - pad_x, 2),
        "xmax": round(xmax + pad_x, 2),
        "ymin": round(ymin - pad_y, 2),
        "ymax": round(ymax + pad_y, 2),
    }
    for axis in overrides:
        values[axis] = getattr(defaults, axis)
    bounds = Bounds(**values)
    logger.debug("Smart bounds from %d visible point(s): %s", len(xs), bounds)
    return bounds


def clip_line(line: LineCoeffs, bounds: Bounds) -> Optional[Tuple[Point2, Point2]]:
    """The two points where an infinite line crosses the viewport border."""

    a, b, c = line.a, line.b, line.c
    hits: List[Point2] = []
    if abs(b) > EPS_LINE:
        for x in (bounds.xmin, bounds.xmax):
            y = -(a * x + c) / b
            if bounds.ymin <= y <= bounds.ymax:
                hits.append((x, y))
    if abs(a) > EPS_LINE:
        for y in (bounds.ymin, bounds.ymax):
            x = -(b * y + c) / a
            if bounds.xmin <= x <= bounds.xmax:
                hits.append((x, y))

    unique: List[Point2] = []
    for p in hits:
        if not any(
            abs(q[0] - p[0]) < EPS_POINT_COINCIDENCE and abs(q[1] - p[1]) < EPS_POINT_COINCIDENCE
            for q in unique
        ):
            unique.append(p)
    if len(unique) < 2:
        return None
    return unique[0], unique[1]


def clip_ray(start: Point2, through: Point2, bounds: Bounds) -> Optional[Tuple[Point2, Point2]]:
    """Start point and the farthest viewport crossing along the ray."""

    vx = through[0] - start[0]
    vy = through[1] - start[1]
    if abs(vx) < EPS_LINE and abs(vy) < EPS_LINE:
        return None

    params: List[float] = []
    if abs(vx) > EPS_LINE:
        params.extend(((bounds.xmin - start[0]) / vx, (bounds.xmax - start[0]) / vx))
    if abs(vy) > EPS_LINE:
        params.extend(((bounds.ymin - start[1]) / vy, (bounds.ymax - start[1]) / vy))

    best: Optional[Point2] = None
    best_t = -1.0
    for t in params:
        if not math.isfinite(t) or t < 0:
            continue
        x = start[0] + t * vx
        y = start[1] + t * vy
        if bounds.contains(x, y, eps=1e-8) and t > best_t:
            best_t = t
            best = (x, y)
    if best is None:
        return None
    return start, best


def continuous_runs(ts: np.ndarray, ok: np.ndarray, upper: float) -> List[Interval]:
    """Maximal runs of ``ok`` samples as ``(first_t, last_t)`` intervals.

    A run still open at the last sample extends to ``upper``. Intervals are
    rounded to two decimals; spans shorter than ``max(1.5 * step, 1% of range)``
    are dropped.
    """
    if ts.size < 2:
        return []
    lower = float(ts[0])
    step = (upper - lower) / (ts.size - 1)
    min_span = max(step * 1.5, (upper - lower) * 0.01)

    runs: List[Interval] = []
    run_start: Optional[float] = None
    prev = lower
    for t, good in zip(ts.tolist(), ok.tolist()):
        if good:
            if run_start is None:
                run_start = t
        elif run_start is not None:
            if prev - run_start >= min_span:
                runs.append((round(run_start, 2), round(prev, 2)))
            run_start = None
        prev = t
    if run_start is not None and upper - run_start >= min_span:
        runs.append((round(run_start, 2), round(upper, 2)))
    return [(s, e) for s, e in runs if math.isfinite(s) and math.isfinite(e) and e > s]


def find_visible_param_segments(
    evaluate_xy: Callable[[np.ndarray], Tuple[np.ndarray, np.ndarray]],
    t_min: float,
    t_max: float,
    bounds: Bounds,
    samples: int = 360,
) -> List[Interval]:
    """Parameter sub-ranges where a parametric curve lies inside the viewport."""

    if not (math.isfinite(t_min) and math.isfinite(t_max)) or t_max <= t_min:
        return []
    ts = np.linspace(t_min, t_max, samples + 1)
    with np.errstate(all="ignore"):
        xs, ys = evaluate_xy(ts)
    ok = bounds.contains_many(np.asarray(xs, dtype=float), np.asarray(ys, dtype=float), eps=1e-6)
    return continuous_runs(ts, ok, t_max)
