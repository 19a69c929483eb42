"""Closed-form analytic geometry used by the classifier and the generator.

Every routine reports numerically degenerate input by returning ``None``;
nothing here raises for bad geometry and nothing returns NaN or infinity.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from typing import Optional, Tuple, Union

import numpy as np

from .logging_utils import apply_debug_logging

logger = logging.getLogger(__name__)

Point2 = Tuple[float, float]

# determinant-near-zero: line/line, circumcenter, projection, center solve
EPS_DETERMINANT = 1e-12
# conic classification: discriminant, eigen-coefficient products, squared axes
EPS_CONIC = 1e-10
# cross term and A-C equality for axis-aligned conics
EPS_AXIS_ALIGNED = 1e-8
# individual quadratic-form coefficients
EPS_COEFFICIENT = 1e-12
# line general-form coefficients and tangent quadratic coefficients
EPS_LINE = 1e-10
# point coincidence when deduplicating clip points
EPS_POINT_COINCIDENCE = 1e-8
# scene point lying on a line (distance)
EPS_POINT_ON_LINE = 1e-4
# coordinate-to-label lookup (distance)
EPS_LABEL_MATCH = 5e-3
# homogeneous weight of a point
EPS_HOMOGENEOUS = 1e-12
# minimum arc radius
EPS_RADIUS = 1e-8
# right-angle detection, degrees
RIGHT_ANGLE_TOLERANCE_DEG = 1.2


@dataclass(frozen=True)
class LineCoeffs:
    """General form ``a*x + b*y + c = 0``."""

    a: float
    b: float
    c: float

    def residual(self, point: Point2) -> float:
        return self.a * point[0] + self.b * point[1] + self.c

    def distance(self, point: Point2) -> float:
        norm = math.hypot(self.a, self.b) or 1.0
        return abs(self.residual(point)) / norm

    @property
    def direction_deg(self) -> float:
        # direction vector (b, -a)
        return math.degrees(math.atan2(-self.a, self.b))

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.a, self.b, self.c))


@dataclass(frozen=True)
class ConicMatrix:
    """Quadratic form ``A x^2 + B xy + C y^2 + D x + E y + F = 0``."""

    A: float
    B: float
    C: float
    D: float
    E: float
    F: float

    @classmethod
    def from_ggb(cls, values) -> "ConicMatrix":
        """Build from the stored ``A0..A5`` coefficients.

        The document stores ``A0 x^2 + A1 y^2 + A2 + 2 A3 xy + 2 A4 x + 2 A5 y = 0``.
        """
        a0, a1, a2, a3, a4, a5 = (float(v) for v in values)
        return cls(A=a0, B=2.0 * a3, C=a1, D=2.0 * a4, E=2.0 * a5, F=a2)

    def to_ggb(self) -> Tuple[float, float, float, float, float, float]:
        return (self.A, self.C, self.F, self.B / 2.0, self.D / 2.0, self.E / 2.0)

    def evaluate(self, x: float, y: float) -> float:
        return self.A * x * x + self.B * x * y + self.C * y * y + self.D * x + self.E * y + self.F

    @property
    def discriminant(self) -> float:
        return self.B * self.B - 4.0 * self.A * self.C

    def is_finite(self) -> bool:
        return all(math.isfinite(v) for v in (self.A, self.B, self.C, self.D, self.E, self.F))


@dataclass(frozen=True)
class CircleForm:
    h: float
    k: float
    r: float

    kind = "circle"


@dataclass(frozen=True)
class EllipseForm:
    h: float
    k: float
    a: float
    b: float
    theta: float = 0.0

    kind = "ellipse"

    @property
    def theta_deg(self) -> float:
        return math.degrees(self.theta)


@dataclass(frozen=True)
class HyperbolaForm:
    h: float
    k: float
    a: float
    b: float
    theta: float = 0.0
    main_axis: str = "u"

    kind = "hyperbola"

    def point_at(self, t: float, sign: float = 1.0) -> Point2:
        if self.main_axis == "u":
            u, v = sign * self.a * math.cosh(t), self.b * math.sinh(t)
        else:
            u, v = self.b * math.sinh(t), sign * self.a * math.cosh(t)
        cos_t, sin_t = math.cos(self.theta), math.sin(self.theta)
        return (self.h + u * cos_t - v * sin_t, self.k + u * sin_t + v * cos_t)


@dataclass(frozen=True)
class ParabolaForm:
    """``v = a u^2 + b u + c`` (``y_of_x``) or ``u = a v^2 + b v + c`` (``x_of_y``).

    ``(u, v)`` is the frame rotated by ``theta`` about the origin; for an
    axis-aligned parabola it is just ``(x, y)``.
    """

    mode: str
    a: float
    b: float
    c: float
    theta: float = 0.0

    kind = "parabola"

    @property
    def theta_deg(self) -> float:
        return math.degrees(self.theta)

    def point_at(self, t: float) -> Point2:
        value = self.a * t * t + self.b * t + self.c
        u, v = (value, t) if self.mode == "x_of_y" else (t, value)
        if self.theta == 0.0:
            return (u, v)
        cos_t, sin_t = math.cos(self.theta), math.sin(self.theta)
        return (u * cos_t - v * sin_t, u * sin_t + v * cos_t)


CanonicalConic = Union[CircleForm, EllipseForm, HyperbolaForm, ParabolaForm]


def _finite(*values: float) -> bool:
    return all(math.isfinite(v) for v in values)


def infer_conic_type(matrix: ConicMatrix) -> str:
    disc = matrix.discriminant
    if abs(disc) <= EPS_CONIC:
        return "parabola"
    if disc > EPS_CONIC:
        return "hyperbola"
    if abs(matrix.B) <= EPS_CONIC and abs(matrix.A - matrix.C) <= EPS_CONIC:
        return "circle"
    return "ellipse"


def circle_from_matrix(matrix: ConicMatrix) -> Optional[CircleForm]:
    m = matrix
    if not m.is_finite() or abs(m.B) > EPS_AXIS_ALIGNED:
        return None
    if abs(m.A - m.C) > EPS_AXIS_ALIGNED or abs(m.A) < EPS_COEFFICIENT:
        return None
    h = -m.D / (2.0 * m.A)
    k = -m.E / (2.0 * m.C)
    shifted = m.F - (m.D * m.D) / (4.0 * m.A) - (m.E * m.E) / (4.0 * m.C)
    r2 = -shifted / m.A
    if not _finite(h, k, r2) or r2 <= 0:
        return None
    return CircleForm(h, k, math.sqrt(r2))


def _principal_frame(m: ConicMatrix) -> Optional[Tuple[float, float, float, float, float, float]]:
    """Return ``(h, k, theta, lambda_u, lambda_v, f_center)``.

    The linear part is removed by translating to the center ``(h, k)``, the
    quadratic part is diagonalized by the rotation ``theta = atan2(B, A - C) / 2``,
    leaving ``lambda_u u^2 + lambda_v v^2 + f_center = 0``.
    """
    det = 4.0 * m.A * m.C - m.B * m.B
    if abs(det) < EPS_CONIC:
        return None
    h, k = np.linalg.solve(
        np.array([[2.0 * m.A, m.B], [m.B, 2.0 * m.C]]),
        np.array([-m.D, -m.E]),
    )
    h, k = float(h), float(k)
    if not _finite(h, k):
        return None
    f_center = m.evaluate(h, k)
    theta = 0.5 * math.atan2(m.B, m.A - m.C)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    lambda_u = m.A * cos_t * cos_t + m.B * cos_t * sin_t + m.C * sin_t * sin_t
    lambda_v = m.A * sin_t * sin_t - m.B * cos_t * sin_t + m.C * cos_t * cos_t
    if not _finite(lambda_u, lambda_v, f_center):
        return None
    return h, k, theta, lambda_u, lambda_v, f_center


def ellipse_from_matrix(matrix: ConicMatrix) -> Optional[EllipseForm]:
    if not matrix.is_finite():
        return None
    frame = _principal_frame(matrix)
    if frame is None:
        return None
    h, k, theta, lambda_u, lambda_v, f_center = frame
    if not lambda_u * lambda_v > EPS_CONIC:
        return None
    a2 = -f_center / lambda_u
    b2 = -f_center / lambda_v
    if not (a2 > EPS_CONIC and b2 > EPS_CONIC):
        return None
    return EllipseForm(h, k, math.sqrt(a2), math.sqrt(b2), theta)


def hyperbola_from_matrix(matrix: ConicMatrix) -> Optional[HyperbolaForm]:
    if not matrix.is_finite():
        return None
    frame = _principal_frame(matrix)
    if frame is None:
        return None
    h, k, theta, lambda_u, lambda_v, f_center = frame
    if not lambda_u * lambda_v < -EPS_CONIC:
        return None
    u2 = -f_center / lambda_u
    v2 = -f_center / lambda_v
    if u2 > EPS_CONIC and v2 < -EPS_CONIC:
        return HyperbolaForm(h, k, math.sqrt(u2), math.sqrt(-v2), theta, "u")
    if u2 < -EPS_CONIC and v2 > EPS_CONIC:
        return HyperbolaForm(h, k, math.sqrt(v2), math.sqrt(-u2), theta, "v")
    return None


def _axis_aligned_parabola(
    qa: float, qc: float, d: float, e: float, f: float, theta: float = 0.0
) -> Optional[ParabolaForm]:
    if abs(qa) < EPS_CONIC and abs(d) > EPS_COEFFICIENT and abs(qc) > EPS_COEFFICIENT:
        return ParabolaForm("x_of_y", -qc / d, -e / d, -f / d, theta)
    if abs(qc) < EPS_CONIC and abs(e) > EPS_COEFFICIENT and abs(qa) > EPS_COEFFICIENT:
        return ParabolaForm("y_of_x", -qa / e, -d / e, -f / e, theta)
    return None


def parabola_from_matrix(matrix: ConicMatrix) -> Optional[ParabolaForm]:
    """Parabola in the frame rotated by ``theta = atan2(B, A - C) / 2``.

    In that frame the ``uv`` term vanishes and so does one of the squared
    terms, leaving ``v = f(u)`` or ``u = f(v)``.
    """
    m = matrix
    if not m.is_finite():
        return None
    if abs(m.B) <= EPS_AXIS_ALIGNED:
        return _axis_aligned_parabola(m.A, m.C, m.D, m.E, m.F)
    theta = 0.5 * math.atan2(m.B, m.A - m.C)
    cos_t, sin_t = math.cos(theta), math.sin(theta)
    lambda_u = m.A * cos_t * cos_t + m.B * cos_t * sin_t + m.C * sin_t * sin_t
    lambda_v = m.A * sin_t * sin_t - m.B * cos_t * sin_t + m.C * cos_t * cos_t
    # zero discriminant: the smaller diagonal term is rounding noise
    if abs(lambda_u) < abs(lambda_v):
        lambda_u = 0.0
    else:
        lambda_v = 0.0
    d = m.D * cos_t + m.E * sin_t
    e = -m.D * sin_t + m.E * cos_t
    return _axis_aligned_parabola(lambda_u, lambda_v, d, e, m.F, theta)


def decompose_conic(matrix: ConicMatrix) -> Optional[CanonicalConic]:
    """Return the canonical form of ``matrix`` or ``None`` when there is none."""

    if not matrix.is_finite():
        return None
    kind = infer_conic_type(matrix)
    if kind == "parabola":
        return parabola_from_matrix(matrix)
    if kind == "hyperbola":
        return hyperbola_from_matrix(matrix)
    if kind == "circle":
        circle = circle_from_matrix(matrix)
        if circle is not None:
            return circle
    ellipse = ellipse_from_matrix(matrix)
    if ellipse is None:
        return None
    if abs(ellipse.a - ellipse.b) <= EPS_AXIS_ALIGNED and abs(matrix.B) <= EPS_AXIS_ALIGNED:
        return CircleForm(ellipse.h, ellipse.k, ellipse.a)
    return ellipse


def conic_matrix_from_circle(center: Point2, radius: float) -> ConicMatrix:
    h, k = center
    return ConicMatrix(A=1.0, B=0.0, C=1.0, D=-2.0 * h, E=-2.0 * k, F=h * h + k * k - radius * radius)


def ellipse_from_foci(
    focus1: Point2,
    focus2: Point2,
    axis_length: Optional[float] = None,
    pass_point: Optional[Point2] = None,
) -> Optional[EllipseForm]:
    if axis_length is not None:
        a = axis_length / 2.0
    elif pass_point is not None:
        a = (math.dist(pass_point, focus1) + math.dist(pass_point, focus2)) / 2.0
    else:
        return None
    c = math.dist(focus1, focus2) / 2.0
    b2 = a * a - c * c
    if not (a > 1e-9 and b2 > 1e-9):
        return None
    h = (focus1[0] + focus2[0]) / 2.0
    k = (focus1[1] + focus2[1]) / 2.0
    theta = math.atan2(focus2[1] - focus1[1], focus2[0] - focus1[0])
    return EllipseForm(h, k, a, math.sqrt(b2), theta)


def hyperbola_from_foci(
    focus1: Point2,
    focus2: Point2,
    axis_length: Optional[float] = None,
    pass_point: Optional[Point2] = None,
) -> Optional[HyperbolaForm]:
    """Hyperbola with the given foci.

    Without an axis length or pass point the semi-axis defaults to 1, which
    still yields a recognizable shape.
    """
    c = math.dist(focus1, focus2) / 2.0
    if c < EPS_RADIUS:
        return None
    if axis_length is not None:
        a = axis_length / 2.0
    elif pass_point is not None:
        a = abs(math.dist(pass_point, focus1) - math.dist(pass_point, focus2)) / 2.0
    else:
        a = 1.0
    if a <= EPS_RADIUS:
        return None
    b = math.sqrt(max(c * c - a * a, 0.2))
    h = (focus1[0] + focus2[0]) / 2.0
    k = (focus1[1] + focus2[1]) / 2.0
    theta = math.atan2(focus2[1] - focus1[1], focus2[0] - focus1[0])
    return HyperbolaForm(h, k, a, b, theta, "u")


_DIRECTRIX_RE = re.compile(r"^\s*([xy])\s*=\s*(-?\d+(?:\.\d+)?)\s*$")


def parabola_from_focus_directrix(focus: Point2, directrix: Optional[str]) -> Optional[ParabolaForm]:
    """Parabola with an axis-parallel directrix ``x = k`` or ``y = k``."""

    if not directrix:
        return None
    m = _DIRECTRIX_RE.match(directrix)
    if not m:
        return None
    axis, value = m.group(1), float(m.group(2))
    fx, fy = focus
    if axis == "x":
        p = (fx - value) / 2.0
        if abs(p) < EPS_COEFFICIENT:
            return None
        vx = (fx + value) / 2.0
        q = 1.0 / (4.0 * p)
        return ParabolaForm("x_of_y", q, -2.0 * fy * q, vx + fy * fy * q)
    p = (fy - value) / 2.0
    if abs(p) < EPS_COEFFICIENT:
        return None
    vy = (fy + value) / 2.0
    q = 1.0 / (4.0 * p)
    return ParabolaForm("y_of_x", q, -2.0 * fx * q, vy + fx * fx * q)


def solve_tangent_point(line: LineCoeffs, matrix: ConicMatrix) -> Optional[Point2]:
    """Touching point of a line already known to be tangent to the conic.

    The line is substituted into the quadratic form, eliminating the variable
    with the larger coefficient; the repeated root is taken as the vertex of
    the resulting quadratic, or the linear root when the quadratic term vanishes.
    """
    if not line.is_finite() or not matrix.is_finite():
        return None
    a, b, c = line.a, line.b, line.c
    m = matrix

    def _root(qa: float, qb: float, qc: float) -> Optional[float]:
        if abs(qa) > EPS_LINE:
            return -qb / (2.0 * qa)
        if abs(qb) > EPS_LINE:
            return -qc / qb
        return None

    if abs(b) >= abs(a) and abs(b) > EPS_LINE:
        # y = s x + t
        s, t = -a / b, -c / b
        qa = m.A + m.B * s + m.C * s * s
        qb = m.B * t + 2.0 * m.C * s * t + m.D + m.E * s
        qc = m.C * t * t + m.E * t + m.F
        x = _root(qa, qb, qc)
        if x is None:
            return None
        point = (x, s * x + t)
    elif abs(a) > EPS_LINE:
        # x = s y + t
        s, t = -b / a, -c / a
        qa = m.C + m.B * s + m.A * s * s
        qb = m.B * t + 2.0 * m.A * s * t + m.E + m.D * s
        qc = m.A * t * t + m.D * t + m.F
        y = _root(qa, qb, qc)
        if y is None:
            return None
        point = (s * y + t, y)
    else:
        return None
    return point if _finite(*point) else None


def circumcenter(p1: Point2, p2: Point2, p3: Point2) -> Optional[Point2]:
    x1, y1 = p1
    x2, y2 = p2
    x3, y3 = p3
    d = 2.0 * (x1 * (y2 - y3) + x2 * (y3 - y1) + x3 * (y1 - y2))
    if not math.isfinite(d) or abs(d) < EPS_DETERMINANT:
        return None
    s1 = x1 * x1 + y1 * y1
    s2 = x2 * x2 + y2 * y2
    s3 = x3 * x3 + y3 * y3
    ux = (s1 * (y2 - y3) + s2 * (y3 - y1) + s3 * (y1 - y2)) / d
    uy = (s1 * (x3 - x2) + s2 * (x1 - x3) + s3 * (x2 - x1)) / d
    return (ux, uy)


def project_point_to_line(point: Point2, line: LineCoeffs) -> Optional[Point2]:
    denom = line.a * line.a + line.b * line.b
    if not math.isfinite(denom) or denom < EPS_DETERMINANT:
        return None
    d = line.residual(point) / denom
    return (point[0] - line.a * d, point[1] - line.b * d)


def intersect_lines(l1: LineCoeffs, l2: LineCoeffs) -> Optional[Point2]:
    det = l1.a * l2.b - l2.a * l1.b
    if not math.isfinite(det) or abs(det) < EPS_DETERMINANT:
        return None
    x = (l1.b * l2.c - l2.b * l1.c) / det
    y = (l2.a * l1.c - l1.a * l2.c) / det
    return (x, y) if _finite(x, y) else None


def line_through_points(p1: Point2, p2: Point2) -> Optional[LineCoeffs]:
    line = LineCoeffs(p1[1] - p2[1], p2[0] - p1[0], p1[0] * p2[1] - p2[0] * p1[1])
    if not line.is_finite() or (abs(line.a) < EPS_LINE and abs(line.b) < EPS_LINE):
        return None
    return line


def points_from_line(line: LineCoeffs) -> Optional[Tuple[Point2, Point2]]:
    """Two points on the line, dividing only by a non-negligible coefficient."""

    if not line.is_finite():
        return None
    if abs(line.b) > EPS_LINE:
        return (0.0, -line.c / line.b), (1.0, -(line.a + line.c) / line.b)
    if abs(line.a) > EPS_LINE:
        x = -line.c / line.a
        return (x, 0.0), (x, 1.0)
    return None


def angle_deg(center: Point2, point: Point2) -> float:
    return math.degrees(math.atan2(point[1] - center[1], point[0] - center[0]))


def normalize_angle_deg(value: float) -> float:
    return value % 360.0


def shortest_signed_delta(start_deg: float, end_deg: float) -> float:
    """Signed difference in ``(-180, 180]``."""
    d = math.fmod(end_deg - start_deg, 360.0)
    if d > 180.0:
        d -= 360.0
    if d <= -180.0:
        d += 360.0
    return d


def angle_diff_abs(a: float, b: float) -> float:
    return abs(shortest_signed_delta(a, b))


def is_angle_between_ccw(start: float, end: float, mid: float) -> bool:
    span = (normalize_angle_deg(end) - normalize_angle_deg(start)) % 360.0
    at = (normalize_angle_deg(mid) - normalize_angle_deg(start)) % 360.0
    return at <= span + 1e-9


def end_angle_through_mid(start: float, end: float, mid: float) -> float:
    """Walk ``end`` forward by full turns so the CCW arc from ``start`` passes ``mid``."""
    e = end
    while e < start:
        e += 360.0
    if not is_angle_between_ccw(start, e, mid):
        e += 360.0
    return e


def is_right_angle(value_deg: Optional[float]) -> bool:
    if value_deg is None or not math.isfinite(value_deg):
        return False
    return abs(value_deg - 90.0) <= RIGHT_ANGLE_TOLERANCE_DEG


apply_debug_logging(globals(), logger=logger)
