"""Closed centripetal Catmull-Rom splines as cubic Bezier segments.

A spline outline interpolates its points. Each span ``p1 -> p2`` of the
closed loop is rebuilt from the cyclic window ``(p0, p1, p2, p3)`` as one
cubic Bezier whose end points are the original points and whose inner
control points come from the chord-length (alpha = 0.5) tangents.
"""

from __future__ import annotations

import math
from typing import Iterator, List, NamedTuple, Sequence, Tuple

from .schema import Bounds, Point

ALPHA = 0.5
_EPSILON = 1e-6


class BezierSegment(NamedTuple):
    """One cubic Bezier span: start, two control points, end."""

    start: Point
    control1: Point
    control2: Point
    end: Point

    def map(self, fn) -> BezierSegment:
        """Apply an affine point map; Bezier curves are affine invariant."""
        return BezierSegment(fn(self.start), fn(self.control1), fn(self.control2), fn(self.end))


def catmull_rom_point(p0: Point, p1: Point, p2: Point, p3: Point, t: float) -> Point:
    """Evaluate the uniform Catmull-Rom span between p1 and p2 at ``t``."""
    t2 = t * t
    t3 = t2 * t

    def axis(a: float, b: float, c: float, d: float) -> float:
        return 0.5 * (
            2 * b
            + (-a + c) * t
            + (2 * a - 5 * b + 4 * c - d) * t2
            + (-a + 3 * b - 3 * c + d) * t3
        )

    return Point(axis(p0.x, p1.x, p2.x, p3.x), axis(p0.y, p1.y, p2.y, p3.y))


def _knot_interval(a: Point, b: Point, alpha: float = ALPHA) -> float:
    dx = b.x - a.x
    dy = b.y - a.y
    return math.pow(dx * dx + dy * dy, alpha * 0.5)


def catmull_to_bezier(p0: Point, p1: Point, p2: Point, p3: Point) -> Tuple[Point, Point]:
    """Bezier control points for the span p1 -> p2."""
    t0 = 0.0
    t1 = t0 + _knot_interval(p0, p1)
    t2 = t1 + _knot_interval(p1, p2)
    t3 = t2 + _knot_interval(p2, p3)

    # Coincident neighbours collapse the parameter range; fall back to a straight tangent
    s1 = (t2 - t1) / (t2 - t0) / 3 if t2 - t0 > 0 else 0.0
    s2 = (t2 - t1) / (t3 - t1) / 3 if t3 - t1 > 0 else 0.0

    cp1 = Point(p1.x + (p2.x - p0.x) * s1, p1.y + (p2.y - p0.y) * s1)
    cp2 = Point(p2.x - (p3.x - p1.x) * s2, p2.y - (p3.y - p1.y) * s2)
    return cp1, cp2


def closed_windows(points: Sequence[Point]) -> Iterator[Tuple[Point, Point, Point, Point]]:
    """Yield the cyclic 4-point windows, one per span of the closed loop."""
    n = len(points)
    for i in range(n):
        yield points[i - 1], points[i], points[(i + 1) % n], points[(i + 2) % n]


def bezier_segments(points: Sequence[Point]) -> List[BezierSegment]:
    """Closed loop of Bezier spans through ``points``, starting at ``points[0]``."""
    segments = []
    for p0, p1, p2, p3 in closed_windows(points):
        cp1, cp2 = catmull_to_bezier(p0, p1, p2, p3)
        segments.append(BezierSegment(p1, cp1, cp2, p2))
    return segments


def _derivative_roots(a: float, b: float, c: float) -> List[float]:
    """Roots in [0, 1] of ``a t^2 + b t + c``."""
    if abs(a) < _EPSILON:
        if abs(b) < _EPSILON:
            return []
        t = -c / b
        return [t] if 0 <= t <= 1 else []

    discriminant = b * b - 4 * a * c
    if discriminant < 0:
        return []

    root = math.sqrt(discriminant)
    candidates = ((-b + root) / (2 * a), (-b - root) / (2 * a))
    return [t for t in candidates if 0 <= t <= 1]


def _bezier_value(p0: float, p1: float, p2: float, p3: float, t: float) -> float:
    mt = 1 - t
    return mt * mt * mt * p0 + 3 * mt * mt * t * p1 + 3 * mt * t * t * p2 + t * t * t * p3


def _axis_extrema(p0: float, p1: float, p2: float, p3: float) -> List[float]:
    a = 3 * (-p0 + 3 * p1 - 3 * p2 + p3)
    b = 6 * (p0 - 2 * p1 + p2)
    c = 3 * (p1 - p0)
    return [_bezier_value(p0, p1, p2, p3, t) for t in _derivative_roots(a, b, c)]


def segment_bounds(segment: BezierSegment) -> Bounds:
    """Tight bounds of one Bezier span, including interior extrema."""
    bounds = Bounds.from_points((segment.start, segment.end))
    for x in _axis_extrema(segment.start.x, segment.control1.x, segment.control2.x, segment.end.x):
        bounds = bounds.include(x=x)
    for y in _axis_extrema(segment.start.y, segment.control1.y, segment.control2.y, segment.end.y):
        bounds = bounds.include(y=y)
    return bounds


def spline_bounds(segments: Sequence[BezierSegment]) -> Bounds:
    """Bounds of a closed spline given as Bezier spans."""
    if not segments:
        raise ValueError("A spline needs at least one segment")
    bounds = segment_bounds(segments[0])
    for segment in segments[1:]:
        bounds = bounds.union(segment_bounds(segment))
    return bounds
