"""Tests for Catmull-Rom to Bezier conversion and spline bounds."""

from __future__ import annotations

import pytest

from binmodel.schema import Point
from binmodel.spline import (
    BezierSegment,
    bezier_segments,
    catmull_rom_point,
    catmull_to_bezier,
    closed_windows,
    segment_bounds,
    spline_bounds,
)


TRIANGLE = [Point(0.0, 0.0), Point(10.0, 0.0), Point(5.0, 8.0)]


class TestCatmullToBezier:
    """Test cases for control point construction."""

    def test_collinear_points_give_third_points(self):
        """Evenly spaced collinear points put the controls at 1/3 and 2/3."""
        cp1, cp2 = catmull_to_bezier(Point(0, 0), Point(1, 0), Point(2, 0), Point(3, 0))

        assert cp1.x == pytest.approx(4 / 3)
        assert cp2.x == pytest.approx(5 / 3)
        assert cp1.y == 0
        assert cp2.y == 0

    def test_coincident_points_do_not_divide_by_zero(self):
        p = Point(2.0, 3.0)
        cp1, cp2 = catmull_to_bezier(p, p, p, p)

        assert cp1 == p
        assert cp2 == p

    def test_uniform_span_endpoints(self):
        p0, p1, p2, p3 = Point(0, 0), Point(1, 2), Point(4, 1), Point(6, 5)

        start = catmull_rom_point(p0, p1, p2, p3, 0.0)
        end = catmull_rom_point(p0, p1, p2, p3, 1.0)
        assert (start.x, start.y) == pytest.approx((1.0, 2.0))
        assert (end.x, end.y) == pytest.approx((4.0, 1.0))


class TestClosedLoop:
    """Test cases for building the closed loop of spans."""

    def test_windows_wrap_around(self):
        a, b, c = TRIANGLE
        windows = list(closed_windows(TRIANGLE))

        assert windows == [(c, a, b, c), (a, b, c, a), (b, c, a, b)]

    def test_one_segment_per_point(self):
        segments = bezier_segments(TRIANGLE)

        assert len(segments) == len(TRIANGLE)
        assert [s.start for s in segments] == TRIANGLE

    def test_segments_are_closed_and_continuous(self):
        segments = bezier_segments(TRIANGLE)

        for current, following in zip(segments, segments[1:]):
            assert current.end == following.start
        assert segments[-1].end == segments[0].start

    def test_map_applies_to_every_point(self):
        segment = BezierSegment(Point(0, 0), Point(1, 0), Point(2, 1), Point(3, 0))
        shifted = segment.map(lambda p: p.translated(1.0, -1.0))

        assert shifted.start == Point(1.0, -1.0)
        assert shifted.control2 == Point(3.0, 0.0)
        assert shifted.end == Point(4.0, -1.0)


class TestBounds:
    """Test cases for tight Bezier bounds."""

    def test_interior_extremum_is_found(self):
        segment = BezierSegment(Point(0, 0), Point(0, 10), Point(10, 10), Point(10, 0))
        bounds = segment_bounds(segment)

        assert bounds.max_y == pytest.approx(7.5)
        assert bounds.min_y == pytest.approx(0.0)
        assert (bounds.min_x, bounds.max_x) == pytest.approx((0.0, 10.0))

    def test_straight_segment_bounds_are_endpoints(self):
        segment = BezierSegment(Point(0, 0), Point(1, 1), Point(2, 2), Point(3, 3))
        bounds = segment_bounds(segment)

        assert (bounds.min_x, bounds.min_y, bounds.max_x, bounds.max_y) == pytest.approx(
            (0.0, 0.0, 3.0, 3.0)
        )

    def test_spline_bounds_union_segments(self):
        segments = bezier_segments(TRIANGLE)
        bounds = spline_bounds(segments)

        for segment in segments:
            part = segment_bounds(segment)
            assert bounds.min_x <= part.min_x
            assert bounds.max_y >= part.max_y

    def test_empty_spline_raises(self):
        with pytest.raises(ValueError, match="at least one segment"):
            spline_bounds([])
