"""Outline to kernel profile conversion.

Profiles are built in the outline's local frame with X mirrored, which
brings the editor's left-handed drawing frame into the solid's frame.
Placement (rotation and position) is applied later by the cutout builder.
"""

from __future__ import annotations

from typing import List, Tuple

from binmodel.schema import AnyOutline, Point, RoundedRectOutline, SplineOutline
from binmodel.spline import bezier_segments
from kernel.protocol import GeometryKernel, Point2, Profile


def _mirrored(point: Point) -> Point2:
    return (-point.x, point.y)


def spline_profile(kernel: GeometryKernel, outline: SplineOutline) -> Profile:
    """Closed Bezier profile interpolating every outline point.

    Raises:
        MalformedOutlineError: If the outline has fewer than 3 points
    """
    outline.validate()
    segments = bezier_segments(outline.points)

    spans: List[Tuple[Point2, Point2, Point2]] = [
        (_mirrored(s.control1), _mirrored(s.control2), _mirrored(s.end)) for s in segments
    ]
    return kernel.bezier_loop(_mirrored(segments[0].start), spans)


def rounded_rect_profile(kernel: GeometryKernel, outline: RoundedRectOutline) -> Profile:
    # Symmetric about the local Y axis, so the mirror is a no-op
    outline.validate()
    if outline.is_circle:
        return kernel.circle(outline.radius)
    return kernel.rounded_rectangle(outline.width, outline.height, outline.radius)


def build_profile(kernel: GeometryKernel, outline: AnyOutline) -> Profile:
    """Build the closed planar profile of one outline.

    Args:
        kernel: Geometry kernel to construct the profile with
        outline: Spline or rounded rectangle outline

    Returns:
        Kernel profile centred on the outline's local origin

    Raises:
        MalformedOutlineError: If the outline cannot form a closed profile
        TypeError: If the outline type is not supported
    """
    if isinstance(outline, SplineOutline):
        return spline_profile(kernel, outline)
    if isinstance(outline, RoundedRectOutline):
        return rounded_rect_profile(kernel, outline)
    raise TypeError(f"Unsupported outline type: {type(outline).__name__}")
