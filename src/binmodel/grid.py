"""Grid area calculation.

Finds the smallest grid-aligned rectangle that encloses every outline's
true silhouette, then pulls each side in by half the manufacturing
tolerance.
"""

from __future__ import annotations

import math
from typing import Sequence

import structlog

from .dimensions import GRID_SIZE, HALF_TOLERANCE
from .schema import AnyOutline, Bounds, GridArea, Point, RoundedRectOutline, SplineOutline
from .spline import bezier_segments, spline_bounds

logger = structlog.get_logger(__name__)


def spline_world_bounds(outline: SplineOutline) -> Bounds:
    """Bounds of a spline outline's curve in the editor frame.

    The fitted control points do not lie on the curve, so the bound comes
    from each span's derivative roots after moving the span into world
    space.
    """
    outline.validate()
    segments = [segment.map(outline.to_world) for segment in bezier_segments(outline.points)]
    return spline_bounds(segments)


def rounded_rect_world_bounds(outline: RoundedRectOutline) -> Bounds:
    """Bounds of a rotated rounded rectangle in the editor frame.

    The arc centres carry the rotation; the radius is the same in every
    direction, so the silhouette is their bound grown by the radius.
    """
    outline.validate()
    centers = [outline.to_world(center) for center in outline.corner_centers()]
    return Bounds.from_points(centers).expanded(outline.radius)


def outline_world_bounds(outline: AnyOutline) -> Bounds:
    if isinstance(outline, RoundedRectOutline):
        return rounded_rect_world_bounds(outline)
    if isinstance(outline, SplineOutline):
        return spline_world_bounds(outline)
    raise TypeError(f"Unsupported outline type: {type(outline).__name__}")


def _snap_down(value: float) -> float:
    return math.floor(value / GRID_SIZE) * GRID_SIZE


def _snap_up(value: float) -> float:
    return math.ceil(value / GRID_SIZE) * GRID_SIZE


def _snap_axis(low: float, high: float) -> tuple[float, float]:
    snapped_low, snapped_high = _snap_down(low), _snap_up(high)
    if snapped_high <= snapped_low:
        # Zero-extent outline sitting exactly on a grid line
        snapped_high = snapped_low + GRID_SIZE
    return snapped_low + HALF_TOLERANCE, snapped_high - HALF_TOLERANCE


def calculate_minimal_grid_area(outlines: Sequence[AnyOutline]) -> GridArea:
    """Grid area enclosing ``outlines``; one grid cell when there are none."""
    if not outlines:
        return GridArea(
            min=Point(HALF_TOLERANCE, HALF_TOLERANCE),
            max=Point(GRID_SIZE - HALF_TOLERANCE, GRID_SIZE - HALF_TOLERANCE),
        )

    bounds = outline_world_bounds(outlines[0])
    for outline in outlines[1:]:
        bounds = bounds.union(outline_world_bounds(outline))

    min_x, max_x = _snap_axis(bounds.min_x, bounds.max_x)
    min_y, max_y = _snap_axis(bounds.min_y, bounds.max_y)
    area = GridArea(min=Point(min_x, min_y), max=Point(max_x, max_y))

    logger.debug(
        "Calculated grid area",
        outlines=len(outlines),
        min=(area.min.x, area.min.y),
        max=(area.max.x, area.max.y),
        grid_units=area.grid_units,
    )
    return area
