"""Gridded base: stepped tiles under a flat bottom plate.

Each tile is a ruled loft through four rounded-rectangle sections. From
the top down: full tile size, one bevel inward, the same size after the
vertical run, and a second bevel inward at Z = 0.
"""

from __future__ import annotations

from typing import List, Optional, Tuple

import structlog

from binmodel.dimensions import (
    BASE_PROFILE_DEPTH,
    BEVEL_BOTTOM_OFFSET,
    BEVEL_TOP_HEIGHT,
    BEVEL_TOP_OFFSET,
    BIN_CORNER_RADIUS,
    BOTTOM_THICKNESS,
    GRID_SIZE,
    OUTER_TILE_DIM,
)
from kernel.protocol import GeometryKernel, Solid

from .cache import BASE, BASE_UNIT, ResultCache

logger = structlog.get_logger(__name__)


def base_unit_sections(
    base_height: float,
    outer_dim: float = OUTER_TILE_DIM,
    corner_radius: float = BIN_CORNER_RADIUS,
) -> List[Tuple[float, float, float]]:
    """``(size, radius, z)`` of each loft section, top first.

    Sections shrink by inward offsets, so the radius drops by the same
    amount as each half-size.
    """
    middle = BEVEL_TOP_OFFSET
    bottom = BEVEL_TOP_OFFSET + BEVEL_BOTTOM_OFFSET
    return [
        (outer_dim, corner_radius, base_height),
        (outer_dim - 2 * middle, corner_radius - middle, base_height - BEVEL_TOP_HEIGHT),
        (outer_dim - 2 * middle, corner_radius - middle, base_height - BASE_PROFILE_DEPTH),
        (outer_dim - 2 * bottom, corner_radius - bottom, 0.0),
    ]


def build_base_unit(
    kernel: GeometryKernel,
    base_height: float,
    outer_dim: float = OUTER_TILE_DIM,
    corner_radius: float = BIN_CORNER_RADIUS,
    cache: Optional[ResultCache] = None,
) -> Solid:
    """Loft one base tile centred on the origin, from Z = 0 to ``base_height``."""

    def build() -> Solid:
        sections = [
            (kernel.rounded_rectangle(size, size, radius), z)
            for size, radius, z in base_unit_sections(base_height, outer_dim, corner_radius)
        ]
        return kernel.loft(sections, ruled=True)

    if cache is None:
        return build()
    return cache.get_or_build(BASE_UNIT, (base_height, outer_dim, corner_radius), build)


def tile_counts(width: float, height: float) -> Tuple[int, int]:
    # Grid areas are whole cells less the tolerance, so rounding is exact
    return round(width / GRID_SIZE), round(height / GRID_SIZE)


def tile_centers(width: float, height: float) -> List[Tuple[float, float]]:
    """Tile centres laid out row by row, centred on the origin."""
    num_x, num_y = tile_counts(width, height)
    start_x = -width / 2 + OUTER_TILE_DIM / 2
    start_y = -height / 2 + OUTER_TILE_DIM / 2
    return [
        (start_x + x * GRID_SIZE, start_y + y * GRID_SIZE)
        for y in range(num_y)
        for x in range(num_x)
    ]


def build_bottom_plate(
    kernel: GeometryKernel,
    width: float,
    height: float,
    radius: float,
    base_height: float,
) -> Solid:
    profile = kernel.rounded_rectangle(width, height, radius)
    return kernel.extrude(profile, BOTTOM_THICKNESS, z=base_height)


def build_base(
    kernel: GeometryKernel,
    width: float,
    height: float,
    base_height: float,
    radius: float = BIN_CORNER_RADIUS,
    cache: Optional[ResultCache] = None,
) -> Solid:
    """Fuse the bottom plate and one tile per grid cell.

    Args:
        kernel: Geometry kernel
        width: Grid area width in mm
        height: Grid area height in mm
        base_height: Height of the tiles; the plate sits on top of them
        radius: Corner radius of the plate and the tile tops
        cache: Optional result cache for the base and its tile

    Returns:
        Base solid centred on the origin, from Z = 0 to base_height + 1
    """

    def build() -> Solid:
        plate = build_bottom_plate(kernel, width, height, radius, base_height)
        unit = build_base_unit(kernel, base_height, OUTER_TILE_DIM, radius, cache=cache)

        centers = tile_centers(width, height)
        num_x, num_y = tile_counts(width, height)
        logger.info("Building base grid", tiles_x=num_x, tiles_y=num_y, base_height=base_height)

        tiles = [kernel.translate(unit, x, y, 0.0) for x, y in centers]
        return kernel.fuse(plate, tiles)

    if cache is None:
        return build()
    return cache.get_or_build(BASE, (width, height, radius, base_height), build)
