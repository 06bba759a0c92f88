"""Cutout extrusions and the wall solid.

The wall solid is built in its own frame: centred on the grid area in X
and Y, with its bottom face at Z = 0. The assembler lifts it onto the
base afterwards.
"""

from __future__ import annotations

from typing import List, Optional, Sequence

import structlog

from binmodel.dimensions import BIN_CORNER_RADIUS
from binmodel.schema import AnyOutline, GridArea
from kernel.protocol import GeometryKernel, Solid

from .cache import CUTOUT, ResultCache
from .profiles import build_profile

logger = structlog.get_logger(__name__)


def build_cutout(
    kernel: GeometryKernel,
    outline: AnyOutline,
    area: GridArea,
    wall_height: float,
    cache: Optional[ResultCache] = None,
) -> Optional[Solid]:
    """Extrude one outline's cutout down from the wall top.

    The profile is rotated by the outline's rotation and moved to its
    position relative to the grid area centre, both mirrored in X. The
    extrusion depth is the outline's depth clamped to the wall height.

    Args:
        kernel: Geometry kernel
        outline: Outline to cut
        area: Grid area the wall is built on
        wall_height: Height of the wall solid
        cache: Optional result cache for the extrusion

    Returns:
        Cutout solid, or None when the clamped depth is zero
    """
    depth = outline.cutout_depth(wall_height)
    if depth <= 0:
        logger.debug("Skipping cutout with zero depth", outline_id=outline.id)
        return None

    center = area.center

    def build() -> Solid:
        profile = build_profile(kernel, outline)
        placed = kernel.place_profile(
            profile,
            -outline.rotation,
            -(outline.position.x - center.x),
            outline.position.y - center.y,
        )
        return kernel.extrude(placed, depth, z=wall_height - depth)

    if cache is None:
        return build()
    return cache.get_or_build(CUTOUT, (outline, center, wall_height), build)


def build_walls(
    kernel: GeometryKernel,
    outlines: Sequence[AnyOutline],
    area: GridArea,
    wall_height: float,
    cache: Optional[ResultCache] = None,
) -> Solid:
    """Extrude the grid area to wall height and cut every outline from it.

    All cutouts are removed in one boolean, so overlapping outlines cut
    their union and the result does not depend on outline order.
    """
    profile = kernel.rounded_rectangle(area.width, area.height, BIN_CORNER_RADIUS)
    blank = kernel.extrude(profile, wall_height)

    cutouts: List[Solid] = []
    for outline in outlines:
        cutout = build_cutout(kernel, outline, area, wall_height, cache=cache)
        if cutout is not None:
            cutouts.append(cutout)

    logger.info(
        "Building walls",
        width=area.width,
        height=area.height,
        wall_height=wall_height,
        cutouts=len(cutouts),
    )

    if not cutouts:
        return blank
    return kernel.cut(blank, cutouts)
