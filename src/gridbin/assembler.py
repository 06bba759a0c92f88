"""Bin assembly: grid area, base, walls, final fuse.

``BinAssembler`` is the entry point of the pipeline. It owns no geometry
state of its own; every expensive intermediate lives in the
``ResultCache`` passed to it.
"""

from __future__ import annotations

from typing import Optional, Sequence

import structlog

from binmodel.dimensions import DEFAULT_BASE_HEIGHT
from binmodel.grid import calculate_minimal_grid_area
from binmodel.schema import AnyOutline, BinParameters, GridArea
from kernel.export import ExportError
from kernel.protocol import GeometryKernel, KernelError, ModelMesh, Solid

from .base import build_base
from .cache import BIN, ResultCache
from .config import Settings
from .walls import build_walls

logger = structlog.get_logger(__name__)


class EmptyModelError(ValueError):
    """Raised when a solid is requested for an empty outline list."""

    pass


class BinAssembler:
    """Builds, meshes and exports bins through a geometry kernel."""

    def __init__(
        self,
        kernel: GeometryKernel,
        cache: Optional[ResultCache] = None,
        settings: Optional[Settings] = None,
    ):
        """Initialize the assembler.

        Args:
            kernel: Geometry kernel every solid is built with
            cache: Result cache; a new one sized from ``settings`` if None
            settings: Runtime settings; defaults if None
        """
        self.kernel = kernel
        self.settings = settings or Settings()
        self.cache = cache if cache is not None else ResultCache(
            max_entries=self.settings.cache_size,
            include_identity=self.settings.cache_identity,
        )

    def grid_area(self, outlines: Sequence[AnyOutline]) -> GridArea:
        return calculate_minimal_grid_area(list(outlines))

    def build(
        self,
        outlines: Sequence[AnyOutline],
        total_height: float,
        base_height: float = DEFAULT_BASE_HEIGHT,
    ) -> Optional[Solid]:
        """Build the bin solid for ``outlines``.

        Args:
            outlines: Outlines to cut into the walls
            total_height: Overall bin height in mm
            base_height: Height of the gridded base in mm

        Returns:
            The fused bin solid, or None when there are no outlines

        Raises:
            BinParameterError: If the heights leave no room for walls or base
            MalformedOutlineError: If an outline cannot form a profile
            KernelError: If a kernel operation fails
        """
        outlines = list(outlines)
        if not outlines:
            logger.info("No outlines, nothing to build")
            return None

        params = BinParameters(total_height=total_height, base_height=base_height)
        params.validate()
        for outline in outlines:
            outline.validate()

        def build() -> Solid:
            area = calculate_minimal_grid_area(outlines)
            logger.info(
                "Assembling bin",
                outlines=len(outlines),
                grid_units=area.grid_units,
                total_height=total_height,
                wall_height=params.wall_height,
            )

            base = build_base(self.kernel, area.width, area.height, base_height, cache=self.cache)
            walls = build_walls(self.kernel, outlines, area, params.wall_height, cache=self.cache)
            lifted = self.kernel.translate(walls, 0.0, 0.0, params.wall_offset)
            return self.kernel.fuse(base, [lifted])

        try:
            return self.cache.get_or_build(BIN, (outlines, total_height, base_height), build)
        except KernelError as e:
            logger.error("Bin assembly failed", kernel=self.kernel.name, error=str(e))
            raise

    def mesh(
        self,
        outlines: Sequence[AnyOutline],
        total_height: float,
        base_height: float = DEFAULT_BASE_HEIGHT,
        tolerance: Optional[float] = None,
        angular_tolerance: Optional[float] = None,
    ) -> Optional[ModelMesh]:
        """Preview mesh of the bin, or None when there are no outlines."""
        solid = self.build(outlines, total_height, base_height)
        if solid is None:
            return None

        return self.kernel.mesh(
            solid,
            tolerance=self.settings.mesh_tolerance if tolerance is None else tolerance,
            angular_tolerance=(
                self.settings.mesh_angular_tolerance
                if angular_tolerance is None
                else angular_tolerance
            ),
        )

    def export_step(
        self,
        outlines: Sequence[AnyOutline],
        total_height: float,
        base_height: float = DEFAULT_BASE_HEIGHT,
    ) -> bytes:
        """STEP file contents of the bin.

        Raises:
            EmptyModelError: If there are no outlines
            ExportError: If the STEP writer fails
        """
        solid = self.build(outlines, total_height, base_height)
        if solid is None:
            raise EmptyModelError("Cannot export a bin without outlines")

        try:
            return self.kernel.export_step(solid)
        except ExportError as e:
            logger.error("STEP export failed", error=str(e))
            raise
