"""Asynchronous request boundary around the bin pipeline.

Kernel calls are synchronous, slow and not reentrant, so every one of
them runs on a single dedicated worker thread. Callers on the event loop
await results; the loop itself never blocks on geometry.

Model requests are numbered as they arrive. A model whose request was
overtaken by a newer one while it was being built is dropped with
``StaleRequestError`` rather than delivered out of order.
"""

from __future__ import annotations

import asyncio
import functools
from concurrent.futures import ThreadPoolExecutor
from enum import Enum
from typing import Any, Callable, Dict, Optional, Sequence

import structlog

from binmodel.dimensions import DEFAULT_BASE_HEIGHT
from binmodel.schema import AnyOutline
from kernel.occt import OcctKernel
from kernel.protocol import GeometryKernel, ModelMesh

from .assembler import BinAssembler
from .cache import ResultCache
from .config import Settings

logger = structlog.get_logger(__name__)

KernelFactory = Callable[[], GeometryKernel]


class KernelState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"
    FAILED = "failed"


class KernelInitError(RuntimeError):
    """Raised when the geometry kernel cannot be bootstrapped."""

    pass


class StaleRequestError(RuntimeError):
    """Raised for a model request superseded before it completed."""

    def __init__(self, request_id: int, latest_id: int):
        super().__init__(
            f"Model request {request_id} was superseded by request {latest_id}"
        )
        self.request_id = request_id
        self.latest_id = latest_id


class BinWorker:
    """Serializes bin builds on one kernel thread behind an async API."""

    def __init__(
        self,
        kernel_factory: KernelFactory = OcctKernel,
        settings: Optional[Settings] = None,
        cache: Optional[ResultCache] = None,
    ):
        """Initialize the worker.

        Args:
            kernel_factory: Creates the kernel; runs on the worker thread
            settings: Runtime settings; defaults if None
            cache: Result cache; a new one sized from ``settings`` if None
        """
        self._kernel_factory = kernel_factory
        self.settings = settings or Settings()
        self.cache = cache if cache is not None else ResultCache(
            max_entries=self.settings.cache_size,
            include_identity=self.settings.cache_identity,
        )

        self._executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="gridbin-kernel")
        self._state = KernelState.UNINITIALIZED
        self._init_task: Optional[asyncio.Task] = None
        self._assembler: Optional[BinAssembler] = None
        self._latest_request = 0

    @property
    def state(self) -> KernelState:
        return self._state

    def is_ready(self) -> bool:
        return self._state is KernelState.READY

    async def _run(self, fn: Callable[..., Any], *args: Any, **kwargs: Any) -> Any:
        loop = asyncio.get_running_loop()
        return await loop.run_in_executor(self._executor, functools.partial(fn, *args, **kwargs))

    async def initialize(self) -> None:
        """Bootstrap the kernel once.

        Concurrent callers share the same in-flight bootstrap. After a
        failure the next call starts a fresh attempt.

        Raises:
            KernelInitError: If the kernel factory fails
        """
        if self._state is KernelState.READY:
            return

        if self._init_task is None:
            self._state = KernelState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._bootstrap())

        # Shielded so one cancelled caller does not abort the shared bootstrap
        await asyncio.shield(self._init_task)

    async def _bootstrap(self) -> None:
        logger.info("Bootstrapping geometry kernel")
        try:
            kernel = await self._run(self._kernel_factory)
        except Exception as e:
            self._state = KernelState.FAILED
            self._init_task = None
            logger.error("Kernel bootstrap failed", error=str(e))
            raise KernelInitError(f"Kernel bootstrap failed: {e}") from e

        self._assembler = BinAssembler(kernel, cache=self.cache, settings=self.settings)
        self._state = KernelState.READY
        logger.info("Geometry kernel ready", kernel=kernel.name)

    async def generate_model(
        self,
        outlines: Sequence[AnyOutline],
        total_height: float,
        base_height: float = DEFAULT_BASE_HEIGHT,
    ) -> Optional[ModelMesh]:
        """Build and tessellate a bin.

        Returns:
            Preview mesh, or None when there are no outlines

        Raises:
            StaleRequestError: If a newer request arrived while building
            KernelInitError: If the kernel cannot be bootstrapped
        """
        self._latest_request += 1
        request_id = self._latest_request
        outlines = list(outlines)
        log = logger.bind(request_id=request_id, outlines=len(outlines))

        # An empty model never needs the kernel
        if not outlines:
            log.debug("Empty model request")
            return None

        await self.initialize()
        log.debug("Model request started")

        mesh = await self._run(self._assembler.mesh, outlines, total_height, base_height)

        if request_id != self._latest_request:
            log.info("Dropping stale model", latest_request=self._latest_request)
            raise StaleRequestError(request_id, self._latest_request)

        log.debug("Model request completed", empty=mesh is None)
        return mesh

    async def export_step(
        self,
        outlines: Sequence[AnyOutline],
        total_height: float,
        base_height: float = DEFAULT_BASE_HEIGHT,
    ) -> bytes:
        """STEP file contents of a bin.

        Raises:
            EmptyModelError: If there are no outlines
        """
        await self.initialize()
        return await self._run(self._assembler.export_step, list(outlines), total_height, base_height)

    async def cache_info(self) -> Dict[str, Any]:
        stats = await self._run(self.cache.stats)
        return {
            "state": self._state.value,
            "max_entries": self.cache.max_entries,
            "include_identity": self.cache.include_identity,
            "namespaces": stats,
        }

    async def clear_cache(self) -> None:
        await self._run(self.cache.clear)

    def close(self) -> None:
        """Wait for the kernel thread to finish and release it."""
        self._executor.shutdown(wait=True)
        self._state = KernelState.UNINITIALIZED
        self._assembler = None
        self._init_task = None
