"""Tests for the asynchronous bin worker."""

from __future__ import annotations

import asyncio

import pytest

from gridbin.assembler import EmptyModelError
from gridbin.worker import BinWorker, KernelInitError, KernelState, StaleRequestError
from kernel.protocol import ModelMesh


async def _gather(*coroutines, **kwargs):
    return await asyncio.gather(*coroutines, **kwargs)


class CountingFactory:
    """Kernel factory that can fail a given number of times first."""

    def __init__(self, kernel_class, failures: int = 0):
        self.kernel_class = kernel_class
        self.failures = failures
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise RuntimeError("kernel library missing")
        return self.kernel_class()


@pytest.fixture
def factory(kernel_class) -> CountingFactory:
    return CountingFactory(kernel_class)


@pytest.fixture
def worker(factory):
    worker = BinWorker(kernel_factory=factory)
    yield worker
    worker.close()


class TestInitialization:
    """Test cases for kernel bootstrap."""

    def test_starts_uninitialized(self, worker):
        assert worker.state is KernelState.UNINITIALIZED
        assert not worker.is_ready()

    def test_initialize(self, worker, factory):
        asyncio.run(worker.initialize())

        assert worker.is_ready()
        assert worker.state is KernelState.READY
        assert factory.calls == 1

    def test_concurrent_initialize_shares_one_bootstrap(self, worker, factory):
        asyncio.run(_gather(worker.initialize(), worker.initialize(), worker.initialize()))
        asyncio.run(worker.initialize())

        assert factory.calls == 1

    def test_failed_bootstrap_can_be_retried(self, kernel_class):
        factory = CountingFactory(kernel_class, failures=1)
        worker = BinWorker(kernel_factory=factory)
        try:
            with pytest.raises(KernelInitError, match="kernel library missing"):
                asyncio.run(worker.initialize())
            assert worker.state is KernelState.FAILED
            assert not worker.is_ready()

            asyncio.run(worker.initialize())
            assert worker.is_ready()
            assert factory.calls == 2
        finally:
            worker.close()

    def test_close_resets_state(self, factory):
        worker = BinWorker(kernel_factory=factory)
        asyncio.run(worker.initialize())
        worker.close()

        assert worker.state is KernelState.UNINITIALIZED


class TestRequests:
    """Test cases for model generation and export."""

    def test_generate_model(self, worker, rect_outline):
        mesh = asyncio.run(worker.generate_model([rect_outline], 20.0))

        assert isinstance(mesh, ModelMesh)
        assert worker.is_ready()

    def test_generate_empty_model(self, worker):
        assert asyncio.run(worker.generate_model([], 20.0)) is None

    def test_empty_model_skips_bootstrap(self, kernel_class):
        factory = CountingFactory(kernel_class, failures=1)
        worker = BinWorker(kernel_factory=factory)
        try:
            assert asyncio.run(worker.generate_model([], 20.0)) is None
            assert factory.calls == 0
            assert worker.state is KernelState.UNINITIALIZED
        finally:
            worker.close()

    def test_empty_request_supersedes_pending_model(self, worker, rect_outline):
        first, second = asyncio.run(_gather(
            worker.generate_model([rect_outline], 20.0),
            worker.generate_model([], 20.0),
            return_exceptions=True,
        ))

        assert isinstance(first, StaleRequestError)
        assert second is None

    def test_superseded_request_is_dropped(self, worker, rect_outline, circle_outline):
        first, second = asyncio.run(_gather(
            worker.generate_model([rect_outline], 20.0),
            worker.generate_model([rect_outline, circle_outline], 20.0),
            return_exceptions=True,
        ))

        assert isinstance(first, StaleRequestError)
        assert first.request_id == 1
        assert first.latest_id == 2
        assert isinstance(second, ModelMesh)

    def test_sequential_requests_are_not_stale(self, worker, rect_outline):
        asyncio.run(worker.generate_model([rect_outline], 20.0))
        assert asyncio.run(worker.generate_model([rect_outline], 21.0)) is not None

    def test_export_step(self, worker, rect_outline):
        data = asyncio.run(worker.export_step([rect_outline], 20.0))
        assert data.startswith(b"ISO-10303-21;")

    def test_export_empty_raises(self, worker):
        with pytest.raises(EmptyModelError):
            asyncio.run(worker.export_step([], 20.0))

    def test_cache_info_and_clear(self, worker, rect_outline):
        asyncio.run(worker.generate_model([rect_outline], 20.0))
        info = asyncio.run(worker.cache_info())

        assert info["state"] == "ready"
        assert info["max_entries"] == 20
        assert info["namespaces"]["bin"]["size"] == 1

        asyncio.run(worker.clear_cache())
        info = asyncio.run(worker.cache_info())
        assert info["namespaces"]["bin"]["size"] == 0
        assert info["namespaces"]["bin"]["misses"] == 1
