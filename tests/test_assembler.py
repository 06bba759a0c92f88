"""Tests for BinAssembler with the recording fake kernel."""

from __future__ import annotations

import pytest

from binmodel.schema import BinParameterError, MalformedOutlineError, create_spline
from gridbin.assembler import BinAssembler, EmptyModelError
from gridbin.cache import BIN
from gridbin.config import Settings
from kernel.protocol import KernelError, ModelMesh


@pytest.fixture
def assembler(fake_kernel) -> BinAssembler:
    return BinAssembler(fake_kernel)


class TestBuild:
    """Test cases for bin assembly."""

    def test_no_outlines_builds_nothing(self, assembler, fake_kernel):
        assert assembler.build([], 20.0) is None
        assert fake_kernel.calls == []

    def test_bin_spans_total_height(self, assembler, fake_kernel, rect_outline):
        solid = assembler.build([rect_outline], 20.0, 4.75)
        bbox = fake_kernel.bounding_box(solid)

        assert bbox.min_z == pytest.approx(0.0)
        assert bbox.max_z == pytest.approx(20.0)
        assert bbox.size[0] == pytest.approx(83.5)

    def test_walls_are_lifted_onto_the_base(self, assembler, fake_kernel, rect_outline):
        assembler.build([rect_outline], 20.0, 4.75)

        lifts = [op for op in fake_kernel.ops("translate") if op["dz"] != 0.0]
        assert lifts == [{"dx": 0.0, "dy": 0.0, "dz": pytest.approx(5.75)}]
        assert fake_kernel.ops("fuse")[-1] == {"tools": 1}

    def test_custom_base_height(self, assembler, fake_kernel, rect_outline):
        solid = assembler.build([rect_outline], 30.0, 7.0)
        bbox = fake_kernel.bounding_box(solid)

        assert bbox.max_z == pytest.approx(30.0)
        (loft,) = fake_kernel.ops("loft")
        assert loft["sections"][0][1] == pytest.approx(7.0)

    def test_repeat_build_is_served_from_cache(self, assembler, fake_kernel, rect_outline, circle_outline):
        first = assembler.build([rect_outline, circle_outline], 28.0)
        calls = len(fake_kernel.calls)

        second = assembler.build([rect_outline, circle_outline], 28)

        assert second is first
        assert len(fake_kernel.calls) == calls
        assert assembler.cache.stats()[BIN]["hits"] == 1

    def test_invalid_heights(self, assembler, fake_kernel, rect_outline):
        with pytest.raises(BinParameterError):
            assembler.build([rect_outline], 5.0)
        assert fake_kernel.calls == []

    def test_malformed_outline(self, assembler, rect_outline):
        with pytest.raises(MalformedOutlineError):
            assembler.build([rect_outline, create_spline("bad", [(0, 0), (1, 1)])], 20.0)

    def test_kernel_failure_is_not_cached(self, kernel_class, rect_outline):
        kernel = kernel_class(fail_on=["cut"])
        assembler = BinAssembler(kernel)

        with pytest.raises(KernelError, match="cut failed"):
            assembler.build([rect_outline], 20.0)
        assert assembler.cache.stats()[BIN]["size"] == 0

    def test_grid_area(self, assembler, rect_outline):
        assert assembler.grid_area([rect_outline]).grid_units == (2, 2)

    def test_cache_sized_from_settings(self, fake_kernel):
        assembler = BinAssembler(fake_kernel, settings=Settings(cache_size=3, cache_identity=False))

        assert assembler.cache.max_entries == 3
        assert assembler.cache.include_identity is False


class TestMeshAndExport:
    """Test cases for meshing and STEP export."""

    def test_mesh_uses_settings_tolerances(self, fake_kernel, rect_outline):
        assembler = BinAssembler(fake_kernel, settings=Settings(mesh_tolerance=0.2))
        mesh = assembler.mesh([rect_outline], 20.0)

        assert isinstance(mesh, ModelMesh)
        assert fake_kernel.ops("mesh") == [{"tolerance": 0.2, "angular_tolerance": 30.0}]

    def test_mesh_tolerance_override(self, assembler, fake_kernel, rect_outline):
        assembler.mesh([rect_outline], 20.0, tolerance=0.5, angular_tolerance=10.0)

        assert fake_kernel.ops("mesh") == [{"tolerance": 0.5, "angular_tolerance": 10.0}]

    def test_mesh_of_nothing(self, assembler, fake_kernel):
        assert assembler.mesh([], 20.0) is None
        assert fake_kernel.count("mesh") == 0

    def test_mesh_dict_shape(self, assembler, rect_outline):
        data = assembler.mesh([rect_outline], 20.0).to_dict()

        assert set(data) == {"faces", "edges"}
        assert set(data["faces"]) == {"vertices", "triangles", "normals", "faceGroups"}
        assert set(data["edges"]) == {"vertices", "lines", "edgeGroups"}

    def test_export_step(self, assembler, rect_outline):
        data = assembler.export_step([rect_outline], 20.0)

        assert data.startswith(b"ISO-10303-21;")

    def test_export_empty_raises(self, assembler):
        with pytest.raises(EmptyModelError):
            assembler.export_step([], 20.0)
