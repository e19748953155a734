"""Tests for LayerMapper extrusion and elevation mapping."""

from __future__ import annotations

import logging

import numpy as np
import pytest

from strata.exceptions import DataLoadError
from strata.geometry.elements import Element, ElementType
from strata.io.readers import NO_DATA_VALUE, Raster, load_raster
from strata.mesh.extrusion import ExtrusionConfig
from strata.mesh.layers import LayerMapper, MappingStatus
from strata.mesh.mesh import Mesh


class TestCreateLayers:
    def test_unit_quad_example(self, unit_quad_mesh):
        mesh = LayerMapper.create_layers(unit_quad_mesh, n_layers=2, thickness=1.0)

        assert mesh.name == "NewMesh"
        assert mesh.n_nodes == 12
        assert mesh.n_elements == 2
        assert sorted(set(mesh.coords[:, 2])) == [-2.0, -1.0, 0.0]
        assert [e.element_type for e in mesh.elements] == [ElementType.HEXAHEDRON] * 2
        assert [e.value for e in mesh.elements] == [1, 0]
        assert mesh.dimension == 3

    def test_counts(self, two_triangle_mesh):
        mesh = LayerMapper.create_layers(two_triangle_mesh, n_layers=5, thickness=0.5)

        assert mesh.n_nodes == 6 * 4
        assert mesh.n_elements == 5 * 2
        assert all(e.element_type is ElementType.PRISM for e in mesh.elements)

    def test_node_layers(self, grid_surface_mesh):
        n = grid_surface_mesh.n_nodes
        mesh = LayerMapper.create_layers(grid_surface_mesh, n_layers=3, thickness=2.0)

        for layer in range(4):
            block = mesh.coords[layer * n:(layer + 1) * n]
            np.testing.assert_allclose(block[:, :2], grid_surface_mesh.coords[:, :2])
            np.testing.assert_allclose(block[:, 2], 10.0 - layer * 2.0)
        np.testing.assert_array_equal(mesh.node_ids, np.arange(4 * n))

    def test_material_values_decrease_with_depth(self, grid_surface_mesh):
        n_layers = 4
        n_elements = grid_surface_mesh.n_elements
        mesh = LayerMapper.create_layers(grid_surface_mesh, n_layers, 1.0)

        values = [e.value for e in mesh.elements]
        for layer in range(1, n_layers + 1):
            block = values[(layer - 1) * n_elements:layer * n_elements]
            assert set(block) == {n_layers - layer}

    def test_element_connects_adjacent_layers(self, two_triangle_mesh):
        mesh = LayerMapper.create_layers(two_triangle_mesh, n_layers=2, thickness=1.0)

        second_layer_prism = mesh.get_element(2)
        assert second_layer_prism.nodes == (4, 5, 6, 8, 9, 10)
        assert second_layer_prism.volume == pytest.approx(0.5)

    def test_neighbors_across_layers(self, unit_quad_mesh):
        mesh = LayerMapper.create_layers(unit_quad_mesh, n_layers=3, thickness=1.0)

        middle = mesh.get_element(1)
        assert sorted(n for n in middle.neighbors if n is not None) == [0, 2]
        assert middle.is_on_surface()

    def test_input_untouched(self, unit_quad_mesh):
        before = unit_quad_mesh.coords.copy()
        LayerMapper.create_layers(unit_quad_mesh, n_layers=2, thickness=3.0)

        np.testing.assert_array_equal(unit_quad_mesh.coords, before)
        assert unit_quad_mesh.n_elements == 1

    def test_unsupported_elements_skipped(self, mixed_surface_mesh, caplog):
        with caplog.at_level(logging.WARNING, logger="strata.mesh.layers"):
            mesh = LayerMapper.create_layers(mixed_surface_mesh, n_layers=3, thickness=1.0)

        assert mesh.n_nodes == 4 * 5
        assert mesh.n_elements == 3 * 2
        assert "Skipping element 2" in caplog.text

    @pytest.mark.parametrize("n_layers, thickness", [(0, 1.0), (2, 0.0), (2, -1.0)])
    def test_invalid_parameters(self, unit_quad_mesh, n_layers, thickness, caplog):
        with caplog.at_level(logging.ERROR, logger="strata.mesh.layers"):
            assert LayerMapper.create_layers(unit_quad_mesh, n_layers, thickness) is None
        assert "requires n_layers > 0 and thickness > 0" in caplog.text

    def test_requires_2d_mesh(self, unit_quad_mesh):
        volume = LayerMapper.create_layers(unit_quad_mesh, 1, 1.0)
        assert LayerMapper.create_layers(volume, 1, 1.0) is None

    def test_line_mesh_rejected(self):
        mesh = Mesh("line", [(0, 0, 0), (1, 0, 0)], [Element(ElementType.LINE, (0, 1))])
        assert LayerMapper.create_layers(mesh, 1, 1.0) is None


class TestExtrude:
    def test_variable_layer_heights(self, unit_quad_mesh):
        mesh = LayerMapper.extrude(unit_quad_mesh, ExtrusionConfig([1.0, 2.0, 4.0]))

        assert sorted(set(mesh.coords[:, 2])) == [-7.0, -3.0, -1.0, 0.0]
        volumes = [e.volume for e in mesh.elements]
        assert volumes == pytest.approx([1.0, 2.0, 4.0])
        assert [e.value for e in mesh.elements] == [2, 1, 0]


class TestMeshFitsImage:
    def test_inside(self, grid_surface_mesh):
        assert LayerMapper.mesh_fits_image(grid_surface_mesh, (0.0, 4.0), (0.0, 3.0))

    def test_on_boundary(self, grid_surface_mesh):
        assert LayerMapper.mesh_fits_image(grid_surface_mesh, (0.5, 3.5), (0.5, 2.5))

    @pytest.mark.parametrize(
        "x_extent, y_extent",
        [((1.0, 4.0), (0.0, 3.0)), ((0.0, 3.0), (0.0, 3.0)),
         ((0.0, 4.0), (0.6, 3.0)), ((0.0, 4.0), (0.0, 2.0))],
    )
    def test_outside(self, grid_surface_mesh, x_extent, y_extent, caplog):
        with caplog.at_level(logging.WARNING, logger="strata.mesh.layers"):
            assert not LayerMapper.mesh_fits_image(grid_surface_mesh, x_extent, y_extent)
        assert "does not fit" in caplog.text

    def test_single_node_both_min_and_max(self):
        mesh = Mesh("point", [(50.0, 5.0, 0.0)], [])
        assert not LayerMapper.mesh_fits_image(mesh, (0.0, 10.0), (0.0, 10.0))

    def test_first_node_is_checked(self):
        mesh = Mesh("points", [(-5.0, 5.0, 0.0), (5.0, 5.0, 0.0)], [])
        assert not LayerMapper.mesh_fits_image(mesh, (0.0, 10.0), (0.0, 10.0))


class RecordingLoader:
    """Raster loader keeping a handle to every raster it returns."""

    def __init__(self, raster: Raster | None = None):
        self.raster = raster
        self.calls = 0

    def __call__(self, path):
        self.calls += 1
        if self.raster is None:
            self.raster = load_raster(path)
        return self.raster


class TestLayerMapping:
    @pytest.fixture
    def layered(self, grid_surface_mesh):
        return LayerMapper.create_layers(grid_surface_mesh, n_layers=2, thickness=1.0)

    def test_constant_raster_top_layer(self, layered, ascii_grid):
        path = ascii_grid(np.full((3, 4), 5.0))

        result = LayerMapper.layer_mapping(layered, path, n_layers=2, layer_index=0)

        assert result.ok
        assert result.status is MappingStatus.SUCCESS
        assert result.mesh is layered
        assert result.nodata_nodes == []
        np.testing.assert_allclose(layered.coords[:12, 2], 5.0)
        np.testing.assert_allclose(layered.coords[12:24, 2], 9.0)
        np.testing.assert_allclose(layered.coords[24:, 2], 8.0)

    def test_middle_layer(self, layered, ascii_grid):
        path = ascii_grid(np.full((3, 4), -3.0))

        result = LayerMapper.layer_mapping(layered, path, n_layers=2, layer_index=1)

        assert result.ok
        np.testing.assert_allclose(layered.coords[:12, 2], 10.0)
        np.testing.assert_allclose(layered.coords[12:24, 2], -3.0)

    def test_xy_unchanged(self, layered, ascii_grid):
        before = layered.coords[:, :2].copy()
        LayerMapper.layer_mapping(layered, ascii_grid(np.ones((3, 4))), 2, 0)
        np.testing.assert_array_equal(layered.coords[:, :2], before)

    def test_nodes_at_cell_centres_take_cell_values(self, layered, ascii_grid):
        # File rows run north to south
        grid = np.array([[9, 10, 11, 12], [5, 6, 7, 8], [1, 2, 3, 4]], dtype=float)
        path = ascii_grid(grid)

        LayerMapper.layer_mapping(layered, path, n_layers=2, layer_index=0)

        np.testing.assert_allclose(layered.coords[:12, 2], np.arange(1, 13))

    def test_interpolated_value_within_stencil(self, ascii_grid):
        coords = [(0.6, 0.7, 0), (2.9, 0.4, 0), (1.2, 2.8, 0)]
        surface = Mesh("tri", coords, [Element(ElementType.TRIANGLE, (0, 1, 2))])
        grid = np.array([[7, 3, 9], [1, 8, 2], [4, 6, 5]], dtype=float)
        path = ascii_grid(grid)

        result = LayerMapper.layer_mapping(surface, path, n_layers=0, layer_index=0)

        assert result.ok
        z = surface.coords[:, 2]
        assert z.min() >= 1.0 and z.max() <= 9.0
        assert 0.0 not in z

    def test_nodata_nodes_recorded(self, layered, ascii_grid):
        grid = np.full((3, 4), 5.0)
        grid[2, 0] = NO_DATA_VALUE  # south-west cell holds node 0
        path = ascii_grid(grid)

        result = LayerMapper.layer_mapping(layered, path, n_layers=2, layer_index=0)

        assert result.ok
        assert result.nodata_nodes == [0]
        assert layered.coords[0, 2] == 0.0
        np.testing.assert_allclose(layered.coords[1:12, 2], 5.0)

    def test_nodata_indices_are_mesh_indices(self, layered, ascii_grid):
        grid = np.full((3, 4), 5.0)
        grid[2, 0] = NO_DATA_VALUE
        path = ascii_grid(grid)

        result = LayerMapper.layer_mapping(layered, path, n_layers=2, layer_index=2)

        assert result.nodata_nodes == [24]

    def test_layer_index_out_of_range(self, layered):
        loader = RecordingLoader()

        result = LayerMapper.layer_mapping(layered, "unused.asc", 2, 3, loader=loader)

        assert result.status is MappingStatus.PRECONDITION_FAILED
        assert loader.calls == 0

    def test_missing_mesh(self):
        result = LayerMapper.layer_mapping(None, "unused.asc", 1, 0)
        assert result.status is MappingStatus.PRECONDITION_FAILED
        assert result.mesh is None

    def test_raster_load_failure(self, layered, tmp_path):
        before = layered.coords.copy()

        result = LayerMapper.layer_mapping(layered, tmp_path / "missing.asc", 2, 0)

        assert result.status is MappingStatus.RASTER_LOAD_FAILED
        np.testing.assert_array_equal(layered.coords, before)

    def test_loader_returning_none(self, layered):
        result = LayerMapper.layer_mapping(layered, "x.asc", 2, 0, loader=lambda path: None)
        assert result.status is MappingStatus.RASTER_LOAD_FAILED

    def test_loader_raising(self, layered):
        def loader(path):
            raise DataLoadError("corrupt")

        result = LayerMapper.layer_mapping(layered, "x.asc", 2, 0, loader=loader)
        assert result.status is MappingStatus.RASTER_LOAD_FAILED

    def test_extent_mismatch(self, layered, ascii_grid):
        before = layered.coords.copy()
        path = ascii_grid(np.full((3, 4), 5.0), x0=1.0)

        result = LayerMapper.layer_mapping(layered, path, 2, 0)

        assert result.status is MappingStatus.EXTENT_MISMATCH
        np.testing.assert_array_equal(layered.coords, before)

    def test_extent_checks_all_layers(self, ascii_grid):
        coords = [(1, 1, 0), (2, 1, 0), (2, 2, 0), (1, 2, 0),
                  (1, 1, -1), (2, 1, -1), (2, 2, -1), (9, 9, -1)]
        mesh = Mesh("skewed", coords, [Element(ElementType.HEXAHEDRON, range(8))])
        path = ascii_grid(np.ones((4, 4)))

        result = LayerMapper.layer_mapping(mesh, path, n_layers=1, layer_index=0)

        assert result.status is MappingStatus.EXTENT_MISMATCH

    def test_raster_released_on_success(self, layered, ascii_grid):
        loader = RecordingLoader()
        LayerMapper.layer_mapping(layered, ascii_grid(np.ones((3, 4))), 2, 0, loader=loader)
        assert loader.raster.is_released

    def test_raster_released_on_mismatch(self, layered):
        loader = RecordingLoader(Raster(np.ones((2, 2)), x0=0.0, y0=0.0, delta=1.0))

        result = LayerMapper.layer_mapping(layered, "x.asc", 2, 0, loader=loader)

        assert result.status is MappingStatus.EXTENT_MISMATCH
        assert loader.raster.is_released


class TestNoDataRemoval:
    def test_removes_nodata_nodes_from_surface(self, grid_surface_mesh, ascii_grid):
        grid = np.full((3, 4), 5.0)
        grid[2, 0] = NO_DATA_VALUE
        path = ascii_grid(grid)

        result = LayerMapper.layer_mapping(
            grid_surface_mesh, path, n_layers=0, layer_index=0, remove_nodata=True
        )

        assert result.ok
        assert result.nodata_nodes == [0]
        assert result.mesh is not grid_surface_mesh
        assert result.mesh.n_nodes == 11
        assert result.mesh.n_elements == 5
        np.testing.assert_allclose(result.mesh.coords[:, 2], 5.0)

    def test_too_many_nodata_values(self, grid_surface_mesh, ascii_grid, caplog):
        path = ascii_grid(np.full((3, 4), NO_DATA_VALUE))

        with caplog.at_level(logging.WARNING, logger="strata.mesh.layers"):
            result = LayerMapper.layer_mapping(
                grid_surface_mesh, path, 0, 0, remove_nodata=True
            )

        assert result.ok
        assert len(result.nodata_nodes) == 12
        assert result.mesh is grid_surface_mesh
        assert "Too many NoData values" in caplog.text

    def test_keeps_mesh_without_remaining_elements(self, ascii_grid, caplog):
        coords = [(0.5, 0.5, 0), (1.5, 0.5, 0), (1.5, 1.5, 0), (0.5, 1.5, 0), (3.5, 3.5, 0)]
        mesh = Mesh("quad", coords, [Element(ElementType.QUAD, (0, 1, 2, 3))])
        grid = np.full((4, 4), 2.0)
        grid[3, 0] = NO_DATA_VALUE  # cell of node 0
        path = ascii_grid(grid)

        with caplog.at_level(logging.WARNING, logger="strata.mesh.layers"):
            result = LayerMapper.layer_mapping(mesh, path, 0, 0, remove_nodata=True)

        assert result.mesh is mesh
        assert "no elements would remain" in caplog.text

    def test_layered_mesh_keeps_nodes(self, grid_surface_mesh, ascii_grid):
        layered = LayerMapper.create_layers(grid_surface_mesh, 1, 1.0)
        grid = np.full((3, 4), 5.0)
        grid[2, 0] = NO_DATA_VALUE
        path = ascii_grid(grid)

        result = LayerMapper.layer_mapping(layered, path, 1, 0, remove_nodata=True)

        assert result.mesh is layered
        assert result.mesh.n_nodes == 24

    def test_custom_editor(self, grid_surface_mesh, ascii_grid):
        class Editor:
            def __init__(self):
                self.removed = None

            def remove_nodes(self, mesh, nodes):
                self.removed = list(nodes)
                return mesh.copy(name="reduced")

        grid = np.full((3, 4), 5.0)
        grid[0, 3] = NO_DATA_VALUE  # north-east cell holds node 11
        editor = Editor()

        result = LayerMapper.layer_mapping(
            grid_surface_mesh, ascii_grid(grid), 0, 0, remove_nodata=True, editor=editor
        )

        assert editor.removed == [11]
        assert result.mesh.name == "reduced"
