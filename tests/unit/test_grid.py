"""Tests for the regular grid builder."""

import geopandas as gpd
import numpy as np
import pytest
from shapely.ops import unary_union

from geodata import CRS_UTM, offset_box, offset_point
from geoprocessing.grid import aggregate_on_grid, build_grid, build_grid_for_layer

EXTENT = (100.0, 200.0, 130.0, 260.0)


class TestBuildGrid:
    @pytest.mark.parametrize('cell_count', [1, 3, 10])
    def test_cell_count_squared(self, cell_count) -> None:
        grid = build_grid(EXTENT, cell_count, crs='EPSG:32630')
        assert len(grid) == cell_count ** 2

    @pytest.mark.parametrize('cell_count', [1, 4, 7])
    def test_bounds_equal_extent(self, cell_count) -> None:
        grid = build_grid(EXTENT, cell_count)
        np.testing.assert_allclose(grid.total_bounds, EXTENT)

    def test_cells_tile_extent_without_overlap(self) -> None:
        grid = build_grid(EXTENT, 5)
        extent_area = (EXTENT[2] - EXTENT[0]) * (EXTENT[3] - EXTENT[1])
        assert grid.area.sum() == pytest.approx(extent_area)
        assert unary_union(grid.geometry).area == pytest.approx(extent_area)

    def test_row_major_from_top_left(self) -> None:
        grid = build_grid(EXTENT, 3)
        first = grid.iloc[0]
        assert (first['cell_id'], first['row'], first['col']) == (1, 1, 1)
        minx, miny, maxx, maxy = first.geometry.bounds
        assert minx == pytest.approx(EXTENT[0])
        assert maxy == pytest.approx(EXTENT[3])

        last = grid.iloc[-1]
        assert (last['cell_id'], last['row'], last['col']) == (9, 3, 3)
        minx, miny, maxx, maxy = last.geometry.bounds
        assert maxx == pytest.approx(EXTENT[2])
        assert miny == pytest.approx(EXTENT[1])

    def test_cells_are_equal_size(self) -> None:
        grid = build_grid(EXTENT, 3)
        np.testing.assert_allclose(grid.area, 10.0 * 20.0)

    def test_carries_crs(self) -> None:
        grid = build_grid(EXTENT, 2, crs='EPSG:32630')
        assert grid.crs.to_epsg() == 32630

    @pytest.mark.parametrize('cell_count', [0, -2, 2.5])
    def test_invalid_cell_count(self, cell_count) -> None:
        with pytest.raises(ValueError, match='Cell count'):
            build_grid(EXTENT, cell_count)

    def test_degenerate_extent(self) -> None:
        with pytest.raises(ValueError, match='Degenerate'):
            build_grid((0.0, 0.0, 0.0, 5.0), 2)


class TestBuildGridForLayer:
    def test_uses_layer_bounds_and_crs(self, zones_gdf) -> None:
        grid = build_grid_for_layer(zones_gdf, 4)
        assert len(grid) == 16
        np.testing.assert_allclose(grid.total_bounds, zones_gdf.total_bounds)
        assert grid.crs == zones_gdf.crs


@pytest.fixture()
def l_boundary() -> gpd.GeoDataFrame:
    """L-shaped boundary over a 20 m square; the top-right quarter is missing."""
    return gpd.GeoDataFrame(
        geometry=[offset_box(0, 0, 20, 10), offset_box(0, 10, 10, 20)],
        crs=CRS_UTM
    )


class TestAggregateOnGrid:
    def test_cells_touching_boundary_are_dropped(self, l_boundary) -> None:
        points = gpd.GeoDataFrame(geometry=[offset_point(5, 5)], crs=CRS_UTM)
        grid_counts, metadata = aggregate_on_grid(points, l_boundary, 2, 'n')

        # Top-right cell (cell_id 2) shares only edges with the L
        assert sorted(grid_counts['cell_id']) == [1, 3, 4]
        assert metadata['cells_in_boundary'] == 3
        assert metadata['cell_count'] == 2

    def test_point_on_boundary_edge_is_counted(self, l_boundary) -> None:
        points = gpd.GeoDataFrame(
            {'id': [1, 2]},
            geometry=[offset_point(15, 10), offset_point(5, 5)],
            crs=CRS_UTM
        )
        grid_counts, _ = aggregate_on_grid(points, l_boundary, 2, 'n')

        assert grid_counts['n'].sum() == 2
        counts = dict(zip(grid_counts['cell_id'], grid_counts['n']))
        assert counts[4] == 1
        assert counts[3] == 1

    def test_cells_trimmed_to_boundary(self, l_boundary) -> None:
        points = gpd.GeoDataFrame(geometry=[offset_point(5, 5)], crs=CRS_UTM)
        grid_counts, _ = aggregate_on_grid(points, l_boundary, 2, 'n')

        assert grid_counts.area.sum() == pytest.approx(300.0)
