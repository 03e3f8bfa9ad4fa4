"""Tests for counting features per polygon."""

import geopandas as gpd
import numpy as np
import pandas as pd
import pytest
from shapely.geometry import LineString

from geodata import CRS_UTM, X0, Y0, offset_box, offset_point
from geoprocessing.aggregation import (
    aggregate_counts,
    aggregate_values,
    count_summary,
    normalize_counts,
)


@pytest.fixture()
def three_zones(zones_gdf) -> gpd.GeoDataFrame:
    """Zones A and B plus an empty zone C."""
    zone_c = gpd.GeoDataFrame(
        {'name': ['C'], 'zone_id': [3]},
        geometry=[offset_box(20, 0, 30, 10)],
        crs=CRS_UTM
    )
    return gpd.GeoDataFrame(pd.concat([zones_gdf, zone_c], ignore_index=True), crs=CRS_UTM)


class TestAggregateCounts:
    def test_counts_in_polygon_order(self, points_gdf, zones_gdf) -> None:
        result = aggregate_counts(points_gdf, zones_gdf, 'n_points')
        assert result['n_points'].tolist() == [2, 1]
        assert result['name'].tolist() == ['A', 'B']

    def test_counts_sum_to_point_total(self, points_gdf, zones_gdf) -> None:
        result = aggregate_counts(points_gdf, zones_gdf, 'n_points')
        assert result['n_points'].sum() == len(points_gdf)

    def test_point_on_shared_edge_counted_once(self, points_gdf, zones_gdf) -> None:
        edge_point = gpd.GeoDataFrame(
            {'category': ['theft'], 'date': ['2024-03-01'], 'id': [104]},
            geometry=[offset_point(10, 5)],
            crs=CRS_UTM
        )
        points = gpd.GeoDataFrame(pd.concat([points_gdf, edge_point], ignore_index=True), crs=CRS_UTM)

        result = aggregate_counts(points, zones_gdf, 'n_points')

        assert result['n_points'].tolist() == [3, 1]
        assert result['n_points'].sum() == 4

    def test_empty_polygon_is_zero_after_normalization(self, points_gdf, three_zones) -> None:
        result = aggregate_counts(points_gdf, three_zones, 'n_points')
        assert result['n_points'].tolist() == [2, 1, 0]
        assert result['n_points'].notna().all()
        assert result['n_points'].dtype == np.int64

    def test_empty_polygon_is_null_without_fill(self, points_gdf, three_zones) -> None:
        result = aggregate_counts(points_gdf, three_zones, 'n_points', fill_null=False)
        assert result['n_points'].isna().tolist() == [False, False, True]

        normalized = normalize_counts(result, 'n_points')
        assert normalized['n_points'].tolist() == [2, 1, 0]

    def test_points_outside_all_polygons_not_counted(self, points_gdf, zones_gdf) -> None:
        far = gpd.GeoDataFrame(
            {'category': ['theft'], 'date': ['2024-03-01'], 'id': [104]},
            geometry=[offset_point(100, 100)],
            crs=CRS_UTM
        )
        points = gpd.GeoDataFrame(pd.concat([points_gdf, far], ignore_index=True), crs=CRS_UTM)
        result = aggregate_counts(points, zones_gdf, 'n_points')
        assert result['n_points'].tolist() == [2, 1]

    def test_features_in_other_crs(self, points_gdf, zones_gdf) -> None:
        result = aggregate_counts(points_gdf.to_crs('EPSG:4326'), zones_gdf, 'n_points')
        assert result['n_points'].tolist() == [2, 1]
        assert result.crs == zones_gdf.crs

    def test_non_default_polygon_index(self, points_gdf, zones_gdf) -> None:
        zones = zones_gdf.set_index(pd.Index([10, 10]))
        result = aggregate_counts(points_gdf, zones, 'n_points')
        assert result['n_points'].tolist() == [2, 1]

    def test_lines_counted_per_polygon_touched(self, zones_gdf) -> None:
        lines = gpd.GeoDataFrame(
            {'id': [1, 2]},
            geometry=[
                LineString([(X0 + 2, Y0 + 2), (X0 + 18, Y0 + 2)]),  # crosses A and B
                LineString([(X0 + 2, Y0 + 8), (X0 + 8, Y0 + 8)]),   # inside A
            ],
            crs=CRS_UTM
        )
        result = aggregate_counts(lines, zones_gdf, 'n_lines')
        assert result['n_lines'].tolist() == [2, 1]

    def test_no_features(self, zones_gdf) -> None:
        empty = gpd.GeoDataFrame({'id': []}, geometry=[], crs=CRS_UTM)
        result = aggregate_counts(empty, zones_gdf, 'n_points')
        assert result['n_points'].tolist() == [0, 0]

    def test_input_untouched(self, points_gdf, zones_gdf) -> None:
        aggregate_counts(points_gdf, zones_gdf, 'n_points')
        assert 'n_points' not in zones_gdf.columns


class TestAggregateValues:
    def test_sum_of_attribute(self, points_gdf, three_zones) -> None:
        result = aggregate_values(points_gdf, three_zones, 'id', 'sum', output_column='id_sum')
        assert result['id_sum'].iloc[0] == 203
        assert result['id_sum'].iloc[1] == 103
        assert pd.isna(result['id_sum'].iloc[2])

    def test_unknown_column(self, points_gdf, zones_gdf) -> None:
        with pytest.raises(KeyError):
            aggregate_values(points_gdf, zones_gdf, 'severity')


class TestCountSummary:
    def test_summary(self, points_gdf, three_zones) -> None:
        result = aggregate_counts(points_gdf, three_zones, 'n_points')
        summary = count_summary(result, 'n_points')
        assert summary == {'total': 3, 'min': 0, 'max': 2, 'mean': 1.0, 'zero_polygons': 1}

    def test_empty_layer(self) -> None:
        empty = gpd.GeoDataFrame({'n_points': []}, geometry=[])
        assert count_summary(empty, 'n_points')['total'] == 0
