"""Shared pytest fixtures for the Spatial Aggregation Map Creator test suite."""

import json
from pathlib import Path

import geopandas as gpd
import pytest

from geodata import CRS_UTM, offset_box, offset_point

# ---------------------------------------------------------------------------
# Synthetic layers
# ---------------------------------------------------------------------------


@pytest.fixture()
def zones_gdf() -> gpd.GeoDataFrame:
    """Two adjacent 10 m squares: A on the left, B on the right."""
    return gpd.GeoDataFrame(
        {'name': ['A', 'B'], 'zone_id': [1, 2]},
        geometry=[offset_box(0, 0, 10, 10), offset_box(10, 0, 20, 10)],
        crs=CRS_UTM
    )


@pytest.fixture()
def points_gdf() -> gpd.GeoDataFrame:
    """Three points: two inside zone A, one inside zone B."""
    return gpd.GeoDataFrame(
        {
            'category': ['burglary', 'theft', 'burglary'],
            'date': ['2024-01-03', '2024-01-05', '2024-02-11'],
            'id': [101, 102, 103]
        },
        geometry=[offset_point(2, 2), offset_point(5, 5), offset_point(15, 5)],
        crs=CRS_UTM
    )


@pytest.fixture()
def shapefile_dir(tmp_path: Path, zones_gdf, points_gdf) -> Path:
    """Directory holding the zones and points layers as shapefiles."""
    data_dir = tmp_path / 'data'
    data_dir.mkdir()
    zones_gdf.to_file(data_dir / 'zones.shp', driver='ESRI Shapefile')
    points_gdf.to_file(data_dir / 'points.shp', driver='ESRI Shapefile')
    return data_dir


@pytest.fixture()
def workflow_config(tmp_path: Path, shapefile_dir: Path) -> Path:
    """Workflow configuration pointing at the test shapefiles."""
    config = {
        'inputs': {
            'data_dir': str(shapefile_dir),
            'points_layer': 'points',
            'zones_layer': 'zones'
        },
        'settings': {
            'target_crs': 'EPSG:4326',
            'count_column': 'n_points',
            'bins': 3,
            'palette': 'Blues',
            'default_zoom': 15,
            'map_title': 'Test Counts',
            'tooltip_fields': ['name']
        },
        'grid_settings': {
            'grid_cell_count': 2,
            'output_layer': 'grid_counts',
            'overwrite': True
        }
    }
    config_path = tmp_path / 'workflow_config.json'
    config_path.write_text(json.dumps(config), encoding='utf-8')
    return config_path
