"""
Geoprocessing Package

This package provides the vector operations of the Spatial Aggregation Map Creator
workflow, each a thin layer over GeoPandas, Shapely and pyproj.

Modules:
    inspection: Geometry type detection, layer summaries, attribute filtering
    reprojection: CRS resolution and reprojection
    clipping: Subset a layer to the features intersecting a boundary
    aggregation: Count (or reduce) features per polygon
    grid: Build a regular grid over an extent
    intersection: Dissolve boundaries and intersect polygons with them

Usage:
    from geoprocessing import aggregate_counts, build_grid_for_layer, intersect_polygons

    counts = aggregate_counts(points_gdf, zones_gdf, count_column='n_points')
"""

from geoprocessing.inspection import summarize_layer, filter_features
from geoprocessing.reprojection import reproject, assign_crs, align_crs
from geoprocessing.clipping import clip_to_boundary
from geoprocessing.aggregation import aggregate_counts, aggregate_values, normalize_counts, count_summary
from geoprocessing.grid import build_grid, build_grid_for_layer, aggregate_on_grid
from geoprocessing.intersection import dissolve_boundary, intersect_polygons

__all__ = [
    'summarize_layer',
    'filter_features',
    'reproject',
    'assign_crs',
    'align_crs',
    'clip_to_boundary',
    'aggregate_counts',
    'aggregate_values',
    'normalize_counts',
    'count_summary',
    'build_grid',
    'build_grid_for_layer',
    'aggregate_on_grid',
    'dissolve_boundary',
    'intersect_polygons'
]
