"""
Spatial Aggregation Module

Assigns point/line features to the polygons that contain them and reduces
them to one value per polygon (a count, or any pandas reduction of an
attribute).

Assignment rules:
- Points are assigned to the first polygon (in input order) they intersect,
  so a point on a shared edge is counted once.
- Lines are counted once for every polygon they intersect.
"""

import numpy as np
import pandas as pd
import geopandas as gpd
from typing import Dict, Union, Callable
from geoprocessing.inspection import detect_geometry_type
from geoprocessing.reprojection import align_crs
from utils.logger import get_logger

logger = get_logger(__name__)

POLYGON_KEY = '_polygon_pos'
FEATURE_KEY = '_feature_pos'


def _join_to_polygons(features: gpd.GeoDataFrame, polygons: gpd.GeoDataFrame) -> pd.DataFrame:
    """
    Spatially join features to polygons following the assignment rules.

    Returns:
        DataFrame with one row per (feature, polygon) assignment, holding
        FEATURE_KEY and POLYGON_KEY positions plus the feature attributes
    """
    features = align_crs(features, polygons)

    polys = gpd.GeoDataFrame(
        {POLYGON_KEY: np.arange(len(polygons))},
        geometry=polygons.geometry.values,
        crs=polygons.crs
    )
    feats = features.copy()
    feats[FEATURE_KEY] = np.arange(len(feats))

    if len(feats) == 0 or len(polys) == 0:
        columns = [c for c in feats.columns if c != feats.geometry.name]
        return pd.DataFrame(columns=columns + [POLYGON_KEY])

    joined = gpd.sjoin(feats, polys, how='inner', predicate='intersects')
    joined = joined.sort_values([FEATURE_KEY, POLYGON_KEY])

    if detect_geometry_type(features) == 'point':
        joined = joined.drop_duplicates(subset=FEATURE_KEY, keep='first')
    else:
        joined = joined.drop_duplicates(subset=[FEATURE_KEY, POLYGON_KEY])

    unmatched = len(feats) - joined[FEATURE_KEY].nunique()
    if unmatched > 0:
        logger.info(f"    {unmatched} features fall outside every polygon")

    return pd.DataFrame(joined.drop(columns=[joined.geometry.name, 'index_right'], errors='ignore'))


def normalize_counts(gdf: gpd.GeoDataFrame, column: str) -> gpd.GeoDataFrame:
    """
    Replace null counts with zero and cast the column to integer.

    Polygons without any matching feature get a null from the aggregation;
    rendering and export need a number.
    """
    result = gdf.copy()
    null_count = int(result[column].isna().sum())
    if null_count > 0:
        logger.debug(f"    Normalizing {null_count} null values in '{column}' to 0")
    result[column] = result[column].fillna(0).astype('int64')
    return result


def aggregate_counts(
    features: gpd.GeoDataFrame,
    polygons: gpd.GeoDataFrame,
    count_column: str = 'count',
    fill_null: bool = True
) -> gpd.GeoDataFrame:
    """
    Count the features located inside each polygon.

    Args:
        features: Point or line layer
        polygons: Polygon layer receiving the counts
        count_column: Name of the new count column
        fill_null: Replace nulls for empty polygons with 0 (default True)

    Returns:
        Copy of `polygons` with `count_column` added, one value per polygon in
        input order. Empty polygons hold null when fill_null is False.

    Example:
        >>> counts = aggregate_counts(points, zones, 'n_points')
        >>> counts['n_points'].tolist()
        [2, 1]
    """
    logger.info(f"  Aggregating {len(features)} features into {len(polygons)} polygons...")

    joined = _join_to_polygons(features, polygons)
    counts = joined.groupby(POLYGON_KEY).size()

    result = polygons.copy()
    if count_column in result.columns:
        logger.warning(f"    Overwriting existing column '{count_column}'")
    result[count_column] = counts.reindex(np.arange(len(polygons))).to_numpy()

    if fill_null:
        result = normalize_counts(result, count_column)

    logger.info(f"    {int(counts.sum())} feature assignments across "
                f"{len(counts)} non-empty polygons")

    return result


def aggregate_values(
    features: gpd.GeoDataFrame,
    polygons: gpd.GeoDataFrame,
    value_column: str,
    func: Union[str, Callable] = 'sum',
    output_column: str = None
) -> gpd.GeoDataFrame:
    """
    Reduce an attribute of the features inside each polygon.

    Args:
        features: Point or line layer
        polygons: Polygon layer receiving the values
        value_column: Feature attribute to reduce
        func: pandas reduction ('sum', 'mean', 'max', ...) or callable
        output_column: Name of the new column (defaults to value_column)

    Returns:
        Copy of `polygons` with the reduced values; polygons without
        features hold null
    """
    if value_column not in features.columns:
        raise KeyError(f"Attribute column '{value_column}' not found in features")

    output_column = output_column or value_column
    joined = _join_to_polygons(features, polygons)
    reduced = joined.groupby(POLYGON_KEY)[value_column].agg(func)

    result = polygons.copy()
    result[output_column] = reduced.reindex(np.arange(len(polygons))).to_numpy()
    return result


def count_summary(gdf: gpd.GeoDataFrame, column: str) -> Dict:
    """Summary statistics of a count column for metadata.json."""
    values = gdf[column].fillna(0)
    if len(values) == 0:
        return {'total': 0, 'min': 0, 'max': 0, 'mean': 0.0, 'zero_polygons': 0}

    return {
        'total': int(values.sum()),
        'min': int(values.min()),
        'max': int(values.max()),
        'mean': round(float(values.mean()), 3),
        'zero_polygons': int((values == 0).sum())
    }
