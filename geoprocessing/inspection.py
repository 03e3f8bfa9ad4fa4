"""
Layer Inspection Module

Summarizes layer structure (geometry type, CRS, bounding box, attribute table)
and provides attribute-based subsetting.
"""

import geopandas as gpd
import pandas as pd
from typing import Iterable, Tuple
from utils.logger import get_logger

logger = get_logger(__name__)

SUPPORTED_GEOMETRY_TYPES = {'Point', 'MultiPoint', 'LineString', 'MultiLineString',
                            'Polygon', 'MultiPolygon'}


def detect_geometry_type(gdf: gpd.GeoDataFrame) -> str:
    """
    Detect the primary geometry type in the GeoDataFrame.

    Args:
        gdf: GeoDataFrame with geometries

    Returns:
        One of: 'point', 'line', 'polygon', 'mixed' or 'empty'

    Note:
        - MultiPoint/MultiLineString/MultiPolygon are classified as their base type
        - If multiple different types exist, returns 'mixed'
    """
    geom_types = gdf.geometry.dropna().geom_type.unique()

    if len(geom_types) == 0:
        return 'empty'

    normalized_types = set()
    for gtype in geom_types:
        if gtype in ['Point', 'MultiPoint']:
            normalized_types.add('point')
        elif gtype in ['LineString', 'MultiLineString']:
            normalized_types.add('line')
        elif gtype in ['Polygon', 'MultiPolygon']:
            normalized_types.add('polygon')
        else:
            logger.warning(f"Unsupported geometry type detected: {gtype}")
            normalized_types.add('unknown')

    if len(normalized_types) > 1:
        logger.warning(f"Mixed geometry types detected: {normalized_types}")
        return 'mixed'

    return normalized_types.pop()


def validate_layer(gdf: gpd.GeoDataFrame) -> Tuple[bool, str]:
    """
    Validate that a layer is suitable for processing.

    Args:
        gdf: GeoDataFrame with geometries

    Returns:
        Tuple of (is_valid, error_message)
        If is_valid is True, error_message is empty string

    Checks:
        - CRS is defined
        - No null geometries
        - Geometry types are supported
    """
    if gdf.crs is None:
        return False, "GeoDataFrame has no CRS defined"

    null_geoms = gdf.geometry.isnull().sum()
    if null_geoms > 0:
        return False, f"GeoDataFrame contains {null_geoms} null geometries"

    unsupported = set(gdf.geometry.geom_type.unique()) - SUPPORTED_GEOMETRY_TYPES
    if unsupported:
        return False, f"Unsupported geometry types: {unsupported}"

    return True, ""


def attribute_table(gdf: gpd.GeoDataFrame) -> pd.DataFrame:
    """Return the attribute table (all columns except the geometry)."""
    return pd.DataFrame(gdf.drop(columns=gdf.geometry.name))


def summarize_layer(gdf: gpd.GeoDataFrame, layer_name: str) -> dict:
    """
    Extract a structural summary of a layer for logging and metadata.json.

    Args:
        gdf: GeoDataFrame with geometries
        layer_name: Name used in log output

    Returns:
        Dictionary with feature count, geometry type, CRS, bounds and columns
    """
    attributes = attribute_table(gdf)

    summary = {
        'layer_name': layer_name,
        'feature_count': len(gdf),
        'geometry_type': detect_geometry_type(gdf),
        'geometry_types_detail': gdf.geometry.dropna().geom_type.unique().tolist(),
        'crs': str(gdf.crs) if gdf.crs is not None else None,
        'bounds': gdf.total_bounds.tolist(),  # [minx, miny, maxx, maxy]
        'columns': list(attributes.columns),
        'dtypes': {col: str(dtype) for col, dtype in attributes.dtypes.items()}
    }

    logger.info(f"Layer summary: {layer_name}")
    logger.info(f"  - Features: {summary['feature_count']} ({summary['geometry_type']})")
    logger.info(f"  - CRS: {summary['crs']}")
    if len(gdf) > 0:
        bounds = summary['bounds']
        logger.info(
            f"  - Bounding box: ({bounds[0]:.6f}, {bounds[1]:.6f}) to "
            f"({bounds[2]:.6f}, {bounds[3]:.6f})"
        )
    logger.info(f"  - Attributes: {', '.join(summary['columns']) or '(none)'}")

    return summary


def filter_features(gdf: gpd.GeoDataFrame, column: str, values: Iterable) -> gpd.GeoDataFrame:
    """
    Subset a layer to rows whose attribute value is in `values`.

    Args:
        gdf: GeoDataFrame to subset
        column: Attribute column to test
        values: Accepted values (a single string is treated as one value)

    Returns:
        Filtered copy of the GeoDataFrame, original row order preserved

    Raises:
        KeyError: If the column is not in the attribute table
    """
    if column not in gdf.columns:
        raise KeyError(f"Attribute column '{column}' not found in layer")

    if isinstance(values, str):
        values = [values]
    values = list(values)

    filtered = gdf[gdf[column].isin(values)].copy()
    logger.info(f"  - Filtered on {column} in {values}: {len(filtered)} of {len(gdf)} features kept")

    return filtered
