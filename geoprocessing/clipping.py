"""
Spatial Clipping Module

Subsets a layer to the features that fall on a boundary layer.

Clip semantics: a feature is kept when its geometry intersects the dissolved
boundary polygon (true polygon test, not bounding-box containment). Kept
features are returned whole and in their original order; cutting geometries
to the boundary is done by geoprocessing.intersection.
"""

from typing import Dict, Tuple
import geopandas as gpd
from geoprocessing.intersection import dissolve_boundary
from geoprocessing.reprojection import align_crs
from utils.logger import get_logger

logger = get_logger(__name__)


def clip_to_boundary(
    gdf: gpd.GeoDataFrame,
    boundary: gpd.GeoDataFrame,
    layer_name: str = 'layer'
) -> Tuple[gpd.GeoDataFrame, Dict]:
    """
    Keep the features of `gdf` that intersect the boundary layer.

    Args:
        gdf: Layer to subset (points, lines or polygons)
        boundary: Polygon layer defining the clip area; dissolved to one polygon
        layer_name: Name of the layer (for logging)

    Returns:
        Tuple of (clipped GeoDataFrame in gdf's CRS, metadata dictionary)

    Metadata dictionary contains:
        - input_features: Feature count before clipping
        - kept_features: Features intersecting the boundary
        - removed_features: Features outside the boundary
    """
    clip_metadata = {
        'input_features': len(gdf),
        'kept_features': 0,
        'removed_features': 0
    }

    if len(gdf) == 0:
        return gdf.copy(), clip_metadata

    logger.info(f"  Clipping {len(gdf)} features of {layer_name} to boundary...")

    boundary_geom = dissolve_boundary(align_crs(boundary, gdf)).geometry.iloc[0]

    mask = gdf.geometry.intersects(boundary_geom)
    clipped_gdf = gdf[mask].copy()

    clip_metadata['kept_features'] = len(clipped_gdf)
    clip_metadata['removed_features'] = len(gdf) - len(clipped_gdf)

    if clip_metadata['removed_features'] > 0:
        logger.info(
            f"    Removed {clip_metadata['removed_features']} features outside boundary "
            f"({clip_metadata['kept_features']} kept)"
        )
    else:
        logger.info("    No features outside boundary")

    return clipped_gdf, clip_metadata
