"""
Reprojection Module

Resolves CRS identifiers with pyproj and moves layers between reference
systems through GeoPandas.
"""

import geopandas as gpd
from pyproj import CRS
from pyproj.exceptions import CRSError
from typing import Union
from core.exceptions import UnsupportedProjectionError
from utils.logger import get_logger

logger = get_logger(__name__)

# Constants
WGS84 = 'EPSG:4326'  # Geographic lon/lat, required by Leaflet


def resolve_crs(identifier: Union[str, int, CRS]) -> CRS:
    """
    Resolve a CRS identifier such as 'EPSG:27700' into a pyproj CRS.

    Args:
        identifier: EPSG-style string, EPSG integer code or CRS object

    Returns:
        pyproj CRS

    Raises:
        UnsupportedProjectionError: If pyproj cannot resolve the identifier
    """
    if identifier is None:
        raise UnsupportedProjectionError("No CRS identifier given")

    try:
        return CRS.from_user_input(identifier)
    except CRSError as e:
        raise UnsupportedProjectionError(f"Unknown CRS identifier '{identifier}': {e}") from e


def reproject(gdf: gpd.GeoDataFrame, target_crs: Union[str, int, CRS]) -> gpd.GeoDataFrame:
    """
    Reproject a layer to the target CRS.

    The input GeoDataFrame is left untouched; a new one is returned.

    Args:
        gdf: Layer with a defined CRS
        target_crs: Target CRS identifier

    Returns:
        GeoDataFrame with coordinates transformed to target_crs

    Raises:
        UnsupportedProjectionError: If the identifier is unknown or the layer has no CRS
    """
    crs = resolve_crs(target_crs)

    if gdf.crs is None:
        raise UnsupportedProjectionError(
            "Cannot reproject a layer with no CRS defined; assign one first"
        )

    if gdf.crs == crs:
        logger.debug(f"  - Layer already in {crs.to_string()}, no reprojection needed")
        return gdf.copy()

    logger.info(f"  - Reprojecting from {gdf.crs.to_string()} to {crs.to_string()}...")
    return gdf.to_crs(crs)


def assign_crs(gdf: gpd.GeoDataFrame, identifier: Union[str, int, CRS]) -> gpd.GeoDataFrame:
    """
    Declare the CRS of a layer without transforming its coordinates.

    Used for layers read without a .prj file.
    """
    crs = resolve_crs(identifier)
    logger.info(f"  - Assigning CRS {crs.to_string()}")
    return gdf.set_crs(crs, allow_override=True)


def align_crs(gdf: gpd.GeoDataFrame, reference: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Reproject `gdf` into the CRS of `reference`."""
    if reference.crs is None:
        raise UnsupportedProjectionError("Reference layer has no CRS defined")
    return reproject(gdf, reference.crs)
