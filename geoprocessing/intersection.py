"""
Polygon Intersection Module

Dissolves boundary layers into a single polygon, repairs invalid geometries
and trims polygon layers (typically a grid) to an irregular boundary.
"""

import geopandas as gpd
from shapely.ops import unary_union
from shapely.geometry import Polygon, MultiPolygon, GeometryCollection
from shapely.geometry.base import BaseGeometry
from shapely import make_valid
from typing import Optional
from geoprocessing.reprojection import align_crs
from utils.logger import get_logger

logger = get_logger(__name__)


def repair_invalid_geometry(geom: BaseGeometry) -> BaseGeometry:
    """
    Repair invalid geometries using make_valid() or buffer(0) technique.

    Common issues fixed:
    - Self-intersecting polygons
    - Duplicate vertices
    - Topology errors from CRS transformations

    Args:
        geom: Potentially invalid Shapely geometry

    Returns:
        Valid Shapely geometry
    """
    if geom.is_valid:
        return geom

    logger.warning(f"Invalid geometry detected: {geom.geom_type}")

    try:
        repaired = make_valid(geom)
        logger.debug("  - Geometry repaired using make_valid()")
        return repaired

    except Exception as e:
        logger.warning(f"make_valid() failed: {e}, trying buffer(0)...")

        try:
            repaired = geom.buffer(0)
            logger.debug("  - Geometry repaired using buffer(0)")
            return repaired

        except Exception as e2:
            logger.error(f"All repair attempts failed: {e2}")
            raise ValueError(f"Cannot repair invalid geometry: {e2}")


def extract_polygons(geom: Optional[BaseGeometry]) -> Optional[BaseGeometry]:
    """
    Keep only the polygonal parts of a geometry.

    Intersections and repairs can return a GeometryCollection mixing polygons
    with slivers of lines or points; those are dropped.

    Returns:
        Polygon, MultiPolygon, or None if nothing polygonal remains
    """
    if geom is None or geom.is_empty:
        return None

    if isinstance(geom, (Polygon, MultiPolygon)):
        return geom

    if isinstance(geom, GeometryCollection):
        parts = []
        for part in geom.geoms:
            if isinstance(part, Polygon):
                parts.append(part)
            elif isinstance(part, MultiPolygon):
                parts.extend(part.geoms)
        if not parts:
            return None
        return parts[0] if len(parts) == 1 else MultiPolygon(parts)

    return None


def dissolve_boundary(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Dissolve all polygons of a layer into a single-feature boundary layer.

    Args:
        gdf: Polygon layer (e.g. administrative zones)

    Returns:
        Single-row GeoDataFrame in the same CRS

    Raises:
        ValueError: If the layer has no polygonal geometry
    """
    if len(gdf) == 1:
        geom = gdf.geometry.iloc[0]
    else:
        logger.info(f"Dissolving {len(gdf)} features into single boundary...")
        try:
            geom = unary_union(gdf.geometry.dropna().tolist())
        except Exception as e:
            logger.error(f"Failed to dissolve geometries: {e}")
            raise ValueError(f"Geometry dissolve failed: {e}")

    geom = extract_polygons(repair_invalid_geometry(geom)) if geom is not None else None
    if geom is None:
        raise ValueError("Boundary layer contains no polygon geometry")

    logger.info(f"  - Boundary: {geom.geom_type}")

    return gpd.GeoDataFrame(geometry=[geom], crs=gdf.crs)


def intersect_polygons(polygons: gpd.GeoDataFrame, boundary: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """
    Intersect a polygon layer with a boundary layer.

    Each output feature is the pairwise intersection of one input polygon and
    one boundary polygon, carrying the attributes of both. Polygons fully inside
    the boundary come out geometrically unchanged, polygons outside are dropped
    and straddling polygons are trimmed to the boundary.

    Args:
        polygons: Polygon layer to trim (typically a grid)
        boundary: Polygon layer to trim against, aligned to `polygons` CRS

    Returns:
        GeoDataFrame of polygon intersections in the CRS of `polygons`
    """
    logger.info(f"Intersecting {len(polygons)} polygons with boundary ({len(boundary)} features)...")

    boundary = align_crs(boundary, polygons)

    # Polygons must be valid for overlay
    polygons = polygons.copy()
    polygons[polygons.geometry.name] = polygons.geometry.apply(repair_invalid_geometry)
    boundary = boundary.copy()
    boundary[boundary.geometry.name] = boundary.geometry.apply(repair_invalid_geometry)

    result = gpd.overlay(polygons, boundary, how='intersection', keep_geom_type=True)

    # Drop anything reduced to slivers of lower dimension
    if len(result) > 0:
        result[result.geometry.name] = result.geometry.apply(extract_polygons)
        result = result[result.geometry.notna()].reset_index(drop=True)

    logger.info(f"  - {len(result)} polygons remain after intersection")

    return result
