"""
Regular Grid Module

Builds a cell_count x cell_count polygon grid tiling a bounding extent and
counts features per cell once the cells are trimmed to a boundary.
Cells are ordered row-major from the top-left cell, the same order a
raster converted to polygons would have.
"""

import numpy as np
import geopandas as gpd
from shapely.geometry import box
from typing import Dict, Sequence, Tuple
from geoprocessing.aggregation import aggregate_counts
from geoprocessing.clipping import clip_to_boundary
from geoprocessing.intersection import dissolve_boundary, intersect_polygons
from utils.logger import get_logger

logger = get_logger(__name__)


def build_grid(bounds: Sequence[float], cell_count: int, crs=None) -> gpd.GeoDataFrame:
    """
    Tile an extent with a regular grid of rectangular cells.

    Args:
        bounds: Extent as (minx, miny, maxx, maxy)
        cell_count: Number of cells along each axis
        crs: CRS of the extent, carried onto the grid

    Returns:
        GeoDataFrame with cell_count**2 polygons and cell_id, row, col attributes.
        The union of the cells has exactly the input bounds.

    Raises:
        ValueError: If cell_count < 1 or the extent has zero width or height
    """
    if int(cell_count) != cell_count or cell_count < 1:
        raise ValueError(f"Cell count must be a positive integer, got {cell_count}")
    cell_count = int(cell_count)

    minx, miny, maxx, maxy = (float(v) for v in bounds)
    if not (maxx > minx and maxy > miny):
        raise ValueError(f"Degenerate extent for grid: {tuple(bounds)}")

    logger.info(f"Building {cell_count}x{cell_count} grid over extent "
                f"({minx:.6f}, {miny:.6f}) to ({maxx:.6f}, {maxy:.6f})...")

    # linspace pins the outer edges to the exact extent
    xs = np.linspace(minx, maxx, cell_count + 1)
    ys = np.linspace(maxy, miny, cell_count + 1)

    records = []
    cells = []
    for row in range(cell_count):
        for col in range(cell_count):
            cells.append(box(xs[col], ys[row + 1], xs[col + 1], ys[row]))
            records.append({
                'cell_id': row * cell_count + col + 1,
                'row': row + 1,
                'col': col + 1
            })

    grid = gpd.GeoDataFrame(records, geometry=cells, crs=crs)
    logger.info(f"  - Created {len(grid)} cells")

    return grid


def build_grid_for_layer(gdf: gpd.GeoDataFrame, cell_count: int) -> gpd.GeoDataFrame:
    """Build a grid over the total bounds of a layer, in the layer's CRS."""
    return build_grid(gdf.total_bounds, cell_count, crs=gdf.crs)


def aggregate_on_grid(
    features: gpd.GeoDataFrame,
    boundary: gpd.GeoDataFrame,
    cell_count: int,
    count_column: str = 'count'
) -> Tuple[gpd.GeoDataFrame, Dict]:
    """
    Count features per grid cell, with cells trimmed to an irregular boundary.

    The grid covers the extent of the dissolved boundary. Cells are clipped to
    the boundary and intersected with it before counting, so a cell that only
    touches the boundary is gone before any feature can be assigned to it.

    Args:
        features: Point or line layer
        boundary: Polygon layer; dissolved to a single polygon
        cell_count: Number of cells along each axis
        count_column: Name of the count column

    Returns:
        Tuple of (trimmed cells with counts, metadata dictionary with
        cell_count, cells_in_boundary and the clip metadata)
    """
    boundary = dissolve_boundary(boundary)
    grid = build_grid_for_layer(boundary, cell_count)
    grid, clip_metadata = clip_to_boundary(grid, boundary, 'grid')
    cells = intersect_polygons(grid, boundary)

    grid_counts = aggregate_counts(features, cells, count_column)

    metadata = {
        'cell_count': cell_count,
        'cells_in_boundary': len(cells),
        'clipping': clip_metadata
    }
    return grid_counts, metadata
