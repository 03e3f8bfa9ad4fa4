"""
Shapefile reader module for Spatial Aggregation Map Creator.

This module reads ESRI Shapefile layers addressed by directory and layer name,
checking the companion files before handing the layer to GeoPandas.

Functions:
    read_shapefile: Read a shapefile layer into a GeoDataFrame
    list_layers: List shapefile layer names in a directory
"""

import struct
from pathlib import Path
from typing import List, Tuple, Union

import geopandas as gpd

from core.exceptions import NotFoundError, FormatError
from utils.logger import get_logger

logger = get_logger(__name__)

# Companion files every shapefile layer needs besides the .shp itself
REQUIRED_COMPANIONS = ('.shx', '.dbf')

# .shx: 100-byte file header, then one 8-byte offset/length entry per shape
SHX_HEADER_SIZE = 100
SHX_RECORD_SIZE = 8


def _find_component(directory: Path, layer_name: str, suffix: str) -> Path:
    """Return the layer component path, accepting upper-case extensions."""
    for candidate in (suffix, suffix.upper()):
        path = directory / f'{layer_name}{candidate}'
        if path.exists():
            return path
    return directory / f'{layer_name}{suffix}'


def _record_counts(shx_path: Path, dbf_path: Path) -> Tuple[int, int]:
    """
    Return (shape count, attribute row count) from the .shx and .dbf headers.

    GDAL reads a layer whose .dbf holds fewer rows than the .shp without
    complaint, dropping the unmatched shapes, so the counts are checked here.
    """
    shape_count = (shx_path.stat().st_size - SHX_HEADER_SIZE) // SHX_RECORD_SIZE

    with open(dbf_path, 'rb') as f:
        header = f.read(8)
    if len(header) < 8:
        raise FormatError(f"Attribute table {dbf_path.name} has a truncated header")
    # dBASE header: bytes 4-7 hold the record count (little-endian uint32)
    row_count = struct.unpack('<I', header[4:8])[0]

    return shape_count, row_count


def list_layers(directory: Union[str, Path]) -> List[str]:
    """
    List shapefile layer names in a directory.

    Parameters:
    -----------
    directory : Union[str, Path]
        Directory to scan

    Returns:
    --------
    List[str]
        Sorted layer names (file stems of .shp files)

    Raises:
    -------
    NotFoundError
        If the directory doesn't exist
    """
    directory = Path(directory)
    if not directory.is_dir():
        raise NotFoundError(f"Data directory not found: {directory}")

    return sorted({p.stem for p in directory.iterdir() if p.suffix.lower() == '.shp'})


def read_shapefile(directory: Union[str, Path], layer_name: str) -> gpd.GeoDataFrame:
    """
    Read a shapefile layer and prepare it for analysis.

    Resolves `<directory>/<layer_name>.shp`, checks that the .shx and .dbf
    companions are present and reads the layer. Coordinates are returned in the layer's own
    CRS; reprojection is a separate step.

    Parameters:
    -----------
    directory : Union[str, Path]
        Directory holding the shapefile components
    layer_name : str
        Layer name (file stem, without extension)

    Returns:
    --------
    gpd.GeoDataFrame
        Layer geometries and attributes in the original CRS

    Raises:
    -------
    NotFoundError
        If the directory or the .shp file doesn't exist
    FormatError
        If companion files are missing, the layer cannot be parsed, or the
        .shx shape count and .dbf row count disagree

    Example:
        >>> zones = read_shapefile('data', 'zones')
        >>> zones.crs
        <Projected CRS: EPSG:27700>
    """
    directory = Path(directory)
    logger.info(f"Reading layer '{layer_name}' from: {directory}")

    if not directory.is_dir():
        raise NotFoundError(f"Data directory not found: {directory}")

    shp_path = _find_component(directory, layer_name, '.shp')
    if not shp_path.exists():
        available = list_layers(directory)
        raise NotFoundError(
            f"Layer '{layer_name}' not found in {directory} "
            f"(available: {', '.join(available) if available else 'none'})"
        )

    missing = [
        suffix for suffix in REQUIRED_COMPANIONS
        if not _find_component(directory, layer_name, suffix).exists()
    ]
    if missing:
        raise FormatError(
            f"Layer '{layer_name}' is incomplete, missing component file(s): {', '.join(missing)}"
        )

    try:
        gdf = gpd.read_file(shp_path)
    except Exception as e:
        raise FormatError(f"Failed to read shapefile '{layer_name}': {e}") from e

    shape_count, row_count = _record_counts(
        _find_component(directory, layer_name, '.shx'),
        _find_component(directory, layer_name, '.dbf')
    )
    if not shape_count == row_count == len(gdf):
        raise FormatError(
            f"Layer '{layer_name}' components are inconsistent: {shape_count} shapes in .shx, "
            f"{row_count} rows in .dbf, {len(gdf)} features read"
        )

    if gdf.crs is None:
        logger.warning(f"  - Layer '{layer_name}' has no .prj file; CRS is undefined")
    else:
        logger.info(f"  - CRS: {gdf.crs}")

    logger.info(f"  - Number of features: {len(gdf)}")
    logger.debug(f"  - Geometry types: {gdf.geometry.geom_type.unique().tolist()}")
    logger.debug(f"  - Attribute columns: {[c for c in gdf.columns if c != gdf.geometry.name]}")

    return gdf
