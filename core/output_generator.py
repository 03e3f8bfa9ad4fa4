"""
Output generation module for Spatial Aggregation Map Creator.

This module writes shapefile layers and assembles the output directory with the
interactive map, exported layers and run metadata.

Functions:
    write_shapefile: Persist a GeoDataFrame as an ESRI Shapefile layer
    generate_output: Save map, shapefile layers and metadata to an output directory
"""

import json
import shutil
import tempfile
import folium
import geopandas as gpd
from pathlib import Path
from datetime import datetime
from typing import Dict, Optional, Union
from config.config_loader import OUTPUT_DIR
from core.exceptions import AlreadyExistsError
from utils.logger import get_logger

logger = get_logger(__name__)

# Files GDAL may write for one shapefile layer
SHAPEFILE_COMPONENTS = ('.shp', '.shx', '.dbf', '.prj', '.cpg', '.qix', '.sbn', '.sbx', '.shp.xml')

# dBASE field names are limited to 10 characters
MAX_FIELD_NAME_LENGTH = 10


def _existing_components(directory: Path, layer_name: str) -> list:
    return [
        directory / f'{layer_name}{suffix}'
        for suffix in SHAPEFILE_COMPONENTS
        if (directory / f'{layer_name}{suffix}').exists()
    ]


def _shorten_field_names(gdf: gpd.GeoDataFrame) -> gpd.GeoDataFrame:
    """Truncate attribute names to the dBASE limit, keeping them unique."""
    geometry_name = gdf.geometry.name
    renames = {}
    used = set()
    for col in gdf.columns:
        if col == geometry_name:
            continue
        new_name = col[:MAX_FIELD_NAME_LENGTH]
        suffix = 1
        while new_name in used:
            tag = f'_{suffix}'
            new_name = col[:MAX_FIELD_NAME_LENGTH - len(tag)] + tag
            suffix += 1
        used.add(new_name)
        if new_name != col:
            renames[col] = new_name

    if renames:
        logger.warning(f"  - Field names truncated for shapefile: {renames}")
        gdf = gdf.rename(columns=renames)

    return gdf


def write_shapefile(
    gdf: gpd.GeoDataFrame,
    directory: Union[str, Path],
    layer_name: str,
    overwrite: bool = False
) -> Path:
    """
    Write a layer as an ESRI Shapefile (.shp/.shx/.dbf/.prj).

    Parameters:
    -----------
    gdf : gpd.GeoDataFrame
        Layer geometries and attributes
    directory : Union[str, Path]
        Destination directory (created if missing)
    layer_name : str
        Layer name (file stem)
    overwrite : bool
        Replace an existing layer of the same name. The new layer is written
        to a staging directory first and only then moved into place.

    Returns:
    --------
    Path
        Path to the written .shp file

    Raises:
    -------
    AlreadyExistsError
        If the layer already exists and overwrite is False
    """
    directory = Path(directory)
    directory.mkdir(parents=True, exist_ok=True)

    existing = _existing_components(directory, layer_name)
    if existing and not overwrite:
        raise AlreadyExistsError(
            f"Layer '{layer_name}' already exists in {directory}; "
            f"set overwrite to replace it"
        )

    shp_path = directory / f'{layer_name}.shp'
    logger.info(f"  - Writing {len(gdf)} features to {shp_path}")

    # Staged beside the target; a failed write leaves the existing layer untouched
    staging_dir = Path(tempfile.mkdtemp(prefix=f'.{layer_name}_', dir=directory))
    try:
        _shorten_field_names(gdf).to_file(staging_dir / f'{layer_name}.shp', driver='ESRI Shapefile')

        if existing:
            logger.info(f"  - Overwriting existing layer '{layer_name}'")
            # Stale companions (e.g. an old .prj) must not survive the rewrite
            for path in existing:
                path.unlink()

        for path in staging_dir.iterdir():
            path.replace(directory / path.name)
    finally:
        shutil.rmtree(staging_dir, ignore_errors=True)

    return shp_path


def generate_output(
    map_obj: folium.Map,
    layers: Dict[str, gpd.GeoDataFrame],
    summary: Dict,
    output_name: Optional[str] = None,
    output_root: Optional[Path] = None,
    overwrite: bool = False
) -> Path:
    """
    Generate output directory with HTML map, shapefile layers and metadata.

    Creates an output directory containing:
    - index.html: Interactive Leaflet choropleth map
    - metadata.json: Layer summaries and aggregation statistics
    - data/: One shapefile per exported layer

    Parameters:
    -----------
    map_obj : folium.Map
        Folium map object to save
    layers : Dict[str, gpd.GeoDataFrame]
        Layers to export (layer name -> GeoDataFrame)
    summary : Dict
        Run summary written to metadata.json
    output_name : Optional[str]
        Output directory name (defaults to timestamped name)
    output_root : Optional[Path]
        Parent directory for outputs (defaults to OUTPUT_DIR)
    overwrite : bool
        Replace existing shapefile layers

    Returns:
    --------
    Path
        Path to output directory

    Raises:
    -------
    AlreadyExistsError
        If an exported layer exists and overwrite is False
    """
    logger.info("=" * 80)
    logger.info("Generating Output Files")
    logger.info("=" * 80)

    if output_name is None:
        timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")
        output_name = f"samc_map_{timestamp}"

    output_path = Path(output_root or OUTPUT_DIR) / output_name
    output_path.mkdir(parents=True, exist_ok=True)

    data_path = output_path / 'data'
    data_path.mkdir(exist_ok=True)

    logger.info(f"Output directory: {output_path}")

    for layer_name, gdf in layers.items():
        logger.info(f"  - Saving {layer_name} layer...")
        write_shapefile(gdf, data_path, layer_name, overwrite=overwrite)

    logger.info("  - Saving interactive map...")
    map_file = output_path / 'index.html'
    map_obj.save(str(map_file))

    logger.info("  - Saving metadata...")
    metadata = {
        'generated_at': datetime.now().isoformat(),
        'layers_exported': sorted(layers.keys()),
        **summary
    }
    with open(output_path / 'metadata.json', 'w', encoding='utf-8') as f:
        json.dump(metadata, f, indent=2, default=str)

    logger.info("")
    logger.info("=" * 80)
    logger.info("✓ Output Generation Complete")
    logger.info("=" * 80)
    logger.info(f"Files saved to: {output_path}")
    logger.info("  - index.html (interactive map)")
    logger.info("  - metadata.json (summary statistics)")
    logger.info(f"  - data/ ({len(layers)} shapefile layers)")
    logger.info(f"To view the map, open: {map_file}")
    logger.info("=" * 80)

    return output_path
