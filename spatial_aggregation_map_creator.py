#!/usr/bin/env python
"""
Spatial Aggregation Map Creator
===============================
Reads point and polygon shapefiles, counts points per polygon, renders the counts as an
interactive Leaflet choropleth, re-aggregates the points on a regular grid trimmed to the
study boundary and exports the results as shapefiles.

License: MIT
"""

import sys
import time
import warnings
from pathlib import Path
from typing import Optional, Union

# Import logging first
from utils.logger import setup_logging, get_logger

# Import configuration
from config.config_loader import (
    load_config,
    load_input_settings,
    load_map_settings,
    load_grid_settings
)

# Import core modules
from core.input_reader import read_shapefile
from core.map_builder import create_choropleth_map
from core.output_generator import generate_output

from geoprocessing.inspection import summarize_layer, validate_layer, filter_features
from geoprocessing.reprojection import reproject, assign_crs
from geoprocessing.clipping import clip_to_boundary
from geoprocessing.aggregation import aggregate_counts, count_summary
from geoprocessing.grid import aggregate_on_grid

# Suppress library warnings for cleaner console output
warnings.filterwarnings('ignore', category=UserWarning)

TOTAL_STEPS = 8


def _log_step(logger, number: int, title: str) -> None:
    logger.info("")
    logger.info(f"Step {number}/{TOTAL_STEPS}: {title}")
    logger.info("-" * 80)


def main(
    config_path: Optional[Union[str, Path]] = None,
    output_name: Optional[str] = None,
    log_dir: Optional[Path] = None,
    output_root: Optional[Path] = None
) -> Optional[Path]:
    """
    Main execution workflow for Spatial Aggregation Map Creator.

    Workflow Steps:
    1. Read the points, zones and (optional) boundary shapefiles
    2. Inspect layer structure and apply the attribute filter
    3. Reproject all layers to the working CRS
    4. Clip points to the zones
    5. Count points per zone
    6. Render the zone counts as an interactive choropleth
    7. Build a grid over the boundary, clip it, intersect the cells with the
       boundary and count points per trimmed cell
    8. Export shapefiles, map and metadata

    Each step is terminal on error: the run stops and the failing step is logged.

    Parameters:
    -----------
    config_path : Optional[Union[str, Path]]
        Workflow configuration file (defaults to config/workflow_config.json)
    output_name : Optional[str]
        Custom name for output directory (defaults to timestamped name)
    log_dir : Optional[Path]
        Directory for the log file (defaults to PROJECT_ROOT/logs)
    output_root : Optional[Path]
        Parent directory for outputs (defaults to PROJECT_ROOT/outputs)

    Returns:
    --------
    Optional[Path]
        Path to output directory if successful, None if failed

    Example:
        >>> output_path = main('config/workflow_config.json')
        >>> print(f"Map saved to: {output_path / 'index.html'}")
    """
    workflow_start_time = time.time()

    log_file = setup_logging(log_dir)
    logger = get_logger(__name__)

    logger.info("=" * 80)
    logger.info("SPATIAL AGGREGATION MAP CREATOR")
    logger.info("=" * 80)
    logger.info(f"Log file: {log_file}")

    stage = 'configure'

    try:
        config = load_config(config_path)
        inputs = load_input_settings(config)
        map_settings = load_map_settings(config)
        grid_settings = load_grid_settings(config)
        count_column = map_settings['count_column']

        summary = {'layers': {}}

        # Step 1: Read input layers
        stage = 'read'
        _log_step(logger, 1, "Read shapefiles")
        data_dir = inputs['data_dir']
        layers = {
            'points': read_shapefile(data_dir, inputs['points_layer']),
            'zones': read_shapefile(data_dir, inputs['zones_layer'])
        }
        if inputs['boundary_layer']:
            layers['boundary'] = read_shapefile(data_dir, inputs['boundary_layer'])

        # Step 2: Inspect and filter
        stage = 'inspect'
        _log_step(logger, 2, "Inspect layers")
        for role, gdf in layers.items():
            if gdf.crs is None and inputs['assume_crs']:
                gdf = assign_crs(gdf, inputs['assume_crs'])
                layers[role] = gdf

            summary['layers'][role] = summarize_layer(gdf, role)

            is_valid, error_msg = validate_layer(gdf)
            if not is_valid:
                raise ValueError(f"Layer '{role}' failed validation: {error_msg}")

        point_filter = inputs['point_filter']
        if point_filter:
            layers['points'] = filter_features(
                layers['points'], point_filter['column'], point_filter['values']
            )

        # Step 3: Reproject to the working CRS
        stage = 'reproject'
        _log_step(logger, 3, f"Reproject to {map_settings['target_crs']}")
        layers = {
            role: reproject(gdf, map_settings['target_crs'])
            for role, gdf in layers.items()
        }

        # Step 4: Clip points to the zones
        stage = 'clip'
        _log_step(logger, 4, "Clip points to zones")
        points, clip_metadata = clip_to_boundary(layers['points'], layers['zones'], 'points')
        summary['clipping'] = clip_metadata

        # Step 5: Aggregate points per zone
        stage = 'aggregate'
        _log_step(logger, 5, "Count points per zone")
        zone_counts = aggregate_counts(points, layers['zones'], count_column)
        summary['zone_counts'] = count_summary(zone_counts, count_column)
        logger.info(f"  ✓ {summary['zone_counts']['total']} points counted in {len(zone_counts)} zones")

        # Step 6: Render choropleth
        stage = 'render'
        _log_step(logger, 6, "Render choropleth map")
        map_obj = create_choropleth_map(
            zone_counts,
            count_column,
            bins=map_settings['bins'],
            palette=map_settings['palette'],
            center=map_settings['map_center'],
            zoom_start=map_settings['default_zoom'],
            tiles=map_settings['tiles'],
            tooltip_fields=map_settings['tooltip_fields'],
            title=map_settings['map_title'],
            bin_method=map_settings['bin_method'],
            layer_name=inputs['zones_layer']
        )

        # Step 7: Grid aggregation trimmed to the boundary
        stage = 'grid'
        _log_step(logger, 7, "Aggregate points on a regular grid")
        grid_counts, grid_metadata = aggregate_on_grid(
            points,
            layers.get('boundary', layers['zones']),
            grid_settings['grid_cell_count'],
            count_column
        )
        summary['grid'] = {
            **grid_metadata,
            'counts': count_summary(grid_counts, count_column)
        }

        # Step 8: Export
        stage = 'write'
        _log_step(logger, 8, "Export results")
        total_execution_time = time.time() - workflow_start_time
        summary['execution_time_seconds'] = round(total_execution_time, 2)

        output_path = generate_output(
            map_obj,
            {
                'zone_counts': zone_counts,
                grid_settings['output_layer']: grid_counts
            },
            summary,
            output_name=output_name,
            output_root=output_root,
            overwrite=grid_settings['overwrite']
        )

        logger.info("")
        logger.info("✓ WORKFLOW COMPLETE")
        logger.info(f"✓ Total execution time: {time.time() - workflow_start_time:.2f} seconds")
        logger.info(f"✓ Output directory: {output_path}")
        logger.info(f"✓ Log file: {log_file}")

        return output_path

    except Exception as e:
        elapsed_time = time.time() - workflow_start_time

        logger.error("")
        logger.error("=" * 80)
        logger.error(f"✗ WORKFLOW FAILED at step '{stage}'")
        logger.error("=" * 80)
        logger.error(f"Error: {str(e)}", exc_info=True)
        if hasattr(e, 'to_error_dict'):
            logger.debug(f"Error details: {e.to_error_dict()}")
        logger.error(f"Workflow failed after {elapsed_time:.2f} seconds")
        logger.error(f"See log file for details: {log_file}")
        logger.error("=" * 80)
        return None


if __name__ == "__main__":
    config_file = sys.argv[1] if len(sys.argv) > 1 else None

    output_dir = main(config_file)

    if output_dir:
        print(f"\n✓ Success! Open {output_dir / 'index.html'} in your browser.")
    else:
        print("\n✗ Workflow failed. Check log file for details.")
        sys.exit(1)
