"""
Configuration loading for Spatial Aggregation Map Creator.

This module handles loading and validation of the workflow configuration JSON file.

Constants:
    PROJECT_ROOT: Root directory of the project
    CONFIG_DIR: Configuration files directory
    DEFAULT_CONFIG_PATH: Bundled workflow configuration
    OUTPUT_DIR: Output files directory

Functions:
    load_config: Load and validate workflow configuration from JSON
    load_input_settings: Input layer settings with paths resolved
    load_map_settings: Choropleth rendering settings merged with defaults
    load_grid_settings: Grid/output settings merged with defaults
"""

import json
from pathlib import Path
from typing import Dict, Optional, Union

# Project paths
PROJECT_ROOT = Path(__file__).parent.parent
CONFIG_DIR = PROJECT_ROOT / 'config'
DEFAULT_CONFIG_PATH = CONFIG_DIR / 'workflow_config.json'
OUTPUT_DIR = PROJECT_ROOT / 'outputs'


def load_config(config_path: Optional[Union[str, Path]] = None) -> Dict:
    """
    Load workflow configuration from JSON file.

    Reads the workflow_config.json file (or the given path) and validates basic structure.
    The directory holding the file is recorded under '_config_dir' so relative input
    paths can be resolved later.

    Parameters:
    -----------
    config_path : Optional[Union[str, Path]]
        Path to a configuration file. Defaults to config/workflow_config.json

    Returns:
    --------
    Dict
        Configuration dictionary with 'inputs' and 'settings' keys

    Raises:
    -------
    FileNotFoundError
        If configuration file doesn't exist
    json.JSONDecodeError
        If configuration file contains invalid JSON
    KeyError
        If required configuration keys are missing
    """
    config_path = Path(config_path) if config_path is not None else DEFAULT_CONFIG_PATH

    if not config_path.exists():
        raise FileNotFoundError(f"Configuration file not found: {config_path}")

    with open(config_path, 'r', encoding='utf-8') as f:
        config = json.load(f)

    # Validate required keys
    if 'inputs' not in config:
        raise KeyError("Configuration missing required 'inputs' key")
    if 'settings' not in config:
        raise KeyError("Configuration missing required 'settings' key")

    for key in ('points_layer', 'zones_layer'):
        if key not in config['inputs']:
            raise KeyError(f"Configuration 'inputs' missing required '{key}' key")

    config['_config_dir'] = str(config_path.resolve().parent)

    return config


def load_input_settings(config: Dict) -> Dict:
    """
    Load input layer settings, resolving the data directory.

    Defaults:
        - data_dir: 'data' (relative to the configuration file)
        - boundary_layer: None (boundary is the dissolved zones layer)
        - point_filter: None (no attribute subsetting), else {'column': ..., 'values': [...]}
        - assume_crs: None (CRS assigned to layers read without a .prj file)
    """
    defaults = {
        'data_dir': 'data',
        'boundary_layer': None,
        'point_filter': None,
        'assume_crs': None
    }
    result = {**defaults, **config['inputs']}

    data_dir = Path(result['data_dir'])
    if not data_dir.is_absolute():
        base = Path(config.get('_config_dir', CONFIG_DIR))
        data_dir = base / data_dir
    result['data_dir'] = data_dir

    return result


def load_map_settings(config: Dict) -> Dict:
    """
    Load choropleth map settings from configuration.

    Args:
        config: Configuration dictionary

    Returns:
        Dictionary with map settings

    Defaults:
        - target_crs: 'EPSG:4326'
        - count_column: 'count'
        - bins: 5
        - bin_method: 'equal_interval'
        - palette: 'YlOrRd'
        - default_zoom: 10
        - map_center: None (centre of the rendered layer)
        - tiles: 'CartoDB positron'
        - map_title: 'Feature Counts'
        - tooltip_fields: [] (zone attributes shown on hover besides the count)

    Note:
        Returns defaults for any missing key, so older config files keep working.
    """
    defaults = {
        'target_crs': 'EPSG:4326',
        'count_column': 'count',
        'bins': 5,
        'bin_method': 'equal_interval',
        'palette': 'YlOrRd',
        'default_zoom': 10,
        'map_center': None,
        'tiles': 'CartoDB positron',
        'map_title': 'Feature Counts',
        'tooltip_fields': []
    }

    return {**defaults, **config.get('settings', {})}


def load_grid_settings(config: Dict) -> Dict:
    """
    Load grid construction and export settings from configuration.

    Defaults:
        - grid_cell_count: 10
        - output_layer: 'grid_counts'
        - overwrite: False
    """
    defaults = {
        'grid_cell_count': 10,
        'output_layer': 'grid_counts',
        'overwrite': False
    }

    grid_settings = config.get('grid_settings', {})

    return {**defaults, **grid_settings}
