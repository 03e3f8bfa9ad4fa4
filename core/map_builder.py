"""
Map building module for Spatial Aggregation Map Creator.

This module creates interactive Leaflet choropleth maps with Folium: polygons coloured
by a binned attribute, a step-colour legend, hover tooltips and a title panel.

Functions:
    compute_bin_edges: Class breaks for a value column
    build_colormap: Binned ColorBrewer colormap (doubles as the legend)
    create_choropleth_map: Generate complete interactive choropleth map
"""

import numpy as np
import folium
import geopandas as gpd
from branca.colormap import StepColormap
from branca.utilities import color_brewer
from folium import Element
from jinja2 import Environment, FileSystemLoader
from pathlib import Path
from typing import List, Optional, Sequence
from geoprocessing.reprojection import reproject, WGS84
from utils.popup_formatters import format_popup_value
from utils.logger import get_logger

logger = get_logger(__name__)

# Template directory path
TEMPLATES_DIR = Path(__file__).parent.parent / 'templates'

BIN_METHODS = ('equal_interval', 'quantile')

# Feature property holding the numeric value used for styling
VALUE_KEY = '_choropleth_value'


def compute_bin_edges(values: Sequence[float], bins: int, method: str = 'equal_interval') -> List[float]:
    """
    Compute class breaks for a choropleth.

    Parameters:
    -----------
    values : Sequence[float]
        Values to classify (nulls ignored)
    bins : int
        Requested number of classes
    method : str
        'equal_interval' (equal-width classes between min and max) or
        'quantile' (classes holding roughly equal numbers of values)

    Returns:
    --------
    List[float]
        Strictly increasing class edges; len(edges) - 1 classes. Quantile breaks
        that coincide are merged, so fewer classes than requested may result.

    Raises:
    -------
    ValueError
        If bins < 1 or the method is unknown
    """
    if bins < 1:
        raise ValueError(f"Number of bins must be at least 1, got {bins}")
    if method not in BIN_METHODS:
        raise ValueError(f"Unknown bin method '{method}', expected one of {BIN_METHODS}")

    arr = np.asarray(values, dtype=float)
    arr = arr[~np.isnan(arr)]

    if arr.size == 0:
        return [0.0, 1.0]

    vmin, vmax = float(arr.min()), float(arr.max())
    if vmin == vmax:
        # Single value: one class around it
        return [vmin, vmin + 1.0]

    if method == 'quantile':
        edges = np.unique(np.quantile(arr, np.linspace(0, 1, bins + 1)))
    else:
        edges = np.linspace(vmin, vmax, bins + 1)

    return [float(e) for e in edges]


def build_colormap(
    values: Sequence[float],
    bins: int,
    palette: str,
    caption: str = '',
    method: str = 'equal_interval'
) -> StepColormap:
    """
    Build a binned colormap from a ColorBrewer palette.

    The returned StepColormap maps a value to its class colour and renders
    as the map legend when added to a folium map.

    Parameters:
    -----------
    values : Sequence[float]
        Values the classes are computed from
    bins : int
        Requested number of classes
    palette : str
        ColorBrewer palette name (e.g. 'YlOrRd', 'Blues'; '_r' suffix reverses)
    caption : str
        Legend caption
    method : str
        Bin method passed to compute_bin_edges

    Raises:
    -------
    ValueError
        If the palette is unknown or bins < 1
    """
    edges = compute_bin_edges(values, bins, method)
    n_classes = len(edges) - 1

    # ColorBrewer schemes start at 3 classes
    try:
        colors = color_brewer(palette, n=max(n_classes, 3))
    except (ValueError, TypeError) as e:
        raise ValueError(f"Unknown palette '{palette}': {e}") from e

    if len(colors) != n_classes:
        picks = np.linspace(0, len(colors) - 1, n_classes).round().astype(int)
        colors = [colors[i] for i in picks]

    logger.debug(f"  - Class edges: {edges}")
    logger.debug(f"  - Colors: {colors}")

    return StepColormap(
        colors,
        index=edges,
        vmin=edges[0],
        vmax=edges[-1],
        caption=caption
    )


def _render_title_panel(**context) -> str:
    """Render the title panel HTML from the Jinja2 template."""
    env = Environment(loader=FileSystemLoader(str(TEMPLATES_DIR)))
    template = env.get_template('map_title.html')
    return template.render(**context)


def create_choropleth_map(
    gdf: gpd.GeoDataFrame,
    value_column: str,
    bins: int = 5,
    palette: str = 'YlOrRd',
    center: Optional[Sequence[float]] = None,
    zoom_start: int = 10,
    tiles: str = 'CartoDB positron',
    tooltip_fields: Optional[List[str]] = None,
    title: Optional[str] = None,
    bin_method: str = 'equal_interval',
    layer_name: Optional[str] = None
) -> folium.Map:
    """
    Create an interactive Leaflet choropleth map.

    Null values in the value column are rendered as 0. The layer is
    reprojected to EPSG:4326 for Leaflet.

    Parameters:
    -----------
    gdf : gpd.GeoDataFrame
        Polygon layer to render
    value_column : str
        Numeric attribute driving the colours
    bins : int
        Number of colour classes
    palette : str
        ColorBrewer palette name
    center : Optional[Sequence[float]]
        Initial map centre as [lat, lon]; defaults to the layer's bounding box centre
    zoom_start : int
        Initial zoom level
    tiles : str
        Folium basemap name
    tooltip_fields : Optional[List[str]]
        Attributes shown on hover besides the value column
    title : Optional[str]
        Title panel text (no panel when None)
    bin_method : str
        'equal_interval' or 'quantile'
    layer_name : Optional[str]
        Layer control name (defaults to value_column)

    Returns:
    --------
    folium.Map
        Folium map object ready to be saved

    Raises:
    -------
    KeyError
        If value_column or a tooltip field is not in the layer

    Example:
        >>> m = create_choropleth_map(counts_gdf, 'n_points', bins=5, palette='YlOrRd')
        >>> m.save('index.html')
    """
    logger.info("=" * 80)
    logger.info("Creating Interactive Choropleth Map")
    logger.info("=" * 80)

    tooltip_fields = [f for f in (tooltip_fields or []) if f != value_column]
    for field in [value_column] + tooltip_fields:
        if field not in gdf.columns:
            raise KeyError(f"Attribute column '{field}' not found in layer")

    values = gdf[value_column].astype(float)
    null_count = int(values.isna().sum())
    if null_count > 0:
        logger.info(f"  - Rendering {null_count} null values in '{value_column}' as 0")
    values = values.fillna(0.0)

    # Only the rendered attributes go to the browser
    display = gpd.GeoDataFrame(
        {VALUE_KEY: values.to_numpy()},
        geometry=gdf.geometry.values,
        crs=gdf.crs
    )
    for field in [value_column] + tooltip_fields:
        display[field] = [format_popup_value(field, v) for v in gdf[field]]

    display = reproject(display, WGS84)

    colormap = build_colormap(display[VALUE_KEY], bins, palette,
                              caption=layer_name or value_column, method=bin_method)

    if center is None:
        bounds = display.total_bounds
        center = [(bounds[1] + bounds[3]) / 2, (bounds[0] + bounds[2]) / 2]

    m = folium.Map(location=list(center), zoom_start=zoom_start, tiles=None)
    folium.TileLayer(tiles, name='Basemap', control=False).add_to(m)

    logger.info(f"  - Adding {len(display)} polygons coloured by '{value_column}'...")

    def style_function(feature):
        return {
            'fillColor': colormap(feature['properties'][VALUE_KEY]),
            'color': '#444444',
            'weight': 1,
            'fillOpacity': 0.7
        }

    folium.GeoJson(
        display,
        name=layer_name or value_column,
        style_function=style_function,
        highlight_function=lambda x: {'weight': 3, 'color': '#000000', 'fillOpacity': 0.85},
        tooltip=folium.GeoJsonTooltip(
            fields=[value_column] + tooltip_fields,
            aliases=[f'{field}:' for field in [value_column] + tooltip_fields],
            sticky=True
        )
    ).add_to(m)

    colormap.add_to(m)
    logger.info(f"  - Legend: {len(colormap.index) - 1} classes, palette {palette}")

    if title:
        total = int(values.sum()) if float(values.sum()).is_integer() else None
        panel_html = _render_title_panel(
            title=title,
            subtitle=layer_name,
            feature_count=len(display),
            bin_count=len(colormap.index) - 1,
            bin_method=bin_method,
            palette=palette,
            total=total
        )
        m.get_root().html.add_child(Element(panel_html))

    folium.LayerControl(collapsed=True).add_to(m)

    logger.info("  ✓ Map created")

    return m
