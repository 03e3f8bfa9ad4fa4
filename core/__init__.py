"""
Core modules for Spatial Aggregation Map Creator.

This package contains the I/O and rendering modules of the workflow.

Modules:
    exceptions: Workflow error taxonomy
    input_reader: Read shapefile layers by directory and layer name
    map_builder: Generate interactive Leaflet choropleth maps
    output_generator: Write shapefiles, map and metadata
"""

__version__ = '1.0.0'
