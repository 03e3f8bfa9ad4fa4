"""
HTML templates for Spatial Aggregation Map Creator.

This package contains Jinja2 templates for generating interactive map UI elements.

Templates:
    map_title.html: Title panel with layer and classification summary
"""

__version__ = '1.0.0'
