"""
Configuration package for Spatial Aggregation Map Creator.

This package contains configuration loading and validation.

Modules:
    config_loader: Load and validate workflow configuration from JSON
"""

__version__ = '1.0.0'
