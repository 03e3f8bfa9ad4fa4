"""
Utility modules for Spatial Aggregation Map Creator.

This package contains utility functions and helpers used throughout the application.

Modules:
    logger: Logging configuration and setup
    popup_formatters: Tooltip value formatting utilities
"""

__version__ = '1.0.0'
