"""
Tooltip formatting utilities for Spatial Aggregation Map Creator.

This module provides functions to format attribute values for display in map tooltips.
Handles numbers (thousands separators), missing values and HTML escaping of text.

Functions:
    format_popup_value: Format a single value for display in tooltip HTML
"""

import html
from numbers import Integral, Real
from typing import Any


def format_popup_value(col: str, value: Any) -> str:
    """
    Format tooltip values for display.

    Parameters:
    -----------
    col : str
        Column name
    value : Any
        Value to format

    Returns:
    --------
    str
        Formatted string safe for tooltip display

    Examples:
        >>> format_popup_value('n_points', 1234)
        '1,234'

        >>> format_popup_value('density', 0.4567)
        '0.46'

        >>> format_popup_value('name', None)
        'None'

        >>> format_popup_value('name', 'Tom & Jerry <b>')
        'Tom &amp; Jerry &lt;b&gt;'
    """
    # Handle None and NaN values
    if value is None or (isinstance(value, Real) and value != value):  # NaN check
        return 'None'

    if isinstance(value, bool):
        return str(value)

    if isinstance(value, Integral):
        return f"{int(value):,}"

    if isinstance(value, Real):
        value = float(value)
        if value.is_integer():
            return f"{int(value):,}"
        return f"{value:,.2f}"

    # Tooltips render values as HTML
    return html.escape(str(value))
