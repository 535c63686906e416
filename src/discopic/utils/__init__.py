"""Utility functions for the spread monitor."""

from discopic.utils.formatting import format_percent, format_price, profit_class
from discopic.utils.math import apply_fee, mean, pct_change, safe_divide
from discopic.utils.time import (
    age_ms,
    format_duration_ms,
    format_timestamp_ms,
    get_timestamp_ms,
)


__all__ = [
    "age_ms",
    "apply_fee",
    "format_duration_ms",
    "format_percent",
    "format_price",
    "format_timestamp_ms",
    "get_timestamp_ms",
    "mean",
    "pct_change",
    "profit_class",
    "safe_divide",
]
