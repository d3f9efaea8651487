"""Utility functions for the log monitor."""

from arbwatch.utils.time import (
    format_clock_time,
    get_timestamp_ms,
    get_timestamp_us,
)
from arbwatch.utils.units import parse_wei, wei_to_eth


__all__ = [
    "format_clock_time",
    "get_timestamp_ms",
    "get_timestamp_us",
    "parse_wei",
    "wei_to_eth",
]
