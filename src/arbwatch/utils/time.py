"""
Timestamp utilities.

Millisecond timestamps are used for everything stored in aggregate
state; viewers receive wall-clock strings.
"""

import time
from datetime import datetime

from arbwatch.config.constants import CLOCK_TIME_FORMAT


def get_timestamp_us() -> int:
    """
    Get current timestamp in microseconds.

    Returns:
        Current Unix timestamp in microseconds.
    """
    return time.time_ns() // 1000


def get_timestamp_ms() -> int:
    """
    Get current timestamp in milliseconds.

    Returns:
        Current Unix timestamp in milliseconds.
    """
    return time.time_ns() // 1_000_000


def format_clock_time(timestamp_ms: int | None = None) -> str:
    """
    Format a millisecond timestamp as local wall-clock time.

    Args:
        timestamp_ms: Unix timestamp in milliseconds, or None for now.

    Returns:
        Time of day, e.g. '14:03:27'.
    """
    if timestamp_ms is not None:
        try:
            return datetime.fromtimestamp(timestamp_ms / 1000).strftime(CLOCK_TIME_FORMAT)
        except (OverflowError, OSError, ValueError):
            # Outside the platform's representable range; show the current time
            pass
    return datetime.fromtimestamp(get_timestamp_ms() / 1000).strftime(CLOCK_TIME_FORMAT)
