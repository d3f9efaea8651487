"""Configuration module for the log monitor."""

from arbwatch.config.constants import (
    BACKFILL_LINE_LIMIT,
    DEFAULT_PORT,
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
    PROFIT_HISTORY_LIMIT,
)
from arbwatch.config.settings import Settings, get_settings


__all__ = [
    "Settings",
    "get_settings",
    "BACKFILL_LINE_LIMIT",
    "DEFAULT_PORT",
    "MAX_RECONNECT_DELAY",
    "MIN_RECONNECT_DELAY",
    "PROFIT_HISTORY_LIMIT",
]
