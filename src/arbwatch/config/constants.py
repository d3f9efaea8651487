"""
Monitor constants and configuration values.

This module contains all hardcoded values used throughout the log monitor.
Values are organized by category for easy maintenance and auditing.
"""

from typing import Final


# =============================================================================
# Server
# =============================================================================

DEFAULT_HOST: Final[str] = "0.0.0.0"
DEFAULT_PORT: Final[int] = 3001

# Dashboard dev server origin
DEFAULT_CORS_ORIGIN: Final[str] = "http://localhost:3000"


# =============================================================================
# Log Sources
# =============================================================================

DEFAULT_LOG_PATH: Final[str] = "output.log"

# Poll cadence for the interval watch strategy (seconds)
DEFAULT_POLL_INTERVAL: Final[float] = 1.0

# Lines replayed from the history log at startup
BACKFILL_LINE_LIMIT: Final[int] = 1000


# =============================================================================
# Log Line Dialects
# =============================================================================

TOTAL_MARKETS_PATTERN: Final[str] = r"Updating reserves for (\d+) markets"
ACTIVE_MARKETS_PATTERN: Final[str] = r"Filtered pairs for arbitrage calculation: (\d+)"

RECORD_TYPE_MARKET_UPDATE: Final[str] = "MARKET_UPDATE"
RECORD_TYPE_TRANSACTION: Final[str] = "TRANSACTION"


# =============================================================================
# Aggregate State
# =============================================================================

PROFIT_HISTORY_LIMIT: Final[int] = 50

# 1 ETH in wei
WEI_PER_ETH: Final[int] = 10**18


# =============================================================================
# Viewer Events
# =============================================================================

EVENT_SYSTEM_STATUS: Final[str] = "systemStatus"
EVENT_MARKET_METRICS: Final[str] = "marketMetrics"
EVENT_TRANSACTION: Final[str] = "transaction"
EVENT_PROFIT: Final[str] = "profit"
EVENT_NEW_BLOCK: Final[str] = "newBlock"

# Events the bridge republishes verbatim
RELAYED_EVENTS: Final[frozenset[str]] = frozenset(
    {
        EVENT_MARKET_METRICS,
        EVENT_TRANSACTION,
        EVENT_PROFIT,
    }
)


# =============================================================================
# Broadcast
# =============================================================================

# systemStatus cadence (seconds)
DIRECT_STATUS_INTERVAL: Final[float] = 1.0
BRIDGE_STATUS_INTERVAL: Final[float] = 2.0

# Outbound messages buffered per viewer before it is considered stalled
VIEWER_QUEUE_SIZE: Final[int] = 256


# =============================================================================
# Upstream Connections
# =============================================================================

DEFAULT_BRIDGE_URL: Final[str] = "ws://localhost:8545/ws"

MIN_RECONNECT_DELAY: Final[float] = 1.0  # seconds
MAX_RECONNECT_DELAY: Final[float] = 30.0  # seconds
RECONNECT_MULTIPLIER: Final[float] = 2.0

WS_PING_INTERVAL: Final[float] = 20.0  # seconds
WS_MAX_MESSAGE_SIZE: Final[int] = 4 * 1024 * 1024  # 4MB
WS_CLOSE_TIMEOUT: Final[float] = 5.0  # seconds


# =============================================================================
# Logging & Telemetry
# =============================================================================

LOG_FORMAT: Final[str] = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
LOG_DATE_FORMAT: Final[str] = "%Y-%m-%d %H:%M:%S"

# Clock format used in viewer payloads
CLOCK_TIME_FORMAT: Final[str] = "%H:%M:%S"

# Maximum log queue size
MAX_LOG_QUEUE_SIZE: Final[int] = 10_000
