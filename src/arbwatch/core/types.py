"""
Type definitions for the log monitor.

This module contains the parsed event variants, aggregate value types,
and Protocol definitions used throughout the application. Using
slots=True for memory efficiency and faster attribute access.
"""

from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from arbwatch.utils.time import format_clock_time
from arbwatch.utils.units import wei_to_eth


# =============================================================================
# Enums
# =============================================================================


class MetricKind(str, Enum):
    """Market counters reported in the bot's plain-text log lines."""

    TOTAL_MARKETS = "TotalMarkets"
    ACTIVE_MARKETS = "ActiveMarkets"


# =============================================================================
# Parsed Events
# =============================================================================


@dataclass(slots=True, frozen=True)
class MetricSignal:
    """A market count extracted from a plain-text line."""

    kind: MetricKind
    value: int


@dataclass(slots=True, frozen=True)
class MarketUpdate:
    """Structured MARKET_UPDATE record; only refreshes the update time."""


@dataclass(slots=True, frozen=True)
class TransactionRecord:
    """
    Structured TRANSACTION record.

    profit_wei keeps the bot's base-unit integer string untouched;
    conversion to ETH happens only for the profit history.
    """

    hash: str
    tx_type: str
    timestamp_ms: int | None
    status: str
    profit_wei: str | None = None

    @property
    def profit_eth(self) -> float | None:
        """Profit in ETH, or None if absent or not an integer amount."""
        if self.profit_wei is None:
            return None
        try:
            return wei_to_eth(self.profit_wei)
        except ValueError:
            return None

    def to_payload(self) -> dict[str, Any]:
        """Viewer payload for the transaction event."""
        return {
            "hash": self.hash,
            "type": self.tx_type,
            "timestamp": format_clock_time(self.timestamp_ms),
            "status": self.status,
            "profit": self.profit_wei if self.profit_wei is not None else "0",
        }


@dataclass(slots=True, frozen=True)
class Ignored:
    """A line neither recognizer understood."""


ParsedEvent = MetricSignal | MarketUpdate | TransactionRecord | Ignored

IGNORED = Ignored()


# =============================================================================
# Aggregate Values
# =============================================================================


@dataclass(slots=True, frozen=True)
class ProfitPoint:
    """One entry of the profit history."""

    timestamp_ms: int
    profit_eth: float

    def to_payload(self) -> dict[str, Any]:
        """Viewer payload for the profit event."""
        return {
            "timestamp": format_clock_time(self.timestamp_ms),
            "profit": self.profit_eth,
        }


@dataclass(slots=True, frozen=True)
class SystemSnapshot:
    """
    Host operational metrics.

    Always sampled fresh; never stored.
    """

    cpu_usage_percent: float
    memory_usage_percent: float
    uptime_seconds: int
    last_block: int = 0

    def to_payload(self) -> dict[str, Any]:
        """Viewer payload for the systemStatus event."""
        return {
            "cpuUsage": self.cpu_usage_percent,
            "memoryUsage": self.memory_usage_percent,
            "uptime": self.uptime_seconds,
            "lastBlock": self.last_block,
        }


# =============================================================================
# Protocols
# =============================================================================


class Viewer(Protocol):
    """A connected real-time subscriber."""

    async def send(self, event: str, payload: Any) -> None:
        """Deliver one named event."""
        ...


# Synchronous publish hook handed to state holders
Publisher = Callable[[str, Any], None]
