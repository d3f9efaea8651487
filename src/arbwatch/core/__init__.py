"""Core module containing parsed event types and aggregate state."""

from arbwatch.core.state import AggregateState
from arbwatch.core.types import (
    IGNORED,
    Ignored,
    MarketUpdate,
    MetricKind,
    MetricSignal,
    ParsedEvent,
    ProfitPoint,
    SystemSnapshot,
    TransactionRecord,
    Viewer,
)


__all__ = [
    "AggregateState",
    "IGNORED",
    "Ignored",
    "MarketUpdate",
    "MetricKind",
    "MetricSignal",
    "ParsedEvent",
    "ProfitPoint",
    "SystemSnapshot",
    "TransactionRecord",
    "Viewer",
]
