"""
Log line classification.

The bot writes free-text diagnostics and line-delimited JSON records
into the same stream. Two recognizers run on every line and neither
ever raises: log correctness is not guaranteed.
"""

import logging
import re
from typing import Any

import orjson

from arbwatch.config.constants import (
    ACTIVE_MARKETS_PATTERN,
    RECORD_TYPE_MARKET_UPDATE,
    RECORD_TYPE_TRANSACTION,
    TOTAL_MARKETS_PATTERN,
)
from arbwatch.core.types import (
    IGNORED,
    MarketUpdate,
    MetricKind,
    MetricSignal,
    ParsedEvent,
    TransactionRecord,
)


logger = logging.getLogger(__name__)


class EventParser:
    """
    Converts raw log lines into typed events.

    Example:
        >>> parser = EventParser()
        >>> parser.parse("Updating reserves for 120 markets")
        MetricSignal(kind=<MetricKind.TOTAL_MARKETS: 'TotalMarkets'>, value=120)
    """

    def __init__(self) -> None:
        self._patterns: tuple[tuple[MetricKind, re.Pattern[str]], ...] = (
            (MetricKind.TOTAL_MARKETS, re.compile(TOTAL_MARKETS_PATTERN)),
            (MetricKind.ACTIVE_MARKETS, re.compile(ACTIVE_MARKETS_PATTERN)),
        )
        self._malformed_count = 0

    @property
    def malformed_count(self) -> int:
        """JSON-looking lines that failed to decode."""
        return self._malformed_count

    def parse(self, line: str) -> ParsedEvent:
        """
        Classify a line.

        Returns:
            The first event found, or IGNORED.
        """
        return self.events(line)[0]

    def events(self, line: str) -> list[ParsedEvent]:
        """
        Run both recognizers on a line.

        Returns:
            Every event found in order (metric signals first), or
            [IGNORED] when nothing matched.
        """
        text = line.strip()
        if not text:
            return [IGNORED]

        found: list[ParsedEvent] = list(self._match_patterns(text))

        structured = self._match_structured(text)
        if structured is not None:
            found.append(structured)

        return found or [IGNORED]

    def _match_patterns(self, text: str) -> list[MetricSignal]:
        signals = []
        for kind, pattern in self._patterns:
            match = pattern.search(text)
            if not match:
                continue
            try:
                value = int(match.group(1))
            except ValueError:
                # Beyond int() digit limit
                logger.debug(f"Skipping oversized {kind.value} count")
                continue
            signals.append(MetricSignal(kind=kind, value=value))
        return signals

    def _match_structured(self, text: str) -> ParsedEvent | None:
        if not text.startswith("{"):
            return None

        try:
            record = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            self._malformed_count += 1
            logger.debug(f"Skipping malformed JSON line: {e}")
            return None

        if not isinstance(record, dict):
            return None

        record_type = record.get("type")
        if record_type == RECORD_TYPE_MARKET_UPDATE:
            return MarketUpdate()
        if record_type == RECORD_TYPE_TRANSACTION:
            return self._to_transaction(record)
        return None

    def _to_transaction(self, record: dict[str, Any]) -> TransactionRecord | None:
        tx_hash = record.get("hash")
        if not tx_hash:
            logger.debug("Skipping TRANSACTION record without hash")
            return None

        timestamp = record.get("timestamp")
        if isinstance(timestamp, bool) or not isinstance(timestamp, int | float):
            timestamp = None

        profit = record.get("profit")
        if profit is None or profit == "" or isinstance(profit, bool):
            profit_wei = None
        elif isinstance(profit, float) and profit.is_integer():
            profit_wei = str(int(profit))
        else:
            profit_wei = str(profit)

        return TransactionRecord(
            hash=str(tx_hash),
            tx_type=str(record.get("transactionType", "")),
            timestamp_ms=int(timestamp) if timestamp is not None else None,
            status=str(record.get("status", "")),
            profit_wei=profit_wei,
        )
