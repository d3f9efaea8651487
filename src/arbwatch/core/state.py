"""
Aggregate state built from parsed log events.

One instance per engine, passed explicitly to whoever needs it. Every
mutation that changes what viewers see is published in the same step,
so viewers never have to poll.
"""

import logging
from collections import deque
from collections.abc import Callable, Iterable
from typing import TYPE_CHECKING, Any

from arbwatch.config.constants import (
    EVENT_MARKET_METRICS,
    EVENT_PROFIT,
    EVENT_TRANSACTION,
    PROFIT_HISTORY_LIMIT,
)
from arbwatch.core.types import (
    Ignored,
    MarketUpdate,
    MetricKind,
    MetricSignal,
    ParsedEvent,
    ProfitPoint,
    Publisher,
    TransactionRecord,
)
from arbwatch.utils.time import format_clock_time, get_timestamp_ms


if TYPE_CHECKING:
    from arbwatch.ingest.parser import EventParser


logger = logging.getLogger(__name__)


class AggregateState:
    """
    In-memory rollup of everything observed in the log.

    Features:
    - Last-write-wins market counters
    - Hash-keyed transaction upsert
    - Bounded FIFO profit history
    - Immediate publication of visible changes
    """

    def __init__(
        self,
        publisher: Publisher | None = None,
        profit_history_size: int = PROFIT_HISTORY_LIMIT,
        clock: Callable[[], int] = get_timestamp_ms,
    ) -> None:
        """
        Initialize empty state.

        Args:
            publisher: Called with (event_name, payload) on every visible change.
            profit_history_size: Maximum profit history entries.
            clock: Millisecond clock, replaceable in tests.
        """
        self._publisher = publisher
        self._clock = clock

        self.total_markets = 0
        self.active_markets = 0
        self.last_market_update_ms = clock()
        self.transactions: dict[str, TransactionRecord] = {}
        self.profit_history: deque[ProfitPoint] = deque(maxlen=profit_history_size)

        self._applied = 0

    @property
    def applied_count(self) -> int:
        """Events applied that were not ignored."""
        return self._applied

    def apply(self, event: ParsedEvent) -> None:
        """
        Fold one parsed event into the state.

        Never raises; publisher failures are logged.
        """
        if isinstance(event, Ignored):
            return

        self._applied += 1

        if isinstance(event, MetricSignal):
            if event.kind is MetricKind.TOTAL_MARKETS:
                self.total_markets = event.value
            else:
                self.active_markets = event.value
            self.last_market_update_ms = self._clock()
            self._publish(EVENT_MARKET_METRICS, self.market_metrics())

        elif isinstance(event, MarketUpdate):
            self.last_market_update_ms = self._clock()
            self._publish(EVENT_MARKET_METRICS, self.market_metrics())

        elif isinstance(event, TransactionRecord):
            self.transactions[event.hash] = event
            self._publish(EVENT_TRANSACTION, event.to_payload())

            profit_eth = event.profit_eth
            if profit_eth is not None:
                point = ProfitPoint(timestamp_ms=self._clock(), profit_eth=profit_eth)
                self.profit_history.append(point)
                self._publish(EVENT_PROFIT, point.to_payload())
            elif event.profit_wei is not None:
                logger.debug(f"Unparseable profit {event.profit_wei!r} on {event.hash}")

    def apply_all(self, events: Iterable[ParsedEvent]) -> None:
        """Apply events in order."""
        for event in events:
            self.apply(event)

    def replay(self, lines: Iterable[str], parser: "EventParser") -> int:
        """
        Apply every event found in historical lines, in order.

        Returns:
            Number of lines read.
        """
        count = 0
        for line in lines:
            count += 1
            self.apply_all(parser.events(line))
        return count

    def _publish(self, event_name: str, payload: Any) -> None:
        if self._publisher is None:
            return
        try:
            self._publisher(event_name, payload)
        except Exception as e:
            logger.error(f"Publish error for {event_name}: {e}")

    def market_metrics(self) -> dict[str, Any]:
        """Payload for the marketMetrics event."""
        return {
            "totalMarkets": self.total_markets,
            "activeMarkets": self.active_markets,
            "lastUpdate": format_clock_time(self.last_market_update_ms),
        }

    def snapshot(self) -> dict[str, Any]:
        """
        Export the full state.

        Returns:
            Dict with market metrics, transactions, and profit history.
        """
        return {
            "marketMetrics": self.market_metrics(),
            "transactions": [tx.to_payload() for tx in self.transactions.values()],
            "profitHistory": [point.to_payload() for point in self.profit_history],
        }
