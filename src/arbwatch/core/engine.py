"""
Monitor engine orchestrator.

Builds and owns every component of one deployment, and makes its
lifecycle explicit: construct, start, stop.
"""

import logging
from collections.abc import AsyncIterator, Iterable
from contextlib import asynccontextmanager
from typing import Any

from arbwatch.broadcast.hub import BroadcastHub, Message
from arbwatch.config.constants import EVENT_MARKET_METRICS, EVENT_SYSTEM_STATUS
from arbwatch.config.settings import Settings
from arbwatch.core.state import AggregateState
from arbwatch.core.types import Ignored
from arbwatch.ingest.parser import EventParser
from arbwatch.ingest.tailer import LogTailer, read_recent_lines
from arbwatch.ingest.watch import LogFollower, create_trigger
from arbwatch.telemetry.metrics import MetricsCollector
from arbwatch.telemetry.system import SystemSampler
from arbwatch.upstream.bridge import RelayBridge
from arbwatch.upstream.chain import ChainListener


logger = logging.getLogger(__name__)


class MonitorEngine:
    """
    Main monitor orchestrator.

    Direct mode: log tailer -> parser -> aggregate state -> hub.
    Bridge mode: bot event stream -> hub.
    Either mode may add the chain listener for block numbers.
    """

    def __init__(
        self,
        settings: Settings,
        sampler: SystemSampler | None = None,
    ) -> None:
        """
        Initialize the engine.

        Args:
            settings: Application settings.
            sampler: Host sampler (created if omitted).
        """
        self._settings = settings
        self._running = False

        self._metrics = MetricsCollector()
        self._sampler = sampler or SystemSampler()
        self._hub = BroadcastHub(
            initial_events=self.initial_events,
            queue_size=settings.viewer_queue_size,
            metrics=self._metrics,
        )
        self._state = AggregateState(
            publisher=self._hub.publish,
            profit_history_size=settings.profit_history_size,
        )
        self._parser = EventParser()

        self._tailer: LogTailer | None = None
        self._follower: LogFollower | None = None
        self._bridge: RelayBridge | None = None
        self._chain: ChainListener | None = None

        if settings.mode == "bridge":
            self._bridge = RelayBridge(settings.bridge_url, self._hub, self._sampler)
        else:
            self._tailer = LogTailer(settings.log_path, from_start=settings.tail_from_start)

    # =========================================================================
    # Properties
    # =========================================================================

    @property
    def settings(self) -> Settings:
        """Engine settings."""
        return self._settings

    @property
    def state(self) -> AggregateState:
        """Aggregate state (populated in direct mode)."""
        return self._state

    @property
    def hub(self) -> BroadcastHub:
        """Viewer hub."""
        return self._hub

    @property
    def parser(self) -> EventParser:
        """Line parser."""
        return self._parser

    @property
    def sampler(self) -> SystemSampler:
        """Host sampler."""
        return self._sampler

    @property
    def metrics(self) -> MetricsCollector:
        """Monitor metrics."""
        return self._metrics

    @property
    def tailer(self) -> LogTailer | None:
        """Log tailer (direct mode only)."""
        return self._tailer

    @property
    def bridge(self) -> RelayBridge | None:
        """Relay bridge (bridge mode only)."""
        return self._bridge

    @property
    def is_running(self) -> bool:
        """Check if engine is running."""
        return self._running

    # =========================================================================
    # Ingestion
    # =========================================================================

    def initial_events(self) -> list[Message]:
        """Snapshot pushed to each newly registered viewer."""
        if self._bridge is not None:
            return self._bridge.initial_events()
        return [
            (EVENT_SYSTEM_STATUS, self._sampler.sample().to_payload()),
            (EVENT_MARKET_METRICS, self._state.market_metrics()),
        ]

    def ingest_lines(self, lines: Iterable[str]) -> int:
        """
        Parse and apply lines in order.

        Returns:
            Number of lines processed.
        """
        batch = list(lines)
        if not batch:
            return 0

        with self._metrics.timed("batch_apply"):
            for line in batch:
                for event in self._parser.events(line):
                    if isinstance(event, Ignored):
                        self._metrics.increment_counter("lines_ignored")
                        continue
                    self._state.apply(event)
                    self._metrics.increment_counter("events_applied")

        self._metrics.increment_counter("lines_read", len(batch))
        return len(batch)

    def backfill(self) -> int:
        """
        Seed state from the tail of the history log.

        Returns:
            Number of lines replayed.
        """
        path = self._settings.effective_history_path
        lines = read_recent_lines(path, limit=self._settings.backfill_lines)
        replayed = self._state.replay(lines, self._parser)
        self._metrics.increment_counter("lines_replayed", replayed)
        if replayed:
            logger.info(f"Replayed {replayed} lines from {path}")
        return replayed

    # =========================================================================
    # Lifecycle
    # =========================================================================

    async def start(self) -> None:
        """Start ingestion, upstream feeds, and the status loop."""
        if self._running:
            return

        settings = self._settings
        logger.info(f"Starting monitor in {settings.mode} mode")

        if self._tailer is not None:
            self._tailer.ensure_source()
            if settings.backfill:
                self.backfill()

            trigger = create_trigger(
                settings.watch_strategy,
                self._tailer.path,
                settings.poll_interval,
            )
            self._follower = LogFollower(self._tailer, trigger, self.ingest_lines)
            self._follower.start()
            logger.info(f"Tailing {self._tailer.path} from offset {self._tailer.cursor.offset}")

        if self._bridge is not None:
            logger.info(f"Relaying events from {settings.bridge_url}")
            self._bridge.start()

        if settings.ethereum_ws_url:
            self._chain = ChainListener(settings.ethereum_ws_url, self._hub, self._sampler)
            self._chain.start()
        else:
            logger.info("No ETHEREUM_WS_URL provided. Block updates will be disabled.")

        self._hub.start_status_loop(self._sampler, settings.effective_status_interval)
        self._running = True

    async def stop(self) -> None:
        """Release the file watch, upstream connections, and viewers."""
        if not self._running:
            return

        logger.info("Shutting down monitor...")
        self._running = False

        if self._follower is not None:
            await self._follower.stop()
            self._follower = None

        if self._bridge is not None:
            await self._bridge.stop()

        if self._chain is not None:
            await self._chain.stop()
            self._chain = None

        await self._hub.stop()
        logger.info("Monitor shutdown complete")

    def stats(self) -> dict[str, Any]:
        """Monitor metrics plus live connection counts."""
        stats = self._metrics.to_dict()
        stats["viewers"] = self._hub.viewer_count
        stats["mode"] = self._settings.mode
        if self._tailer is not None:
            stats["offset"] = self._tailer.cursor.offset
            stats["truncations"] = self._tailer.truncations
        if self._bridge is not None:
            stats["relayed"] = self._bridge.relayed_count
        return stats


@asynccontextmanager
async def create_engine(settings: Settings) -> AsyncIterator[MonitorEngine]:
    """
    Create and manage engine lifecycle.

    Usage:
        async with create_engine(settings) as engine:
            ...
    """
    engine = MonitorEngine(settings)

    try:
        await engine.start()
        yield engine
    finally:
        await engine.stop()
