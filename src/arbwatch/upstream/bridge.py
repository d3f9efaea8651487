"""
Relay bridge deployment.

Subscribes to the bot's own event stream and republishes its
already-classified events to dashboard viewers. No log tailing or
parsing happens in this mode.
"""

import logging
from typing import Any

from arbwatch.broadcast.hub import BroadcastHub, Message
from arbwatch.config.constants import (
    EVENT_MARKET_METRICS,
    EVENT_NEW_BLOCK,
    EVENT_SYSTEM_STATUS,
    RELAYED_EVENTS,
)
from arbwatch.telemetry.system import SystemSampler
from arbwatch.upstream.connection import UpstreamConnection


logger = logging.getLogger(__name__)


class RelayBridge:
    """
    Fans the bot's event stream out to viewers.

    Upstream frames are JSON envelopes {"type": name, "data": payload}.
    marketMetrics, transaction, and profit are forwarded unchanged;
    newBlock is folded into a fresh systemStatus.
    """

    def __init__(
        self,
        url: str,
        hub: BroadcastHub,
        sampler: SystemSampler,
    ) -> None:
        """
        Initialize bridge.

        Args:
            url: Bot event stream WebSocket URL.
            hub: Hub receiving the relayed events.
            sampler: Host sampler that carries the last block number.
        """
        self._hub = hub
        self._sampler = sampler
        self._last_metrics: dict[str, Any] | None = None
        self._relayed = 0
        self._connection = UpstreamConnection(
            url=url,
            message_handler=self.handle_envelope,
            name="bridge",
            on_connect=self._on_connect,
            on_disconnect=self._on_disconnect,
        )

    @property
    def connection(self) -> UpstreamConnection:
        """Underlying upstream connection."""
        return self._connection

    @property
    def relayed_count(self) -> int:
        """Events republished to viewers."""
        return self._relayed

    @property
    def last_market_metrics(self) -> dict[str, Any] | None:
        """Most recent marketMetrics payload seen upstream."""
        return self._last_metrics

    def initial_events(self) -> list[Message]:
        """Snapshot for late-joining viewers."""
        events: list[Message] = [(EVENT_SYSTEM_STATUS, self._sampler.sample().to_payload())]
        if self._last_metrics is not None:
            events.append((EVENT_MARKET_METRICS, self._last_metrics))
        return events

    async def _on_connect(self, _ws: object) -> None:
        logger.info("Connected to bot event stream")

    async def _on_disconnect(self) -> None:
        logger.info("Disconnected from bot event stream")

    async def handle_envelope(self, message: Any) -> None:
        """Route one upstream envelope."""
        if not isinstance(message, dict):
            return

        event = message.get("type")
        data = message.get("data")

        if event in RELAYED_EVENTS:
            if event == EVENT_MARKET_METRICS and isinstance(data, dict):
                self._last_metrics = data
            self._hub.publish(event, data)
            self._relayed += 1

        elif event == EVENT_NEW_BLOCK:
            number = data.get("number") if isinstance(data, dict) else None
            if isinstance(number, int) and not isinstance(number, bool):
                self._sampler.last_block = number
            self._hub.publish_status(self._sampler)
            self._relayed += 1

        elif event in ("connect", "disconnect"):
            logger.info(f"Bot reported {event}")

        else:
            logger.debug(f"Ignoring upstream event {event!r}")

    def start(self) -> None:
        """Start relaying in the background."""
        self._connection.start()

    async def stop(self) -> None:
        """Stop relaying and close the upstream connection."""
        await self._connection.stop()
