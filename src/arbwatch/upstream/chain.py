"""
Block head subscription over JSON-RPC WebSocket.

Keeps SystemSnapshot.lastBlock current and publishes newBlock events.
Entirely optional: without an endpoint, block updates are disabled.
"""

import logging
from typing import Any

import aiohttp
import orjson

from arbwatch.broadcast.hub import BroadcastHub
from arbwatch.config.constants import EVENT_NEW_BLOCK
from arbwatch.telemetry.system import SystemSampler
from arbwatch.upstream.connection import UpstreamConnection
from arbwatch.utils.time import format_clock_time


logger = logging.getLogger(__name__)


SUBSCRIBE_REQUEST_ID = 1


def parse_quantity(value: Any) -> int | None:
    """Decode a JSON-RPC quantity (0x-prefixed hex, or a plain integer)."""
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, str):
        try:
            return int(value, 16) if value.lower().startswith("0x") else int(value)
        except ValueError:
            return None
    return None


class ChainListener:
    """Subscribes to newHeads and relays block numbers."""

    def __init__(
        self,
        url: str,
        hub: BroadcastHub,
        sampler: SystemSampler,
    ) -> None:
        self._hub = hub
        self._sampler = sampler
        self._subscription_id: str | None = None
        self._connection = UpstreamConnection(
            url=url,
            message_handler=self.handle_message,
            name="chain",
            on_connect=self._subscribe,
        )

    @property
    def connection(self) -> UpstreamConnection:
        """Underlying upstream connection."""
        return self._connection

    async def _subscribe(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        request = {
            "jsonrpc": "2.0",
            "id": SUBSCRIBE_REQUEST_ID,
            "method": "eth_subscribe",
            "params": ["newHeads"],
        }
        await ws.send_str(orjson.dumps(request).decode())

    async def handle_message(self, message: Any) -> None:
        """Handle a JSON-RPC response or subscription notification."""
        if not isinstance(message, dict):
            return

        if message.get("id") == SUBSCRIBE_REQUEST_ID:
            if "error" in message:
                logger.error(f"newHeads subscription rejected: {message['error']}")
            else:
                self._subscription_id = message.get("result")
                logger.info("Subscribed to new block headers")
            return

        if message.get("method") != "eth_subscription":
            return

        params = message.get("params") or {}
        head = params.get("result") if isinstance(params, dict) else None
        if not isinstance(head, dict):
            return

        number = parse_quantity(head.get("number"))
        if number is None:
            return

        timestamp = parse_quantity(head.get("timestamp"))
        self._sampler.last_block = number
        self._hub.publish(
            EVENT_NEW_BLOCK,
            {
                "number": number,
                "timestamp": format_clock_time(timestamp * 1000 if timestamp is not None else None),
            },
        )

    def start(self) -> None:
        """Start listening in the background."""
        self._connection.start()

    async def stop(self) -> None:
        """Stop listening and close the connection."""
        await self._connection.stop()
