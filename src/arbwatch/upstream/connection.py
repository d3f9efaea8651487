"""
Reconnecting WebSocket client for upstream event feeds.

Shared by the relay bridge and the chain listener. Each connection
attempt runs inside its own `ws_connect` context on one long-lived
session; failed attempts back off exponentially. An outage is reported
once at warning level, after which retries log at debug level only.
"""

import asyncio
import contextlib
import logging
from collections.abc import Awaitable, Callable
from enum import Enum, auto
from typing import Any

import aiohttp
import orjson

from arbwatch.config.constants import (
    MAX_RECONNECT_DELAY,
    MIN_RECONNECT_DELAY,
    RECONNECT_MULTIPLIER,
    WS_CLOSE_TIMEOUT,
    WS_MAX_MESSAGE_SIZE,
    WS_PING_INTERVAL,
)


logger = logging.getLogger(__name__)


# Type aliases
MessageHandler = Callable[[Any], Awaitable[None]]
ConnectHook = Callable[[aiohttp.ClientWebSocketResponse], Awaitable[None]]
DisconnectHook = Callable[[], Awaitable[None]]


class ConnectionState(Enum):
    """Upstream connection state."""

    IDLE = auto()
    CONNECTING = auto()
    CONNECTED = auto()
    BACKING_OFF = auto()
    CLOSED = auto()


class Backoff:
    """Exponential retry delay, reset after every successful connect."""

    def __init__(
        self,
        initial: float = MIN_RECONNECT_DELAY,
        maximum: float = MAX_RECONNECT_DELAY,
        factor: float = RECONNECT_MULTIPLIER,
    ) -> None:
        self._initial = initial
        self._maximum = maximum
        self._factor = factor
        self._current = initial

    def next_delay(self) -> float:
        """Delay before the next attempt; grows the one after it."""
        delay = self._current
        self._current = min(self._current * self._factor, self._maximum)
        return delay

    def reset(self) -> None:
        self._current = self._initial


class UpstreamConnection:
    """
    One upstream WebSocket feed.

    Text frames are decoded as JSON and passed to the message handler.
    on_connect runs after each successful connect (to send a
    subscription request, for instance); on_disconnect runs when an
    established connection drops while the feed is still wanted.
    """

    def __init__(
        self,
        url: str,
        message_handler: MessageHandler,
        name: str = "upstream",
        on_connect: ConnectHook | None = None,
        on_disconnect: DisconnectHook | None = None,
        backoff: Backoff | None = None,
    ) -> None:
        """
        Args:
            url: WebSocket URL.
            message_handler: Async callback for decoded messages.
            name: Label used in log lines.
            on_connect: Called with the open socket after each connect.
            on_disconnect: Called after an established connection drops.
            backoff: Retry delay policy.
        """
        self._url = url
        self._message_handler = message_handler
        self._name = name
        self._on_connect = on_connect
        self._on_disconnect = on_disconnect
        self._backoff = backoff or Backoff()

        self._state = ConnectionState.IDLE
        self._ws: aiohttp.ClientWebSocketResponse | None = None
        self._task: asyncio.Task[None] | None = None
        self._running = False
        self._outage_reported = False
        self._message_count = 0

    @property
    def url(self) -> str:
        return self._url

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def message_count(self) -> int:
        """Decoded messages received."""
        return self._message_count

    def _report_outage(self, error: BaseException) -> None:
        if self._outage_reported:
            logger.debug(f"[{self._name}] Connection attempt failed: {error}")
            return
        logger.warning(f"[{self._name}] {self._url} unavailable: {error}")
        self._outage_reported = True

    async def handle_text(self, text: str) -> None:
        """Decode one text frame and dispatch it."""
        try:
            message = orjson.loads(text)
        except orjson.JSONDecodeError as e:
            logger.warning(f"[{self._name}] Invalid JSON: {e}")
            return

        self._message_count += 1
        try:
            await self._message_handler(message)
        except Exception as e:
            logger.error(f"[{self._name}] Handler error: {e}")

    async def _serve(self, ws: aiohttp.ClientWebSocketResponse) -> None:
        """Read one established connection until it closes."""
        self._ws = ws
        try:
            if self._on_connect is not None:
                await self._on_connect(ws)

            self._state = ConnectionState.CONNECTED
            self._backoff.reset()
            self._outage_reported = False
            logger.info(f"[{self._name}] Connected to {self._url}")

            async for msg in ws:
                if msg.type == aiohttp.WSMsgType.TEXT:
                    await self.handle_text(msg.data)
                elif msg.type == aiohttp.WSMsgType.ERROR:
                    logger.error(f"[{self._name}] Socket error: {ws.exception()}")
                    break
        finally:
            self._ws = None

        if self._running:
            logger.warning(f"[{self._name}] Connection lost")
            self._outage_reported = True
            if self._on_disconnect is not None:
                await self._on_disconnect()

    async def run(self) -> None:
        """Connect, read, and reconnect until stopped."""
        self._running = True

        async with aiohttp.ClientSession() as session:
            while self._running:
                self._state = ConnectionState.CONNECTING
                try:
                    async with session.ws_connect(
                        self._url,
                        heartbeat=WS_PING_INTERVAL,
                        max_msg_size=WS_MAX_MESSAGE_SIZE,
                    ) as ws:
                        await self._serve(ws)
                except (aiohttp.ClientError, OSError, TimeoutError) as e:
                    self._report_outage(e)
                except Exception as e:
                    logger.error(f"[{self._name}] Unexpected error: {e}")

                if not self._running:
                    break

                delay = self._backoff.next_delay()
                self._state = ConnectionState.BACKING_OFF
                logger.debug(f"[{self._name}] Reconnecting in {delay:.1f}s")
                await asyncio.sleep(delay)

        self._state = ConnectionState.CLOSED

    def start(self) -> asyncio.Task[None]:
        """Run the feed as a background task."""
        if self._task is None or self._task.done():
            self._task = asyncio.create_task(self.run())
        return self._task

    async def stop(self) -> None:
        """Close the socket and end the feed."""
        self._running = False

        ws = self._ws
        if ws is not None and not ws.closed:
            await ws.close()

        if self._task is not None:
            self._task.cancel()
            with contextlib.suppress(asyncio.CancelledError, TimeoutError):
                await asyncio.wait_for(self._task, timeout=WS_CLOSE_TIMEOUT)
            self._task = None

        self._state = ConnectionState.CLOSED
