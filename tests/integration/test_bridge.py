"""
Integration tests for bridge mode.

Tests envelope relaying and an end-to-end run against a local aiohttp
WebSocket server standing in for the bot's event stream.
"""

import asyncio
from collections.abc import AsyncIterator

import pytest
import pytest_asyncio
from aiohttp import web

from arbwatch.broadcast.hub import BroadcastHub
from arbwatch.config.settings import Settings
from arbwatch.core.engine import MonitorEngine
from arbwatch.upstream.bridge import RelayBridge
from arbwatch.upstream.connection import ConnectionState
from tests.mocks import MockViewer, StubSampler, wait_for


METRICS = {"totalMarkets": 80, "activeMarkets": 12, "lastUpdate": "10:00:00"}
UNREACHABLE_URL = "ws://127.0.0.1:9/ws"


@pytest.fixture
def engine(settings: Settings, stub_sampler: StubSampler) -> MonitorEngine:
    """Bridge-mode engine, never started, so nothing connects upstream."""
    bridge_settings = settings.model_copy(update={"mode": "bridge", "bridge_url": UNREACHABLE_URL})
    return MonitorEngine(bridge_settings, sampler=stub_sampler)  # type: ignore[arg-type]


@pytest.fixture
def hub(engine: MonitorEngine) -> BroadcastHub:
    return engine.hub


@pytest.fixture
def bridge(engine: MonitorEngine) -> RelayBridge:
    assert engine.bridge is not None
    return engine.bridge


class TestEnvelopes:
    """Tests for envelope routing."""

    @pytest.mark.asyncio
    async def test_relayed_verbatim(self, bridge: RelayBridge, hub: BroadcastHub) -> None:
        """Test classified events pass through unchanged."""
        viewer = MockViewer()
        hub.register(viewer)

        await bridge.handle_envelope({"type": "marketMetrics", "data": METRICS})
        await bridge.handle_envelope({"type": "transaction", "data": {"hash": "0x1", "profit": "5"}})
        await bridge.handle_envelope({"type": "profit", "data": {"timestamp": "10:00:01", "profit": 0.1}})
        await hub.flush()

        assert viewer.names[1:] == ["marketMetrics", "transaction", "profit"]
        assert viewer.events("marketMetrics") == [METRICS]
        assert viewer.events("transaction") == [{"hash": "0x1", "profit": "5"}]
        assert bridge.relayed_count == 3

        await hub.stop()

    @pytest.mark.asyncio
    async def test_new_block_becomes_status(
        self, bridge: RelayBridge, hub: BroadcastHub, stub_sampler: StubSampler
    ) -> None:
        """Test newBlock refreshes systemStatus with the block number."""
        viewer = MockViewer()
        hub.register(viewer)

        await bridge.handle_envelope({"type": "newBlock", "data": {"number": 19_000_001}})
        await hub.flush()

        assert stub_sampler.last_block == 19_000_001
        assert viewer.names == ["systemStatus", "systemStatus"]
        assert viewer.events("systemStatus")[-1]["lastBlock"] == 19_000_001
        assert viewer.events("newBlock") == []

        await hub.stop()

    @pytest.mark.asyncio
    async def test_late_joiner_gets_cached_metrics(self, bridge: RelayBridge, hub: BroadcastHub) -> None:
        """Test the last relayed marketMetrics is part of the snapshot."""
        await bridge.handle_envelope({"type": "marketMetrics", "data": METRICS})

        viewer = MockViewer()
        hub.register(viewer)
        await hub.flush()

        assert viewer.names == ["systemStatus", "marketMetrics"]
        assert viewer.events("marketMetrics") == [METRICS]
        assert bridge.last_market_metrics == METRICS

        await hub.stop()

    @pytest.mark.asyncio
    async def test_unknown_and_lifecycle_events(self, bridge: RelayBridge, hub: BroadcastHub) -> None:
        """Test non-relayed envelopes produce nothing."""
        viewer = MockViewer()
        hub.register(viewer)
        await hub.flush()

        await bridge.handle_envelope({"type": "connect"})
        await bridge.handle_envelope({"type": "debug", "data": {}})
        await bridge.handle_envelope(["marketMetrics"])
        await hub.flush()

        assert viewer.names == ["systemStatus"]
        assert bridge.relayed_count == 0

        await hub.stop()

    @pytest.mark.asyncio
    async def test_invalid_frame(self, bridge: RelayBridge) -> None:
        """Test undecodable frames are dropped."""
        await bridge.connection.handle_text("{oops")
        await bridge.connection.handle_text('{"type": "profit", "data": {"profit": 1}}')

        assert bridge.connection.message_count == 1
        assert bridge.relayed_count == 1


class FakeBotStream:
    """Local stand-in for the bot's WebSocket event stream."""

    def __init__(self) -> None:
        self.outbox: asyncio.Queue[dict[str, object]] = asyncio.Queue()
        self.connections = 0
        self.url = ""
        self._runner: web.AppRunner | None = None

    async def handler(self, request: web.Request) -> web.WebSocketResponse:
        ws = web.WebSocketResponse()
        await ws.prepare(request)
        self.connections += 1

        async def forward() -> None:
            while True:
                await ws.send_json(await self.outbox.get())

        sender = asyncio.create_task(forward())
        try:
            async for _ in ws:
                pass
        finally:
            sender.cancel()
        return ws

    async def start(self) -> None:
        app = web.Application()
        app.router.add_get("/ws", self.handler)
        self._runner = web.AppRunner(app)
        await self._runner.setup()
        site = web.TCPSite(self._runner, "127.0.0.1", 0)
        await site.start()
        host, port = self._runner.addresses[0][:2]
        self.url = f"ws://{host}:{port}/ws"

    async def stop(self) -> None:
        if self._runner is not None:
            await self._runner.cleanup()


@pytest_asyncio.fixture
async def bot_stream() -> AsyncIterator[FakeBotStream]:
    stream = FakeBotStream()
    await stream.start()
    yield stream
    await stream.stop()


class TestBridgeEndToEnd:
    """Tests against a live local stream."""

    @pytest.mark.asyncio
    async def test_relay_over_websocket(
        self, bot_stream: FakeBotStream, stub_sampler: StubSampler
    ) -> None:
        """Test upstream frames reach viewers through the hub."""
        hub = BroadcastHub()
        bridge = RelayBridge(bot_stream.url, hub, stub_sampler)  # type: ignore[arg-type]
        viewer = MockViewer()
        hub.register(viewer)

        bridge.start()
        try:
            await wait_for(lambda: bridge.connection.state == ConnectionState.CONNECTED)

            await bot_stream.outbox.put({"type": "marketMetrics", "data": METRICS})
            await bot_stream.outbox.put({"type": "newBlock", "data": {"number": 7}})
            await wait_for(lambda: len(viewer.events("systemStatus")) == 1 and stub_sampler.last_block == 7)
            await hub.flush()

            assert viewer.events("marketMetrics") == [METRICS]
            assert bridge.connection.message_count == 2
        finally:
            await bridge.stop()
            await hub.stop()

        assert bridge.connection.state == ConnectionState.CLOSED

    @pytest.mark.asyncio
    async def test_unreachable_stream(self, stub_sampler: StubSampler) -> None:
        """Test a missing upstream leaves the bridge backing off until stopped."""
        bridge = RelayBridge(UNREACHABLE_URL, BroadcastHub(), stub_sampler)  # type: ignore[arg-type]

        bridge.start()
        await wait_for(lambda: bridge.connection.state == ConnectionState.BACKING_OFF)
        await bridge.stop()

        assert bridge.connection.state == ConnectionState.CLOSED
        assert bridge.connection.message_count == 0
