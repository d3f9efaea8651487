"""
Unit tests for ChainListener.

Tests JSON-RPC quantity decoding and newHeads handling.
"""

from unittest.mock import AsyncMock

import orjson
import pytest

from arbwatch.broadcast.hub import BroadcastHub
from arbwatch.upstream.chain import ChainListener, parse_quantity
from arbwatch.utils.time import format_clock_time
from tests.mocks import MockViewer, StubSampler


def head_notification(number: object, timestamp: object = "0x65a0b2c0") -> dict[str, object]:
    return {
        "jsonrpc": "2.0",
        "method": "eth_subscription",
        "params": {
            "subscription": "0xsub",
            "result": {"number": number, "timestamp": timestamp, "hash": "0xhead"},
        },
    }


class TestParseQuantity:
    """Tests for parse_quantity."""

    @pytest.mark.parametrize(
        "value,expected",
        [
            ("0x0", 0),
            ("0x1234", 0x1234),
            ("0X1A", 26),
            ("42", 42),
            (42, 42),
            ("0xzz", None),
            ("", None),
            (None, None),
            (True, None),
            (1.5, None),
        ],
    )
    def test_values(self, value: object, expected: int | None) -> None:
        """Test hex, decimal, and rejected inputs."""
        assert parse_quantity(value) == expected


class TestChainListener:
    """Tests for newHeads handling."""

    @pytest.fixture
    def hub(self) -> BroadcastHub:
        return BroadcastHub()

    @pytest.fixture
    def listener(self, hub: BroadcastHub, stub_sampler: StubSampler) -> ChainListener:
        return ChainListener("ws://localhost:8546", hub, stub_sampler)  # type: ignore[arg-type]

    @pytest.mark.asyncio
    async def test_subscribe_request(self, listener: ChainListener) -> None:
        """Test the newHeads subscription sent on connect."""
        ws = AsyncMock()

        await listener._subscribe(ws)

        request = orjson.loads(ws.send_str.call_args.args[0])
        assert request["method"] == "eth_subscribe"
        assert request["params"] == ["newHeads"]
        assert request["id"] == 1

    @pytest.mark.asyncio
    async def test_head_updates_last_block(
        self,
        listener: ChainListener,
        hub: BroadcastHub,
        stub_sampler: StubSampler,
    ) -> None:
        """Test a head notification sets lastBlock and publishes newBlock."""
        viewer = MockViewer()
        hub.register(viewer)

        await listener.handle_message(head_notification("0x121eac0", "0x65a0b2c0"))
        await hub.flush()

        assert stub_sampler.last_block == 0x121EAC0
        assert viewer.events("newBlock") == [
            {"number": 0x121EAC0, "timestamp": format_clock_time(0x65A0B2C0 * 1000)}
        ]

        await hub.stop()

    @pytest.mark.asyncio
    async def test_subscription_response(self, listener: ChainListener, stub_sampler: StubSampler) -> None:
        """Test the subscription acknowledgement is not treated as a head."""
        await listener.handle_message({"jsonrpc": "2.0", "id": 1, "result": "0xsub"})
        await listener.handle_message({"jsonrpc": "2.0", "id": 1, "error": {"code": -32601}})

        assert stub_sampler.last_block == 0

    @pytest.mark.asyncio
    async def test_malformed_head_ignored(self, listener: ChainListener, stub_sampler: StubSampler) -> None:
        """Test heads without a usable number."""
        await listener.handle_message(head_notification(None))
        await listener.handle_message(head_notification("not-hex"))
        await listener.handle_message({"method": "eth_subscription", "params": "bad"})
        await listener.handle_message(["not", "an", "object"])

        assert stub_sampler.last_block == 0

    @pytest.mark.asyncio
    async def test_invalid_frame(self, listener: ChainListener) -> None:
        """Test undecodable frames are dropped by the connection."""
        await listener.connection.handle_text("{not json")

        assert listener.connection.message_count == 0
