"""
Unit tests for the upstream connection.

Tests retry backoff and frame dispatch without a network.
"""

from typing import Any

import pytest

from arbwatch.upstream.connection import Backoff, ConnectionState, UpstreamConnection


class TestBackoff:
    """Tests for Backoff."""

    def test_exponential_growth_capped(self) -> None:
        """Test delays double up to the maximum."""
        backoff = Backoff(initial=1.0, maximum=30.0, factor=2.0)

        delays = [backoff.next_delay() for _ in range(7)]

        assert delays == [1.0, 2.0, 4.0, 8.0, 16.0, 30.0, 30.0]

    def test_reset(self) -> None:
        """Test a successful connect restarts the sequence."""
        backoff = Backoff(initial=1.0, maximum=30.0, factor=2.0)
        backoff.next_delay()
        backoff.next_delay()

        backoff.reset()

        assert backoff.next_delay() == 1.0


class TestFrameDispatch:
    """Tests for UpstreamConnection.handle_text."""

    @pytest.mark.asyncio
    async def test_decoded_message_dispatched(self) -> None:
        """Test JSON frames reach the handler."""
        received: list[Any] = []

        async def handler(message: Any) -> None:
            received.append(message)

        connection = UpstreamConnection("ws://localhost:1/ws", handler)
        await connection.handle_text('{"type": "profit", "data": {"profit": 0.5}}')

        assert received == [{"type": "profit", "data": {"profit": 0.5}}]
        assert connection.message_count == 1
        assert connection.state == ConnectionState.IDLE

    @pytest.mark.asyncio
    async def test_handler_error_contained(self) -> None:
        """Test a failing handler does not propagate."""

        async def handler(message: Any) -> None:
            raise KeyError("data")

        connection = UpstreamConnection("ws://localhost:1/ws", handler)
        await connection.handle_text("{}")

        assert connection.message_count == 1

    @pytest.mark.asyncio
    async def test_stop_before_start(self) -> None:
        """Test stopping an idle connection."""

        async def handler(message: Any) -> None:
            pass

        connection = UpstreamConnection("ws://localhost:1/ws", handler)
        await connection.stop()

        assert connection.state == ConnectionState.CLOSED
