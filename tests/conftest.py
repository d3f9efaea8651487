"""
Pytest configuration and shared fixtures.

Provides reusable test fixtures for all test modules.
"""

from collections.abc import Callable
from pathlib import Path
from typing import Any

import pytest

from arbwatch.config.settings import Settings
from arbwatch.core.state import AggregateState
from arbwatch.ingest.parser import EventParser
from tests.mocks.logs import FIXED_NOW_MS
from tests.mocks.system import StubSampler


# =============================================================================
# Component Fixtures
# =============================================================================


@pytest.fixture
def parser() -> EventParser:
    """Fresh event parser."""
    return EventParser()


@pytest.fixture
def published() -> list[tuple[str, Any]]:
    """Collects (event, payload) pairs published by aggregate state."""
    return []


@pytest.fixture
def clock() -> Callable[[], int]:
    """Deterministic millisecond clock."""
    return lambda: FIXED_NOW_MS


@pytest.fixture
def aggregate_state(
    published: list[tuple[str, Any]], clock: Callable[[], int]
) -> AggregateState:
    """Aggregate state that records its publications."""
    return AggregateState(
        publisher=lambda event, payload: published.append((event, payload)),
        clock=clock,
    )


@pytest.fixture
def stub_sampler() -> StubSampler:
    """Host sampler with fixed values."""
    return StubSampler()


# =============================================================================
# File & Settings Fixtures
# =============================================================================


@pytest.fixture
def log_file(tmp_path: Path) -> Path:
    """Path for a bot log inside a temp directory (not created)."""
    return tmp_path / "output.log"


@pytest.fixture
def settings(log_file: Path) -> Settings:
    """Direct-mode settings pointed at the temp log with fast polling."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        mode="direct",
        log_path=log_file,
        poll_interval=0.05,
        status_interval=60.0,
        ethereum_ws_url=None,
        use_uvloop=False,
    )
