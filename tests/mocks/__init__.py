"""Mock implementations for testing."""

from tests.mocks.logs import append, transaction_line, wait_for
from tests.mocks.system import StubSampler
from tests.mocks.viewer import MockViewer


__all__ = [
    "MockViewer",
    "StubSampler",
    "append",
    "transaction_line",
    "wait_for",
]
