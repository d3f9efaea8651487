"""
Counters and timings describing the monitor's own work.

Exported as-is by GET /api/stats.
"""

import time
from collections import Counter, deque
from collections.abc import Iterable, Iterator
from contextlib import contextmanager
from dataclasses import asdict, dataclass
from typing import Any

from arbwatch.utils.time import get_timestamp_us


@dataclass(slots=True, frozen=True)
class LatencySummary:
    """Distribution of one timing window, in microseconds."""

    count: int = 0
    min_us: int = 0
    max_us: int = 0
    mean_us: float = 0.0
    p50_us: int = 0
    p99_us: int = 0

    @classmethod
    def from_samples(cls, samples: Iterable[int]) -> "LatencySummary":
        ordered = sorted(samples)
        if not ordered:
            return cls()

        n = len(ordered)
        return cls(
            count=n,
            min_us=ordered[0],
            max_us=ordered[-1],
            mean_us=round(sum(ordered) / n, 1),
            p50_us=ordered[n // 2],
            p99_us=ordered[min(n - 1, int(n * 0.99))],
        )


class MetricsCollector:
    """
    In-memory counters plus bounded timing windows.

    Counters written by the engine and hub:
    - lines_read: live log lines handed to the parser
    - lines_replayed: history lines applied at startup
    - events_applied: events that changed aggregate state
    - lines_ignored: lines neither recognizer matched
    - events_published: publish calls on the hub
    - viewers_dropped: viewers removed after a transport fault or overflow
    """

    def __init__(self, window_size: int = 1000) -> None:
        """
        Args:
            window_size: Samples kept per timing window.
        """
        self._window_size = window_size
        self._counters: Counter[str] = Counter()
        self._timings: dict[str, deque[int]] = {}
        self._started = time.monotonic()

    def increment_counter(self, name: str, value: int = 1) -> None:
        self._counters[name] += value

    def get_counter(self, name: str) -> int:
        return self._counters[name]

    def record_latency(self, name: str, latency_us: int) -> None:
        """Add one sample to a timing window."""
        window = self._timings.setdefault(name, deque(maxlen=self._window_size))
        window.append(latency_us)

    @contextmanager
    def timed(self, name: str) -> Iterator[None]:
        """Record how long the enclosed block takes."""
        start = get_timestamp_us()
        try:
            yield
        finally:
            self.record_latency(name, get_timestamp_us() - start)

    def latency(self, name: str) -> LatencySummary:
        """Summary of a timing window (zeros if never recorded)."""
        return LatencySummary.from_samples(self._timings.get(name, ()))

    @property
    def uptime_seconds(self) -> float:
        """Seconds since the collector was created or reset."""
        return time.monotonic() - self._started

    def to_dict(self) -> dict[str, Any]:
        return {
            "uptime_seconds": round(self.uptime_seconds, 3),
            "counters": dict(sorted(self._counters.items())),
            "latencies": {name: asdict(self.latency(name)) for name in sorted(self._timings)},
        }

    def reset(self) -> None:
        """Clear all counters and windows."""
        self._counters.clear()
        self._timings.clear()
        self._started = time.monotonic()
