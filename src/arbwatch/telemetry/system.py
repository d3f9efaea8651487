"""
Host operational metrics.

CPU utilization is derived from cumulative per-core tick counters
(busy = 1 - idle/total), averaged across cores.
"""

import time
from collections.abc import Sequence

import psutil

from arbwatch.core.types import SystemSnapshot


def cpu_usage_percent(per_core_times: Sequence[Sequence[float]], idle_index: int = 3) -> float:
    """
    Average CPU utilization across cores.

    Args:
        per_core_times: One tick tuple per core (psutil.cpu_times(percpu=True)).
        idle_index: Position of the idle counter within each tuple.

    Returns:
        Percentage rounded to one decimal place.
    """
    if not per_core_times:
        return 0.0

    busy = 0.0
    for times in per_core_times:
        # Linux guest time is already included in user and nice
        total = sum(times) - getattr(times, "guest", 0.0) - getattr(times, "guest_nice", 0.0)
        if total <= 0:
            continue
        idle = getattr(times, "idle", times[idle_index])
        busy += 1.0 - idle / total

    return round(busy / len(per_core_times) * 100, 1)


def memory_usage_percent(total: int, free: int) -> float:
    """Memory in use as a percentage of total, one decimal place."""
    if total <= 0:
        return 0.0
    return round((total - free) / total * 100, 1)


class SystemSampler:
    """
    Samples host CPU, memory, and process uptime.

    last_block is fed by the chain listener or the relay bridge; it is
    the only value that is not read from the OS.
    """

    def __init__(self, process: psutil.Process | None = None) -> None:
        self._process = process or psutil.Process()
        self._started_at = self._process.create_time()
        self.last_block = 0

    def uptime_seconds(self) -> int:
        """Whole seconds since this process started."""
        return max(0, int(time.time() - self._started_at))

    def sample(self) -> SystemSnapshot:
        """Take a fresh snapshot."""
        memory = psutil.virtual_memory()
        return SystemSnapshot(
            cpu_usage_percent=cpu_usage_percent(psutil.cpu_times(percpu=True)),
            memory_usage_percent=memory_usage_percent(memory.total, memory.free),
            uptime_seconds=self.uptime_seconds(),
            last_block=self.last_block,
        )
