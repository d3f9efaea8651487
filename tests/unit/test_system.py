"""
Unit tests for host metrics.

Tests the CPU and memory formulas and the sampler's payload.
"""

from collections import namedtuple
from types import SimpleNamespace

import pytest

from arbwatch.telemetry import system
from arbwatch.telemetry.system import SystemSampler, cpu_usage_percent, memory_usage_percent


CpuTimes = namedtuple("CpuTimes", ["user", "nice", "system", "idle"])
LinuxCpuTimes = namedtuple("LinuxCpuTimes", ["user", "nice", "system", "idle", "guest", "guest_nice"])


class TestCpuUsage:
    """Tests for the per-core busy average."""

    def test_single_core(self) -> None:
        """Test busy = 1 - idle/total."""
        assert cpu_usage_percent([(30.0, 0.0, 20.0, 50.0)]) == 50.0

    def test_average_across_cores(self) -> None:
        """Test per-core values are averaged."""
        cores = [(10.0, 0.0, 0.0, 90.0), (70.0, 0.0, 0.0, 30.0)]

        assert cpu_usage_percent(cores) == 40.0

    def test_named_idle_field(self) -> None:
        """Test psutil-style tuples use their idle attribute."""
        cores = [CpuTimes(user=25.0, nice=0.0, system=0.0, idle=75.0)]

        assert cpu_usage_percent(cores, idle_index=0) == 25.0

    def test_guest_time_not_double_counted(self) -> None:
        """Test guest ticks, already part of user and nice, stay out of the total."""
        cores = [LinuxCpuTimes(user=40.0, nice=10.0, system=0.0, idle=50.0, guest=20.0, guest_nice=10.0)]

        assert cpu_usage_percent(cores) == 50.0

    def test_custom_idle_index(self) -> None:
        """Test plain tuples with idle in another position."""
        assert cpu_usage_percent([(80.0, 20.0)], idle_index=0) == 20.0

    def test_rounded(self) -> None:
        """Test one decimal place."""
        assert cpu_usage_percent([(1.0, 0.0, 0.0, 2.0)]) == 33.3

    def test_no_cores(self) -> None:
        """Test empty input."""
        assert cpu_usage_percent([]) == 0.0

    def test_all_idle(self) -> None:
        """Test an idle host."""
        assert cpu_usage_percent([(0.0, 0.0, 0.0, 100.0)]) == 0.0


class TestMemoryUsage:
    """Tests for the memory formula."""

    def test_percentage(self) -> None:
        """Test (total - free) / total."""
        assert memory_usage_percent(total=8_000, free=2_000) == 75.0

    def test_rounded(self) -> None:
        """Test one decimal place."""
        assert memory_usage_percent(total=3, free=2) == 33.3

    def test_zero_total(self) -> None:
        """Test degenerate total."""
        assert memory_usage_percent(total=0, free=0) == 0.0


class TestSystemSampler:
    """Tests for SystemSampler."""

    def test_sample(self, monkeypatch: pytest.MonkeyPatch) -> None:
        """Test a snapshot is assembled from psutil readings."""
        monkeypatch.setattr(
            system.psutil,
            "cpu_times",
            lambda percpu=False: [CpuTimes(50.0, 0.0, 0.0, 50.0), CpuTimes(10.0, 0.0, 0.0, 90.0)],
        )
        monkeypatch.setattr(
            system.psutil,
            "virtual_memory",
            lambda: SimpleNamespace(total=1_000, free=250),
        )

        sampler = SystemSampler()
        sampler.last_block = 42
        snapshot = sampler.sample()

        assert snapshot.cpu_usage_percent == 30.0
        assert snapshot.memory_usage_percent == 75.0
        assert snapshot.last_block == 42
        assert snapshot.uptime_seconds >= 0

    def test_payload_keys(self) -> None:
        """Test the systemStatus payload shape."""
        payload = SystemSampler().sample().to_payload()

        assert set(payload) == {"cpuUsage", "memoryUsage", "uptime", "lastBlock"}
        assert 0.0 <= payload["cpuUsage"] <= 100.0
        assert 0.0 <= payload["memoryUsage"] <= 100.0
        assert payload["lastBlock"] == 0

    def test_uptime_is_process_uptime(self) -> None:
        """Test uptime counts from the given process's start."""
        process = SimpleNamespace(create_time=lambda: 0.0)

        sampler = SystemSampler(process=process)  # type: ignore[arg-type]

        assert sampler.uptime_seconds() > 1_000_000
