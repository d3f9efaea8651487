"""Telemetry module for logging, monitor metrics, and host sampling."""

from arbwatch.telemetry.logger import AsyncLogger, setup_logging
from arbwatch.telemetry.metrics import MetricsCollector
from arbwatch.telemetry.system import SystemSampler


__all__ = [
    "AsyncLogger",
    "MetricsCollector",
    "SystemSampler",
    "setup_logging",
]
