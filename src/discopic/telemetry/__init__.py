"""Telemetry module for logging, metrics, and reporting."""

from discopic.telemetry.logger import QueueLogging, setup_logging
from discopic.telemetry.metrics import MetricsCollector, RefreshStats
from discopic.telemetry.reporter import CLIReporter


__all__ = [
    "CLIReporter",
    "MetricsCollector",
    "QueueLogging",
    "RefreshStats",
    "setup_logging",
]
