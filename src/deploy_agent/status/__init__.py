"""Periodic node status sampling and reporting."""

from .collector import StatusCollector, StatusReport
from .reporter import StatusReporter

__all__ = ["StatusCollector", "StatusReport", "StatusReporter"]
