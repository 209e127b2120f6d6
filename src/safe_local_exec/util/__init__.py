"""Utility helpers package."""

from safe_local_exec.util.logging import configure_logging, get_logger
from safe_local_exec.util.observability import (
    MetricsCollector,
    ObservabilityManager,
    create_observability_manager,
)

__all__ = [
    "MetricsCollector",
    "ObservabilityManager",
    "configure_logging",
    "create_observability_manager",
    "get_logger",
]
