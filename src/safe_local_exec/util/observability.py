"""Metrics helpers for invocation bookkeeping."""

from __future__ import annotations

import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass
class MetricsCollector:
    """Collects simple counters and durations.

    Counters may be bumped from the drain thread, so updates are serialized.
    """

    counters: dict[str, int] = field(default_factory=dict)
    durations: dict[str, list[float]] = field(default_factory=dict)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False, compare=False)

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a named counter.

        Args:
            name: Counter name.
            value: Increment amount.
        """

        with self._lock:
            self.counters[name] = self.counters.get(name, 0) + value

    def record_duration(self, name: str, duration_s: float) -> None:
        """Record a duration value for a named metric.

        Args:
            name: Duration metric name.
            duration_s: Duration in seconds.
        """

        with self._lock:
            self.durations.setdefault(name, []).append(duration_s)

    def snapshot(self) -> dict[str, Any]:
        """Return a snapshot of the collected metrics."""

        with self._lock:
            counters = dict(self.counters)
            durations = {name: list(values) for name, values in self.durations.items()}
        duration_summary: dict[str, dict[str, float]] = {}
        for name, values in durations.items():
            total = sum(values)
            count = len(values)
            avg = total / count if count else 0.0
            duration_summary[name] = {
                "count": float(count),
                "total_s": total,
                "avg_s": avg,
                "max_s": max(values) if values else 0.0,
            }
        return {"counters": counters, "durations": duration_summary}


@dataclass(frozen=True)
class ObservabilityManager:
    """Container for metrics collection."""

    metrics: MetricsCollector

    def increment(self, name: str, value: int = 1) -> None:
        """Increment a counter on the underlying collector."""

        self.metrics.increment(name, value)

    @contextmanager
    def track_duration(self, metric_name: str) -> Iterator[None]:
        """Track duration of a code block as a metric."""

        start = time.perf_counter()
        try:
            yield
        finally:
            self.metrics.record_duration(metric_name, time.perf_counter() - start)


def create_observability_manager() -> ObservabilityManager:
    """Create a default observability manager."""

    return ObservabilityManager(metrics=MetricsCollector())
