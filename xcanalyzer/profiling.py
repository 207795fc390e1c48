"""
Timing utilities for xcanalyzer.

Collects wall-clock durations for the stages of an analysis (xcodebuild
runs, report parsing, deduplication) so slow schemes stand out in reports
and debug bundles.

Usage:
    metrics = PerformanceMetrics()
    with metrics.measure("xcodebuild:MyApp/Debug"):
        ...
    print(metrics.summary())
"""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from dataclasses import dataclass
from typing import Dict, Iterator, Optional, Any

logger = logging.getLogger(__name__)


@dataclass
class AggregatedMetric:
    """Aggregated statistics for a named stage."""
    name: str
    count: int = 0
    total_seconds: float = 0.0
    min_seconds: float = float('inf')
    max_seconds: float = 0.0

    @property
    def avg_seconds(self) -> float:
        return self.total_seconds / self.count if self.count > 0 else 0.0

    def add(self, duration: float) -> None:
        self.count += 1
        self.total_seconds += duration
        self.min_seconds = min(self.min_seconds, duration)
        self.max_seconds = max(self.max_seconds, duration)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'count': self.count,
            'total_seconds': round(self.total_seconds, 3),
            'avg_seconds': round(self.avg_seconds, 3),
            'max_seconds': round(self.max_seconds, 3),
        }

    def __str__(self) -> str:
        if self.count == 0:
            return f"{self.name}: no measurements"
        return (
            f"{self.name}: {self.count} calls, "
            f"total={self.total_seconds:.2f}s, "
            f"avg={self.avg_seconds:.2f}s, "
            f"max={self.max_seconds:.2f}s"
        )


class PerformanceMetrics:
    """
    Thread-safe collection of stage timings.

    Parallel scheme analysis records into the same instance from worker
    threads.
    """

    def __init__(self) -> None:
        self._metrics: Dict[str, AggregatedMetric] = {}
        self._lock = threading.Lock()

    def record(self, name: str, duration: float) -> None:
        """Record a pre-measured duration."""
        with self._lock:
            if name not in self._metrics:
                self._metrics[name] = AggregatedMetric(name=name)
            self._metrics[name].add(duration)

    @contextmanager
    def measure(self, name: str) -> Iterator[None]:
        """Context manager for timing a block of code."""
        start = time.perf_counter()
        try:
            yield
        finally:
            self.record(name, time.perf_counter() - start)

    def get(self, name: str) -> Optional[AggregatedMetric]:
        return self._metrics.get(name)

    def reset(self) -> None:
        with self._lock:
            self._metrics.clear()

    def to_dict(self) -> Dict[str, Dict[str, Any]]:
        with self._lock:
            return {name: metric.to_dict() for name, metric in self._metrics.items()}

    def summary(self) -> str:
        """Human readable summary, slowest stage first."""
        if not self._metrics:
            return "No metrics collected"

        lines = ["Timings:", "-" * 60]
        for metric in sorted(self._metrics.values(), key=lambda m: m.total_seconds, reverse=True):
            lines.append(f"  {metric}")
        return "\n".join(lines)
