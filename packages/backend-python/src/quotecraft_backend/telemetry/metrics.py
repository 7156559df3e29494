"""Counters and timers emitted as structured log records."""

from __future__ import annotations

import logging
import time
from collections import Counter
from contextlib import contextmanager
from threading import Lock
from typing import Any, Dict


class MetricsEmitter:
    """Log each metric and keep process-local totals for the health endpoint."""

    def __init__(self) -> None:
        self._logger = logging.getLogger("quotecraft.metrics")
        self._enabled = False
        self._totals: Counter = Counter()
        self._lock = Lock()

    def configure(self, *, enabled: bool) -> None:
        self._enabled = enabled

    def increment(self, name: str, value: float = 1.0, **labels: Any) -> None:
        if not self._enabled:
            return
        with self._lock:
            self._totals[name] += value
        payload = {"metric": name, "value": value, "labels": labels}
        self._logger.info("metric.increment", extra={"metric_payload": payload})

    @contextmanager
    def timer(self, name: str, **labels: Any):
        start = time.perf_counter()
        try:
            yield
        finally:
            if self._enabled:
                duration = time.perf_counter() - start
                payload = {"metric": name, "duration": duration, "labels": labels}
                self._logger.info("metric.timer", extra={"metric_payload": payload})

    def snapshot(self) -> Dict[str, float]:
        with self._lock:
            return dict(self._totals)

    def reset(self) -> None:
        with self._lock:
            self._totals.clear()


metrics = MetricsEmitter()

__all__ = ["metrics", "MetricsEmitter"]
