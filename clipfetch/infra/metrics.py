# clipfetch/infra/metrics.py
"""
In-process metrics for the resolver and the relay.

Counters are keyed ``name{label=value,...}`` with labels sorted, so the same
provider/outcome pair always lands on the same key.  Histograms keep a bounded
window of recent samples; a long-running server never grows them without limit.
Everything is exposed as plain JSON on ``GET /metrics``.
"""
from __future__ import annotations

import time
from collections import defaultdict, deque
from threading import Lock
from typing import Dict

from clipfetch.infra.logging_config import get_logger

logger = get_logger(__name__)

HISTOGRAM_WINDOW = 1000


class Counter:
    """Monotonic counter"""

    __slots__ = ("value",)

    def __init__(self):
        self.value = 0

    def inc(self, amount: int = 1) -> None:
        self.value += amount


class Histogram:
    """Latest ``window`` observations (durations in seconds, sizes in bytes)"""

    def __init__(self, window: int = HISTOGRAM_WINDOW):
        self.samples: deque[float] = deque(maxlen=window)
        self.total_count = 0

    def observe(self, value: float) -> None:
        self.samples.append(value)
        self.total_count += 1

    def get_stats(self) -> dict:
        if not self.samples:
            return {"count": 0, "min": 0, "max": 0, "avg": 0, "p50": 0, "p95": 0}

        ordered = sorted(self.samples)
        n = len(ordered)

        return {
            "count": self.total_count,
            "min": ordered[0],
            "max": ordered[-1],
            "avg": sum(ordered) / n,
            "p50": ordered[min(int(n * 0.50), n - 1)],
            "p95": ordered[min(int(n * 0.95), n - 1)],
        }


class MetricsCollector:
    """Thread-safe registry of counters and histograms."""

    def __init__(self, histogram_window: int = HISTOGRAM_WINDOW):
        self._counters: Dict[str, Counter] = defaultdict(Counter)
        self._histograms: Dict[str, Histogram] = defaultdict(lambda: Histogram(histogram_window))
        self._lock = Lock()
        self._started_at = time.monotonic()

    def inc_counter(self, name: str, amount: int = 1, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            self._counters[key].inc(amount)

    def observe_histogram(self, name: str, value: float, labels: dict | None = None) -> None:
        key = self._make_key(name, labels)
        with self._lock:
            self._histograms[key].observe(value)

    def get_metrics(self) -> dict:
        with self._lock:
            counters = {k: v.value for k, v in self._counters.items()}
            histograms = {k: v.get_stats() for k, v in self._histograms.items()}

        return {
            "uptime_seconds": round(time.monotonic() - self._started_at, 1),
            "counters": counters,
            "histograms": histograms,
        }

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()
            self._histograms.clear()
        logger.info("Metrics reset")

    @staticmethod
    def _make_key(name: str, labels: dict | None) -> str:
        if not labels:
            return name
        rendered = ",".join(f"{k}={v}" for k, v in sorted(labels.items()))
        return f"{name}{{{rendered}}}"


_metrics = MetricsCollector()


def get_metrics_collector() -> MetricsCollector:
    return _metrics


def inc_counter(name: str, amount: int = 1, **labels) -> None:
    _metrics.inc_counter(name, amount, labels or None)


def observe_histogram(name: str, value: float, **labels) -> None:
    _metrics.observe_histogram(name, value, labels or None)


class Timer:
    """Observe the wall time of a ``with`` block into a histogram"""

    def __init__(self, metric_name: str, **labels):
        self.metric_name = metric_name
        self.labels = labels
        self._start: float | None = None

    def __enter__(self):
        self._start = time.perf_counter()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        if self._start is not None:
            observe_histogram(self.metric_name, time.perf_counter() - self._start, **self.labels)


class AppMetrics:
    """Named metric events for the resolver and the relay"""

    @staticmethod
    def provider_attempt(provider: str) -> None:
        inc_counter("provider_attempts_total", provider=provider)

    @staticmethod
    def provider_failed(provider: str, reason: str) -> None:
        inc_counter("provider_failures_total", provider=provider, reason=reason)

    @staticmethod
    def track_provider_call(provider: str) -> Timer:
        return Timer("provider_call_seconds", provider=provider)

    @staticmethod
    def resolution_succeeded(provider: str) -> None:
        inc_counter("resolutions_total", outcome="success", provider=provider)

    @staticmethod
    def resolution_failed(reason: str) -> None:
        inc_counter("resolutions_total", outcome=reason)

    @staticmethod
    def track_resolution_time() -> Timer:
        return Timer("resolution_seconds")

    @staticmethod
    def relay_opened() -> None:
        inc_counter("relay_streams_total", outcome="opened")

    @staticmethod
    def relay_failed() -> None:
        inc_counter("relay_streams_total", outcome="failed")

    @staticmethod
    def relay_finished(bytes_sent: int, completed: bool) -> None:
        inc_counter("relay_bytes_total", bytes_sent)
        if not completed:
            inc_counter("relay_streams_total", outcome="interrupted")
