"""In-process metrics and trace spans for matching rounds."""

from __future__ import annotations

import logging
import threading
import time
from contextlib import contextmanager
from typing import Any, Generator

logger = logging.getLogger(__name__)

_COUNTERS = (
    "rounds_total",
    "rounds_failed_total",
    "no_match_total",
    "consistency_errors_total",
)

_lock = threading.Lock()
_metrics: dict[str, Any] = {name: 0 for name in _COUNTERS}


def increment_counter(name: str, value: int = 1) -> None:
    """Increment a counter metric."""
    with _lock:
        if name in _metrics:
            _metrics[name] += value


def record_latency(name: str, latency_ms: float) -> None:
    """Record a latency observation."""
    with _lock:
        _metrics[f"{name}_sum_ms"] = _metrics.get(f"{name}_sum_ms", 0.0) + latency_ms
        _metrics[f"{name}_count"] = _metrics.get(f"{name}_count", 0) + 1


def get_metrics() -> dict[str, Any]:
    """Get all metrics."""
    with _lock:
        return _metrics.copy()


def reset_metrics() -> None:
    """Zero every metric (tests)."""
    with _lock:
        _metrics.clear()
        _metrics.update({name: 0 for name in _COUNTERS})


@contextmanager
def trace_span(name: str, attributes: dict[str, str] | None = None) -> Generator[dict, None, None]:
    """Time a block and record it as ``<name>`` latency.

    Usage:
        with trace_span("evaluate", {"requester": "Rider787"}) as span:
            # do work
            span["candidates"] = 2048
    """
    span_data: dict[str, Any] = {
        "name": name,
        "start_time": time.perf_counter(),
        "attributes": attributes or {},
    }

    try:
        yield span_data
    except Exception as e:
        span_data["error"] = str(e)
        raise
    finally:
        span_data["duration_ms"] = (time.perf_counter() - span_data["start_time"]) * 1000
        record_latency(name, span_data["duration_ms"])
        logger.debug(
            f"Span: {name} duration={span_data['duration_ms']:.2f}ms "
            f"attrs={span_data['attributes']}"
        )


def get_prometheus_metrics() -> str:
    """Export counters in Prometheus text format."""
    snapshot = get_metrics()
    lines: list[str] = []
    for name in _COUNTERS:
        lines.append(f"# TYPE oride_{name} counter")
        lines.append(f"oride_{name} {snapshot[name]}")
    return "\n".join(lines) + "\n"
