"""
Metrics and timing helpers for observability.

Responsibilities:
- Measure durations using monotonic time (immune to clock changes)
- Emit metrics as JSONL events via observability.logger
- Never aggregate: one metric = one log event

Durations use monotonic time; the record's ts_ms is wall clock.
Prefer the `timed()` context manager to avoid leaked timers.
"""

from __future__ import annotations

import time
import uuid
from contextlib import contextmanager
from typing import Any, Iterator

from observability.logger import log_event


# timer_id -> (metric_name, start_time_ns)
_active_timers: dict[str, tuple[str, int]] = {}


def start_timer(name: str) -> str:
    """
    Start a monotonic timer.

    Returns:
        timer_id (str): Opaque ID required to stop the timer later.

    Callers MUST call stop_timer() in a finally block
    unless using the `timed()` context manager.
    """
    timer_id = f"timer_{uuid.uuid4().hex[:12]}"
    _active_timers[timer_id] = (name, time.monotonic_ns())
    return timer_id


def stop_timer(
    timer_id: str,
    *,
    component: str | None = None,
    outcome: str | None = None,
    details: dict[str, Any] | None = None,
) -> int | None:
    """
    Stop a previously started timer and emit a METRIC_TIMER event.

    Args:
        timer_id: ID returned by start_timer()
        component: Emitting component (e.g. "asr_client", "rewrite")
        outcome: "ok" / "error" when known
        details: Optional structured metadata

    Returns:
        duration_ms if the timer existed, else None
    """
    entry = _active_timers.pop(timer_id, None)
    if entry is None:
        return None

    name, start_ns = entry
    duration_ms = (time.monotonic_ns() - start_ns) // 1_000_000

    log_event({
        "event_type": "METRIC_TIMER",
        "metric": name,
        "value_ms": duration_ms,
        "component": component,
        "outcome": outcome,
        "details": details or {},
    })

    return duration_ms


@contextmanager
def timed(
    name: str,
    *,
    component: str | None = None,
    details: dict[str, Any] | None = None,
) -> Iterator[None]:
    """
    Context manager for measuring durations safely.

    The timer is always stopped and the metric emitted exactly once;
    the outcome field records whether the block raised.

    Usage:
        with timed("asr_connect_latency", component="asr_client"):
            ws = await connect(...)
    """
    timer_id = start_timer(name)
    outcome = "error"
    try:
        yield
        outcome = "ok"
    finally:
        stop_timer(
            timer_id,
            component=component,
            outcome=outcome,
            details=details,
        )
