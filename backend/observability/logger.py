"""
JSONL event logger.

- Write one JSON object per line
- Output to stdout
- No buffering, no batching
- Level threshold filtering; records below it are dropped
- No side effects beyond logging
"""

from __future__ import annotations

import json
import sys
import time
from typing import Any, Mapping, Callable


_LEVELS: dict[str, int] = {
    "debug": 10,
    "info": 20,
    "warning": 30,
    "error": 40,
}

_min_level: int = _LEVELS["info"]


# ------------------------------------------------------------------
# Explicit output sink (patchable in tests)
# ------------------------------------------------------------------

def _stdout_print(line: str) -> None:
    sys.stdout.write(line + "\n")
    sys.stdout.flush()

_print: Callable[[str], None] = _stdout_print


def set_log_level(level: str) -> None:
    """
    Set the minimum level written by log_event.

    Accepts the usual names case-insensitively (DEBUG, INFO, WARNING, ERROR);
    unknown names fall back to INFO.
    """
    global _min_level  # pylint: disable=global-statement
    _min_level = _LEVELS.get(level.strip().lower(), _LEVELS["info"])


def log_event(event: Mapping[str, Any]) -> None:
    """
    Write a single JSONL event to stdout.

    The caller supplies event_type and any context fields.

    This function:
    - Fills ts_ms (wall clock) and level ("info") when absent
    - Drops the record if its level is below the configured threshold
    - Serializes to JSON and writes exactly one line
    - Never raises
    """
    level = str(event.get("level", "info"))
    if _LEVELS.get(level, _LEVELS["info"]) < _min_level:
        return

    record: dict[str, Any] = {"ts_ms": int(time.time() * 1000), "level": level}
    record.update(event)

    try:
        line = json.dumps(record, ensure_ascii=False, separators=(",", ":"))
    except (TypeError, ValueError) as e:
        # Last-resort fallback: logging must never crash the session
        fallback: dict[str, Any] = {
            "ts_ms": record.get("ts_ms"),
            "level": "error",
            "event_type": "LOGGER_SERIALIZATION_ERROR",
            "error": str(e),
            "original_event_repr": repr(event),
        }
        line = json.dumps(fallback, ensure_ascii=False, separators=(",", ":"))

    _print(line)
