"""
Transcription history.

Responsibilities:
- Store completed transcriptions most-recent-first
- Enforce the capacity bound (oldest entries are dropped)

Non-responsibilities:
- No persistence
- No decision about *when* to record (the session manager owns that)
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from observability.logger import log_event


@dataclass(frozen=True)
class HistoryEntry:
    """One completed transcription. Times are wall-clock epoch ms."""
    id: str
    text: str
    start_time: int
    end_time: int
    duration_ms: int


class TranscriptionHistory:
    """
    Bounded, most-recent-first list of HistoryEntry.

    Invariants:
    - len(self) <= max_size
    - entries()[0] is the most recently added entry
    """

    def __init__(self, max_size: int) -> None:
        if max_size < 1:
            raise ValueError(f"max_size must be >= 1 (got {max_size})")
        self._max_size = max_size
        self._entries: list[HistoryEntry] = []

    @property
    def max_size(self) -> int:
        return self._max_size

    def add(self, entry: HistoryEntry) -> None:
        """Prepend and truncate to capacity."""
        self._entries.insert(0, entry)
        while len(self._entries) > self._max_size:
            dropped = self._entries.pop()
            log_event({
                "event_type": "HISTORY_ENTRY_EVICTED",
                "level": "debug",
                "entry_id": dropped.id,
                "char_count": len(dropped.text),
            })

    def entries(self) -> tuple[HistoryEntry, ...]:
        return tuple(self._entries)

    def get(self, entry_id: str) -> Optional[HistoryEntry]:
        for entry in self._entries:
            if entry.id == entry_id:
                return entry
        return None

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
