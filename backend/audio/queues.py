# backend/audio/queues.py
"""
Outbound audio accumulator for the streaming recognition client.

Requirements:
- Chunks kept in arrival order
- drain() concatenates and clears in one synchronous step, so two flushes
  can never observe overlapping contents
- Deterministic, synchronous behavior (no awaits inside)
"""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import Deque


@dataclass
class QueueCounters:
    """
    Counters for observability.
    """
    chunks_in: int = 0
    bytes_in: int = 0
    drains: int = 0


class OutboundAudioQueue:
    """
    Unbounded FIFO of raw PCM chunks awaiting a flush.

    Pacing is owned by the caller's flush timer; this class only
    accumulates and hands out the merged buffer.
    """

    def __init__(self) -> None:
        self._chunks: Deque[bytes] = deque()
        self._pending_bytes: int = 0
        self.counters: QueueCounters = QueueCounters()

    # -------------------------
    # Core queue operations
    # -------------------------

    def push(self, chunk: bytes) -> None:
        """Append one chunk. Empty chunks are ignored."""
        if not chunk:
            return
        data = bytes(chunk)
        self._chunks.append(data)
        self._pending_bytes += len(data)
        self.counters.chunks_in += 1
        self.counters.bytes_in += len(data)

    def drain(self) -> bytes:
        """
        Concatenate all queued chunks in arrival order and clear the queue.

        Returns b"" if the queue is empty.
        """
        if not self._chunks:
            return b""
        merged = b"".join(self._chunks)
        self._chunks.clear()
        self._pending_bytes = 0
        self.counters.drains += 1
        return merged

    def clear(self) -> None:
        """
        Drop all queued chunks.

        Used on close / cancellation.
        """
        self._chunks.clear()
        self._pending_bytes = 0

    # -------------------------
    # Introspection helpers
    # -------------------------

    def __len__(self) -> int:
        return len(self._chunks)

    def is_empty(self) -> bool:
        """Check if the queue is empty."""
        return not self._chunks

    @property
    def pending_bytes(self) -> int:
        return self._pending_bytes

    def snapshot(self) -> dict[str, int]:
        """
        Lightweight snapshot for logging.
        """
        return {
            "chunks": len(self._chunks),
            "pending_bytes": self._pending_bytes,
            "chunks_in": self.counters.chunks_in,
            "bytes_in": self.counters.bytes_in,
            "drains": self.counters.drains,
        }
