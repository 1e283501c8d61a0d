"""
ASR client contract.

This module defines the *interface only*: no framing, buffering or timers
live here.

Key invariants:
- One client instance drives exactly one connection; it is created for a
  session and discarded afterwards, never reused.
- The client reports results through the result callback; it does not touch
  session state or emit session events.
- Soft failures after connect() resolved (server error frames, malformed
  frames, abnormal transport close) arrive as ASRResult values with `error`
  set, never as exceptions.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Callable

from protocol.transcript import ASRResult
from session.connection_status import ConnectionPhase


ResultCallback = Callable[[ASRResult], None]
"""Invoked synchronously for every partial, final or soft-error result."""

CloseCallback = Callable[[], None]
"""Invoked once when the transport closes without close() being called."""


class ASRClient(ABC):
    """
    Abstract interface for a streaming recognition client.

    Implementations are responsible for:
    - Opening the transport and sending the initial configuration request
    - Accepting PCM16 chunks via send_audio() and pacing them onto the wire
    - Sending the last-packet marker on finish()
    - Decoding inbound frames into ASRResult values

    Non-responsibilities:
    - No session state machine (Idle/Recording/etc.)
    - No history or result aggregation
    - No retries or reconnects
    """

    @property
    @abstractmethod
    def state(self) -> ConnectionPhase:
        """Current connection phase."""
        raise NotImplementedError

    @property
    def is_connected(self) -> bool:
        return self.state is ConnectionPhase.CONNECTED

    @abstractmethod
    async def connect(self) -> None:
        """
        Open the transport and send the initial request.

        Raises:
            InvalidStateError: client is not DISCONNECTED
            TransportError: transport or init request failed (phase reverts
                to DISCONNECTED)
        """
        raise NotImplementedError

    @abstractmethod
    def send_audio(self, chunk: bytes) -> None:
        """
        Queue one PCM16 chunk for the next flush.

        Contract:
        - Never raises. When not connected the chunk is dropped and a
          warning is logged.
        - Does not send immediately; flushing is timer-driven.
        """
        raise NotImplementedError

    @abstractmethod
    async def finish(self) -> None:
        """
        Stop periodic flushing and send the remaining audio as the last packet.

        The last packet is sent even when no audio is queued. No-op when
        not connected.
        """
        raise NotImplementedError

    @abstractmethod
    async def close(self) -> None:
        """
        Stop timers, close the transport, drop queued audio.

        Always ends DISCONNECTED. MUST be idempotent.
        """
        raise NotImplementedError
