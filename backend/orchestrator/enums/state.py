"""
Authoritative session state enumeration.

Rules:
- This enum defines ONLY the session-level states.
- No behavior, no helper methods, no side effects.
- Transitions are defined exclusively in orchestrator.transitions.
"""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """
    States of one recognition session as seen by the caller.

    These states represent session progress, NOT connection status
    (see session.connection_status.ConnectionPhase).
    """

    IDLE = "idle"
    CONNECTING = "connecting"
    READY = "ready"
    RECORDING = "recording"
    PROCESSING = "processing"
    COMPLETED = "completed"
    ERROR = "error"
