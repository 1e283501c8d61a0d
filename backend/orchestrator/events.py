"""
Session event definitions and the observer registry.

Rules:
- Events describe facts that have occurred.
- Events carry data only (no behavior).
- Listeners are invoked synchronously, in registration order.
- A failing listener is logged and does not stop the others.
- No global event bus: each session manager owns one registry.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional

from observability.logger import log_event
from orchestrator.enums.state import SessionState
from protocol.transcript import ASRResult


# =============================================================================
# Event Type Enumeration
# =============================================================================

class SessionEventType(str, Enum):
    """Event kinds delivered to external collaborators (UI, IPC)."""

    STATE_CHANGE = "state-change"
    RESULT = "result"
    ERROR = "error"
    CONNECTED = "connected"
    DISCONNECTED = "disconnected"


# =============================================================================
# Event payload
# =============================================================================

@dataclass(frozen=True)
class SessionEvent:
    """
    One emitted event.

    Field usage by type:
    - STATE_CHANGE: state
    - RESULT:       result
    - ERROR:        error (and result, when it came from a soft error result)
    - CONNECTED / DISCONNECTED: timestamp only
    """
    type: SessionEventType
    timestamp_ms: int
    state: Optional[SessionState] = None
    result: Optional[ASRResult] = None
    error: Optional[str] = None


Listener = Callable[[SessionEvent], None]


# =============================================================================
# Registry
# =============================================================================

class EventRegistry:
    """Mapping from event type to an ordered list of listeners."""

    def __init__(self) -> None:
        self._listeners: dict[SessionEventType, list[Listener]] = {
            t: [] for t in SessionEventType
        }

    def on(self, event_type: SessionEventType | str, listener: Listener) -> None:
        """Subscribe; the same listener may be registered more than once."""
        self._listeners[SessionEventType(event_type)].append(listener)

    def off(self, event_type: SessionEventType | str, listener: Listener) -> None:
        """Remove the earliest registration of `listener`; unknown listeners are ignored."""
        listeners = self._listeners[SessionEventType(event_type)]
        if listener in listeners:
            listeners.remove(listener)

    def emit(self, event: SessionEvent) -> None:
        # Copy: listeners may unsubscribe while being notified
        for listener in tuple(self._listeners[event.type]):
            try:
                listener(event)
            except Exception as e:  # pylint: disable=broad-exception-caught
                log_event({
                    "event_type": "EVENT_LISTENER_FAILED",
                    "level": "error",
                    "session_event": event.type.value,
                    "error": repr(e),
                })
