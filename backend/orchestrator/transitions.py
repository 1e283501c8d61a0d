"""
Session transition table.

(state, trigger) -> new_state

Rules:
- Pure: no side effects, no IO, no clocks.
- Total over the table: any pair not listed is an invalid call and raises
  InvalidStateError; CANCEL is accepted from every state.
"""

from __future__ import annotations

from enum import Enum
from typing import Mapping

from errors import InvalidStateError
from orchestrator.enums.state import SessionState


class Trigger(str, Enum):
    """Facts that drive the session state machine."""

    START = "start"
    CONNECTED = "connected"
    CONNECT_FAILED = "connect_failed"
    AUDIO = "audio"
    STOP = "stop"
    FINALIZED = "finalized"
    FAILED = "failed"
    TRANSPORT_LOST = "transport_lost"
    CANCEL = "cancel"


S = SessionState
T = Trigger

TRANSITIONS: Mapping[tuple[SessionState, Trigger], SessionState] = {
    # Session start (Completed is settled and may start again)
    (S.IDLE, T.START): S.CONNECTING,
    (S.COMPLETED, T.START): S.CONNECTING,

    # Connect outcome
    (S.CONNECTING, T.CONNECTED): S.READY,
    (S.CONNECTING, T.CONNECT_FAILED): S.ERROR,

    # Audio
    (S.READY, T.AUDIO): S.RECORDING,
    (S.RECORDING, T.AUDIO): S.RECORDING,

    # Stop / finalization
    (S.READY, T.STOP): S.PROCESSING,
    (S.RECORDING, T.STOP): S.PROCESSING,
    (S.PROCESSING, T.FINALIZED): S.COMPLETED,
    (S.PROCESSING, T.FAILED): S.ERROR,

    # Server hang-up while the session is live
    (S.READY, T.TRANSPORT_LOST): S.ERROR,
    (S.RECORDING, T.TRANSPORT_LOST): S.ERROR,
}


def can_transition(state: SessionState, trigger: Trigger) -> bool:
    return trigger is Trigger.CANCEL or (state, trigger) in TRANSITIONS


def next_state(state: SessionState, trigger: Trigger) -> SessionState:
    """
    Look up the target state.

    Raises:
        InvalidStateError if the trigger is not valid in `state`.
    """
    if trigger is Trigger.CANCEL:
        return SessionState.IDLE
    try:
        return TRANSITIONS[(state, trigger)]
    except KeyError:
        raise InvalidStateError(
            f"'{trigger.value}' is not valid in state '{state.value}'"
        ) from None
