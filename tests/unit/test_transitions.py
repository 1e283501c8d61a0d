# pylint: disable=missing-module-docstring,missing-function-docstring

import pytest

from errors import InvalidStateError
from orchestrator.enums.state import SessionState
from orchestrator.transitions import TRANSITIONS, Trigger, can_transition, next_state


S = SessionState


@pytest.mark.parametrize(
    "state,trigger,expected",
    [
        (S.IDLE, Trigger.START, S.CONNECTING),
        (S.COMPLETED, Trigger.START, S.CONNECTING),
        (S.CONNECTING, Trigger.CONNECTED, S.READY),
        (S.CONNECTING, Trigger.CONNECT_FAILED, S.ERROR),
        (S.READY, Trigger.AUDIO, S.RECORDING),
        (S.RECORDING, Trigger.AUDIO, S.RECORDING),
        (S.READY, Trigger.STOP, S.PROCESSING),
        (S.RECORDING, Trigger.STOP, S.PROCESSING),
        (S.PROCESSING, Trigger.FINALIZED, S.COMPLETED),
        (S.PROCESSING, Trigger.FAILED, S.ERROR),
        (S.RECORDING, Trigger.TRANSPORT_LOST, S.ERROR),
    ],
)
def test_listed_transitions(state: SessionState, trigger: Trigger, expected: SessionState):
    assert next_state(state, trigger) is expected


@pytest.mark.parametrize("state", list(SessionState))
def test_cancel_from_any_state_returns_to_idle(state: SessionState):
    assert can_transition(state, Trigger.CANCEL)
    assert next_state(state, Trigger.CANCEL) is SessionState.IDLE


@pytest.mark.parametrize(
    "state,trigger",
    [
        (S.READY, Trigger.START),
        (S.RECORDING, Trigger.START),
        (S.PROCESSING, Trigger.START),
        (S.ERROR, Trigger.START),
        (S.IDLE, Trigger.STOP),
        (S.PROCESSING, Trigger.STOP),
        (S.COMPLETED, Trigger.AUDIO),
        (S.PROCESSING, Trigger.TRANSPORT_LOST),
    ],
)
def test_unlisted_pairs_are_invalid(state: SessionState, trigger: Trigger):
    assert not can_transition(state, trigger)
    with pytest.raises(InvalidStateError):
        next_state(state, trigger)


def test_error_is_only_left_by_cancel():
    assert not [key for key in TRANSITIONS if key[0] is SessionState.ERROR]
