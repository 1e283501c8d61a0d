"""
Shared error taxonomy for the ASR session core.

Setup failures (connect, start_session) are raised to the caller.
Failures during an active session travel as annotated results / events;
see protocol.binary for the frame-level errors.
"""

from __future__ import annotations


class VoiceASRError(Exception):
    """Base class for all errors raised by this package."""


class InvalidStateError(VoiceASRError):
    """
    An operation was invoked in a state that does not allow it.

    Always raised synchronously from a guard; never retried internally.
    """


class TransportError(VoiceASRError):
    """The underlying connection could not be established or was lost."""


class ResultTimeoutError(VoiceASRError, TimeoutError):
    """No final (and no partial) result arrived within the bounded wait."""


class ServerProtocolError(VoiceASRError):
    """
    Error frame reported by the remote recognition service.

    Carried as a value, not raised across the session boundary:
    str(err) is the exact text placed in the soft error result.
    """

    def __init__(self, code: int, message: str) -> None:
        super().__init__(f"{code}: {message}")
        self.code = code
        self.message = message


__all__ = [
    "VoiceASRError",
    "InvalidStateError",
    "TransportError",
    "ResultTimeoutError",
    "ServerProtocolError",
]
