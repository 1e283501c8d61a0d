"""
Connection phase tracking for the streaming recognition client.

Tracked separately from the session state machine: the session manager
owns SessionState, the protocol client owns ConnectionPhase.

    DISCONNECTED -> CONNECTING -> CONNECTED -> CLOSING -> DISCONNECTED
"""
from enum import Enum


class ConnectionPhase(str, Enum):
    """
    Protocol client connection lifecycle.

    Only DISCONNECTED accepts a new connect() call.
    """
    DISCONNECTED = "disconnected"   # No transport
    CONNECTING = "connecting"       # Transport opening / init request in flight
    CONNECTED = "connected"         # Init request sent, audio accepted
    CLOSING = "closing"             # close() in progress
