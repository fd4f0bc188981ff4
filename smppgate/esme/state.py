"""
Session state for the ESME state machine.

The connection and bind status is one discriminated value rather than a
set of booleans. Transitions are checked against an explicit table so an
out-of-order transport event can never produce a combination such as
"bound while reconnecting".
"""

from __future__ import annotations

from enum import Enum


class SessionState(str, Enum):
    """Connection lifecycle states."""

    IDLE = "idle"
    CONNECTING = "connecting"
    CONNECTED = "connected"
    BINDING = "binding"
    BOUND = "bound"
    RECONNECTING = "reconnecting"


# Allowed transitions. IDLE is reachable from everywhere through stop().
TRANSITIONS: dict[SessionState, frozenset[SessionState]] = {
    SessionState.IDLE: frozenset({SessionState.CONNECTING}),
    SessionState.CONNECTING: frozenset(
        {SessionState.CONNECTED, SessionState.RECONNECTING, SessionState.IDLE}
    ),
    SessionState.CONNECTED: frozenset(
        {SessionState.BINDING, SessionState.RECONNECTING, SessionState.IDLE}
    ),
    SessionState.BINDING: frozenset(
        {SessionState.BOUND, SessionState.RECONNECTING, SessionState.IDLE}
    ),
    SessionState.BOUND: frozenset({SessionState.RECONNECTING, SessionState.IDLE}),
    SessionState.RECONNECTING: frozenset({SessionState.CONNECTING, SessionState.IDLE}),
}


class InvalidTransition(Exception):
    """Raised when a state change is not in the transition table."""

    def __init__(self, source: SessionState, target: SessionState):
        self.source = source
        self.target = target
        super().__init__(f"Invalid session transition: {source.value} -> {target.value}")


def can_transition(source: SessionState, target: SessionState) -> bool:
    """Check whether source -> target is allowed."""
    return target in TRANSITIONS[source]


def check_transition(source: SessionState, target: SessionState) -> None:
    """
    Validate a transition.

    Raises:
        InvalidTransition: If the table does not allow it
    """
    if not can_transition(source, target):
        raise InvalidTransition(source, target)


def is_connected(state: SessionState) -> bool:
    """True while a transport connection is established."""
    return state in {SessionState.CONNECTED, SessionState.BINDING, SessionState.BOUND}
