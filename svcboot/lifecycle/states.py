"""
Server lifecycle states and valid state transitions.

A server handle moves through these states exactly once:

    idle -> starting -> running -> shutting_down -> stopped | forced_stopped

``starting`` may also end in ``failed`` (the listener never came up) or
jump straight to ``shutting_down`` when a termination signal arrives before
the listener is bound. ``running`` ends in ``failed`` if the accept loop
dies before any shutdown was requested.
"""

from enum import Enum
from typing import Dict, Set

from svcboot.lifecycle.exceptions import InvalidTransitionError


class ServerState(str, Enum):
    """
    Lifecycle states of a server handle.

    State Categories:
        - Initial: IDLE
        - Active: STARTING, RUNNING, SHUTTING_DOWN
        - Terminal: STOPPED, FORCED_STOPPED, FAILED
    """

    IDLE = "idle"                       # Created, nothing bound yet
    STARTING = "starting"               # Serve task spawned, binding the listener
    RUNNING = "running"                 # Listener bound and accepting
    SHUTTING_DOWN = "shutting_down"     # Termination signal observed, draining
    STOPPED = "stopped"                 # Drained within the deadline
    FORCED_STOPPED = "forced_stopped"   # Deadline exceeded, requests abandoned
    FAILED = "failed"                   # Listener could not start


VALID_TRANSITIONS: Dict[ServerState, Set[ServerState]] = {
    ServerState.IDLE: {
        ServerState.STARTING,
    },

    ServerState.STARTING: {
        ServerState.RUNNING,
        ServerState.FAILED,
        ServerState.SHUTTING_DOWN,    # Signal raced ahead of the bind
    },

    ServerState.RUNNING: {
        ServerState.SHUTTING_DOWN,
        ServerState.FAILED,           # Accept loop died on its own
    },

    ServerState.SHUTTING_DOWN: {
        ServerState.STOPPED,
        ServerState.FORCED_STOPPED,
    },

    ServerState.STOPPED: set(),
    ServerState.FORCED_STOPPED: set(),
    ServerState.FAILED: set(),
}

TERMINAL_STATES = {
    ServerState.STOPPED,
    ServerState.FORCED_STOPPED,
    ServerState.FAILED,
}

ACTIVE_STATES = {
    ServerState.STARTING,
    ServerState.RUNNING,
    ServerState.SHUTTING_DOWN,
}


def can_transition(from_state: ServerState, to_state: ServerState) -> bool:
    """
    Check if state transition is valid.

    Args:
        from_state: Current server state
        to_state: Target server state

    Returns:
        True if the transition appears in VALID_TRANSITIONS

    Example:
        >>> can_transition(ServerState.RUNNING, ServerState.SHUTTING_DOWN)
        True
        >>> can_transition(ServerState.STOPPED, ServerState.RUNNING)
        False
    """
    return to_state in VALID_TRANSITIONS.get(from_state, set())


def validate_transition(from_state: ServerState, to_state: ServerState) -> None:
    """
    Raise InvalidTransitionError unless the transition is valid.
    """
    if not can_transition(from_state, to_state):
        allowed = {state.value for state in VALID_TRANSITIONS.get(from_state, set())}
        raise InvalidTransitionError(
            message=f"Cannot transition server from {from_state.value} to {to_state.value}",
            from_state=from_state.value,
            to_state=to_state.value,
            allowed_transitions=allowed,
        )


def is_terminal(state: ServerState) -> bool:
    return state in TERMINAL_STATES
