"""
Server lifecycle exceptions.

Clean shutdown is not an error and has no exception type. Everything that
goes wrong while starting or stopping a server derives from
``LifecycleError`` so callers can handle the whole family at once.
"""

from typing import Set


class LifecycleError(Exception):
    """
    Base exception for all server lifecycle errors.
    """

    pass


class InvalidTransitionError(LifecycleError):
    """
    Raised when the server is moved between states the lifecycle forbids.

    Attributes:
        from_state: The state being transitioned from
        to_state: The state being transitioned to
        allowed_transitions: Set of valid transitions from from_state

    Example:
        >>> raise InvalidTransitionError(
        ...     message="Cannot transition from stopped to starting",
        ...     from_state="stopped",
        ...     to_state="starting",
        ...     allowed_transitions=set()
        ... )
    """

    def __init__(
        self,
        message: str,
        from_state: str,
        to_state: str,
        allowed_transitions: Set[str]
    ):
        super().__init__(message)
        self.from_state = from_state
        self.to_state = to_state
        self.allowed_transitions = allowed_transitions


class ForcedShutdownError(LifecycleError):
    """
    Raised when in-flight requests outlive the shutdown deadline.

    The server has been stopped by the time this is raised; requests that
    were still running were cancelled.

    Attributes:
        timeout: The deadline that was exceeded, in seconds
        pending_requests: Number of requests abandoned at the deadline
    """

    def __init__(self, timeout: float, pending_requests: int = 0):
        super().__init__(
            f"Server forced to shutdown: graceful shutdown exceeded {timeout:g}s "
            f"({pending_requests} request(s) abandoned)"
        )
        self.timeout = timeout
        self.pending_requests = pending_requests


class ServerStartError(LifecycleError):
    """
    Raised when the listener cannot bind or serve.

    Only surfaced to the caller when start errors are configured to
    propagate; otherwise the failure is logged and the caller keeps
    waiting for a termination signal.

    Attributes:
        port: The port the server tried to listen on
    """

    def __init__(self, port: int, reason: str):
        super().__init__(f"Server failed to start on port {port}: {reason}")
        self.port = port
        self.reason = reason
