"""Server lifecycle: start an ASGI app, wait for a termination signal,
shut it down within a deadline.
"""

from svcboot.lifecycle.exceptions import (
    ForcedShutdownError,
    InvalidTransitionError,
    LifecycleError,
    ServerStartError,
)
from svcboot.lifecycle.manager import (
    DEFAULT_SHUTDOWN_TIMEOUT,
    LifecycleManager,
    create_lifecycle_metrics,
    run_with_graceful_shutdown,
)
from svcboot.lifecycle.signals import DEFAULT_SIGNALS, ShutdownTrigger
from svcboot.lifecycle.states import ServerState, can_transition

__all__ = [
    "DEFAULT_SHUTDOWN_TIMEOUT",
    "DEFAULT_SIGNALS",
    "ForcedShutdownError",
    "InvalidTransitionError",
    "LifecycleError",
    "LifecycleManager",
    "ServerStartError",
    "ServerState",
    "ShutdownTrigger",
    "can_transition",
    "create_lifecycle_metrics",
    "run_with_graceful_shutdown",
]
