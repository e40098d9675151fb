"""
svcboot: bootstrap scaffolding for small HTTP services.

* `svcboot.app` - `init_app()` builds the logger, router and metrics registry.
* `svcboot.lifecycle` - runs the router until SIGINT/SIGTERM and shuts it
  down within a deadline.
* `svcboot.config` - settings from overrides, `SVCBOOT_*` env vars and
  `svcboot.toml`.
"""

from __future__ import annotations

from svcboot.app import App, init_app
from svcboot.config import SvcbootConfig, load_config
from svcboot.lifecycle import (
    ForcedShutdownError,
    LifecycleManager,
    ServerStartError,
    ShutdownTrigger,
    run_with_graceful_shutdown,
)

__version__ = "0.1.0"

__all__ = [
    "App",
    "ForcedShutdownError",
    "LifecycleManager",
    "ServerStartError",
    "ShutdownTrigger",
    "SvcbootConfig",
    "__version__",
    "init_app",
    "load_config",
    "run_with_graceful_shutdown",
]
