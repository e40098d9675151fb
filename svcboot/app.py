"""
Application bootstrap: logger, router and metrics registry in one bundle.

`init_app()` wires the three collaborators every service needs and hands
back an `App`. Services add their own routes to `app.router`, then call
`app.run_server_with_graceful_shutdown()` from their entrypoint, or await
`app.serve()` when they already run an event loop.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Optional

import structlog
from fastapi import FastAPI
from prometheus_client import CollectorRegistry

from svcboot.api.server import create_router
from svcboot.config import SvcbootConfig
from svcboot.lifecycle.manager import LifecycleManager, create_lifecycle_metrics
from svcboot.lifecycle.signals import ShutdownTrigger
from svcboot.observability.logging import configure_logging, get_logger, sync_logging
from svcboot.observability.metrics import LifecycleMetrics, create_registry


@dataclass
class App:
    """
    Bootstrapped application.

    Attributes:
        logger: Structured logger for the service
        router: ASGI router, ``GET /metrics`` pre-registered
        registry: Prometheus registry served on /metrics
        config: Resolved configuration
        lifecycle_metrics: Server lifecycle metrics shared by every run
    """

    logger: structlog.stdlib.BoundLogger
    router: FastAPI
    registry: CollectorRegistry
    config: SvcbootConfig
    lifecycle_metrics: LifecycleMetrics

    def create_manager(
        self,
        port: Optional[int] = None,
        trigger: Optional[ShutdownTrigger] = None,
    ) -> LifecycleManager:
        """Build a lifecycle manager serving the router with the configured settings."""
        server = self.config.server
        return LifecycleManager(
            self.router,
            server.port if port is None else port,
            host=server.host,
            shutdown_timeout=server.shutdown_timeout,
            surface_start_errors=server.surface_start_errors,
            access_log=server.access_log,
            metrics=self.lifecycle_metrics,
            trigger=trigger,
        )

    async def serve(
        self,
        port: Optional[int] = None,
        trigger: Optional[ShutdownTrigger] = None,
    ) -> None:
        """Serve the router until a termination signal, then shut down gracefully."""
        await self.create_manager(port, trigger).run()

    def run_server_with_graceful_shutdown(self, port: Optional[int] = None) -> None:
        """
        Blocking entry point: run the server until SIGINT/SIGTERM.

        Raises:
            ForcedShutdownError: in-flight requests outlived the shutdown deadline
        """
        try:
            asyncio.run(self.serve(port))
        finally:
            self.sync()

    def sync(self) -> None:
        """Flush buffered log output."""
        sync_logging()


def init_app(config: Optional[SvcbootConfig] = None) -> App:
    """
    Configure logging and build the router and metrics registry.

    Args:
        config: Resolved configuration; defaults are used when omitted

    Returns:
        App with ``GET /metrics`` serving the process, platform and GC collectors
    """
    config = config or SvcbootConfig()
    configure_logging(
        level=config.logging.level,
        format=config.logging.format,
        log_file=config.logging.file,
    )
    logger = get_logger("svcboot")

    registry = create_registry()
    router = create_router(registry)

    logger.debug("app_initialized", routes=[route.path for route in router.routes])
    return App(
        logger=logger,
        router=router,
        registry=registry,
        config=config,
        lifecycle_metrics=create_lifecycle_metrics(registry),
    )


__all__ = ["App", "init_app"]
