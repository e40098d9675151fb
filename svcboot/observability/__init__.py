"""Observability for svcboot services.

Components:
    - logging: Structured logging with structlog
    - metrics: Prometheus registry, runtime collectors and lifecycle metrics

Usage:
    from svcboot.observability import get_logger, create_registry

    logger = get_logger(__name__)
    logger.info("server_starting", port=8080)

    registry = create_registry()
"""

from svcboot.observability.logging import (
    configure_logging,
    get_logger,
    sync_logging,
)
from svcboot.observability.metrics import (
    LifecycleMetrics,
    create_registry,
    get_metrics_content_type,
    get_metrics_output,
)

__all__ = [
    "configure_logging",
    "get_logger",
    "sync_logging",
    "LifecycleMetrics",
    "create_registry",
    "get_metrics_content_type",
    "get_metrics_output",
]
