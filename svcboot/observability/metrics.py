"""Prometheus metrics for svcboot services.

Every application owns its own ``CollectorRegistry`` so that several apps
(or several tests) can coexist in one process. The registry is seeded with
the Python runtime collectors and served as-is on ``GET /metrics``.

Usage:
    from svcboot.observability.metrics import create_registry, get_metrics_output

    registry = create_registry()
    output = get_metrics_output(registry)

    lifecycle = LifecycleMetrics(registry)
    lifecycle.record_state("running")
    with lifecycle.track_shutdown() as outcome:
        ...
        outcome["outcome"] = "graceful"
"""

import time
from contextlib import contextmanager
from typing import Dict, Iterable, Iterator

from prometheus_client import (
    CONTENT_TYPE_LATEST,
    CollectorRegistry,
    Counter,
    Enum,
    GCCollector,
    Histogram,
    PlatformCollector,
    ProcessCollector,
    generate_latest,
)


METRICS_NAMESPACE = "svcboot"

SHUTDOWN_OUTCOMES = ("graceful", "forced")


def create_registry() -> CollectorRegistry:
    """Create a registry with the process, platform and GC collectors.

    Returns:
        A fresh ``CollectorRegistry`` not shared with the global default one
    """
    registry = CollectorRegistry()
    ProcessCollector(registry=registry)
    PlatformCollector(registry=registry)
    GCCollector(registry=registry)
    return registry


def get_metrics_output(registry: CollectorRegistry) -> bytes:
    """Get Prometheus-formatted metrics output for ``registry``."""
    return generate_latest(registry)


def get_metrics_content_type() -> str:
    return CONTENT_TYPE_LATEST


class LifecycleMetrics:
    """Server lifecycle metrics registered into an application registry.

    Attributes:
        state: Enum metric mirroring the server lifecycle state
        shutdowns_total: Counter of shutdowns by outcome
        shutdown_duration_seconds: Histogram of shutdown durations
    """

    def __init__(self, registry: CollectorRegistry, states: Iterable[str]):
        self.state = Enum(
            "server_state",
            "Lifecycle state of the HTTP server",
            states=list(states),
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
        self.shutdowns_total = Counter(
            "server_shutdowns_total",
            "Total number of server shutdowns by outcome",
            ["outcome"],
            namespace=METRICS_NAMESPACE,
            registry=registry,
        )
        self.shutdown_duration_seconds = Histogram(
            "server_shutdown_duration_seconds",
            "Time spent draining the server after a termination signal",
            namespace=METRICS_NAMESPACE,
            registry=registry,
            buckets=(0.01, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 10.0, 30.0, float("inf")),
        )
        for outcome in SHUTDOWN_OUTCOMES:
            self.shutdowns_total.labels(outcome=outcome)

    def record_state(self, state: str) -> None:
        self.state.state(state)

    @contextmanager
    def track_shutdown(self) -> Iterator[Dict[str, str]]:
        """Time a shutdown and count it under the outcome set by the caller.

        The caller stores ``"graceful"`` or ``"forced"`` under the
        ``"outcome"`` key of the yielded dict. The outcome defaults to
        ``"forced"`` if the block raises before setting it.
        """
        result = {"outcome": "forced"}
        start_time = time.monotonic()
        try:
            yield result
        finally:
            self.shutdown_duration_seconds.observe(time.monotonic() - start_time)
            self.shutdowns_total.labels(outcome=result["outcome"]).inc()


__all__ = [
    "METRICS_NAMESPACE",
    "SHUTDOWN_OUTCOMES",
    "LifecycleMetrics",
    "create_registry",
    "get_metrics_output",
    "get_metrics_content_type",
]
