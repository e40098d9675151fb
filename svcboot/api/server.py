"""FastAPI router for svcboot services.

The router is the request handler the lifecycle manager serves. It ships
with a single fixed route:

- Prometheus metrics (/metrics)

Services register their own routes on the returned application.

Usage:
    registry = create_registry()
    router = create_router(registry)

    @router.get("/hello")
    async def hello():
        return {"hello": "world"}
"""

from fastapi import FastAPI, Request, Response
from prometheus_client import CollectorRegistry

from svcboot.observability.logging import get_logger
from svcboot.observability.metrics import (
    get_metrics_content_type,
    get_metrics_output,
)

logger = get_logger(__name__)


async def metrics(request: Request) -> Response:
    """Prometheus metrics endpoint.

    Returns the contents of the application registry in Prometheus
    exposition format for scraping.

    Returns:
        Plain text response in Prometheus format
    """
    registry: CollectorRegistry = request.app.state.registry
    try:
        return Response(
            content=get_metrics_output(registry),
            media_type=get_metrics_content_type(),
        )
    except Exception as e:
        logger.error("metrics_export_error", error=str(e), exc_info=True)
        return Response(
            content=f"# Error exporting metrics: {e}\n",
            media_type="text/plain",
            status_code=500,
        )


def create_router(registry: CollectorRegistry, title: str = "svcboot") -> FastAPI:
    """Create the application router with ``GET /metrics`` registered.

    Args:
        registry: Registry served on /metrics
        title: Application title shown in the OpenAPI schema

    Returns:
        FastAPI application usable as an ASGI handler
    """
    router = FastAPI(
        title=title,
        docs_url=None,
        redoc_url=None,
        openapi_url=None,
    )
    router.state.registry = registry
    router.add_api_route(
        "/metrics",
        metrics,
        methods=["GET"],
        include_in_schema=False,
    )
    return router
