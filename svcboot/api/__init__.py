"""HTTP router for svcboot services."""

from svcboot.api.server import create_router

__all__ = ["create_router"]
