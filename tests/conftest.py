"""
Global pytest configuration for svcboot.

This file provides shared fixtures and enforces Python version requirements.
"""

from __future__ import annotations

import asyncio
import sys

import pytest
from fastapi import FastAPI

from svcboot.config import LoggingConfig, ServerConfig, SvcbootConfig
from svcboot.observability.logging import configure_logging

_MIN_PY_VERSION = (3, 11)


def _verify_python_version() -> str:
    """Return the interpreter version string or exit if <3.11."""
    version_info = sys.version_info
    version_str = ".".join(map(str, version_info[:3]))
    if version_info < _MIN_PY_VERSION:
        pytest.exit(
            f"ERROR: pytest must run on Python 3.11+ (detected {version_str}).",
            returncode=1,
        )
    return version_str


def pytest_report_header(config: pytest.Config) -> str:
    version_str = _verify_python_version()
    return f"Python interpreter verified for pytest: {version_str}"


def pytest_configure(config: pytest.Config) -> None:
    """Register project markers to prevent unknown marker warnings."""
    markers = {
        "unit": "Unit tests that should execute quickly.",
        "integration": "Integration tests binding real sockets.",
        "slow": "Slow tests waiting out the default shutdown deadline.",
    }
    for name, description in markers.items():
        config.addinivalue_line("markers", f"{name}: {description}")


@pytest.fixture(autouse=True)
def reset_logging():
    """Leave the root logger with plain stdout handlers after each test."""
    yield
    configure_logging(level="INFO", format="console")


@pytest.fixture
def test_config() -> SvcbootConfig:
    """Loopback, ephemeral-port configuration."""
    return SvcbootConfig(
        server=ServerConfig(host="127.0.0.1", port=0, shutdown_timeout=1.0),
        logging=LoggingConfig(level="DEBUG", format="console"),
    )


@pytest.fixture
def slow_router() -> FastAPI:
    """
    Router whose /slow handler blocks for 10 seconds.

    ``router.state.started`` is set once a request has entered the handler.
    """
    router = FastAPI()
    router.state.started = asyncio.Event()

    @router.get("/slow")
    async def slow() -> dict:
        router.state.started.set()
        await asyncio.sleep(10)
        return {"status": "done"}

    @router.get("/fast")
    async def fast() -> dict:
        return {"status": "ok"}

    return router
