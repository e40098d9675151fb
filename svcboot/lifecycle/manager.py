"""
Server lifecycle manager: run an ASGI app until a termination signal, then
drain it within a bounded deadline.

The request accept loop is ``uvicorn.Server.serve()`` running in its own
asyncio task. The caller's coroutine waits on a ``ShutdownTrigger`` and,
once it fires, asks uvicorn to stop and waits for in-flight requests to
finish. Requests still running when the deadline expires are cancelled
and the caller gets a ``ForcedShutdownError``.

Usage:
    manager = LifecycleManager(router, port=8080)
    await manager.run()        # returns on graceful shutdown

    # or, without keeping the manager around
    await run_with_graceful_shutdown(8080, router)
"""

from __future__ import annotations

import asyncio
import socket
from contextlib import contextmanager
from typing import Any, Iterator, Optional

import uvicorn
from prometheus_client import CollectorRegistry

from svcboot.lifecycle.exceptions import ForcedShutdownError, ServerStartError
from svcboot.lifecycle.signals import ShutdownTrigger
from svcboot.lifecycle.states import ServerState, validate_transition
from svcboot.observability.logging import get_logger
from svcboot.observability.metrics import LifecycleMetrics

logger = get_logger(__name__)

DEFAULT_SHUTDOWN_TIMEOUT = 5.0
# Upper bound on the wait for uvicorn to unwind once requests are cancelled.
FORCE_EXIT_GRACE = 1.0

MIN_PORT = 0
MAX_PORT = 65535


class _SignalFreeServer(uvicorn.Server):
    """uvicorn server that leaves signal handling to the lifecycle manager."""

    def install_signal_handlers(self) -> None:
        pass

    @contextmanager
    def capture_signals(self) -> Iterator[None]:
        yield


class LifecycleManager:
    """
    Owns one server handle from start to stop.

    A manager runs at most once; calling ``run`` again raises
    ``InvalidTransitionError``.

    Attributes:
        handler: ASGI application serving requests
        port: Requested port (0 binds an ephemeral port)
        host: Interface to bind
        shutdown_timeout: Seconds allowed for graceful shutdown
        surface_start_errors: Raise ServerStartError instead of only logging
        trigger: Shutdown trigger the manager waits on
        state: Current ServerState
        bound_port: Actual listening port once bound, else None
    """

    def __init__(
        self,
        handler: Any,
        port: int,
        *,
        host: str = "0.0.0.0",
        shutdown_timeout: float = DEFAULT_SHUTDOWN_TIMEOUT,
        surface_start_errors: bool = False,
        access_log: bool = False,
        backlog: int = 2048,
        metrics: Optional[LifecycleMetrics] = None,
        trigger: Optional[ShutdownTrigger] = None,
    ):
        if isinstance(port, bool) or not isinstance(port, int) or not MIN_PORT <= port <= MAX_PORT:
            raise ValueError(f"Port must be an integer in {MIN_PORT}-{MAX_PORT}, got {port!r}")
        if shutdown_timeout <= 0:
            raise ValueError(f"Shutdown timeout must be positive, got {shutdown_timeout!r}")

        self.handler = handler
        self.port = port
        self.host = host
        self.shutdown_timeout = float(shutdown_timeout)
        self.surface_start_errors = surface_start_errors
        self.access_log = access_log
        self.backlog = backlog
        self.trigger = trigger or ShutdownTrigger()

        self.state = ServerState.IDLE
        self.bound_port: Optional[int] = None
        self._start_error: Optional[str] = None
        self._server: Optional[_SignalFreeServer] = None
        self._ready = asyncio.Event()

        self._metrics = metrics
        if self._metrics is not None:
            self._metrics.record_state(self.state.value)

    async def wait_until_ready(self) -> Optional[int]:
        """
        Wait until the listener is bound or has failed to start.

        Returns:
            The bound port, or None if the listener could not start
        """
        await self._ready.wait()
        return self.bound_port

    async def run(self) -> None:
        """
        Serve until the shutdown trigger fires, then shut down gracefully.

        Raises:
            ForcedShutdownError: in-flight requests outlived the deadline
            ServerStartError: the listener failed and start errors are surfaced
            InvalidTransitionError: the manager has already been run
        """
        self._transition(ServerState.STARTING)
        logger.info("server_starting", port=self.port, host=self.host)

        config = uvicorn.Config(
            self.handler,
            host=self.host,
            port=self.port,
            log_config=None,
            access_log=self.access_log,
            backlog=self.backlog,
        )
        self._server = _SignalFreeServer(config)

        with self.trigger.subscribed():
            serve_task = asyncio.create_task(self._serve(), name=f"svcboot-serve-{self.port}")
            try:
                reason = await self._wait_for_shutdown_request(serve_task)
                await self._shutdown(serve_task, reason)
            finally:
                if not serve_task.done():
                    await self._abort(serve_task)

    async def _wait_for_shutdown_request(self, serve_task: asyncio.Task) -> str:
        if not self.surface_start_errors:
            return await self.trigger.wait()

        waiter = asyncio.ensure_future(self.trigger.wait())
        try:
            done, _ = await asyncio.wait(
                {waiter, serve_task}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            if not waiter.done():
                waiter.cancel()
        if waiter in done:
            return waiter.result()
        raise ServerStartError(self.port, self._start_error or "server exited before shutdown")

    async def _serve(self) -> None:
        """Bind the listener and run the uvicorn accept loop."""
        assert self._server is not None
        try:
            sock = self._bind()
        except OSError as exc:
            self._fail(exc)
            return

        self.bound_port = sock.getsockname()[1]
        if self.state is not ServerState.STARTING:
            # Shutdown was requested before the listener came up.
            sock.close()
            self._ready.set()
            return

        self._transition(ServerState.RUNNING)
        self._ready.set()
        logger.info("server_listening", port=self.bound_port, host=self.host)

        try:
            await self._server.serve(sockets=[sock])
        # uvicorn calls sys.exit() when its startup fails
        except (Exception, SystemExit) as exc:
            self._fail(exc)
            return
        finally:
            sock.close()

        if not self._server.started and self.state is ServerState.RUNNING:
            self._fail("server exited during startup")

    def _bind(self) -> socket.socket:
        family = socket.AF_INET6 if ":" in self.host else socket.AF_INET
        sock = socket.socket(family, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self.host, self.port))
            sock.listen(self.backlog)
        except OSError:
            sock.close()
            raise
        sock.setblocking(False)
        return sock

    def _fail(self, error: Any) -> None:
        self._start_error = str(error) or type(error).__name__
        logger.error("server_failed", port=self.port, error=self._start_error)
        if self.state in (ServerState.STARTING, ServerState.RUNNING):
            self._transition(ServerState.FAILED)
        self._ready.set()

    async def _shutdown(self, serve_task: asyncio.Task, reason: str) -> None:
        assert self._server is not None
        logger.info("server_shutting_down", signal=reason, timeout=self.shutdown_timeout)

        if self.state is ServerState.FAILED:
            logger.info("server_already_stopped", port=self.port, error=self._start_error)
            return

        self._transition(ServerState.SHUTTING_DOWN)
        with self._track_shutdown() as result:
            self._server.should_exit = True
            try:
                await asyncio.wait_for(asyncio.shield(serve_task), timeout=self.shutdown_timeout)
            except asyncio.TimeoutError:
                pending = self._force_exit()
                await self._await_forced_exit(serve_task)
                self._transition(ServerState.FORCED_STOPPED)
                error = ForcedShutdownError(self.shutdown_timeout, pending)
                logger.error("server_forced_shutdown", port=self.bound_port, error=str(error))
                raise error from None

            self._transition(ServerState.STOPPED)
            result["outcome"] = "graceful"

        logger.info("server_exited_gracefully", port=self.bound_port)

    def _force_exit(self) -> int:
        """Tell uvicorn to stop waiting and cancel the requests still running."""
        assert self._server is not None
        self._server.force_exit = True
        tasks = list(self._server.server_state.tasks)
        for task in tasks:
            task.cancel()
        return len(tasks)

    async def _await_forced_exit(self, serve_task: asyncio.Task) -> None:
        try:
            await asyncio.wait_for(serve_task, timeout=FORCE_EXIT_GRACE)
        except asyncio.TimeoutError:
            logger.warning("server_task_abandoned", grace=FORCE_EXIT_GRACE)

    async def _abort(self, serve_task: asyncio.Task) -> None:
        """Stop the accept loop when ``run`` unwinds without a shutdown outcome."""
        if self._server is not None:
            self._server.should_exit = True
            self._force_exit()
        try:
            await asyncio.wait_for(serve_task, timeout=FORCE_EXIT_GRACE)
        except asyncio.TimeoutError:
            logger.warning("server_task_abandoned", grace=FORCE_EXIT_GRACE)

    @contextmanager
    def _track_shutdown(self) -> Iterator[dict]:
        if self._metrics is None:
            yield {"outcome": "forced"}
            return
        with self._metrics.track_shutdown() as result:
            yield result

    def _transition(self, to_state: ServerState) -> None:
        validate_transition(self.state, to_state)
        logger.debug("server_state_changed", from_state=self.state.value, to_state=to_state.value)
        self.state = to_state
        if self._metrics is not None:
            self._metrics.record_state(to_state.value)


def create_lifecycle_metrics(registry: CollectorRegistry) -> LifecycleMetrics:
    """Register the server lifecycle metrics into ``registry``."""
    return LifecycleMetrics(registry, [state.value for state in ServerState])


async def run_with_graceful_shutdown(
    port: int,
    handler: Any,
    **kwargs: Any,
) -> None:
    """
    Serve ``handler`` on ``port`` until SIGINT/SIGTERM, then shut down.

    Keyword arguments are passed to ``LifecycleManager``.

    Raises:
        ForcedShutdownError: shutdown did not complete within the deadline
    """
    await LifecycleManager(handler, port, **kwargs).run()


__all__ = [
    "DEFAULT_SHUTDOWN_TIMEOUT",
    "FORCE_EXIT_GRACE",
    "LifecycleManager",
    "create_lifecycle_metrics",
    "run_with_graceful_shutdown",
]
