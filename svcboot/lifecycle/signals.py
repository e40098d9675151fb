"""
One-shot shutdown trigger over OS termination signals.

Signal subscription is process-wide, so the lifecycle manager never talks
to ``signal`` directly. It waits on a ``ShutdownTrigger`` instead, which
tests can fire by hand without delivering a real signal.
"""

from __future__ import annotations

import asyncio
import signal
from contextlib import contextmanager
from typing import Any, Dict, Iterable, Iterator, List, Optional

from svcboot.observability.logging import get_logger

logger = get_logger(__name__)

DEFAULT_SIGNALS = (signal.SIGINT, signal.SIGTERM)


class ShutdownTrigger:
    """
    Consumable-once shutdown request.

    The first call to ``fire`` (from a signal handler or from code) wins and
    its reason is kept; later calls are ignored.

    Example:
        >>> trigger = ShutdownTrigger()
        >>> with trigger.subscribed():
        ...     await trigger.wait()
        >>> trigger.reason
        'SIGTERM'
    """

    def __init__(self, signals: Iterable[signal.Signals] = DEFAULT_SIGNALS):
        self.signals = tuple(signals)
        self._event = asyncio.Event()
        self._reason: Optional[str] = None
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._loop_handlers: List[signal.Signals] = []
        self._previous_handlers: Dict[signal.Signals, Any] = {}

    @property
    def reason(self) -> Optional[str]:
        """What fired the trigger (a signal name or a caller-supplied reason)."""
        return self._reason

    def is_set(self) -> bool:
        return self._event.is_set()

    def fire(self, reason: str = "manual") -> None:
        if self._event.is_set():
            logger.debug("shutdown_trigger_ignored", reason=reason, first_reason=self._reason)
            return
        self._reason = reason
        self._event.set()

    def fire_threadsafe(self, reason: str = "manual") -> None:
        """Fire from a thread other than the one running the event loop."""
        if self._loop is None:
            self.fire(reason)
        else:
            self._loop.call_soon_threadsafe(self.fire, reason)

    async def wait(self) -> str:
        """Suspend until the trigger fires; return the reason."""
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        await self._event.wait()
        return self._reason or "manual"

    def subscribe(self) -> None:
        """
        Route the configured signals to ``fire``.

        Must be called with an event loop running. Uses loop signal handlers
        where the platform supports them and ``signal.signal`` otherwise.
        Outside the main thread no signal can be subscribed; the trigger
        then only fires programmatically.
        """
        loop = asyncio.get_running_loop()
        self._loop = loop
        for sig in self.signals:
            try:
                loop.add_signal_handler(sig, self.fire, sig.name)
                self._loop_handlers.append(sig)
            except NotImplementedError:
                self._previous_handlers[sig] = signal.signal(sig, self._handle_signal)
            except RuntimeError as exc:
                logger.warning("signal_subscription_unavailable", signal=sig.name, error=str(exc))

    def unsubscribe(self) -> None:
        """Remove handlers installed by ``subscribe``."""
        if self._loop is not None:
            for sig in self._loop_handlers:
                self._loop.remove_signal_handler(sig)
        self._loop_handlers.clear()
        for sig, previous in self._previous_handlers.items():
            signal.signal(sig, previous)
        self._previous_handlers.clear()

    @contextmanager
    def subscribed(self) -> Iterator["ShutdownTrigger"]:
        self.subscribe()
        try:
            yield self
        finally:
            self.unsubscribe()

    def _handle_signal(self, signum: int, frame: Any) -> None:
        self.fire_threadsafe(signal.Signals(signum).name)


__all__ = ["DEFAULT_SIGNALS", "ShutdownTrigger"]
