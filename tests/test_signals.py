"""
Tests for the one-shot shutdown trigger.
"""

import asyncio
import os
import signal
import threading

import pytest

from svcboot.lifecycle.signals import DEFAULT_SIGNALS, ShutdownTrigger


def test_default_signals_are_interrupt_and_terminate():
    assert DEFAULT_SIGNALS == (signal.SIGINT, signal.SIGTERM)


@pytest.mark.asyncio
async def test_first_fire_wins():
    trigger = ShutdownTrigger()
    trigger.fire("first")
    trigger.fire("second")

    assert trigger.is_set()
    assert await trigger.wait() == "first"
    assert trigger.reason == "first"


@pytest.mark.asyncio
async def test_wait_blocks_until_fired():
    trigger = ShutdownTrigger()
    waiter = asyncio.create_task(trigger.wait())

    await asyncio.sleep(0.05)
    assert not waiter.done()

    trigger.fire("test")
    assert await asyncio.wait_for(waiter, timeout=1) == "test"


@pytest.mark.asyncio
async def test_fire_threadsafe_from_another_thread():
    trigger = ShutdownTrigger()
    waiter = asyncio.create_task(trigger.wait())
    await asyncio.sleep(0)

    thread = threading.Thread(target=trigger.fire_threadsafe, args=("worker",))
    thread.start()
    thread.join()

    assert await asyncio.wait_for(waiter, timeout=1) == "worker"


@pytest.mark.asyncio
@pytest.mark.skipif(not hasattr(signal, "SIGUSR1"), reason="POSIX signals only")
async def test_subscribed_signal_fires_trigger():
    trigger = ShutdownTrigger(signals=(signal.SIGUSR1,))
    previous = signal.getsignal(signal.SIGUSR1)

    with trigger.subscribed():
        os.kill(os.getpid(), signal.SIGUSR1)
        assert await asyncio.wait_for(trigger.wait(), timeout=1) == "SIGUSR1"

    assert signal.getsignal(signal.SIGUSR1) == previous
