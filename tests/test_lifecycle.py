"""Shutdown coordinator tests."""

import asyncio

import pytest

from spook.lifecycle import GracefulShutdown


@pytest.mark.asyncio
async def test_trigger_releases_waiters() -> None:
    """Waiting tasks resume once shutdown is triggered."""
    shutdown = GracefulShutdown()
    waiter = asyncio.create_task(shutdown.wait_for_trigger())
    await asyncio.sleep(0)
    assert not waiter.done()

    shutdown.trigger()
    shutdown.trigger()

    await asyncio.wait_for(waiter, timeout=1.0)
    assert shutdown.is_triggered is True
