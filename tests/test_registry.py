"""Subscriber registry and notification channel tests."""

import asyncio

import pytest

from spook.broadcast import SubscriberRegistry, open_channel


def test_send_fails_once_receiver_is_closed() -> None:
    """A closed receiver makes every later send fail."""
    sender, receiver = open_channel()

    assert sender.send() is True
    receiver.close()

    assert sender.closed is True
    assert sender.send() is False
    assert receiver.pending == 1


@pytest.mark.asyncio
async def test_signals_are_received_in_order() -> None:
    """Every send is received once."""
    sender, receiver = open_channel()
    sender.send()
    sender.send()

    await asyncio.wait_for(receiver.recv(), timeout=1.0)
    await asyncio.wait_for(receiver.recv(), timeout=1.0)
    assert receiver.pending == 0


@pytest.mark.asyncio
async def test_broadcast_compacts_failed_sends_preserving_order(registry: SubscriberRegistry) -> None:
    """N subscribers with K gone leaves N-K in registration order."""
    channels = [open_channel() for _ in range(6)]
    for sender, _ in channels:
        await registry.register(sender)
    for index in (1, 4):
        channels[index][1].close()

    notified = await registry.broadcast_and_compact()

    expected = [channels[i][0] for i in (0, 2, 3, 5)]
    assert notified == 4
    assert registry.senders == expected
    assert [channels[i][1].pending for i in (0, 2, 3, 5)] == [1, 1, 1, 1]


@pytest.mark.asyncio
async def test_broadcast_on_empty_registry(registry: SubscriberRegistry) -> None:
    """Broadcasting without subscribers is a no-op."""
    assert await registry.broadcast_and_compact() == 0
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_stale_entries_are_kept_until_next_broadcast(registry: SubscriberRegistry) -> None:
    """Closing a receiver does not touch the registry by itself."""
    sender, receiver = open_channel()
    await registry.register(sender)

    receiver.close()
    assert len(registry) == 1

    await registry.broadcast_and_compact()
    assert len(registry) == 0


@pytest.mark.asyncio
async def test_concurrent_registration_is_never_lost(registry: SubscriberRegistry) -> None:
    """Registrations racing a broadcast are neither lost nor duplicated."""
    existing = [open_channel() for _ in range(5)]
    for sender, _ in existing:
        await registry.register(sender)
    existing[0][1].close()
    existing[3][1].close()

    late = [open_channel() for _ in range(3)]
    await asyncio.gather(
        registry.broadcast_and_compact(),
        *(registry.register(sender) for sender, _ in late),
    )

    senders = registry.senders
    assert len(senders) == 3 + 3
    assert len({id(sender) for sender in senders}) == len(senders)
    assert all(sender in senders for sender, _ in late)
    assert [receiver.pending for _, receiver in late] == [0, 0, 0]


@pytest.mark.asyncio
async def test_registration_waits_for_in_flight_broadcast(registry: SubscriberRegistry) -> None:
    """A registration blocked behind the lock is deferred to the next broadcast."""
    first, first_rx = open_channel()
    await registry.register(first)

    late, late_rx = open_channel()
    async with registry._lock:
        register_task = asyncio.create_task(registry.register(late))
        await asyncio.sleep(0)
        assert len(registry) == 1
    await register_task

    assert len(registry) == 2
    await registry.broadcast_and_compact()
    assert first_rx.pending == 1
    assert late_rx.pending == 1
