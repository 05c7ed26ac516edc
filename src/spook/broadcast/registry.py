"""Shared registry of subscriber notification senders."""
import asyncio

import structlog

from spook.broadcast.channel import NotificationSender

logger = structlog.get_logger()


class SubscriberRegistry:
    """Lock-guarded ordered list of subscriber senders.

    Entries may be stale between broadcasts. A stale sender is dropped
    lazily by the next broadcast, when sending to it fails. The lock is
    only held for in-memory list work, never across socket I/O.
    """

    def __init__(self) -> None:
        """Initialize an empty registry."""
        self._senders: list[NotificationSender] = []
        self._lock = asyncio.Lock()

    def __len__(self) -> int:
        return len(self._senders)

    @property
    def senders(self) -> list[NotificationSender]:
        """Snapshot of the registered senders, in registration order."""
        return self._senders.copy()

    async def register(self, sender: NotificationSender) -> None:
        """Append a new subscriber sender.

        Args:
            sender: Sending half of the subscriber's channel.
        """
        async with self._lock:
            self._senders.append(sender)

    async def broadcast_and_compact(self) -> int:
        """Notify every subscriber and forget those that are gone.

        Sending and compaction happen in one critical section, so a
        concurrent registration is either fully included or left for the
        next broadcast.

        Returns:
            Number of subscribers that were notified.
        """
        async with self._lock:
            self._senders = [sender for sender in self._senders if sender.send()]
            return len(self._senders)
