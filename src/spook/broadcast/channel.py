"""Presence-only notification channel between dispatcher and sessions."""

import asyncio


class _ChannelState:
    def __init__(self) -> None:
        self.queue: asyncio.Queue[None] = asyncio.Queue()
        self.closed = False


class NotificationSender:
    """Sending half of a channel, held by the subscriber registry."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state

    @property
    def closed(self) -> bool:
        """Whether the receiving session has gone away."""
        return self._state.closed

    def send(self) -> bool:
        """Queue one notification.

        Returns:
            False if the receiver is closed, True otherwise.
        """
        if self._state.closed:
            return False
        self._state.queue.put_nowait(None)
        return True


class NotificationReceiver:
    """Receiving half of a channel, owned by one subscriber session."""

    def __init__(self, state: _ChannelState) -> None:
        self._state = state

    @property
    def pending(self) -> int:
        """Number of notifications not yet received."""
        return self._state.queue.qsize()

    async def recv(self) -> None:
        """Wait for the next notification."""
        await self._state.queue.get()

    def close(self) -> None:
        """Close the channel so that further sends fail."""
        self._state.closed = True


def open_channel() -> tuple[NotificationSender, NotificationReceiver]:
    """Create a connected sender and receiver pair.

    The channel is an unbounded FIFO of unit signals.

    Returns:
        Tuple of (sender, receiver).
    """
    state = _ChannelState()
    return NotificationSender(state), NotificationReceiver(state)
