"""Per-connection event stream session."""

import asyncio
import socket
from enum import Enum

import structlog

from spook.broadcast.channel import NotificationReceiver
from spook.broadcast.protocol import (
    STREAM_PREAMBLE,
    MalformedRequest,
    event_frame,
    parse_request_head,
    route_response,
)
from spook.config import EVENT_PATH

logger = structlog.get_logger()

READ_SIZE = 512


class SessionState(str, Enum):
    """Lifecycle states of a subscriber session."""

    READING_HANDSHAKE = "reading_handshake"
    STREAMING = "streaming"
    CLOSED = "closed"


class SubscriberSession:
    """Serves server-sent events to one connected subscriber.

    Reads just enough of the request to route it, writes the streaming
    preamble, then relays one frame per notification. Clients commonly
    close after the first event to reload the page, so every wake starts
    with a non-blocking probe read that detects a closed peer before
    writing.

    Attributes:
        state: Current lifecycle state.
    """

    def __init__(
        self,
        sock: socket.socket,
        receiver: NotificationReceiver,
        event_name: str,
        event_path: str = EVENT_PATH,
    ) -> None:
        """Initialize session.

        Args:
            sock: Accepted connection, owned by the session from now on.
            receiver: Receiving half of the subscriber's channel.
            event_name: Event name written on every frame.
            event_path: Path the event stream is served on.
        """
        self._sock = sock
        self._receiver = receiver
        self._frame = event_frame(event_name)
        self._event_path = event_path
        self.state = SessionState.READING_HANDSHAKE

    async def run(self) -> None:
        """Run the session until the connection is closed or fails."""
        try:
            if await self._handshake():
                await self._stream()
        finally:
            self.state = SessionState.CLOSED
            self._receiver.close()
            self._sock.close()

    async def _handshake(self) -> bool:
        """Read the request and write the matching response.

        Returns:
            True if the connection switched to streaming.
        """
        loop = asyncio.get_running_loop()
        buffer = b""
        while True:
            try:
                chunk = await loop.sock_recv(self._sock, READ_SIZE)
            except OSError:
                return False
            if not chunk:
                return False

            buffer += chunk
            try:
                head = parse_request_head(buffer)
            except MalformedRequest as e:
                logger.debug("session_bad_request", error=str(e))
                return False
            if head is not None:
                break

        response = route_response(head, self._event_path)
        try:
            await loop.sock_sendall(self._sock, response)
        except OSError:
            return False
        if response is not STREAM_PREAMBLE:
            return False

        self.state = SessionState.STREAMING
        return True

    def _peer_closed(self) -> bool:
        """Probe the connection without blocking.

        Returns:
            True if the peer closed the connection or it failed.
        """
        try:
            return not self._sock.recv(READ_SIZE)
        except BlockingIOError:
            return False
        except OSError:
            return True

    async def _stream(self) -> None:
        """Relay one frame per notification until the peer goes away."""
        loop = asyncio.get_running_loop()
        self._sock.setblocking(False)
        while True:
            await self._receiver.recv()
            if self._peer_closed():
                return
            try:
                await loop.sock_sendall(self._sock, self._frame)
            except OSError as e:
                # Picked up by the probe read on the next wake.
                logger.debug("session_write_failed", error=str(e))
