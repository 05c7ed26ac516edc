"""Loopback server accepting event stream subscribers."""

import asyncio
import contextlib
import socket

import structlog

from spook.broadcast.channel import open_channel
from spook.broadcast.registry import SubscriberRegistry
from spook.broadcast.session import SubscriberSession
from spook.config import EVENT_PATH, BroadcastConfig
from spook.errors import BindFailure

logger = structlog.get_logger()

LOOPBACK_HOST = "127.0.0.1"
LISTEN_BACKLOG = 128
ACCEPT_RETRY_DELAY = 0.1


class BroadcastServer:
    """Connection acceptor for server-sent event subscribers.

    Every accepted connection gets a fresh notification channel whose
    sender is registered before its session task starts.
    """

    def __init__(
        self,
        registry: SubscriberRegistry,
        config: BroadcastConfig,
        host: str = LOOPBACK_HOST,
        event_path: str = EVENT_PATH,
    ) -> None:
        """Initialize server.

        Args:
            registry: Registry the subscriber senders are added to.
            config: Event name and port.
            host: Address to listen on.
            event_path: Path the event stream is served on.
        """
        self._registry = registry
        self._config = config
        self._host = host
        self._event_path = event_path
        self._sock: socket.socket | None = None
        self._sessions: set[asyncio.Task[None]] = set()
        self._closing = False

    @property
    def address(self) -> tuple[str, int]:
        """Bound (host, port); the port is resolved when binding port 0."""
        if self._sock is None:
            return self._host, self._config.port
        host, port = self._sock.getsockname()[:2]
        return host, port

    @property
    def active_sessions(self) -> int:
        """Number of session tasks still running."""
        return len(self._sessions)

    def bind(self) -> None:
        """Create the listening socket.

        Raises:
            BindFailure: If the socket could not be bound.
        """
        sock = socket.socket(socket.AF_INET, socket.SOCK_STREAM)
        try:
            sock.setsockopt(socket.SOL_SOCKET, socket.SO_REUSEADDR, 1)
            sock.bind((self._host, self._config.port))
            sock.listen(LISTEN_BACKLOG)
            sock.setblocking(False)
        except OSError as e:
            sock.close()
            raise BindFailure("error starting the server") from e

        self._sock = sock
        logger.info("server_listening", host=self.address[0], port=self.address[1])

    async def serve_forever(self) -> None:
        """Accept subscribers until the server is closed."""
        if self._sock is None:
            self.bind()
        assert self._sock is not None

        loop = asyncio.get_running_loop()
        while not self._closing:
            try:
                conn, addr = await loop.sock_accept(self._sock)
            except OSError as e:
                if self._closing:
                    break
                logger.debug("accept_failed", error=str(e))
                # Errors such as EMFILE persist until a descriptor is freed.
                await asyncio.sleep(ACCEPT_RETRY_DELAY)
                continue
            await self._open_session(conn)
            logger.debug("subscriber_accepted", client=addr[0])

    async def _open_session(self, conn: socket.socket) -> None:
        """Register a subscriber and spawn its session.

        Args:
            conn: Accepted connection.
        """
        conn.setblocking(False)
        sender, receiver = open_channel()
        await self._registry.register(sender)

        session = SubscriberSession(conn, receiver, self._config.name, self._event_path)
        task = asyncio.create_task(session.run())
        self._sessions.add(task)
        task.add_done_callback(self._sessions.discard)

    async def close(self) -> None:
        """Stop accepting and end all sessions."""
        self._closing = True
        for task in list(self._sessions):
            task.cancel()
        for task in list(self._sessions):
            with contextlib.suppress(asyncio.CancelledError):
                await task

        if self._sock is not None:
            self._sock.close()
            self._sock = None
