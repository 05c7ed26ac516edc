"""Shutdown coordination for the watcher process."""
import asyncio
import signal

import structlog

logger = structlog.get_logger()


class GracefulShutdown:
    """Turns SIGTERM/SIGINT into an awaitable shutdown request.

    The application waits on it alongside the change processing loop and
    tears everything down once either of them finishes.
    """

    def __init__(self) -> None:
        self._requested = False
        self._event = asyncio.Event()

    @property
    def is_triggered(self) -> bool:
        """Whether a shutdown was requested."""
        return self._requested

    def trigger(self) -> None:
        """Request shutdown. Later calls have no effect."""
        if self._requested:
            return
        logger.debug("shutdown_requested")
        self._requested = True
        self._event.set()

    async def wait_for_trigger(self) -> None:
        """Block until trigger() is called by a signal handler or a task."""
        await self._event.wait()

    def install_signal_handlers(self, loop: asyncio.AbstractEventLoop) -> None:
        """Trigger shutdown on SIGTERM and SIGINT.

        Platforms without loop signal support keep the default handlers.

        Args:
            loop: Running event loop.
        """
        for sig in (signal.SIGTERM, signal.SIGINT):
            try:
                loop.add_signal_handler(sig, self.trigger)
            except (NotImplementedError, RuntimeError):
                logger.debug("signal_handler_unavailable", signal=sig.name)
