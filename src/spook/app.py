"""Application wiring and the change processing loop."""

import asyncio
import contextlib

import structlog

from spook.broadcast import BroadcastServer, SubscriberRegistry
from spook.config import Settings
from spook.dispatcher import UpdateDispatcher
from spook.events import ChangeClassifier, FilesystemWatcher, Outcome, RawChangeNotice
from spook.lifecycle import GracefulShutdown

logger = structlog.get_logger()


async def process_notices(
    notices: asyncio.Queue[RawChangeNotice],
    classifier: ChangeClassifier,
    dispatcher: UpdateDispatcher,
) -> None:
    """Classify notices in arrival order and dispatch actionable ones.

    Runs until a fatal notice or a failed update raises. This coroutine
    must be the only caller of the dispatcher.

    Args:
        notices: Queue fed by the filesystem watcher.
        classifier: Change classifier.
        dispatcher: Update dispatcher.

    Raises:
        SpookError: On a fatal notice or a command launch failure.
    """
    while True:
        notice = await notices.get()
        if classifier.classify(notice) is Outcome.ACTIONABLE:
            logger.debug("change_detected", kind=notice.kind.value, path=notice.path)
            await dispatcher.update()


async def run(settings: Settings) -> None:
    """Watch files and dispatch updates until a fatal error or a signal.

    Args:
        settings: Validated configuration.

    Raises:
        SpookError: On any fatal error.
    """
    loop = asyncio.get_running_loop()
    shutdown = GracefulShutdown()
    shutdown.install_signal_handlers(loop)

    notices: asyncio.Queue[RawChangeNotice] = asyncio.Queue()
    watcher = FilesystemWatcher(
        targets=settings.watch_targets,
        loop=loop,
        on_notice=notices.put_nowait,
        period_ms=settings.notify_period_ms,
        ignore_patterns=settings.ignore_patterns,
    )
    watcher.start()

    registry: SubscriberRegistry | None = None
    server: BroadcastServer | None = None
    server_task: asyncio.Task[None] | None = None
    broadcast = settings.broadcast

    try:
        if broadcast is not None:
            registry = SubscriberRegistry()
            server = BroadcastServer(registry, broadcast)
            server.bind()
            server_task = asyncio.create_task(server.serve_forever())

        dispatcher = UpdateDispatcher(settings.command_spec, broadcast, registry)
        classifier = ChangeClassifier(watcher.rearm)

        if settings.init:
            await dispatcher.update()

        control_task = asyncio.create_task(process_notices(notices, classifier, dispatcher))
        shutdown_task = asyncio.create_task(shutdown.wait_for_trigger())
        try:
            await asyncio.wait(
                {control_task, shutdown_task},
                return_when=asyncio.FIRST_COMPLETED,
            )
        finally:
            for task in (control_task, shutdown_task):
                if not task.done():
                    task.cancel()
                    with contextlib.suppress(asyncio.CancelledError):
                        await task

        if control_task.done() and not control_task.cancelled():
            control_task.result()
    finally:
        if server_task is not None:
            server_task.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await server_task
        if server is not None:
            await server.close()
        watcher.stop()
        logger.debug("shutdown_complete")
