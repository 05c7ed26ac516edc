"""Debounced filesystem notifier built on watchdog."""

import asyncio
import contextlib
import os
import threading
from collections.abc import Callable, Iterable
from pathlib import Path

import structlog
from watchdog.events import (
    EVENT_TYPE_CREATED,
    EVENT_TYPE_DELETED,
    EVENT_TYPE_MODIFIED,
    EVENT_TYPE_MOVED,
    FileSystemEvent,
    FileSystemEventHandler,
)
from watchdog.observers import Observer
from watchdog.observers.api import BaseObserver, ObservedWatch

from spook.errors import ConfigError, NotifierError, WatchFailure
from spook.events.types import NoticeKind, RawChangeNotice, WatchTarget

logger = structlog.get_logger()

EVENT_KINDS: dict[str, NoticeKind] = {
    EVENT_TYPE_CREATED: NoticeKind.CREATE,
    EVENT_TYPE_MODIFIED: NoticeKind.WRITE,
    EVENT_TYPE_DELETED: NoticeKind.REMOVE,
}

# (pending, incoming) -> merged kind; None drops the pending notice.
MERGE_RULES: dict[tuple[NoticeKind, NoticeKind], NoticeKind | None] = {
    (NoticeKind.CREATE, NoticeKind.WRITE): NoticeKind.CREATE,
    (NoticeKind.CREATE, NoticeKind.REMOVE): None,
    (NoticeKind.WRITE, NoticeKind.CREATE): NoticeKind.WRITE,
    (NoticeKind.WRITE, NoticeKind.REMOVE): NoticeKind.REMOVE,
    (NoticeKind.REMOVE, NoticeKind.CREATE): NoticeKind.REMOVE,
    (NoticeKind.REMOVE, NoticeKind.WRITE): NoticeKind.REMOVE,
}


def decode_path(path: str | bytes) -> str:
    """Decode a watchdog event path.

    Args:
        path: Path as reported by watchdog.

    Returns:
        Path as a string.
    """
    if isinstance(path, str):
        return path
    return bytes(path).decode("utf-8", errors="replace")


def is_temp_file(path: str, patterns: Iterable[str]) -> bool:
    """Check if path is a temporary file that should be ignored.

    Patterns starting with ``.`` or ``~`` match the end of the file name.
    Any other pattern, such as vim's ``4913`` write probe, must match the
    whole name.

    Args:
        path: File path to check.
        patterns: Editor temp and swap file patterns.

    Returns:
        True if the file is a temporary file.
    """
    name = Path(path).name
    return any(
        name.endswith(pattern) if pattern.startswith((".", "~")) else name == pattern
        for pattern in patterns
    )


def merge_kinds(pending: NoticeKind, incoming: NoticeKind) -> NoticeKind | None:
    """Merge two notices for the same path within one debounce window.

    Args:
        pending: Kind of the notice already waiting for the window to end.
        incoming: Kind of the newly observed notice.

    Returns:
        Merged kind, or None if the two cancel out.
    """
    if NoticeKind.RENAME in (pending, incoming):
        return NoticeKind.RENAME
    return MERGE_RULES.get((pending, incoming), incoming)


class DebouncingHandler(FileSystemEventHandler):
    """Watchdog event handler with time-based debouncing.

    Translates watchdog events into raw notices, keeps at most one pending
    notice per path and emits it once the debounce window expires. The
    first write or remove of a window is announced immediately with a
    NOTICE.

    Attributes:
        period_ms: Debounce window in milliseconds.
    """

    def __init__(
        self,
        loop: asyncio.AbstractEventLoop,
        on_notice: Callable[[RawChangeNotice], None],
        period_ms: int = 1000,
        ignore_patterns: Iterable[str] = (),
    ) -> None:
        """Initialize debouncing handler.

        Args:
            loop: Event loop notices are handed to.
            on_notice: Called on the event loop with each notice.
            period_ms: Debounce window in milliseconds.
            ignore_patterns: Temp file name patterns to drop.
        """
        super().__init__()
        self._loop = loop
        self._on_notice = on_notice
        self.period_ms = period_ms
        self._ignore_patterns = tuple(ignore_patterns)
        self._pending: dict[str, tuple[threading.Timer, RawChangeNotice]] = {}
        self._lock = threading.Lock()

    def _emit(self, notice: RawChangeNotice) -> None:
        logger.debug("watcher_emit", kind=notice.kind.value, path=notice.path)
        try:
            self._loop.call_soon_threadsafe(self._on_notice, notice)
        except RuntimeError as e:
            logger.error("watcher_emit_error", error=str(e), path=notice.path)

    def _flush(self, path: str) -> None:
        """Emit the pending notice for a path once its window expires.

        Args:
            path: Path key of the pending notice.
        """
        with self._lock:
            entry = self._pending.pop(path, None)
        if entry is not None:
            self._emit(entry[1])

    def _schedule(self, notice: RawChangeNotice) -> None:
        """Record a notice, merging it with any pending one for its path.

        Args:
            notice: Notice to debounce. Its path is the debounce key.
        """
        path = notice.path or ""
        announce = False

        with self._lock:
            existing = self._pending.pop(path, None)
            if existing is not None:
                timer, stored = existing
                timer.cancel()
                kind = merge_kinds(stored.kind, notice.kind)
                if kind is None:
                    return
                dest_path = notice.dest_path if notice.kind is NoticeKind.RENAME else stored.dest_path
                notice = RawChangeNotice(kind=kind, path=path, dest_path=dest_path)
            else:
                announce = notice.kind in (NoticeKind.WRITE, NoticeKind.REMOVE)

            timer = threading.Timer(self.period_ms / 1000.0, self._flush, args=(path,))
            timer.daemon = True
            self._pending[path] = (timer, notice)
            timer.start()

        if announce:
            self._emit(RawChangeNotice(kind=NoticeKind.NOTICE, path=path))

    def _on_moved(self, src_path: str, dest_path: str) -> None:
        src_temp = is_temp_file(src_path, self._ignore_patterns)
        dest_temp = is_temp_file(dest_path, self._ignore_patterns)

        with self._lock:
            pending = self._pending.get(src_path)
            created = pending is not None and pending[1].kind is NoticeKind.CREATE
            if created:
                self._pending.pop(src_path)[0].cancel()

        if src_temp and dest_temp:
            return
        if src_temp or created:
            # A freshly written buffer moved into place.
            self._schedule(RawChangeNotice(kind=NoticeKind.CREATE, path=dest_path))
        elif dest_temp:
            # The real file moved aside as a backup.
            self._schedule(RawChangeNotice(kind=NoticeKind.REMOVE, path=src_path))
        else:
            self._schedule(
                RawChangeNotice(kind=NoticeKind.RENAME, path=src_path, dest_path=dest_path)
            )

    def on_any_event(self, event: FileSystemEvent) -> None:
        """Translate and debounce one watchdog event.

        Args:
            event: Raw watchdog filesystem event.
        """
        path = decode_path(event.src_path)
        try:
            if event.event_type == EVENT_TYPE_MOVED:
                self._on_moved(path, decode_path(event.dest_path))
                return

            kind = EVENT_KINDS.get(event.event_type)
            if kind is None:
                return
            if event.is_directory and kind is NoticeKind.WRITE:
                return
            if is_temp_file(path, self._ignore_patterns):
                return

            self._schedule(RawChangeNotice(kind=kind, path=path))
        except Exception as e:
            logger.error("watcher_event_error", error=str(e), path=path)
            self._emit(RawChangeNotice(kind=NoticeKind.ERROR, path=path, message=str(e)))

    def cancel_all(self) -> None:
        """Cancel all pending timers during shutdown."""
        with self._lock:
            for timer, _ in self._pending.values():
                timer.cancel()
            self._pending.clear()


class FilesystemWatcher:
    """High-level filesystem watcher manager.

    Wraps a watchdog Observer and a DebouncingHandler, and re-arms watches
    on paths that were deleted and recreated.

    Attributes:
        targets: Watch targets configured at startup.
    """

    def __init__(
        self,
        targets: list[WatchTarget],
        loop: asyncio.AbstractEventLoop,
        on_notice: Callable[[RawChangeNotice], None],
        period_ms: int = 1000,
        ignore_patterns: Iterable[str] = (),
    ) -> None:
        """Initialize filesystem watcher.

        Args:
            targets: Paths to watch.
            loop: Event loop notices are handed to.
            on_notice: Called on the event loop with each notice.
            period_ms: Debounce window in milliseconds.
            ignore_patterns: Temp file name patterns to drop.
        """
        self.targets = list(targets)
        self._handler = DebouncingHandler(loop, on_notice, period_ms, ignore_patterns)
        self._observer: BaseObserver | None = None
        self._watches: dict[str, ObservedWatch] = {}

    @property
    def paths(self) -> list[str]:
        """Paths being watched."""
        return [target.path for target in self.targets]

    def start(self) -> None:
        """Start the filesystem observer.

        Raises:
            ConfigError: If a watched path does not exist.
            NotifierError: If the platform notifier refused a watch.
        """
        for target in self.targets:
            if not os.path.exists(target.path):
                raise ConfigError("file not found", target.path)

        observer = Observer()
        for target in self.targets:
            watch = observer.schedule(self._handler, target.path, recursive=target.recursive)
            self._watches[os.path.normpath(target.path)] = watch
            logger.debug("watcher_scheduled", path=target.path, recursive=target.recursive)

        try:
            observer.start()
        except OSError as e:
            raise NotifierError(e.strerror or str(e), e.filename) from e

        self._observer = observer
        logger.info("watcher_started", paths=self.paths)

    def rearm(self, path: str) -> None:
        """Watch a removed path again.

        A path that was itself a watch root lost its watch with the file and
        gets a fresh non-recursive one. Paths below a recursive root are
        still covered by it.

        Args:
            path: Path reported by a remove notice.

        Raises:
            WatchFailure: If the path no longer exists or cannot be watched.
        """
        if not os.path.exists(path):
            raise WatchFailure("File was deleted", path)

        key = os.path.normpath(path)
        watch = self._watches.get(key)
        if watch is None or self._observer is None:
            return

        with contextlib.suppress(KeyError):
            self._observer.unschedule(watch)
        try:
            self._watches[key] = self._observer.schedule(self._handler, path, recursive=False)
        except OSError as e:
            raise WatchFailure("File was deleted", path) from e

    def stop(self) -> None:
        """Stop the filesystem observer."""
        self._handler.cancel_all()

        if self._observer is not None:
            self._observer.stop()
            self._observer.join(timeout=5.0)
            self._observer = None

        logger.debug("watcher_stopped")
