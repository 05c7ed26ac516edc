"""Classification of raw filesystem notices."""

from collections.abc import Callable

import structlog

from spook.errors import NotifierError, RenameDetected, WatchFailure
from spook.events.types import NoticeKind, Outcome, RawChangeNotice

logger = structlog.get_logger()


class ChangeClassifier:
    """Turns raw notices into outcomes for the control loop.

    Removed paths are re-armed so that editors which delete and recreate
    a file on save keep triggering updates.
    """

    def __init__(self, rearm: Callable[[str], None]) -> None:
        """Initialize classifier.

        Args:
            rearm: Re-registers a non-recursive watch on a removed path,
                raising WatchFailure when that is impossible.
        """
        self._rearm = rearm

    def classify(self, notice: RawChangeNotice) -> Outcome:
        """Classify one notice.

        Args:
            notice: Raw notice, in arrival order.

        Returns:
            ACTIONABLE if an update should run, IGNORED otherwise.

        Raises:
            WatchFailure: If a removed path could not be watched again.
            RenameDetected: If a watched path was renamed.
            NotifierError: If the notifier reported an error.
        """
        match notice.kind:
            case NoticeKind.NOTICE | NoticeKind.RESCAN:
                return Outcome.IGNORED

            case NoticeKind.WRITE | NoticeKind.CHMOD | NoticeKind.CREATE:
                return Outcome.ACTIONABLE

            case NoticeKind.REMOVE:
                path = notice.path or ""
                try:
                    self._rearm(path)
                except WatchFailure:
                    raise
                except OSError as e:
                    raise WatchFailure("File was deleted", path) from e
                logger.debug("watch_rearmed", path=path)
                return Outcome.ACTIONABLE

            case NoticeKind.RENAME:
                raise RenameDetected("File was renamed", notice.path)

            case NoticeKind.ERROR:
                raise NotifierError(notice.message or "file error", notice.path)

        raise ValueError(f"Unknown notice kind: {notice.kind}")
