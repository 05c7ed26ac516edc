"""Fatal error taxonomy for the watcher process."""


class SpookError(Exception):
    """Base class for errors that abort the process.

    Attributes:
        message: Human-readable error description.
        path: Filesystem path the error relates to, if any.
    """

    def __init__(self, message: str, path: str | None = None) -> None:
        """Initialize error.

        Args:
            message: Human-readable error description.
            path: Related filesystem path, if any.
        """
        super().__init__(message)
        self.message = message
        self.path = path

    def __str__(self) -> str:
        """Render as ``<path>: <message>`` when a path is known."""
        if self.path:
            return f"{self.path}: {self.message}"
        return self.message


class ConfigError(SpookError):
    """Raised when startup configuration or a watch target is invalid."""


class BindFailure(SpookError):
    """Raised when the broadcast listening socket cannot be created."""


class LaunchFailure(SpookError):
    """Raised when the configured command cannot be started."""


class FatalChangeError(SpookError):
    """Raised by the change classifier for notices that halt processing."""


class WatchFailure(FatalChangeError):
    """Raised when a deleted watch target cannot be re-armed."""


class RenameDetected(FatalChangeError):
    """Raised when a watched file is renamed."""


class NotifierError(FatalChangeError):
    """Raised for errors reported by the filesystem notifier."""
