"""Runtime configuration loaded from the command line and environment."""

import os

from pydantic import (
    BaseModel,
    ConfigDict,
    ValidationError,
    computed_field,
    field_validator,
    model_validator,
)
from pydantic_settings import BaseSettings, SettingsConfigDict

from spook.command import CommandSpec
from spook.errors import ConfigError
from spook.events.types import WatchTarget

PROG_NAME = "spook"
EVENT_PATH = "/events"

DEFAULT_EVENT_NAME = "update"
MIN_EVENT_PORT = 1024
MAX_EVENT_PORT = 65535
DEFAULT_EVENT_PORT = 2133
MIN_NOTIFY_PERIOD_MS = 100
MAX_NOTIFY_PERIOD_MS = 3_600_000
DEFAULT_NOTIFY_PERIOD_MS = 1000

DEFAULT_IGNORE_PATTERNS = ".swp,.swo,.swn,.tmp,.temp,~,.DS_Store,4913"


class BroadcastConfig(BaseModel):
    """Server-sent event broadcast target.

    Attributes:
        name: Event name written on every frame.
        port: Loopback TCP port the event stream is served on.
    """

    model_config = ConfigDict(frozen=True)

    name: str = DEFAULT_EVENT_NAME
    port: int = DEFAULT_EVENT_PORT


class Settings(BaseSettings):
    """Watcher configuration.

    Values come from command-line overrides first, then ``SPOOK_*``
    environment variables, then an optional ``.env`` file.

    Attributes:
        watched_paths: Files or directories to watch.
        command: Command and arguments to run on change, may be empty.
        signal: Broadcast server-sent events on change.
        event_name: Name of the broadcast event.
        port: Loopback port for the event stream.
        notify_period_ms: Filesystem notification debounce period.
        verbose: Log every triggered update.
        init: Trigger an update immediately at launch.
        debug: Enable debug-level logging.
        json_logs: Render log lines as JSON instead of console text.
        ignore_patterns_raw: Comma-separated temp file name patterns to ignore.
    """

    model_config = SettingsConfigDict(
        env_prefix="SPOOK_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    watched_paths: list[str] = []
    command: list[str] = []
    signal: bool = False
    event_name: str = DEFAULT_EVENT_NAME
    port: int = DEFAULT_EVENT_PORT
    notify_period_ms: int = DEFAULT_NOTIFY_PERIOD_MS
    verbose: bool = False
    init: bool = False
    debug: bool = False
    json_logs: bool = False
    ignore_patterns_raw: str = DEFAULT_IGNORE_PATTERNS

    @field_validator("port")
    @classmethod
    def _check_port(cls, value: int) -> int:
        if not MIN_EVENT_PORT <= value <= MAX_EVENT_PORT:
            raise ValueError(
                f"the port should be a number in the range {MIN_EVENT_PORT}-{MAX_EVENT_PORT}"
            )
        return value

    @field_validator("notify_period_ms")
    @classmethod
    def _check_period(cls, value: int) -> int:
        if not MIN_NOTIFY_PERIOD_MS <= value <= MAX_NOTIFY_PERIOD_MS:
            raise ValueError(
                "the file notification period should be a delay in the range "
                f"{MIN_NOTIFY_PERIOD_MS}-{MAX_NOTIFY_PERIOD_MS}ms"
            )
        return value

    @field_validator("event_name")
    @classmethod
    def _check_event_name(cls, value: str) -> str:
        # The name is written verbatim on an SSE "event:" line.
        if not value or "\r" in value or "\n" in value:
            raise ValueError("the event name should be a non-empty single line")
        return value

    @model_validator(mode="after")
    def _check_action(self) -> "Settings":
        if not self.watched_paths:
            raise ValueError("at least one file or directory to watch is required")
        if not self.command and not self.signal:
            raise ValueError("a command to run is required unless --signal is given")
        return self

    @computed_field
    @property
    def ignore_patterns(self) -> list[str]:
        """Parse ignore patterns from comma-separated string.

        Returns:
            List of file name suffixes and prefixes to ignore.
        """
        return [
            pattern.strip()
            for pattern in self.ignore_patterns_raw.split(",")
            if pattern.strip()
        ]

    @property
    def watch_targets(self) -> list[WatchTarget]:
        """Watch targets built from the watched paths.

        Directories are watched recursively, plain files on their own.
        """
        return [
            WatchTarget(path=path, recursive=os.path.isdir(path))
            for path in self.watched_paths
        ]

    @property
    def command_spec(self) -> CommandSpec | None:
        """Command to run on change, or None when only broadcasting."""
        if not self.command:
            return None
        program, *args = self.command
        return CommandSpec(program=program, args=tuple(args))

    @property
    def broadcast(self) -> BroadcastConfig | None:
        """Broadcast target, or None when server events are disabled."""
        if not self.signal:
            return None
        return BroadcastConfig(name=self.event_name, port=self.port)


def load_settings(**overrides: object) -> Settings:
    """Build settings, turning validation failures into ConfigError.

    Args:
        **overrides: Explicit values taking precedence over the environment.

    Returns:
        Validated settings.

    Raises:
        ConfigError: If any value is missing or out of range.
    """
    try:
        return Settings(**overrides)  # type: ignore[arg-type]
    except ValidationError as e:
        error = e.errors()[0]
        message = str(error["msg"]).removeprefix("Value error, ")
        raise ConfigError(message) from e
