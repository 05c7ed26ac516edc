"""Filesystem change notice types."""
from enum import Enum

from pydantic import BaseModel, ConfigDict, Field


class NoticeKind(str, Enum):
    """Kinds of raw notices produced by the filesystem notifier."""

    CREATE = "create"
    WRITE = "write"
    CHMOD = "chmod"
    REMOVE = "remove"
    RENAME = "rename"
    NOTICE = "notice"
    RESCAN = "rescan"
    ERROR = "error"


class Outcome(str, Enum):
    """Non-fatal classification results."""

    ACTIONABLE = "actionable"
    IGNORED = "ignored"


class WatchTarget(BaseModel):
    """A watched path.

    Attributes:
        path: File or directory under observation.
        recursive: Whether subdirectories are watched too.
    """

    model_config = ConfigDict(frozen=True)

    path: str
    recursive: bool = True


class RawChangeNotice(BaseModel):
    """One debounced filesystem event.

    Attributes:
        kind: Notice kind.
        path: Affected path; the source path for renames.
        dest_path: Destination path for renames.
        message: Error text for error notices.
    """

    model_config = ConfigDict(frozen=True)

    kind: NoticeKind = Field(description="Notice kind")
    path: str | None = Field(default=None, description="Affected path")
    dest_path: str | None = Field(default=None, description="Rename destination")
    message: str | None = Field(default=None, description="Error text")
