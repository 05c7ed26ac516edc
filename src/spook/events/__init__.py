"""Filesystem change notices and their classification."""
from spook.events.classifier import ChangeClassifier
from spook.events.types import NoticeKind, Outcome, RawChangeNotice, WatchTarget
from spook.events.watcher import FilesystemWatcher

__all__ = [
    "ChangeClassifier",
    "FilesystemWatcher",
    "NoticeKind",
    "Outcome",
    "RawChangeNotice",
    "WatchTarget",
]
