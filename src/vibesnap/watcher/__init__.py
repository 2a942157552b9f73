"""Filesystem watching and debouncing."""

from vibesnap.watcher.debounce import DebounceScheduler
from vibesnap.watcher.observer import (
    AlreadyWatching,
    FileChangeEvent,
    FileWatcher,
    PathNotFound,
    WatchError,
)

__all__ = [
    "AlreadyWatching",
    "DebounceScheduler",
    "FileChangeEvent",
    "FileWatcher",
    "PathNotFound",
    "WatchError",
]
