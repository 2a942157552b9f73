"""Snapshot engine — orchestration of watching, debouncing, commits and rollback."""

from vibesnap.engine.core import (
    EmptyMessage,
    EngineError,
    InvalidDebounce,
    MissingProjectPath,
    SnapshotEngine,
    read_prompt,
)
from vibesnap.engine.locks import RepoLocks
from vibesnap.engine.rollback import RollbackManager
from vibesnap.engine.state import Notification, NotificationKind, WatcherState

__all__ = [
    "EmptyMessage",
    "EngineError",
    "InvalidDebounce",
    "MissingProjectPath",
    "Notification",
    "NotificationKind",
    "RepoLocks",
    "RollbackManager",
    "SnapshotEngine",
    "WatcherState",
    "read_prompt",
]
