"""Watcher state and engine notifications."""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional

from vibesnap.git.models import Snapshot


@dataclass(frozen=True)
class WatcherState:
    """Read-only view of one engine's watcher."""

    is_watching: bool = False
    project_path: Optional[Path] = None
    log_file_path: Optional[Path] = None
    debounce_millis: int = 0
    last_auto_commit: Optional[Snapshot] = None

    def to_dict(self) -> Dict[str, Any]:
        last = self.last_auto_commit
        return {
            "is_watching": self.is_watching,
            "project_path": str(self.project_path) if self.project_path else None,
            "log_file_path": str(self.log_file_path) if self.log_file_path else None,
            "debounce_millis": self.debounce_millis,
            "last_auto_commit": (
                {"hash": last.id, "date": last.timestamp, "message": last.message}
                if last
                else None
            ),
        }


class NotificationKind(str, Enum):
    AUTO_COMMIT_SUCCESS = "auto-commit-success"
    AUTO_COMMIT_ERROR = "auto-commit-error"
    WATCHER_STATUS = "file-watcher-status"


@dataclass(frozen=True)
class Notification:
    kind: NotificationKind
    payload: str

    def to_dict(self) -> Dict[str, Any]:
        return {"kind": self.kind.value, "payload": self.payload}


# Status texts pushed as WATCHER_STATUS payloads
STATUS_STARTED = "Watcher started, waiting for file changes..."
STATUS_CHANGES = "Files are changing, waiting for a quiet period..."
STATUS_COMMITTED = "Snapshot created automatically"
STATUS_COMMIT_FAILED = "Automatic snapshot failed"
STATUS_STOPPED = "Watcher stopped"
