"""Presentation-boundary commands.

Each command returns a result object instead of raising: failures become
``success=False`` with a short ``message`` and the underlying ``error``
text (git's stderr included). Results serialize with ``to_dict()``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional

from vibesnap.config.schema import VibeSnapConfig
from vibesnap.engine.core import EmptyMessage, EngineError, MissingProjectPath, Notifier, SnapshotEngine
from vibesnap.engine.state import WatcherState
from vibesnap.git.adapter import GitError, NotARepo, NothingToCommit
from vibesnap.git.diff_parser import UnparseableDiff
from vibesnap.git.models import FriendlyDiff, RepoStatus, Snapshot
from vibesnap.git.store import SnapshotStore
from vibesnap.watcher.observer import WatchError

logger = logging.getLogger(__name__)

_EXPECTED_ERRORS = (EngineError, GitError, WatchError, UnparseableDiff, OSError)


def format_date(timestamp: str) -> str:
    """Render an ISO-8601 commit date as local ``YYYY-MM-DD HH:MM``; unparseable input is returned as is."""
    try:
        dt = datetime.fromisoformat(timestamp)
    except ValueError:
        return timestamp
    return dt.astimezone().strftime("%Y-%m-%d %H:%M")


def _drop_none_error(data: Dict[str, Any]) -> Dict[str, Any]:
    if data.get("error") is None:
        data.pop("error", None)
    return data


# ── result types ─────────────────────────────────────────────────────────────


@dataclass
class InitResult:
    success: bool
    message: str
    was_initialized: bool = False
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({
            "success": self.success,
            "message": self.message,
            "was_initialized": self.was_initialized,
            "error": self.error,
        })


@dataclass
class ActionResult:
    success: bool
    message: str
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({"success": self.success, "message": self.message, "error": self.error})


@dataclass
class HistoryItem:
    hash: str
    date: str
    message: str

    @classmethod
    def from_snapshot(cls, snapshot: Snapshot) -> "HistoryItem":
        return cls(hash=snapshot.id, date=format_date(snapshot.timestamp), message=snapshot.message)


@dataclass
class HistoryResult:
    success: bool
    history: List[HistoryItem] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({
            "success": self.success,
            "history": [
                {"hash": item.hash, "date": item.date, "message": item.message}
                for item in self.history
            ],
            "error": self.error,
        })


@dataclass
class FilesResult:
    success: bool
    files: List[str] = field(default_factory=list)
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({"success": self.success, "files": list(self.files), "error": self.error})


@dataclass
class DiffContentResult:
    success: bool
    diff_content: Optional[str] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({
            "success": self.success,
            "diff_content": self.diff_content,
            "error": self.error,
        })


@dataclass
class FriendlyDiffResult:
    success: bool
    diff: FriendlyDiff = field(default_factory=FriendlyDiff)
    error: Optional[str] = None

    @property
    def summary(self) -> Optional[str]:
        return self.diff.summary

    @property
    def lines(self):
        return self.diff.lines

    def to_dict(self) -> Dict[str, Any]:
        lines: List[Dict[str, Any]] = []
        for line in self.diff.lines:
            entry: Dict[str, Any] = {"content": line.content, "change_type": line.change_type.value}
            if line.line_number is not None:
                entry["line_number"] = line.line_number
            lines.append(entry)
        data: Dict[str, Any] = {"success": self.success}
        if self.diff.summary is not None:
            data["summary"] = self.diff.summary
        data["lines"] = lines
        data["error"] = self.error
        return _drop_none_error(data)


@dataclass
class WatcherResult:
    state: WatcherState
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({**self.state.to_dict(), "error": self.error})


@dataclass
class GitStatusResult:
    status: str = ""
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({"status": self.status, "error": self.error})


@dataclass
class RepoStatusResult:
    success: bool
    status: Optional[RepoStatus] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"success": self.success}
        if self.status is not None:
            data.update(
                branch=self.status.branch,
                latest_commit_summary=self.status.latest_commit_summary,
                dirty_file_count=self.status.dirty_file_count,
            )
        data["error"] = self.error
        return _drop_none_error(data)


@dataclass
class GitInfoResult:
    branch: str = "unknown"
    commit: str = "unknown"
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return _drop_none_error({"branch": self.branch, "commit": self.commit, "error": self.error})


# ── service ──────────────────────────────────────────────────────────────────


class SnapshotService:
    """Command surface for a presentation layer, backed by one SnapshotEngine."""

    def __init__(
        self,
        engine: Optional[SnapshotEngine] = None,
        store: Optional[SnapshotStore] = None,
        config: Optional[VibeSnapConfig] = None,
        notify: Optional[Notifier] = None,
    ) -> None:
        self.engine = engine or SnapshotEngine(store=store, config=config, notify=notify)
        self.store = self.engine.store
        self.config = self.engine.config

    def ensure_git_repo(self, project_path: str) -> InitResult:
        if not project_path or not str(project_path).strip():
            return InitResult(False, "Project path is required", error="No project path given")
        try:
            created = self.store.ensure_repo(Path(project_path))
        except _EXPECTED_ERRORS as exc:
            return InitResult(False, "Git initialization failed", error=str(exc))
        return InitResult(True, "Project linked. Git repository is ready.", was_initialized=created)

    def create_snapshot(self, project_path: str, prompt_message: str) -> ActionResult:
        try:
            snapshot = self.engine.manual_commit(project_path, prompt_message)
        except EmptyMessage as exc:
            return ActionResult(False, "Please enter a prompt message", error=str(exc))
        except MissingProjectPath as exc:
            return ActionResult(False, "Project path is required", error=str(exc))
        except NothingToCommit:
            return ActionResult(
                False, "No changes detected", error="The working tree has no new changes to snapshot"
            )
        except NotARepo as exc:
            return ActionResult(False, "Project is not a git repository", error=str(exc))
        except _EXPECTED_ERRORS as exc:
            return ActionResult(False, "Failed to create snapshot", error=str(exc))
        return ActionResult(True, f"Snapshot saved ({snapshot.short_id})")

    def get_snapshot_history(self, project_path: str) -> HistoryResult:
        try:
            snapshots = self.store.log(project_path, self.config.snapshot.history_limit)
        except _EXPECTED_ERRORS as exc:
            return HistoryResult(False, error=str(exc))
        return HistoryResult(True, [HistoryItem.from_snapshot(s) for s in snapshots])

    def get_snapshot_diff(self, project_path: str, hash: str) -> FilesResult:
        try:
            files = self.store.diff_files(project_path, hash)
        except _EXPECTED_ERRORS as exc:
            return FilesResult(False, error=str(exc))
        return FilesResult(True, files)

    def get_file_diff_content(self, project_path: str, hash: str, file_path: str) -> DiffContentResult:
        try:
            raw = self.store.raw_diff(project_path, hash, file_path)
        except _EXPECTED_ERRORS as exc:
            return DiffContentResult(False, error=str(exc))
        return DiffContentResult(True, diff_content=raw)

    def get_friendly_diff_content(self, project_path: str, hash: str, file_path: str) -> FriendlyDiffResult:
        if not hash.strip() or not file_path.strip():
            return FriendlyDiffResult(False, error="Commit hash and file path must not be empty")
        try:
            diff = self.engine.friendly_diff(project_path, hash, file_path)
        except _EXPECTED_ERRORS as exc:
            return FriendlyDiffResult(False, error=str(exc))
        return FriendlyDiffResult(True, diff)

    def rollback(self, project_path: str, hash: str) -> ActionResult:
        try:
            sha = self.engine.rollback(project_path, hash)
        except _EXPECTED_ERRORS as exc:
            return ActionResult(False, "Rollback failed", error=str(exc))
        return ActionResult(True, f"Rolled back to snapshot {sha[:8]}")

    def start_file_watcher(
        self,
        project_path: str,
        log_file_path: Optional[str] = None,
        debounce_duration: Optional[int] = None,
    ) -> WatcherResult:
        try:
            state = self.engine.start_watching(project_path, log_file_path, debounce_duration)
        except _EXPECTED_ERRORS as exc:
            return WatcherResult(self.engine.status(), error=str(exc))
        return WatcherResult(state)

    def stop_file_watcher(self) -> WatcherResult:
        return WatcherResult(self.engine.stop_watching())

    def get_file_watcher_status(self) -> WatcherResult:
        return WatcherResult(self.engine.status())

    def repo_status(self, project_path: str) -> RepoStatusResult:
        try:
            status = self.store.status(project_path)
        except _EXPECTED_ERRORS as exc:
            return RepoStatusResult(False, error=str(exc))
        return RepoStatusResult(True, status)

    def git_status(self, path: str = ".") -> GitStatusResult:
        try:
            status = self.store.status(path)
        except _EXPECTED_ERRORS as exc:
            return GitStatusResult(error=str(exc))
        return GitStatusResult(status=status.porcelain)

    def git_info(self, path: str = ".") -> GitInfoResult:
        try:
            info = self.store.info(path)
        except _EXPECTED_ERRORS as exc:
            return GitInfoResult(error=str(exc))
        return GitInfoResult(branch=info.branch, commit=info.commit)

    def git_log(self, path: str = ".", count: int = 10) -> List[str]:
        try:
            return self.store.oneline_log(path, count)
        except _EXPECTED_ERRORS as exc:
            logger.warning("git log failed for %s: %s", path, exc)
            return []

    def close(self) -> None:
        self.engine.close()
