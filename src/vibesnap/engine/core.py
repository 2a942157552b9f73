"""Snapshot engine — watch, debounce, commit and roll back one project.

The engine owns a FileWatcher and a DebounceScheduler. Accepted change
events feed the scheduler; each debounce trigger runs the auto-commit path.
Auto commits, manual commits and rollbacks all go through the same
per-repository lock, so no two of them ever touch a repository at once.

Exception policy: validation and git failures raise from the public
methods; failures inside the background auto-commit path are turned into
notifications, never raised.
"""

from __future__ import annotations

import logging
import threading
from collections import OrderedDict
from dataclasses import replace
from pathlib import Path
from typing import Callable, Optional, Tuple

from vibesnap.config.schema import VibeSnapConfig
from vibesnap.engine.locks import RepoLocks, repo_key
from vibesnap.engine.rollback import RollbackManager
from vibesnap.engine.state import (
    STATUS_CHANGES,
    STATUS_COMMIT_FAILED,
    STATUS_COMMITTED,
    STATUS_STARTED,
    STATUS_STOPPED,
    Notification,
    NotificationKind,
    WatcherState,
)
from vibesnap.git.adapter import NothingToCommit
from vibesnap.git.diff_parser import as_initial_version, translate, unchanged_version
from vibesnap.git.models import FriendlyDiff, Snapshot
from vibesnap.git.store import SnapshotStore
from vibesnap.watcher.debounce import DebounceScheduler
from vibesnap.watcher.observer import FileChangeEvent, FileWatcher, PathNotFound

logger = logging.getLogger(__name__)

# Friendly diffs kept per engine; the least recently used is dropped first.
DIFF_CACHE_SIZE = 256

Notifier = Callable[[Notification], None]


class EngineError(Exception):
    """Raised on invalid engine requests."""


class MissingProjectPath(EngineError):
    pass


class EmptyMessage(EngineError):
    pass


class InvalidDebounce(EngineError):
    pass


def read_prompt(log_file: Optional[Path]) -> Optional[str]:
    """Return the last non-empty line of *log_file*, or None if unavailable."""
    if log_file is None:
        return None
    try:
        text = log_file.read_text(encoding="utf-8", errors="replace")
    except OSError as exc:
        logger.debug("Prompt log %s unreadable: %s", log_file, exc)
        return None
    for line in reversed(text.splitlines()):
        if line.strip():
            return line.strip()
    return None


def _require_path(project_path: Path | str | None) -> Path:
    if project_path is None or not str(project_path).strip():
        raise MissingProjectPath("A project path is required")
    return Path(project_path)


class SnapshotEngine:
    """Orchestrates the watch → debounce → commit lifecycle for one project at a time."""

    def __init__(
        self,
        store: Optional[SnapshotStore] = None,
        config: Optional[VibeSnapConfig] = None,
        notify: Optional[Notifier] = None,
        locks: Optional[RepoLocks] = None,
    ) -> None:
        self._config = config or VibeSnapConfig()
        self._store = store or SnapshotStore(
            git_config=self._config.git,
            init_message=self._config.snapshot.init_message,
        )
        self._notify = notify
        self._locks = locks or RepoLocks()
        self._rollback = RollbackManager(self._store)

        # start/stop run one at a time; _lock only guards the fields below
        self._lifecycle = threading.Lock()
        self._lock = threading.Lock()
        self._state = WatcherState()
        self._watcher: Optional[FileWatcher] = None
        self._scheduler: Optional[DebounceScheduler] = None

        self._cache_lock = threading.Lock()
        self._diff_cache: "OrderedDict[Tuple[str, str, str], FriendlyDiff]" = OrderedDict()

    @property
    def store(self) -> SnapshotStore:
        return self._store

    @property
    def locks(self) -> RepoLocks:
        return self._locks

    @property
    def config(self) -> VibeSnapConfig:
        return self._config

    # ── watcher lifecycle ────────────────────────────────────────────────────

    def start_watching(
        self,
        project_path: Path | str | None,
        log_file_path: Path | str | None = None,
        debounce_millis: Optional[int] = None,
    ) -> WatcherState:
        """Watch *project_path*, replacing any watch already running."""
        path = _require_path(project_path)
        if debounce_millis is None:
            debounce_millis = self._config.watcher.debounce_ms
        if debounce_millis < 0:
            raise InvalidDebounce(f"Debounce must be >= 0 ms, got {debounce_millis}")
        if not path.is_dir():
            raise PathNotFound(f"Path not found: {path}")
        self._store.require_repo(path)
        log_path = Path(log_file_path) if log_file_path else None

        with self._lifecycle:
            self._stop()

            scheduler = DebounceScheduler(
                lambda: self._auto_commit(path, log_path),
                debounce_millis / 1000,
            )
            watcher = FileWatcher(
                sink=lambda event: self._on_change(scheduler, event),
                on_error=lambda exc: self._on_watch_error(watcher, exc),
            )
            try:
                watcher.start(path)
            except Exception:
                scheduler.close()
                raise

            with self._lock:
                self._watcher = watcher
                self._scheduler = scheduler
                self._state = WatcherState(
                    is_watching=True,
                    project_path=path,
                    log_file_path=log_path,
                    debounce_millis=debounce_millis,
                )
        self._emit(NotificationKind.WATCHER_STATUS, STATUS_STARTED)
        return self.status()

    def stop_watching(self) -> WatcherState:
        """Stop the watcher and cancel pending triggers. A commit in progress still completes."""
        with self._lifecycle:
            self._stop()
        return self.status()

    def _stop(self) -> None:
        with self._lock:
            watcher, scheduler = self._watcher, self._scheduler
            self._watcher = self._scheduler = None
            was_watching = self._state.is_watching
            self._state = WatcherState()

        if scheduler is not None:
            scheduler.close()
        if watcher is not None:
            watcher.stop()
        if was_watching:
            self._emit(NotificationKind.WATCHER_STATUS, STATUS_STOPPED)

    def reconfigure(self, debounce_millis: int) -> WatcherState:
        """Change the quiet window used from the next debounce window on."""
        if debounce_millis < 0:
            raise InvalidDebounce(f"Debounce must be >= 0 ms, got {debounce_millis}")
        with self._lock:
            if self._scheduler is not None:
                self._scheduler.reconfigure(debounce_millis / 1000)
            self._state = replace(self._state, debounce_millis=debounce_millis)
        return self.status()

    def status(self) -> WatcherState:
        with self._lock:
            return self._state

    def wait_idle(self, timeout: Optional[float] = None) -> bool:
        """Block until no debounce window is armed and no auto commit is running."""
        with self._lock:
            scheduler = self._scheduler
        if scheduler is None:
            return True
        return scheduler.wait_idle(timeout)

    def close(self) -> None:
        self.stop_watching()

    def __enter__(self) -> "SnapshotEngine":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()

    # ── commits and rollback ─────────────────────────────────────────────────

    def _commit(self, path: Path, message: str) -> Snapshot:
        with self._locks.hold(path):
            return self._store.commit(path, message)

    def manual_commit(self, project_path: Path | str | None, message: str) -> Snapshot:
        """Snapshot *project_path* with an explicit, prefixed message."""
        if not message or not message.strip():
            raise EmptyMessage("Snapshot message must not be empty")
        path = _require_path(project_path)
        return self._commit(path, f"{self._config.snapshot.manual_prefix}{message.strip()}")

    def auto_commit_message(self, log_file_path: Optional[Path]) -> str:
        prompt = read_prompt(log_file_path) or self._config.snapshot.default_message
        return f"{self._config.snapshot.auto_prefix}{prompt}"

    def _auto_commit(self, path: Path, log_path: Optional[Path]) -> None:
        message = self.auto_commit_message(log_path)
        try:
            snapshot = self._commit(path, message)
        except NothingToCommit:
            logger.debug("Quiet period in %s ended with no net changes", path)
            return
        except Exception as exc:
            logger.warning("Automatic snapshot of %s failed: %s", path, exc)
            self._emit(NotificationKind.AUTO_COMMIT_ERROR, str(exc))
            self._emit(NotificationKind.WATCHER_STATUS, STATUS_COMMIT_FAILED)
            return

        with self._lock:
            if self._state.is_watching and self._state.project_path == path:
                self._state = replace(self._state, last_auto_commit=snapshot)
        self._emit(NotificationKind.AUTO_COMMIT_SUCCESS, snapshot.message)
        self._emit(NotificationKind.WATCHER_STATUS, STATUS_COMMITTED)

    def rollback(self, project_path: Path | str | None, commit_id: str) -> str:
        """Hard-reset *project_path* to *commit_id*. Returns the new tip's sha."""
        path = _require_path(project_path)
        with self._locks.hold(path):
            sha = self._rollback.rollback(path, commit_id)
        self.invalidate_diffs(path)
        return sha

    # ── diffs ────────────────────────────────────────────────────────────────

    def friendly_diff(self, project_path: Path | str | None, commit_id: str, file_path: str) -> FriendlyDiff:
        """FriendlyDiff of *file_path* at *commit_id*, cached per repository."""
        path = _require_path(project_path)
        sha = self._store.resolve_commit(path, commit_id)
        key = (repo_key(path), sha, file_path)
        with self._cache_lock:
            cached = self._diff_cache.get(key)
            if cached is not None:
                self._diff_cache.move_to_end(key)
        if cached is not None:
            return cached

        raw = self._store.raw_diff(path, sha, file_path)
        if not raw:
            friendly = unchanged_version(self._store.file_content(path, sha, file_path))
        else:
            friendly = translate(raw)
            if friendly.lines and not self._store.has_parent(path, sha):
                friendly = as_initial_version(friendly)

        with self._cache_lock:
            self._diff_cache[key] = friendly
            self._diff_cache.move_to_end(key)
            while len(self._diff_cache) > DIFF_CACHE_SIZE:
                self._diff_cache.popitem(last=False)
        return friendly

    def invalidate_diffs(self, project_path: Path | str) -> None:
        key = repo_key(project_path)
        with self._cache_lock:
            for cached in [k for k in self._diff_cache if k[0] == key]:
                del self._diff_cache[cached]

    # ── callbacks ────────────────────────────────────────────────────────────

    def _on_change(self, scheduler: DebounceScheduler, event: FileChangeEvent) -> None:
        logger.debug("%s %s", event.event_type, event.path)
        if not scheduler.armed and not scheduler.firing:
            self._emit(NotificationKind.WATCHER_STATUS, STATUS_CHANGES)
        scheduler.on_event()

    def _on_watch_error(self, watcher: FileWatcher, exc: Exception) -> None:
        with self._lock:
            if self._watcher is not watcher:
                return
            scheduler = self._scheduler
            self._watcher = self._scheduler = None
            self._state = replace(self._state, is_watching=False)
        if scheduler is not None:
            scheduler.close()
        self._emit(NotificationKind.WATCHER_STATUS, f"Watcher error: {exc}")

    def _emit(self, kind: NotificationKind, payload: str) -> None:
        if self._notify is None:
            return
        try:
            self._notify(Notification(kind=kind, payload=payload))
        except Exception:
            logger.exception("Notification handler failed for %s", kind.value)
