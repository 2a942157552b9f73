"""Filesystem watcher — recursive watchdog observer feeding a change sink.

Events inside the ``.git`` metadata directory and access-only events are
dropped. Losing the watched root (deleted or moved away) or a sink failure
is fatal: the watcher goes back to Idle, releases the OS watch and reports
the error through ``on_error``.
"""

from __future__ import annotations

import logging
import threading
import time
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Optional

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

logger = logging.getLogger(__name__)

METADATA_DIR = ".git"

_IGNORED_EVENT_TYPES = frozenset({"opened", "closed_no_write"})


class WatchError(Exception):
    """Raised when a watch cannot be established or has failed."""


class AlreadyWatching(WatchError):
    """start() was called on an active watcher."""


class PathNotFound(WatchError):
    """The root to watch does not exist or is not a directory."""


@dataclass(frozen=True)
class FileChangeEvent:
    path: str
    event_type: str = "modified"
    timestamp: float = field(default_factory=time.time)


ChangeSink = Callable[[FileChangeEvent], None]
ErrorCallback = Callable[[Exception], None]


def is_metadata_path(path: str, root: Path) -> bool:
    """True when *path* lies inside *root*'s version-control metadata directory."""
    try:
        rel = Path(path).resolve().relative_to(root)
    except ValueError:
        rel = Path(path)
    return METADATA_DIR in rel.parts


class _Handler(FileSystemEventHandler):
    def __init__(self, watcher: "FileWatcher", root: Path) -> None:
        super().__init__()
        self._watcher = watcher
        self._root = root

    def on_any_event(self, event: FileSystemEvent) -> None:
        if event.event_type in _IGNORED_EVENT_TYPES:
            return

        src = str(event.src_path)
        dest = str(getattr(event, "dest_path", "") or "")

        if event.is_directory and event.event_type in ("deleted", "moved"):
            if Path(src).resolve() == self._root:
                self._watcher._fail(WatchError(f"Watched directory {event.event_type}: {self._root}"))
                return

        if is_metadata_path(src, self._root) and (not dest or is_metadata_path(dest, self._root)):
            return

        change = FileChangeEvent(path=dest or src, event_type=event.event_type)
        try:
            self._watcher._deliver(change)
        except Exception as exc:
            logger.exception("Change sink failed for %s", change.path)
            self._watcher._fail(exc)


class FileWatcher:
    """Idle/Watching state machine around a recursive watchdog observer.

    Usage::

        with FileWatcher(sink=on_change) as watcher:
            watcher.start(project_root)
            ...
        # the OS watch handle is released on exit
    """

    def __init__(
        self,
        sink: ChangeSink,
        on_error: Optional[ErrorCallback] = None,
    ) -> None:
        self._sink = sink
        self._on_error = on_error
        self._lock = threading.Lock()
        self._observer: Optional[Observer] = None
        self._root: Optional[Path] = None

    @property
    def active(self) -> bool:
        with self._lock:
            return self._observer is not None

    @property
    def root(self) -> Optional[Path]:
        return self._root

    def start(self, root: Path | str) -> None:
        """Begin watching *root* recursively."""
        path = Path(root)
        with self._lock:
            if self._observer is not None:
                raise AlreadyWatching(f"Already watching {self._root}")
            if not path.is_dir():
                raise PathNotFound(f"Path not found: {path}")
            resolved = path.resolve()

            observer = Observer()
            try:
                observer.schedule(_Handler(self, resolved), str(resolved), recursive=True)
                observer.start()
            except OSError as exc:
                self._release(observer)
                raise WatchError(f"Could not watch {resolved}: {exc}") from exc

            self._observer = observer
            self._root = resolved
        logger.info("Watching %s", resolved)

    def stop(self) -> None:
        """Stop watching. Calling it while Idle is a no-op."""
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is None:
            return
        self._release(observer)
        logger.info("Stopped watching %s", self._root)

    def __enter__(self) -> "FileWatcher":
        return self

    def __exit__(self, *exc_info) -> None:
        self.stop()

    # ── internals ────────────────────────────────────────────────────────────

    @staticmethod
    def _release(observer: Observer) -> None:
        # stop() unschedules every watch, which closes the OS handle
        observer.stop()
        if observer.is_alive() and threading.current_thread() is not observer:
            observer.join(timeout=5)

    def _deliver(self, change: FileChangeEvent) -> None:
        with self._lock:
            if self._observer is None:
                return
        self._sink(change)

    def _fail(self, exc: Exception) -> None:
        with self._lock:
            observer, self._observer = self._observer, None
        if observer is None:
            return
        logger.error("Watcher for %s failed: %s", self._root, exc)
        try:
            self._release(observer)
        finally:
            if self._on_error is not None:
                self._on_error(exc)
