"""Per-repository commit locks.

A repository's lock has two layers: a ``threading.Lock`` shared by every
RepoLocks in the process, and an advisory ``flock`` on
``.git/vibesnap.lock`` that excludes other processes (a ``vibesnap snap``
in one terminal while ``vibesnap watch`` runs in another).
"""

from __future__ import annotations

import fcntl
import threading
from contextlib import contextmanager
from pathlib import Path
from typing import Dict, Iterator

LOCK_FILENAME = "vibesnap.lock"

_registry_guard = threading.Lock()
_registry: Dict[str, threading.Lock] = {}


def repo_key(path: Path | str) -> str:
    """Normalize *path* so every spelling of one repository shares a lock."""
    return str(Path(path).resolve())


@contextmanager
def _file_lock(path: Path) -> Iterator[None]:
    git_dir = path / ".git"
    if not git_dir.is_dir():
        # not a repository (yet); the caller's git command reports that
        yield
        return
    with open(git_dir / LOCK_FILENAME, "a") as handle:
        fcntl.flock(handle, fcntl.LOCK_EX)
        try:
            yield
        finally:
            fcntl.flock(handle, fcntl.LOCK_UN)


class RepoLocks:
    """Hands out one mutual-exclusion lock per repository path.

    Every mutation of a repository (auto commit, manual commit, hard reset)
    runs inside ``with locks.hold(path):``. Instances share their locks, so
    two engines in one process exclude each other too.
    """

    def lock_for(self, path: Path | str) -> threading.Lock:
        key = repo_key(path)
        with _registry_guard:
            lock = _registry.get(key)
            if lock is None:
                lock = _registry[key] = threading.Lock()
            return lock

    @contextmanager
    def hold(self, path: Path | str) -> Iterator[None]:
        with self.lock_for(path):
            with _file_lock(Path(repo_key(path))):
                yield

    def is_held(self, path: Path | str) -> bool:
        return self.lock_for(path).locked()
