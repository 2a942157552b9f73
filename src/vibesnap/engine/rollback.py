"""Rollback — discard local changes and hard-reset to an earlier snapshot."""

from __future__ import annotations

import logging
from pathlib import Path

from vibesnap.git.store import SnapshotStore

logger = logging.getLogger(__name__)


class RollbackManager:
    def __init__(self, store: SnapshotStore) -> None:
        self._store = store

    def rollback(self, path: Path | str, commit_id: str) -> str:
        """Reset *path* to *commit_id*. Irreversible; the caller holds the repo lock.

        Returns the full sha of the new tip.
        """
        p = self._store.require_repo(path)
        target = self._store.resolve_commit(p, commit_id)
        status = self._store.status(p)
        if not status.is_clean:
            logger.warning(
                "Rolling back %s discards %d uncommitted change(s)", p, status.dirty_file_count
            )
        sha = self._store.hard_reset_to(p, target)
        logger.info("Rolled back %s to %s", p, sha[:8])
        return sha
