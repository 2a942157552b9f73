"""SnapshotStore — commit, log, diff and reset primitives over the git CLI.

Mutating calls (``ensure_repo``, ``commit``, ``hard_reset_to``) assume the
caller holds the repository's commit lock. Read-only calls run with git's
optional locks disabled and retry briefly when a concurrent mutation holds
``index.lock``.
"""

from __future__ import annotations

import logging
import os
import time
from pathlib import Path
from typing import List, Optional, Sequence

from vibesnap.config.schema import GitConfig
from vibesnap.git.adapter import (
    READ_ONLY_ENV,
    CommandFailed,
    CommandRunner,
    GitResult,
    NotARepo,
    NothingToCommit,
    RepoInitError,
    UnknownCommit,
    UnknownFile,
    check_git,
    is_repo,
    run_git,
)
from vibesnap.git.models import RepoInfo, RepoStatus, Snapshot

logger = logging.getLogger(__name__)

_FIELD_SEP = "\x1f"
_LOG_FORMAT = "--format=%H%x1f%P%x1f%cI%x1f%s"
_DEFAULT_INIT_MESSAGE = "VibeSnap: initialize project"


def _is_lock_contention(stderr: str) -> bool:
    return ".lock" in stderr and ("Unable to create" in stderr or "File exists" in stderr)


def _parse_log_record(line: str) -> tuple[Snapshot, bool]:
    """Parse one ``_LOG_FORMAT`` record. Returns (snapshot, is_root)."""
    sha, parents, date, subject = line.split(_FIELD_SEP, 3)
    return Snapshot(id=sha, timestamp=date, message=subject), not parents.strip()


class SnapshotStore:
    """Git-backed snapshot primitives with a consistent error contract."""

    def __init__(
        self,
        runner: Optional[CommandRunner] = None,
        git_config: Optional[GitConfig] = None,
        init_message: str = _DEFAULT_INIT_MESSAGE,
        read_retries: int = 3,
        retry_delay: float = 0.1,
    ) -> None:
        self._runner: CommandRunner = runner or run_git
        self._git = git_config or GitConfig()
        self._init_message = init_message
        self._read_retries = read_retries
        self._retry_delay = retry_delay

    # ── plumbing ─────────────────────────────────────────────────────────────

    def _write(self, path: Path, args: Sequence[str]) -> str:
        return check_git(self._runner, args, cwd=path, timeout=self._git.timeout)

    def _read(self, path: Path, args: Sequence[str]) -> GitResult:
        attempt = 0
        while True:
            result = self._runner(args, cwd=path, timeout=self._git.timeout, env=READ_ONLY_ENV)
            if result.ok or attempt >= self._read_retries or not _is_lock_contention(result.stderr):
                return result
            attempt += 1
            logger.debug("git %s hit a lock, retry %d", args[0], attempt)
            time.sleep(self._retry_delay)

    def _read_checked(self, path: Path, args: Sequence[str]) -> str:
        result = self._read(path, args)
        if not result.ok:
            raise CommandFailed(args, result.stderr, result.returncode)
        return result.stdout

    def require_repo(self, path: Path | str) -> Path:
        """Return *path* as a Path, raising NotARepo if it has no repository."""
        if not str(path).strip():
            raise NotARepo("A project path is required")
        p = Path(path)
        if not p.is_dir():
            raise NotARepo(f"Project path does not exist: {p}")
        if not is_repo(p):
            raise NotARepo(f"Not a git repository: {p}")
        return p

    def resolve_commit(self, path: Path | str, commit_id: str) -> str:
        """Return the full sha for *commit_id*. Raises UnknownCommit."""
        p = self.require_repo(path)
        ref = commit_id.strip()
        if not ref or ref.startswith("-"):
            raise UnknownCommit(f"Invalid commit id: {commit_id!r}")
        result = self._read(p, ["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        if not result.ok or not result.stdout.strip():
            raise UnknownCommit(f"Unknown commit: {ref}")
        return result.stdout.strip()

    def has_parent(self, path: Path | str, commit_id: str) -> bool:
        p = self.require_repo(path)
        sha = self.resolve_commit(p, commit_id)
        return self._read(p, ["rev-parse", "--verify", "--quiet", f"{sha}^"]).ok

    def _has_head(self, path: Path) -> bool:
        return self._read(path, ["rev-parse", "--verify", "--quiet", "HEAD"]).ok

    # ── repository lifecycle ─────────────────────────────────────────────────

    def ensure_repo(self, path: Path | str) -> bool:
        """Initialize *path* as a repository with a baseline commit.

        Returns True if a repository was created, False if one already existed.
        """
        p = Path(path)
        if not p.exists():
            raise RepoInitError(f"Project path does not exist: {p}")
        if not p.is_dir():
            raise RepoInitError(f"Project path is not a directory: {p}")
        existing = is_repo(p)
        if existing and self._has_head(p):
            return False
        if not os.access(p, os.W_OK):
            raise RepoInitError(f"Project path is not writable: {p}")

        try:
            if existing:
                # an earlier init never got its baseline commit
                logger.info("Repository at %s has no commits yet; adding the baseline", p)
            else:
                self._write(p, ["init", "-q"])
            self._ensure_identity(p)
            self._write(p, ["add", "-A"])
            self._write(p, ["commit", "-q", "--allow-empty", "-m", self._init_message])
        except CommandFailed as exc:
            raise RepoInitError(f"Repository initialization failed: {exc}") from exc

        logger.info("Initialized snapshot repository at %s", p)
        return True

    def _ensure_identity(self, path: Path) -> None:
        """Set a local commit identity when none is configured at any level."""
        for key, value in (("user.name", self._git.user_name), ("user.email", self._git.user_email)):
            current = self._runner(["config", key], cwd=path, timeout=self._git.timeout)
            if current.ok and current.stdout.strip():
                continue
            self._write(path, ["config", key, value])

    # ── mutations ────────────────────────────────────────────────────────────

    def commit(self, path: Path | str, message: str) -> Snapshot:
        """Stage every change under *path* and commit it.

        Raises NothingToCommit when the stage is empty after ``git add -A``.
        """
        p = self.require_repo(path)
        self._write(p, ["add", "-A"])

        staged = self._runner(["diff", "--cached", "--quiet"], cwd=p, timeout=self._git.timeout)
        if staged.returncode == 0:
            raise NothingToCommit("No changes to snapshot")
        if staged.returncode != 1:
            raise CommandFailed(["diff", "--cached", "--quiet"], staged.stderr, staged.returncode)

        self._write(p, ["commit", "-q", "-m", message])
        snapshot = self.head(p)
        if snapshot is None:
            raise CommandFailed(["log", "-1"], "commit succeeded but HEAD is unreadable")
        logger.info("Snapshot %s: %s", snapshot.short_id, snapshot.message)
        return snapshot

    def hard_reset_to(self, path: Path | str, commit_id: str) -> str:
        """Move the branch tip and working tree to *commit_id*, dropping all local changes.

        Untracked files are deleted; ignored files are kept. Returns the full sha.
        """
        p = self.require_repo(path)
        sha = self.resolve_commit(p, commit_id)
        self._write(p, ["reset", "--hard", "-q", sha])
        self._write(p, ["clean", "-fd", "-q"])
        logger.info("Reset %s to %s", p, sha[:8])
        return sha

    # ── queries ──────────────────────────────────────────────────────────────

    def head(self, path: Path | str) -> Optional[Snapshot]:
        p = self.require_repo(path)
        result = self._read(p, ["log", "-1", _LOG_FORMAT])
        if not result.ok or not result.stdout.strip():
            return None
        snapshot, _ = _parse_log_record(result.stdout.strip())
        return snapshot

    def log(self, path: Path | str, limit: int = 50) -> List[Snapshot]:
        """Return up to *limit* snapshots, newest first, excluding the root commit."""
        p = self.require_repo(path)
        if limit <= 0 or not self._has_head(p):
            return []
        out = self._read_checked(p, ["log", f"--max-count={limit + 1}", _LOG_FORMAT])
        history: List[Snapshot] = []
        for line in out.splitlines():
            if not line.strip():
                continue
            snapshot, is_root = _parse_log_record(line)
            if is_root:
                continue
            history.append(snapshot)
        return history[:limit]

    def diff_files(self, path: Path | str, commit_id: str) -> List[str]:
        """Return the paths changed by *commit_id* relative to its parent."""
        p = self.require_repo(path)
        sha = self.resolve_commit(p, commit_id)
        out = self._read_checked(
            p, ["diff-tree", "--no-commit-id", "--name-only", "-r", "--root", "-z", sha]
        )
        return [name for name in out.split("\0") if name]

    def raw_diff(self, path: Path | str, commit_id: str, file_path: str) -> str:
        """Return the unified diff of *file_path* at *commit_id*.

        Returns ``""`` when the file exists at the commit but the commit did not
        touch it. Raises UnknownFile when it neither changed nor exists there.
        """
        p = self.require_repo(path)
        sha = self.resolve_commit(p, commit_id)
        if not file_path.strip():
            raise UnknownFile("File path must not be empty")
        out = self._read_checked(
            p,
            [
                "diff-tree", "-p", "--root", "--no-commit-id", "--no-color",
                "--no-ext-diff", "-r", sha, "--", file_path,
            ],
        )
        if out.strip():
            return out
        if self._read(p, ["cat-file", "-e", f"{sha}:{file_path}"]).ok:
            return ""
        raise UnknownFile(f"{file_path} is not part of commit {sha[:8]}")

    def file_content(self, path: Path | str, commit_id: str, file_path: str) -> str:
        p = self.require_repo(path)
        sha = self.resolve_commit(p, commit_id)
        result = self._read(p, ["show", f"{sha}:{file_path}"])
        if not result.ok:
            raise UnknownFile(f"{file_path} does not exist at commit {sha[:8]}")
        return result.stdout

    def status(self, path: Path | str) -> RepoStatus:
        p = self.require_repo(path)
        branch = self._read(p, ["branch", "--show-current"]).stdout.strip() or "HEAD (detached)"
        latest: Optional[str] = None
        if self._has_head(p):
            latest = self._read_checked(p, ["log", "-1", "--format=%h %s"]).strip() or None
        porcelain = self._read_checked(p, ["status", "--porcelain"])
        dirty = sum(1 for line in porcelain.splitlines() if line.strip())
        return RepoStatus(
            branch=branch,
            latest_commit_summary=latest,
            dirty_file_count=dirty,
            porcelain=porcelain,
        )

    def info(self, path: Path | str) -> RepoInfo:
        """Branch and short HEAD hash, ``"unknown"`` where git cannot tell."""
        p = Path(path)
        branch = self._read(p, ["branch", "--show-current"])
        commit = self._read(p, ["rev-parse", "--short", "HEAD"])
        return RepoInfo(
            branch=branch.stdout.strip() if branch.ok and branch.stdout.strip() else "unknown",
            commit=commit.stdout.strip() if commit.ok and commit.stdout.strip() else "unknown",
        )

    def oneline_log(self, path: Path | str, count: int = 10) -> List[str]:
        p = Path(path)
        out = self._read_checked(p, ["log", "--oneline", f"-{max(count, 1)}"])
        return [line for line in out.splitlines() if line.strip()]
