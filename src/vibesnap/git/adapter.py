"""Git subprocess wrapper — command runner and error taxonomy."""

from __future__ import annotations

import logging
import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import Callable, Dict, Optional, Sequence

logger = logging.getLogger(__name__)


class GitError(Exception):
    """Raised when git is unavailable or returns an unexpected error."""


class NotARepo(GitError):
    """The project path has no git repository."""


class RepoInitError(GitError):
    """The repository could not be created or given its baseline commit."""


class NothingToCommit(GitError):
    """The stage is empty after adding all changes."""


class UnknownCommit(GitError):
    """The commit id does not resolve to a commit."""


class UnknownFile(GitError):
    """The file is neither changed in nor present at the requested commit."""


class CommandFailed(GitError):
    """Git exited non-zero. Carries the command's stderr."""

    def __init__(self, args: Sequence[str], stderr: str, returncode: int = 1) -> None:
        self.command = list(args)
        self.stderr = stderr
        self.returncode = returncode
        detail = stderr or f"exit status {returncode}"
        super().__init__(f"git {' '.join(self.command)} failed: {detail}")


@dataclass(frozen=True)
class GitResult:
    """Outcome of one git invocation."""

    returncode: int
    stdout: str
    stderr: str

    @property
    def ok(self) -> bool:
        return self.returncode == 0


# (args, cwd, timeout, env) -> GitResult
CommandRunner = Callable[..., GitResult]

# Disables index refreshes that would take index.lock during reads.
READ_ONLY_ENV: Dict[str, str] = {"GIT_OPTIONAL_LOCKS": "0"}


def run_git(
    args: Sequence[str],
    cwd: Path,
    timeout: int = 30,
    env: Optional[Dict[str, str]] = None,
) -> GitResult:
    """Run a git command and return its result. Raises GitError if git cannot run."""
    full_env = None
    if env:
        full_env = {**os.environ, **env}
    if not Path(cwd).is_dir():
        raise GitError(f"working directory does not exist: {cwd}")
    logger.debug("git %s (cwd=%s)", " ".join(args), cwd)
    try:
        result = subprocess.run(
            ["git", *args],
            cwd=cwd,
            capture_output=True,
            text=True,
            timeout=timeout,
            encoding="utf-8",
            errors="replace",
            env=full_env,
        )
    except FileNotFoundError:
        raise GitError("git is not installed or not on PATH")
    except subprocess.TimeoutExpired:
        raise GitError(f"git command timed out after {timeout}s: git {' '.join(args)}")

    return GitResult(
        returncode=result.returncode,
        stdout=result.stdout,
        stderr=result.stderr.strip(),
    )


def check_git(
    runner: CommandRunner,
    args: Sequence[str],
    cwd: Path,
    timeout: int = 30,
    env: Optional[Dict[str, str]] = None,
) -> str:
    """Run *args* through *runner* and return stdout. Raises CommandFailed on non-zero exit."""
    result = runner(args, cwd=cwd, timeout=timeout, env=env)
    if not result.ok:
        raise CommandFailed(args, result.stderr, result.returncode)
    return result.stdout


def is_repo(path: Path) -> bool:
    """True when *path* has its own ``.git`` metadata directory (or gitfile)."""
    return (path / ".git").exists()
