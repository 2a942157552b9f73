"""Git interface layer — adapter, snapshot store, diff translation, models."""

from vibesnap.git.adapter import (
    CommandFailed,
    GitError,
    NotARepo,
    NothingToCommit,
    RepoInitError,
    UnknownCommit,
    UnknownFile,
    run_git,
)
from vibesnap.git.diff_parser import DiffTranslator, UnparseableDiff, summarize, translate
from vibesnap.git.models import ChangeType, DiffLine, FriendlyDiff, RepoInfo, RepoStatus, Snapshot
from vibesnap.git.store import SnapshotStore

__all__ = [
    "ChangeType",
    "CommandFailed",
    "DiffLine",
    "DiffTranslator",
    "FriendlyDiff",
    "GitError",
    "NotARepo",
    "NothingToCommit",
    "RepoInfo",
    "RepoInitError",
    "RepoStatus",
    "Snapshot",
    "SnapshotStore",
    "UnknownCommit",
    "UnknownFile",
    "UnparseableDiff",
    "run_git",
    "summarize",
]
