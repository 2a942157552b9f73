"""Data models for snapshots, repository status and friendly diffs."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional


class ChangeType(str, Enum):
    ADDED = "added"
    REMOVED = "removed"
    UNCHANGED = "unchanged"


@dataclass(frozen=True, slots=True)
class Snapshot:
    """One committed revision of the project."""

    id: str
    timestamp: str  # ISO-8601 committer date
    message: str

    @property
    def short_id(self) -> str:
        return self.id[:8]


@dataclass(frozen=True)
class RepoStatus:
    branch: str
    latest_commit_summary: Optional[str]
    dirty_file_count: int
    porcelain: str = ""

    @property
    def is_clean(self) -> bool:
        return self.dirty_file_count == 0


@dataclass(frozen=True)
class RepoInfo:
    branch: str = "unknown"
    commit: str = "unknown"


@dataclass(frozen=True, slots=True)
class DiffLine:
    """A single classified line of a friendly diff."""

    content: str
    change_type: ChangeType
    line_number: Optional[int] = None  # None for removed lines


@dataclass(frozen=True)
class FriendlyDiff:
    """Line-classified, human-summarized rendering of one file's diff."""

    summary: Optional[str] = None
    lines: List[DiffLine] = field(default_factory=list)

    @property
    def is_empty(self) -> bool:
        return not self.lines

    def count(self, change_type: ChangeType) -> int:
        return sum(1 for line in self.lines if line.change_type == change_type)
