"""Configuration schema — dataclasses for every config section."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal, Optional

OutputFormat = Literal["terminal", "json", "yaml"]

OUTPUT_FORMATS = ("terminal", "json", "yaml")


@dataclass
class WatcherConfig:
    debounce_ms: int = 2000
    log_file: Optional[str] = None  # last non-empty line becomes the auto-commit message


@dataclass
class SnapshotConfig:
    manual_prefix: str = "[Vibe] AI Prompt: "
    auto_prefix: str = "[Vibe] Auto: "
    default_message: str = "AI modified files"
    init_message: str = "VibeSnap: initialize project"
    history_limit: int = 50

    @property
    def default_auto_message(self) -> str:
        return f"{self.auto_prefix}{self.default_message}"


@dataclass
class GitConfig:
    user_name: str = "VibeSnap User"
    user_email: str = "vibesnap@example.com"
    timeout: int = 30  # seconds per git invocation


@dataclass
class OutputConfig:
    format: OutputFormat = "terminal"


@dataclass
class VibeSnapConfig:
    version: str = "1.0"
    watcher: WatcherConfig = field(default_factory=WatcherConfig)
    snapshot: SnapshotConfig = field(default_factory=SnapshotConfig)
    git: GitConfig = field(default_factory=GitConfig)
    output: OutputConfig = field(default_factory=OutputConfig)
