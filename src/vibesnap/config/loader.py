"""Load and merge configuration from .vibesnap.toml and env vars."""

from __future__ import annotations

import os
import sys
from pathlib import Path
from typing import Any, Dict, Optional

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from vibesnap.config.schema import (
    OUTPUT_FORMATS,
    GitConfig,
    OutputConfig,
    SnapshotConfig,
    VibeSnapConfig,
    WatcherConfig,
)

CONFIG_FILENAME = ".vibesnap.toml"


class ConfigError(Exception):
    """Raised when config is malformed or unreadable."""


def find_config_file(project_root: Path, override: Optional[str] = None) -> Optional[Path]:
    """Locate the config file. *override* takes precedence."""
    if override:
        p = Path(override)
        if not p.is_file():
            raise ConfigError(f"Config file not found: {override}")
        return p
    candidate = project_root / CONFIG_FILENAME
    return candidate if candidate.is_file() else None


def _parse_toml(path: Path) -> Dict[str, Any]:
    try:
        with open(path, "rb") as f:
            return tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as exc:
        raise ConfigError(f"Failed to parse {path}: {exc}") from exc


def _env_int(name: str, minimum: int = 0) -> Optional[int]:
    val = os.environ.get(name)
    if val is None:
        return None
    try:
        parsed = int(val)
    except ValueError:
        return None
    return parsed if parsed >= minimum else None


def _merge_env_overrides(cfg: VibeSnapConfig) -> None:
    """Apply VIBESNAP_* environment variable overrides."""
    if (debounce := _env_int("VIBESNAP_DEBOUNCE_MS")) is not None:
        cfg.watcher.debounce_ms = debounce
    if val := os.environ.get("VIBESNAP_LOG_FILE"):
        cfg.watcher.log_file = val
    if val := os.environ.get("VIBESNAP_FORMAT"):
        if val in OUTPUT_FORMATS:
            cfg.output.format = val  # type: ignore[assignment]
    if (timeout := _env_int("VIBESNAP_GIT_TIMEOUT", minimum=1)) is not None:
        cfg.git.timeout = timeout
    if (limit := _env_int("VIBESNAP_HISTORY_LIMIT", minimum=1)) is not None:
        cfg.snapshot.history_limit = limit


def _build_section(data: Dict[str, Any], cls: type, section: str):
    """Build a dataclass from a TOML section dict, ignoring unknown keys."""
    import dataclasses

    raw = data.get(section, {})
    if not isinstance(raw, dict):
        raise ConfigError(f"[{section}] must be a table")
    valid_fields = {f.name for f in dataclasses.fields(cls)}
    filtered = {k: v for k, v in raw.items() if k in valid_fields}
    return cls(**filtered)


def _validate(cfg: VibeSnapConfig) -> None:
    if not isinstance(cfg.watcher.debounce_ms, int) or cfg.watcher.debounce_ms < 0:
        raise ConfigError("watcher.debounce_ms must be a non-negative integer")
    if cfg.output.format not in OUTPUT_FORMATS:
        raise ConfigError(
            f"output.format must be one of {', '.join(OUTPUT_FORMATS)}, got {cfg.output.format!r}"
        )
    if not isinstance(cfg.snapshot.history_limit, int) or cfg.snapshot.history_limit < 1:
        raise ConfigError("snapshot.history_limit must be a positive integer")
    # TOML has no null; an empty string means "no log file"
    if not cfg.watcher.log_file:
        cfg.watcher.log_file = None


def load_config(
    project_root: Path,
    config_override: Optional[str] = None,
) -> VibeSnapConfig:
    """Load, validate, and return a VibeSnapConfig."""
    config_path = find_config_file(project_root, config_override)

    if config_path is None:
        cfg = VibeSnapConfig()
    else:
        raw = _parse_toml(config_path)
        cfg = VibeSnapConfig(
            version=raw.get("version", "1.0"),
            watcher=_build_section(raw, WatcherConfig, "watcher"),
            snapshot=_build_section(raw, SnapshotConfig, "snapshot"),
            git=_build_section(raw, GitConfig, "git"),
            output=_build_section(raw, OutputConfig, "output"),
        )

    _merge_env_overrides(cfg)
    _validate(cfg)
    return cfg
