"""Configuration loading, schema, and defaults."""

from vibesnap.config.loader import CONFIG_FILENAME, ConfigError, load_config
from vibesnap.config.schema import (
    GitConfig,
    OutputConfig,
    SnapshotConfig,
    VibeSnapConfig,
    WatcherConfig,
)

__all__ = [
    "CONFIG_FILENAME",
    "ConfigError",
    "GitConfig",
    "OutputConfig",
    "SnapshotConfig",
    "VibeSnapConfig",
    "WatcherConfig",
    "load_config",
]
