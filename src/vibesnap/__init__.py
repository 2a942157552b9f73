"""VibeSnap — continuous snapshots of a working directory, backed by git."""

__version__ = "0.1.0"
