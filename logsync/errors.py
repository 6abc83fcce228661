from __future__ import annotations

from pathlib import Path


class LogSyncError(Exception):
    """Base class for errors surfaced to callers."""


class LogFileError(LogSyncError):
    """A log file could not be opened or read."""

    def __init__(self, path: Path | str, reason: str) -> None:
        super().__init__(reason)
        self.path = Path(path)
        self.reason = reason


class IndexNotReadyError(LogSyncError):
    """Raised when a lookup is attempted before a timeline index is available."""
