from __future__ import annotations

import os
from pathlib import Path
from typing import Iterator

from ..errors import LogFileError


ACCESS_HINT = (
    "Re-launch logsync with elevated permissions (for example `sudo`) "
    "to read this file."
)


def normalize_path(raw: str | Path) -> Path:
    """Expand and absolutize a user supplied path without failing on missing targets."""

    if isinstance(raw, Path):
        path = raw
    else:
        path = Path(str(raw).strip().strip('"'))
    path = path.expanduser()
    try:
        if path.is_absolute():
            return path.resolve(strict=False)
        return (Path.cwd() / path).resolve(strict=False)
    except OSError:
        return path


def path_key(raw: str | Path) -> str:
    """Return a case-insensitive key for *raw* suitable for cache lookups."""

    return os.path.normcase(str(normalize_path(raw))).casefold()


def check_access(path: Path) -> tuple[bool, str | None]:
    """Verify *path* is a readable regular file."""

    try:
        exists = path.exists()
    except PermissionError:
        return False, f"Permission denied while checking '{path}'. {ACCESS_HINT}"

    if not exists:
        return False, f"Path '{path}' does not exist."

    if path.is_dir():
        return False, f"'{path}' is a directory, not a log file."

    if not path.is_file():
        return False, f"Path '{path}' is not a regular file."

    if not os.access(path, os.R_OK):
        return False, f"Read access required for file '{path}'. {ACCESS_HINT}"
    return True, None


def ensure_readable(raw: str | Path) -> Path:
    """Normalize *raw* and raise :class:`LogFileError` unless it can be read."""

    path = normalize_path(raw)
    allowed, reason = check_access(path)
    if not allowed:
        raise LogFileError(path, reason or f"Unable to read '{path}'.")
    return path


def iter_lines(raw: str | Path) -> Iterator[str]:
    """Stream the lines of a log file without trailing newlines."""

    path = ensure_readable(raw)
    try:
        with path.open("r", encoding="utf-8", errors="ignore") as handle:
            for line in handle:
                yield line.rstrip("\r\n")
    except OSError as exc:
        raise LogFileError(path, f"Failed to read '{path}': {exc}") from exc


def read_lines(raw: str | Path) -> list[str]:
    return list(iter_lines(raw))
