"""Summary log tokenizer.

A summary line looks like ``<time> <category> <detail...>``. The detail is a
comma separated record (data number, port, name, location, duration, start,
end) that callers may split with :func:`detail_fields`.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Collection, Iterable

from .services.sources import iter_lines
from .timestamps import TimestampShape, scan_prefix

DETAIL_FIELDS: tuple[str, ...] = (
    "data_no",
    "port",
    "name",
    "location",
    "duration",
    "start",
    "end",
)


@dataclass(frozen=True)
class LogEntry:
    raw_time: str
    category: str
    detail: str = ""


def _split_time(line: str) -> tuple[str, str]:
    """Split off the leading time text, keeping a date and its time together."""

    prefix = scan_prefix(line)
    if prefix is not None and prefix.shape is not TimestampShape.TIME:
        raw_time, rest = line[: prefix.end].strip(), line[prefix.end :]
    else:
        parts = line.split(None, 1)
        raw_time, rest = parts[0], parts[1] if len(parts) > 1 else ""
    if raw_time.startswith("["):
        if rest.startswith("]"):
            rest = rest[1:]
        raw_time = raw_time[1:].rstrip("]")
    return raw_time, rest


def parse_summary_line(line: str) -> LogEntry | None:
    if not line or not line.strip():
        return None
    raw_time, rest = _split_time(line)
    parts = rest.split(None, 1)
    if not raw_time or not parts:
        return None
    category = parts[0]
    detail = parts[1].strip() if len(parts) > 1 else ""
    return LogEntry(raw_time=raw_time, category=category, detail=detail)


def parse_summary_lines(lines: Iterable[str]) -> list[LogEntry]:
    entries: list[LogEntry] = []
    for line in lines:
        entry = parse_summary_line(line)
        if entry is not None:
            entries.append(entry)
    return entries


def load_summary(path: str | Path) -> list[LogEntry]:
    """Parse a summary log file. Raises :class:`~logsync.errors.LogFileError`."""

    return parse_summary_lines(iter_lines(path))


def detail_fields(detail: str) -> dict[str, str]:
    if not detail or not detail.strip():
        return {}
    values = [part.strip() for part in detail.split(",")]
    return dict(zip(DETAIL_FIELDS, values))


def categories(entries: Iterable[LogEntry]) -> list[str]:
    return list(dict.fromkeys(entry.category for entry in entries))


def filter_entries(entries: Iterable[LogEntry], wanted: Collection[str]) -> list[LogEntry]:
    if not wanted:
        return list(entries)
    return [entry for entry in entries if entry.category in wanted]
