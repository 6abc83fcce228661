"""Flexible timestamp recognition for log line prefixes.

Three prefix shapes are recognized, in priority order:

    2024/01/10 12:34:56      full date (2- or 4-digit year, ``/`` or ``-``)
    01/10 12:34:56           month/day without a year
    12:34:56                 time of day only

Seconds may carry a ``.``/``,`` fraction. Incomplete shapes are anchored to a
*reference* datetime: the candidate closest to it wins.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from datetime import date, datetime, time, timedelta
from enum import Enum
from typing import Iterable, Optional


_LEAD = r"^\s*\[?"
_TIME = (
    r"(?P<hour>\d{1,2}):(?P<minute>\d{2}):(?P<second>\d{2})"
    r"(?:[.,](?P<fraction>\d{1,9}))?(?!\d)"
)

FULL_DATE_RE = re.compile(
    _LEAD + r"(?P<year>\d{4}|\d{2})[/-](?P<month>\d{1,2})[/-](?P<day>\d{1,2})[ T]" + _TIME
)
MONTH_DAY_RE = re.compile(_LEAD + r"(?P<month>\d{1,2})[/-](?P<day>\d{1,2})[ T]" + _TIME)
TIME_ONLY_RE = re.compile(_LEAD + _TIME)


class TimestampShape(Enum):
    FULL = "full"
    MONTH_DAY = "month_day"
    TIME = "time"


_SHAPES: tuple[tuple[TimestampShape, re.Pattern[str]], ...] = (
    (TimestampShape.FULL, FULL_DATE_RE),
    (TimestampShape.MONTH_DAY, MONTH_DAY_RE),
    (TimestampShape.TIME, TIME_ONLY_RE),
)


@dataclass(frozen=True)
class TimestampPrefix:
    """Fields captured from the start of a line, before any disambiguation."""

    shape: TimestampShape
    clock: time
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    end: int = 0


def _expand_year(raw: str) -> int:
    value = int(raw)
    if len(raw) == 4:
        return value
    # Same pivot as strptime("%y").
    return value + 1900 if value >= 69 else value + 2000


def _fraction_to_micros(raw: Optional[str]) -> int:
    if not raw:
        return 0
    return int(raw[:6].ljust(6, "0"))


def scan_prefix(text: str) -> Optional[TimestampPrefix]:
    """Return the first matching prefix shape of *text*, or ``None``."""

    for shape, pattern in _SHAPES:
        match = pattern.match(text)
        if not match:
            continue
        try:
            clock = time(
                int(match.group("hour")),
                int(match.group("minute")),
                int(match.group("second")),
                _fraction_to_micros(match.group("fraction")),
            )
        except ValueError:
            return None
        groups = match.groupdict()
        return TimestampPrefix(
            shape=shape,
            clock=clock,
            year=_expand_year(groups["year"]) if groups.get("year") else None,
            month=int(groups["month"]) if groups.get("month") else None,
            day=int(groups["day"]) if groups.get("day") else None,
            end=match.end(),
        )
    return None


def closest(candidates: Iterable[datetime], reference: datetime) -> Optional[datetime]:
    """Pick the candidate nearest to *reference*; earlier candidates win ties."""

    best: Optional[datetime] = None
    best_delta: Optional[timedelta] = None
    for candidate in candidates:
        delta = abs(candidate - reference)
        if best_delta is None or delta < best_delta:
            best, best_delta = candidate, delta
    return best


def _safe_datetime(year: int, month: int, day: int, clock: time) -> Optional[datetime]:
    try:
        return datetime.combine(date(year, month, day), clock)
    except (ValueError, OverflowError):
        return None


def _candidates(prefix: TimestampPrefix, reference: datetime) -> list[datetime]:
    if prefix.shape is TimestampShape.MONTH_DAY:
        years = (reference.year, reference.year - 1, reference.year + 1)
        built = (_safe_datetime(year, prefix.month, prefix.day, prefix.clock) for year in years)
        return [value for value in built if value is not None]

    anchors = (reference.date(), reference.date() - timedelta(days=1), reference.date() + timedelta(days=1))
    return [datetime.combine(anchor, prefix.clock) for anchor in anchors]


def resolve_prefix(prefix: TimestampPrefix, reference: datetime) -> Optional[datetime]:
    if prefix.shape is TimestampShape.FULL:
        return _safe_datetime(prefix.year, prefix.month, prefix.day, prefix.clock)
    return closest(_candidates(prefix, reference), reference)


def parse_timestamp(text: str, reference: datetime) -> Optional[datetime]:
    """Resolve the timestamp at the start of *text* against *reference*.

    Returns ``None`` for text without a recognizable prefix or for dates that
    do not exist on the calendar. Never raises for malformed input.
    """

    if not text:
        return None
    prefix = scan_prefix(text)
    if prefix is None:
        return None
    return resolve_prefix(prefix, reference)
