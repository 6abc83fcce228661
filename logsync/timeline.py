"""Timeline index over a target log: ordered (line number, timestamp) pairs."""

from __future__ import annotations

import asyncio
import logging
from bisect import bisect_left
from dataclasses import dataclass, field
from datetime import datetime, timedelta
from pathlib import Path
from typing import Callable, Optional

from .cancellation import CancelToken, OperationCancelled
from .services.sources import ensure_readable, iter_lines, path_key
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)

TIE_BREAK = timedelta(milliseconds=1)
BUILD_CHECK_EVERY = 4096


@dataclass
class TimelineIndex:
    """Strictly increasing timestamps paired with the physical line they came from."""

    path: Path
    line_numbers: list[int] = field(default_factory=list)
    times: list[datetime] = field(default_factory=list)

    def __len__(self) -> int:
        return len(self.times)

    @property
    def key(self) -> str:
        return path_key(self.path)

    @property
    def last_time(self) -> Optional[datetime]:
        return self.times[-1] if self.times else None

    def append(self, line_number: int, timestamp: datetime) -> datetime:
        """Append *timestamp*, nudging it forward to keep ``times`` strictly increasing."""

        if self.times and timestamp <= self.times[-1]:
            timestamp = self.times[-1] + TIE_BREAK
        self.line_numbers.append(line_number)
        self.times.append(timestamp)
        return timestamp

    def find(self, timestamp: datetime) -> tuple[int, bool]:
        """Return ``(position, exact)`` where position is the bisect insertion point."""

        position = bisect_left(self.times, timestamp)
        exact = position < len(self.times) and self.times[position] == timestamp
        return position, exact


def build_timeline(
    path: str | Path,
    *,
    token: Optional[CancelToken] = None,
    clock: Callable[[], datetime] = datetime.now,
    check_every: int = BUILD_CHECK_EVERY,
) -> TimelineIndex:
    """Stream *path* once and index every line that starts with a timestamp.

    Raises :class:`~logsync.errors.LogFileError` when the file cannot be read
    and :class:`~logsync.cancellation.OperationCancelled` when *token* fires.
    """

    resolved = ensure_readable(path)
    index = TimelineIndex(path=resolved)
    reference = clock()
    skipped = 0
    check_every = max(1, check_every)

    for line_number, line in enumerate(iter_lines(resolved), start=1):
        if token is not None and line_number % check_every == 0 and token.cancelled:
            logger.debug("Timeline build for %s cancelled at line %d", resolved, line_number)
            raise OperationCancelled()
        timestamp = parse_timestamp(line, reference)
        if timestamp is None:
            skipped += 1
            continue
        index.append(line_number, timestamp)
        reference = timestamp

    if token is not None:
        token.raise_if_cancelled()
    logger.info(
        "Indexed %d timestamped line(s) from %s (%d skipped)",
        len(index),
        resolved,
        skipped,
    )
    return index


class TimelineCache:
    """Owns the index for the current target log and rebuilds it only on path change.

    Builds run in a worker thread and are single-flight: asking for the same
    path joins the running build, asking for another path cancels it.
    """

    def __init__(self, builder: Callable[..., TimelineIndex] = build_timeline) -> None:
        self._builder = builder
        self._index: Optional[TimelineIndex] = None
        self._pending_key: Optional[str] = None
        self._pending: Optional[asyncio.Future[TimelineIndex]] = None
        self._token: Optional[CancelToken] = None

    @property
    def index(self) -> Optional[TimelineIndex]:
        return self._index

    @property
    def building(self) -> bool:
        return self._pending is not None and not self._pending.done()

    def peek(self, path: str | Path) -> Optional[TimelineIndex]:
        if self._index is not None and self._index.key == path_key(path):
            return self._index
        return None

    async def get(self, path: str | Path) -> TimelineIndex:
        cached = self.peek(path)
        if cached is not None:
            return cached

        key = path_key(path)
        if self.building and self._pending_key == key:
            return await self._join(self._pending, self._token)

        self._cancel_pending()
        token = CancelToken()
        logger.debug("Starting timeline build for %s", path)
        self._token = token
        self._pending_key = key
        self._pending = asyncio.ensure_future(asyncio.to_thread(self._builder, path, token=token))
        return await self._join(self._pending, token)

    async def _join(self, pending: asyncio.Future[TimelineIndex], token: CancelToken) -> TimelineIndex:
        try:
            index = await asyncio.shield(pending)
        finally:
            if self._pending is pending and pending.done():
                self._pending = None
                self._pending_key = None
                self._token = None
        if token.cancelled:
            raise OperationCancelled()
        self._index = index
        return index

    def _cancel_pending(self) -> None:
        if self._token is not None:
            self._token.cancel()
        self._token = None
        self._pending = None
        self._pending_key = None

    def clear(self) -> None:
        self._cancel_pending()
        self._index = None
