"""Nearest-line lookup of a query timestamp inside a :class:`TimelineIndex`."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Optional

from .errors import IndexNotReadyError
from .timeline import TimelineIndex
from .timestamps import parse_timestamp

logger = logging.getLogger(__name__)

DEFAULT_LOCALITY_WINDOW = 600


@dataclass(frozen=True)
class Resolution:
    line_number: int
    timestamp: datetime
    position: int


class NearestMatchResolver:
    """Resolve query timestamps to target-log lines for one interactive session.

    The resolver remembers the last winning position and the last query time.
    The former biases later lookups toward nearby lines, the latter anchors
    queries that omit a year or date.
    """

    def __init__(
        self,
        index: Optional[TimelineIndex] = None,
        *,
        window: int = DEFAULT_LOCALITY_WINDOW,
        clock: Callable[[], datetime] = datetime.now,
    ) -> None:
        self.index = index
        self.window = max(0, window)
        self._clock = clock
        self.last_position: Optional[int] = None
        self.last_time: Optional[datetime] = None

    def bind(self, index: TimelineIndex) -> None:
        """Attach a (possibly different) index, dropping session state if it changed."""

        if self.index is not index:
            self.reset()
        self.index = index

    def reset(self) -> None:
        self.last_position = None
        self.last_time = None

    def reference_for(self, index: TimelineIndex) -> datetime:
        if self.last_time is not None:
            return self.last_time
        if index.last_time is not None:
            return index.last_time
        return self._clock()

    def resolve(self, query_text: str, index: Optional[TimelineIndex] = None) -> Optional[Resolution]:
        index = index if index is not None else self.index
        if index is None:
            raise IndexNotReadyError("No timeline index has been built for the target log.")
        if not index.times or not query_text or not query_text.strip():
            return None

        query = parse_timestamp(query_text.strip(), self.reference_for(index))
        if query is None:
            logger.debug("Query %r has no recognizable timestamp", query_text)
            return None

        position, exact = index.find(query)
        if not exact:
            position = self._nearest_neighbour(index, query, position)
            position = self._refine_locally(index, query, position)

        self.last_position = position
        self.last_time = query
        return Resolution(
            line_number=index.line_numbers[position],
            timestamp=index.times[position],
            position=position,
        )

    @staticmethod
    def _nearest_neighbour(index: TimelineIndex, query: datetime, insertion: int) -> int:
        times = index.times
        candidate = min(max(insertion, 0), len(times) - 1)
        before = candidate - 1
        if before >= 0 and abs(times[before] - query) < abs(times[candidate] - query):
            return before
        return candidate

    def _refine_locally(self, index: TimelineIndex, query: datetime, candidate: int) -> int:
        """Prefer a position around the previous match when it is at least as close.

        Only positions inside ``last_position +/- window`` are considered; the
        first one in index order wins among equals.
        """

        if self.last_position is None or self.window == 0:
            return candidate
        times = index.times
        lo = max(0, self.last_position - self.window)
        hi = min(len(times) - 1, self.last_position + self.window)
        if lo > hi:
            return candidate

        local = lo
        local_delta = abs(times[lo] - query)
        for position in range(lo + 1, hi + 1):
            delta = abs(times[position] - query)
            if delta < local_delta:
                local, local_delta = position, delta
        if local_delta <= abs(times[candidate] - query):
            return local
        return candidate
