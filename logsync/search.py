"""Debounced, cancellable incremental search over an in-memory line buffer.

State machine: IDLE -> DEBOUNCING -> SCANNING -> READY

Every query or option change (re)arms the debounce timer. When the timer
fires, the running scan (if any) is cancelled and a new one starts with a
fresh token. Scans yield to the event loop at chunk boundaries and only a
scan whose token is still live may publish a :class:`SearchState`.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from enum import Enum
from typing import Callable, Iterable, Optional

from .cancellation import CancelToken
from .matcher import DEFAULT_REGEX_TIMEOUT, LineMatcher, SearchOptions, compile_matcher

logger = logging.getLogger(__name__)

DEFAULT_DEBOUNCE = 0.25
DEFAULT_CHUNK_SIZE = 2000


class SearchPhase(Enum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    SCANNING = "scanning"
    READY = "ready"


@dataclass(frozen=True)
class SearchState:
    """Published result of one complete scan."""

    query: str = ""
    case_sensitive: bool = False
    whole_word: bool = False
    use_regex: bool = False
    matches: tuple[int, ...] = ()
    cursor: int = -1
    error: Optional[str] = None

    @property
    def count(self) -> int:
        return len(self.matches)

    @property
    def current_line(self) -> Optional[int]:
        if 0 <= self.cursor < len(self.matches):
            return self.matches[self.cursor]
        return None


class IncrementalSearchEngine:
    def __init__(
        self,
        lines: Iterable[str] = (),
        *,
        debounce: float = DEFAULT_DEBOUNCE,
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        regex_timeout: float = DEFAULT_REGEX_TIMEOUT,
        on_results: Optional[Callable[[SearchState], None]] = None,
    ) -> None:
        self._lines: list[str] = list(lines)
        self.debounce = max(0.0, debounce)
        self.chunk_size = max(1, chunk_size)
        self.regex_timeout = regex_timeout
        self.on_results = on_results
        self._query = ""
        self._options = SearchOptions()
        self._state = SearchState()
        self._phase = SearchPhase.IDLE
        self._timer: Optional[asyncio.TimerHandle] = None
        self._token: Optional[CancelToken] = None
        self._task: Optional[asyncio.Task[None]] = None
        self._settled: Optional[asyncio.Event] = None

    # ── Read-only views ──

    @property
    def phase(self) -> SearchPhase:
        return self._phase

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def query(self) -> str:
        return self._query

    @property
    def options(self) -> SearchOptions:
        return self._options

    @property
    def line_count(self) -> int:
        return len(self._lines)

    def line(self, position: int) -> str:
        return self._lines[position]

    @property
    def match_count(self) -> int:
        return self._state.count

    @property
    def cursor_position(self) -> int:
        """1-based position of the cursor within the matches, 0 when there are none."""

        return self._state.cursor + 1 if self._state.matches else 0

    @property
    def current_line(self) -> Optional[int]:
        return self._state.current_line

    # ── Inputs ──

    def set_query(self, query: str) -> None:
        if query == self._query and self._phase is not SearchPhase.IDLE:
            return
        self._query = query
        self._arm()

    def set_options(
        self,
        *,
        case_sensitive: Optional[bool] = None,
        whole_word: Optional[bool] = None,
        use_regex: Optional[bool] = None,
    ) -> None:
        changes = {
            name: value
            for name, value in (
                ("case_sensitive", case_sensitive),
                ("whole_word", whole_word),
                ("use_regex", use_regex),
            )
            if value is not None
        }
        updated = replace(self._options, **changes)
        if updated == self._options:
            return
        self._options = updated
        self._arm()

    def load_lines(self, lines: Iterable[str]) -> None:
        """Replace the buffer. The previous scan is dropped and a rescan is armed."""

        self._cancel_scan()
        self._lines = list(lines)
        self._state = SearchState()
        self._arm()

    def append_line(self, line: str) -> None:
        self.append_lines((line,))

    def append_lines(self, lines: Iterable[str]) -> None:
        before = len(self._lines)
        self._lines.extend(lines)
        if len(self._lines) != before and self._query:
            self._arm()

    # ── Navigation ──

    def next_match(self) -> Optional[int]:
        return self._step(1)

    def prev_match(self) -> Optional[int]:
        return self._step(-1)

    def _step(self, delta: int) -> Optional[int]:
        count = self._state.count
        if not count:
            return None
        cursor = (self._state.cursor + delta) % count
        self._state = replace(self._state, cursor=cursor)
        return self._state.current_line

    # ── Scheduling ──

    def _arm(self) -> None:
        loop = asyncio.get_running_loop()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        # Only the scan started by the pending timer may publish.
        self._cancel_scan()
        if self._settled is None or self._settled.is_set():
            self._settled = asyncio.Event()
        self._phase = SearchPhase.DEBOUNCING
        self._timer = loop.call_later(self.debounce, self._fire)

    def _fire(self) -> None:
        self._timer = None
        self._cancel_scan()
        token = CancelToken()
        self._token = token
        matcher = compile_matcher(
            self._query,
            self._options.case_sensitive,
            self._options.whole_word,
            self._options.use_regex,
            timeout=self.regex_timeout,
        )
        self._state = SearchState(query=self._query, error=matcher.error)
        if matcher.is_empty:
            self._publish(token, matcher, [])
            return
        self._phase = SearchPhase.SCANNING
        self._task = asyncio.get_running_loop().create_task(self._scan(token, matcher, len(self._lines)))

    def _cancel_scan(self) -> None:
        if self._token is not None:
            self._token.cancel()
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._token = None
        self._task = None

    async def _scan(self, token: CancelToken, matcher: LineMatcher, end: int) -> None:
        found: list[int] = []
        lines = self._lines
        for start in range(0, end, self.chunk_size):
            stop = min(start + self.chunk_size, end)
            for position in range(start, stop):
                if matcher(lines[position]):
                    found.append(position)
            await asyncio.sleep(0)
            if token.cancelled:
                logger.debug("Scan for %r cancelled after %d line(s)", matcher.query, stop)
                return
        self._publish(token, matcher, found)

    def _publish(self, token: CancelToken, matcher: LineMatcher, found: list[int]) -> None:
        if token is not self._token or token.cancelled or self._timer is not None:
            return
        self._token = None
        self._task = None
        self._state = SearchState(
            query=matcher.query,
            case_sensitive=matcher.options.case_sensitive,
            whole_word=matcher.options.whole_word,
            use_regex=matcher.options.use_regex,
            matches=tuple(found),
            cursor=0 if found else -1,
            error=matcher.error,
        )
        self._phase = SearchPhase.READY
        if self._settled is not None:
            self._settled.set()
        logger.debug("Search %r finished with %d match(es)", matcher.query, len(found))
        if self.on_results is not None:
            self.on_results(self._state)

    async def wait_idle(self) -> SearchState:
        """Wait for the pending debounce and scan to publish, then return the state."""

        while self._phase in (SearchPhase.DEBOUNCING, SearchPhase.SCANNING):
            settled = self._settled
            if settled is None:
                break
            await settled.wait()
        return self._state

    def close(self) -> None:
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None
        self._cancel_scan()
        self._phase = SearchPhase.IDLE
        if self._settled is not None:
            self._settled.set()
