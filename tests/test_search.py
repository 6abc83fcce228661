from __future__ import annotations

import asyncio

from logsync.search import IncrementalSearchEngine, SearchPhase, SearchState

LINES = [
    "08:00:00 ERROR disk full",
    "08:00:01 INFO retrying",
    "08:00:02 error: disk still full",
    "08:00:03 INFO errors cleared",
    "08:00:04 WARN error budget low",
]


def test_query_publishes_matches_with_cursor_on_first() -> None:
    published: list[SearchState] = []

    async def _exercise() -> IncrementalSearchEngine:
        engine = IncrementalSearchEngine(LINES, debounce=0, on_results=published.append)
        engine.set_query("error")
        await engine.wait_idle()
        return engine

    engine = asyncio.run(_exercise())

    assert engine.phase is SearchPhase.READY
    assert engine.state.matches == (0, 2, 3, 4)
    assert engine.cursor_position == 1
    assert engine.current_line == 0
    assert len(published) == 1


def test_whole_word_and_case_options_rescan() -> None:
    async def _exercise() -> list[tuple[int, ...]]:
        engine = IncrementalSearchEngine(LINES, debounce=0)
        engine.set_query("error")
        results = [(await engine.wait_idle()).matches]
        engine.set_options(whole_word=True)
        results.append((await engine.wait_idle()).matches)
        engine.set_options(case_sensitive=True)
        results.append((await engine.wait_idle()).matches)
        engine.close()
        return results

    plain, whole_word, exact_case = asyncio.run(_exercise())

    assert plain == (0, 2, 3, 4)
    assert whole_word == (0, 2, 4)
    assert exact_case == (2, 4)


def test_superseded_query_never_publishes() -> None:
    lines = ["ab" if number % 100 == 0 else "a" for number in range(20_000)]
    published: list[SearchState] = []

    async def _exercise() -> SearchState:
        engine = IncrementalSearchEngine(lines, debounce=0, chunk_size=10, on_results=published.append)
        engine.set_query("a")
        while engine.phase is not SearchPhase.SCANNING:
            await asyncio.sleep(0)
        engine.set_query("ab")
        return await engine.wait_idle()

    state = asyncio.run(_exercise())

    assert state.query == "ab"
    assert state.count == 200
    assert [item.query for item in published] == ["ab"]


def test_scan_finishing_during_newer_debounce_is_discarded() -> None:
    lines = ["a"] * 50 + ["ab"] * 5
    published: list[SearchState] = []

    async def _exercise() -> tuple[list[str], SearchPhase, SearchState, SearchState]:
        engine = IncrementalSearchEngine(lines, debounce=0, chunk_size=1, on_results=published.append)
        engine.set_query("a")
        while engine.phase is not SearchPhase.SCANNING:
            await asyncio.sleep(0)
        engine.debounce = 0.2
        engine.set_query("ab")
        # Long enough for the 55-line "a" scan to have run to completion.
        await asyncio.sleep(0.05)
        seen_during_debounce = [item.query for item in published]
        phase_during_debounce = engine.phase
        first = await engine.wait_idle()
        second = await asyncio.wait_for(engine.wait_idle(), timeout=1)
        return seen_during_debounce, phase_during_debounce, first, second

    seen, phase, first, second = asyncio.run(_exercise())

    assert seen == []
    assert phase is SearchPhase.DEBOUNCING
    assert first.query == "ab"
    assert first.matches == tuple(range(50, 55))
    assert second is first
    assert [item.query for item in published] == ["ab"]


def test_rapid_typing_is_debounced_into_one_scan() -> None:
    published: list[SearchState] = []

    async def _exercise() -> None:
        engine = IncrementalSearchEngine(LINES, debounce=0.05, on_results=published.append)
        for partial in ("e", "er", "err", "erro", "error"):
            engine.set_query(partial)
        await engine.wait_idle()

    asyncio.run(_exercise())

    assert [item.query for item in published] == ["error"]


def test_navigation_wraps_in_both_directions() -> None:
    async def _exercise() -> tuple[list, IncrementalSearchEngine]:
        engine = IncrementalSearchEngine(LINES, debounce=0)
        engine.set_query("INFO")
        await engine.wait_idle()
        visited = [engine.next_match(), engine.next_match(), engine.prev_match(), engine.prev_match()]
        return visited, engine

    visited, engine = asyncio.run(_exercise())

    assert visited == [3, 1, 3, 1]
    assert engine.cursor_position == 1


def test_navigation_without_matches_is_a_no_op() -> None:
    published: list[SearchState] = []

    async def _exercise() -> IncrementalSearchEngine:
        engine = IncrementalSearchEngine(LINES, debounce=0, on_results=published.append)
        engine.set_query("nothing like this")
        await engine.wait_idle()
        return engine

    engine = asyncio.run(_exercise())

    assert engine.next_match() is None
    assert engine.prev_match() is None
    assert engine.cursor_position == 0
    assert published[-1].count == 0


def test_empty_query_publishes_empty_result() -> None:
    async def _exercise() -> SearchState:
        engine = IncrementalSearchEngine(LINES, debounce=0)
        engine.set_query("ERROR")
        await engine.wait_idle()
        engine.set_query("")
        return await engine.wait_idle()

    state = asyncio.run(_exercise())

    assert state.query == ""
    assert state.matches == ()


def test_invalid_regex_reports_error_with_zero_matches() -> None:
    async def _exercise() -> SearchState:
        engine = IncrementalSearchEngine(LINES, debounce=0)
        engine.set_options(use_regex=True)
        engine.set_query("error(")
        return await engine.wait_idle()

    state = asyncio.run(_exercise())

    assert state.error is not None
    assert state.count == 0


def test_appended_lines_are_picked_up_by_rescan() -> None:
    async def _exercise() -> tuple[int, SearchPhase, int]:
        engine = IncrementalSearchEngine(LINES[:2], debounce=0)
        engine.set_query("ERROR")
        before = (await engine.wait_idle()).count
        engine.append_lines(LINES[2:])
        phase = engine.phase
        after = (await engine.wait_idle()).count
        return before, phase, after

    before, phase, after = asyncio.run(_exercise())

    assert before == 1
    assert phase is SearchPhase.DEBOUNCING
    assert after == 4


def test_appending_without_query_does_not_scan() -> None:
    async def _exercise() -> IncrementalSearchEngine:
        engine = IncrementalSearchEngine(debounce=0)
        engine.append_line("08:00:00 hello")
        return engine

    engine = asyncio.run(_exercise())

    assert engine.phase is SearchPhase.IDLE
    assert engine.line_count == 1
    assert engine.line(0) == "08:00:00 hello"


def test_load_lines_replaces_buffer_and_rescans() -> None:
    async def _exercise() -> SearchState:
        engine = IncrementalSearchEngine(LINES, debounce=0)
        engine.set_query("ERROR")
        await engine.wait_idle()
        engine.load_lines(["no match", "ERROR again"])
        return await engine.wait_idle()

    state = asyncio.run(_exercise())

    assert state.matches == (1,)


def test_close_releases_waiters() -> None:
    async def _exercise() -> IncrementalSearchEngine:
        engine = IncrementalSearchEngine(LINES, debounce=10)
        engine.set_query("ERROR")
        waiter = asyncio.ensure_future(engine.wait_idle())
        await asyncio.sleep(0)
        engine.close()
        await asyncio.wait_for(waiter, timeout=1)
        return engine

    engine = asyncio.run(_exercise())

    assert engine.phase is SearchPhase.IDLE
    assert engine.match_count == 0
