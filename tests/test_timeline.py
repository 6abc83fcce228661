from __future__ import annotations

import asyncio
import threading
from datetime import datetime, timedelta
from pathlib import Path

import pytest

from logsync.cancellation import CancelToken, OperationCancelled
from logsync.errors import LogFileError
from logsync.timeline import TIE_BREAK, TimelineCache, TimelineIndex, build_timeline


def _clock() -> datetime:
    return datetime(2024, 1, 10, 12, 0, 0)


def _write_target(path: Path) -> Path:
    path.write_text(
        "\n".join(
            [
                "2024/01/10 08:00:00 boot",
                "  continuation without a timestamp",
                "2024/01/10 08:00:05 step one",
                "2024/01/10 08:00:05 same second",
                "08:00:10 time only",
                "01/10 08:00:20 month and day",
            ]
        )
        + "\n",
        encoding="utf-8",
    )
    return path


def test_build_keeps_physical_line_numbers(tmp_path: Path) -> None:
    target = _write_target(tmp_path / "target.log")

    index = build_timeline(target, clock=_clock)

    assert index.line_numbers == [1, 3, 4, 5, 6]
    assert index.times[0] == datetime(2024, 1, 10, 8, 0, 0)
    assert index.times[3] == datetime(2024, 1, 10, 8, 0, 10)
    assert index.times[4] == datetime(2024, 1, 10, 8, 0, 20)


def test_duplicate_timestamps_are_bumped_to_stay_increasing(tmp_path: Path) -> None:
    target = _write_target(tmp_path / "target.log")

    index = build_timeline(target, clock=_clock)

    assert index.times[2] == index.times[1] + TIE_BREAK
    assert all(earlier < later for earlier, later in zip(index.times, index.times[1:]))


def test_out_of_order_line_is_bumped_past_previous() -> None:
    index = TimelineIndex(path=Path("target.log"))
    first = datetime(2024, 1, 10, 8, 0, 10)
    index.append(1, first)

    stored = index.append(2, datetime(2024, 1, 10, 8, 0, 0))

    assert stored == first + timedelta(milliseconds=1)
    assert index.find(first) == (0, True)
    assert index.find(datetime(2024, 1, 10, 8, 0, 5)) == (0, False)


def test_time_only_line_resolves_against_last_parsed_time(tmp_path: Path) -> None:
    target = tmp_path / "target.log"
    target.write_text(
        "2024/01/10 12:00:00 a\n2024/01/10 11:00:00 b\n23:30:00 c\n",
        encoding="utf-8",
    )

    index = build_timeline(target, clock=_clock)

    # 23:30 nearest to 11:00 is the previous evening, so it is bumped as well.
    assert index.times[1] == datetime(2024, 1, 10, 12, 0, 0) + TIE_BREAK
    assert index.times[2] == index.times[1] + TIE_BREAK


def test_missing_file_raises_log_file_error(tmp_path: Path) -> None:
    with pytest.raises(LogFileError) as excinfo:
        build_timeline(tmp_path / "missing.log")

    assert "does not exist" in excinfo.value.reason


def test_cancelled_token_stops_build(tmp_path: Path) -> None:
    target = _write_target(tmp_path / "target.log")
    token = CancelToken()
    token.cancel()

    with pytest.raises(OperationCancelled):
        build_timeline(target, token=token, clock=_clock, check_every=1)


def test_cache_builds_once_per_path(tmp_path: Path) -> None:
    target = _write_target(tmp_path / "target.log")
    calls: list[object] = []

    def builder(path, *, token):
        calls.append(path)
        return build_timeline(path, token=token, clock=_clock)

    cache = TimelineCache(builder)

    async def _exercise():
        first = await cache.get(target)
        second = await cache.get(str(target))
        return first, second

    first, second = asyncio.run(_exercise())

    assert first is second
    assert len(calls) == 1
    assert cache.peek(str(target.resolve()).upper()) is first


def test_cache_joins_in_flight_build(tmp_path: Path) -> None:
    target = _write_target(tmp_path / "target.log")
    calls: list[object] = []

    def builder(path, *, token):
        calls.append(path)
        return build_timeline(path, token=token, clock=_clock)

    cache = TimelineCache(builder)

    async def _exercise():
        return await asyncio.gather(cache.get(target), cache.get(target))

    first, second = asyncio.run(_exercise())

    assert first is second
    assert len(calls) == 1


def test_switching_paths_cancels_previous_build(tmp_path: Path) -> None:
    first_target = _write_target(tmp_path / "first.log")
    second_target = _write_target(tmp_path / "second.log")
    release = threading.Event()

    def builder(path, *, token):
        release.wait(timeout=5)
        token.raise_if_cancelled()
        return build_timeline(path, token=token, clock=_clock)

    cache = TimelineCache(builder)

    async def _exercise():
        first = asyncio.ensure_future(cache.get(first_target))
        await asyncio.sleep(0)
        second = asyncio.ensure_future(cache.get(second_target))
        await asyncio.sleep(0)
        release.set()
        with pytest.raises(OperationCancelled):
            await first
        return await second

    index = asyncio.run(_exercise())

    assert index.path == second_target.resolve()
    assert cache.index is index
    assert cache.building is False


def test_clear_forgets_index(tmp_path: Path) -> None:
    target = _write_target(tmp_path / "target.log")
    cache = TimelineCache(lambda path, *, token: build_timeline(path, token=token, clock=_clock))

    asyncio.run(cache.get(target))
    cache.clear()

    assert cache.index is None
    assert cache.peek(target) is None
