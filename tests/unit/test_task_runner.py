from __future__ import annotations

import asyncio
import threading

import pytest

from ledgerbuild.tasks import run_with_concurrency


@pytest.mark.asyncio
async def test_empty_items_start_nothing() -> None:
    calls: list[int] = []

    async def _worker(item: int) -> None:
        calls.append(item)

    await run_with_concurrency([], 3, _worker)
    assert calls == []


@pytest.mark.asyncio
async def test_runs_every_item_within_limit() -> None:
    active = 0
    peak = 0
    done: list[int] = []

    async def _worker(item: int) -> None:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1
        done.append(item)

    await run_with_concurrency(range(7), 3, _worker)
    assert sorted(done) == list(range(7))
    assert peak == 3


@pytest.mark.asyncio
async def test_lanes_never_exceed_queue_length() -> None:
    active = 0
    peak = 0

    async def _worker(item: int) -> None:
        nonlocal active, peak
        active += 1
        peak = max(peak, active)
        await asyncio.sleep(0.01)
        active -= 1

    await run_with_concurrency([1, 2], 10, _worker)
    assert peak == 2


@pytest.mark.asyncio
async def test_first_failure_stops_scheduling_and_propagates() -> None:
    started: list[int] = []
    finished: list[int] = []
    active = 0
    peak = 0
    fourth_started = asyncio.Event()

    async def _worker(item: int) -> None:
        nonlocal active, peak
        started.append(item)
        active += 1
        peak = max(peak, active)
        try:
            if item == 3:
                await fourth_started.wait()
                raise ValueError("item 3 failed")
            if item == 4:
                fourth_started.set()
                await asyncio.sleep(0.05)
            else:
                await asyncio.sleep(0)
            finished.append(item)
        finally:
            active -= 1

    with pytest.raises(ValueError, match="item 3 failed"):
        await run_with_concurrency([1, 2, 3, 4, 5], 2, _worker)

    assert started == [1, 2, 3, 4]
    assert peak <= 2
    # Already-started work runs to completion.
    assert 4 in finished


@pytest.mark.asyncio
async def test_only_first_error_is_raised() -> None:
    async def _worker(item: int) -> None:
        await asyncio.sleep(0.01 * item)
        raise RuntimeError(f"failed {item}")

    with pytest.raises(RuntimeError, match="failed 1"):
        await run_with_concurrency([1, 2], 2, _worker)


@pytest.mark.asyncio
async def test_sync_workers_run_off_the_event_loop() -> None:
    loop_thread = threading.get_ident()
    seen: list[bool] = []

    def _worker(item: int) -> None:
        seen.append(threading.get_ident() != loop_thread)

    await run_with_concurrency([1, 2, 3], 2, _worker)
    assert seen == [True, True, True]


@pytest.mark.asyncio
async def test_limit_below_one_is_treated_as_one() -> None:
    order: list[int] = []

    async def _worker(item: int) -> None:
        order.append(item)
        await asyncio.sleep(0)

    await run_with_concurrency([1, 2, 3], 0, _worker)
    assert order == [1, 2, 3]
