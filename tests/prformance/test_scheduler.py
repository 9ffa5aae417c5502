"""Unit tests for the periodic ranking scheduler."""

from __future__ import annotations

import asyncio
from unittest.mock import AsyncMock

import pytest

from prformance.scheduler import EngineLoop, Scheduler, create_scheduler


@pytest.fixture
def make_loop():
    """Factory for EngineLoop instances with a controllable run_fn."""

    def _make(
        *,
        name: str = "test",
        return_value: int = 0,
        interval: float = 100,
        side_effect: Exception | None = None,
    ) -> tuple[EngineLoop, list[int]]:
        calls: list[int] = []

        async def run_fn() -> int:
            calls.append(1)
            if side_effect is not None:
                raise side_effect
            return return_value

        return EngineLoop(name, run_fn, interval), calls

    return _make


async def _wait_until(predicate, poll: float = 0.01):
    while not predicate():
        await asyncio.sleep(poll)


@pytest.mark.asyncio
async def test_loop_runs_on_timeout(make_loop):
    loop, calls = make_loop(interval=0.05)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_loop_runs_on_trigger(make_loop):
    loop, calls = make_loop(interval=100)

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.sleep(0.01)
        assert calls == []
        loop.trigger.set()
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_exception_does_not_crash(make_loop):
    loop, calls = make_loop(interval=0.05, side_effect=RuntimeError("boom"))

    task = asyncio.create_task(loop.loop())
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 2), timeout=2.0)
    finally:
        task.cancel()
        await asyncio.gather(task, return_exceptions=True)


@pytest.mark.asyncio
async def test_scheduler_start_stop(make_loop):
    loop, calls = make_loop(interval=0.05)

    scheduler = Scheduler([loop])
    await scheduler.start()
    await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=2.0)
    await scheduler.stop()

    assert scheduler._tasks == []


@pytest.mark.asyncio
async def test_run_immediately(make_loop):
    loop, calls = make_loop(interval=100)

    scheduler = Scheduler([loop], run_immediately=True)
    await scheduler.start()
    try:
        await asyncio.wait_for(_wait_until(lambda: len(calls) >= 1), timeout=1.0)
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_not_run_immediately_by_default(make_loop):
    loop, calls = make_loop(interval=100)

    scheduler = Scheduler([loop])
    await scheduler.start()
    try:
        await asyncio.sleep(0.05)
        assert calls == []
    finally:
        await scheduler.stop()


@pytest.mark.asyncio
async def test_create_scheduler_posts_ranking():
    notifier = AsyncMock()
    notifier.run_scheduled.return_value = 4

    scheduler = create_scheduler(notifier, interval=100, run_immediately=True)
    await scheduler.start()
    try:
        await asyncio.wait_for(
            _wait_until(lambda: notifier.run_scheduled.await_count >= 1), timeout=1.0
        )
    finally:
        await scheduler.stop()
