"""Scheduler: periodic ranking posts driven by asyncio loops."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable

import structlog

from prformance.engines.notification.runner import NotificationRunner

logger = structlog.get_logger(__name__)


class EngineLoop:
    """Single scheduling loop with trigger/timeout wake mechanism."""

    def __init__(
        self,
        name: str,
        run_fn: Callable[[], Awaitable[int]],
        interval: float,
    ) -> None:
        self.name = name
        self.run_fn = run_fn
        self.interval = interval
        self.trigger = asyncio.Event()

    async def loop(self) -> None:
        """Run forever, waking on trigger or after *interval* seconds."""
        while True:
            try:
                await asyncio.wait_for(self.trigger.wait(), timeout=self.interval)
                self.trigger.clear()
            except asyncio.TimeoutError:
                pass

            try:
                processed = await self.run_fn()
                logger.info("engine.cycle", engine=self.name, processed=processed)
            except Exception:
                logger.exception("engine.error", engine=self.name)


class Scheduler:
    """Manages lifecycle of all EngineLoop tasks."""

    def __init__(self, loops: list[EngineLoop], *, run_immediately: bool = False) -> None:
        self._loops = loops
        self._run_immediately = run_immediately
        self._tasks: list[asyncio.Task[None]] = []

    async def start(self) -> None:
        """Start all loops as asyncio tasks."""
        self._tasks = [
            asyncio.create_task(loop.loop(), name=f"engine-{loop.name}") for loop in self._loops
        ]
        if self._run_immediately:
            for loop in self._loops:
                loop.trigger.set()
        logger.info("scheduler.started", engines=[loop.name for loop in self._loops])

    async def stop(self) -> None:
        """Cancel all loops and wait for them to exit."""
        for task in self._tasks:
            task.cancel()
        await asyncio.gather(*self._tasks, return_exceptions=True)
        self._tasks.clear()
        logger.info("scheduler.stopped")

    async def run_forever(self) -> None:
        """Start, then block until cancelled."""
        await self.start()
        try:
            await asyncio.gather(*self._tasks)
        finally:
            await self.stop()


def create_scheduler(
    notification_runner: NotificationRunner,
    *,
    interval: float,
    run_immediately: bool = False,
) -> Scheduler:
    """Build a Scheduler that posts the ranking every *interval* seconds."""

    async def _post_ranking() -> int:
        return await notification_runner.run_scheduled()

    return Scheduler(
        [EngineLoop("discord_report", _post_ranking, interval)],
        run_immediately=run_immediately,
    )
