"""Sequential batches of concurrent coroutines."""

from __future__ import annotations

import asyncio
from collections.abc import Awaitable, Callable, Sequence
from typing import TypeVar

from prformance.services import RateLimitExceeded

T = TypeVar("T")
R = TypeVar("R")


def chunked(items: Sequence[T], size: int) -> list[Sequence[T]]:
    if size < 1:
        raise ValueError(f"batch size must be >= 1, got {size}")
    return [items[i : i + size] for i in range(0, len(items), size)]


async def gather_in_batches(
    items: Sequence[T],
    fn: Callable[[T], Awaitable[R]],
    batch_size: int,
    *,
    delay: float = 0.0,
    fatal: tuple[type[BaseException], ...] = (RateLimitExceeded,),
) -> list[R | Exception]:
    """Run ``fn(item)`` for every item, *batch_size* at a time.

    A batch settles completely before the next one starts; *delay* seconds
    separate consecutive batches. Results keep the order of *items*; a failed
    call leaves its exception in place of the result. Exceptions of a *fatal*
    type, and anything that is not an :class:`Exception` (cancellation), are
    re-raised once their batch has settled.
    """
    results: list[R | Exception] = []
    batches = chunked(items, batch_size)
    for index, batch in enumerate(batches):
        if index > 0 and delay > 0:
            await asyncio.sleep(delay)
        settled = await asyncio.gather(*(fn(item) for item in batch), return_exceptions=True)
        for result in settled:
            if isinstance(result, fatal) or (
                isinstance(result, BaseException) and not isinstance(result, Exception)
            ):
                raise result
        results.extend(settled)  # type: ignore[arg-type]
    return results
