"""In-memory TTL cache for idempotent GitHub reads."""

from __future__ import annotations

import time
from collections.abc import Awaitable, Callable
from typing import Any, TypeVar

import structlog

log = structlog.get_logger("prformance.engine")

T = TypeVar("T")


class ResponseCache:
    """Memoize fetch results by ``(operation, parameters)`` for *ttl* seconds.

    Entries are replaced wholesale; two concurrent misses on the same key both
    fetch and the last writer wins.
    """

    def __init__(
        self,
        ttl: float = 3600.0,
        *,
        enabled: bool = True,
        clock: Callable[[], float] = time.monotonic,
    ) -> None:
        self.ttl = ttl
        self.enabled = enabled
        self._clock = clock
        self._entries: dict[str, tuple[float, Any]] = {}
        self._next_sweep: float | None = None

    @staticmethod
    def make_key(operation: str, **params: Any) -> str:
        parts = [f"{k}={params[k]}" for k in sorted(params)]
        return ":".join([operation, *parts])

    def get(self, key: str) -> tuple[bool, Any]:
        """Return ``(hit, value)``; expired entries are evicted."""
        entry = self._entries.get(key)
        if entry is None:
            return False, None
        expires_at, value = entry
        if self._clock() >= expires_at:
            del self._entries[key]
            return False, None
        return True, value

    def set(self, key: str, value: Any) -> None:
        now = self._clock()
        if self._next_sweep is None or now >= self._next_sweep:
            self._sweep(now)
        self._entries[key] = (now + self.ttl, value)

    def _sweep(self, now: float) -> None:
        """Drop every expired entry; runs at most once per *ttl*."""
        expired = [key for key, (expires_at, _) in self._entries.items() if now >= expires_at]
        for key in expired:
            del self._entries[key]
        if expired:
            log.debug("cache.swept", evicted=len(expired), held=len(self._entries))
        self._next_sweep = now + self.ttl

    async def get_or_fetch(self, key: str, fetch: Callable[[], Awaitable[T]]) -> T:
        if not self.enabled:
            return await fetch()
        hit, value = self.get(key)
        if hit:
            log.debug("cache.hit", key=key)
            return value
        value = await fetch()
        self.set(key, value)
        return value

    def clear(self) -> None:
        self._entries.clear()

    def __len__(self) -> int:
        return len(self._entries)
