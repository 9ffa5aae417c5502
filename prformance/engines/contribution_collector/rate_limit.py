"""Rate-limit budget shared by every request of a run."""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Mapping
from typing import Any

import structlog

from prformance.services import RateLimitExceeded

log = structlog.get_logger("prformance.engine")

# Margin added after the advertised reset instant.
_RESET_MARGIN = 1.0


def _parse_int(value: Any) -> int | None:
    if value is None:
        return None
    try:
        return int(value)
    except (ValueError, TypeError):
        return None


class RateLimitBudget:
    """Remaining-quota and reset-time bookkeeping for the GitHub core API.

    Updated from ``X-RateLimit-*`` headers on every response and, at most
    every *check_interval* seconds, from ``GET /rate_limit``.
    :meth:`await_capacity` is the only place that sleeps for quota.
    """

    def __init__(
        self,
        *,
        max_wait: float = 3600.0,
        check_interval: float = 60.0,
        clock: Callable[[], float] = time.time,
    ) -> None:
        self.max_wait = max_wait
        self.check_interval = check_interval
        self.remaining: int | None = None
        self.limit: int | None = None
        self.reset_at: float | None = None
        self._clock = clock
        self._last_check: float | None = None

    # ── updates ────────────────────────────────────────────────────────────

    def update(
        self,
        *,
        remaining: int | None,
        reset_at: float | None,
        limit: int | None = None,
    ) -> None:
        if remaining is not None:
            self.remaining = remaining
        if reset_at is not None:
            self.reset_at = reset_at
        if limit is not None:
            self.limit = limit

    def update_from_headers(self, headers: Mapping[str, str]) -> None:
        self.update(
            remaining=_parse_int(headers.get("X-RateLimit-Remaining")),
            reset_at=_parse_int(headers.get("X-RateLimit-Reset")),
            limit=_parse_int(headers.get("X-RateLimit-Limit")),
        )

    def update_from_payload(self, payload: Mapping[str, Any]) -> None:
        """Apply a ``GET /rate_limit`` response body."""
        core = (payload.get("resources") or {}).get("core") or payload.get("rate") or {}
        self.update(
            remaining=_parse_int(core.get("remaining")),
            reset_at=_parse_int(core.get("reset")),
            limit=_parse_int(core.get("limit")),
        )
        log.debug(
            "rate_limit.refreshed",
            remaining=self.remaining,
            limit=self.limit,
            reset_at=self.reset_at,
        )

    def mark_exhausted(self, retry_after: float) -> None:
        """Record a rate-limited response that asked us to wait *retry_after* seconds."""
        self.remaining = 0
        self.reset_at = self._clock() + retry_after - _RESET_MARGIN

    # ── periodic refresh ───────────────────────────────────────────────────

    def needs_refresh(self) -> bool:
        if self._last_check is None:
            return True
        return self._clock() - self._last_check >= self.check_interval

    def mark_checked(self) -> None:
        self._last_check = self._clock()

    # ── capacity ───────────────────────────────────────────────────────────

    def wait_time(self) -> float:
        """Seconds to wait before the next request, 0 if quota remains."""
        if self.remaining is None or self.remaining > 0:
            return 0.0
        if self.reset_at is None:
            return 0.0
        return max(self.reset_at - self._clock() + _RESET_MARGIN, 0.0)

    async def await_capacity(self) -> None:
        """Sleep until the quota resets when it is exhausted.

        Raises :class:`RateLimitExceeded` instead of sleeping when the reset
        is further away than *max_wait*.
        """
        wait = self.wait_time()
        if wait <= 0:
            return
        if wait > self.max_wait:
            log.error("rate_limit.exceeded", wait_seconds=round(wait), max_wait=self.max_wait)
            raise RateLimitExceeded(wait, self.max_wait)
        log.warning("rate_limit.wait", wait_seconds=round(wait, 1))
        await asyncio.sleep(wait)
        # Quota is unknown until the next response reports it.
        self.remaining = None
