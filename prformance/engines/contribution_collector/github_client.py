"""Async GitHub API client with pagination, rate-limit budgeting, and retries."""

from __future__ import annotations

import asyncio
import re
import time
from collections.abc import AsyncGenerator
from typing import Any

import httpx
import structlog

from prformance.engines.contribution_collector.rate_limit import RateLimitBudget
from prformance.services import SourceFetchError

log = structlog.get_logger("prformance.engine")

_NEXT_LINK_RE = re.compile(r'<([^>]+)>;\s*rel="next"')

_MAX_RETRIES = 3
_RETRY_BASE_DELAY = 1.0  # seconds


class GitHubClient:
    """Thin async wrapper around the GitHub REST API."""

    def __init__(
        self,
        token: str | None = None,
        *,
        budget: RateLimitBudget | None = None,
        base_url: str = "https://api.github.com",
        transport: httpx.AsyncBaseTransport | None = None,
    ) -> None:
        headers: dict[str, str] = {
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }
        if token:
            headers["Authorization"] = f"token {token}"
        self.budget = budget or RateLimitBudget()
        self._client = httpx.AsyncClient(
            base_url=base_url,
            headers=headers,
            timeout=30.0,
            transport=transport,
        )

    # ── lifecycle ──────────────────────────────────────────────────────────

    async def close(self) -> None:
        await self._client.aclose()

    async def __aenter__(self) -> GitHubClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    # ── public ─────────────────────────────────────────────────────────────

    async def get_paginated(
        self,
        path: str,
        params: dict[str, Any] | None = None,
        *,
        max_pages: int | None = None,
    ) -> AsyncGenerator[dict[str, Any], None]:
        """Yield JSON items from a paginated GitHub API endpoint.

        Follows ``Link: <...>; rel="next"`` headers until the last page, or
        until *max_pages* pages when given.
        """
        url: str | None = path
        params = dict(params or {})
        params.setdefault("per_page", 100)
        page = 0

        while url and (max_pages is None or page < max_pages):
            response = await self._request_with_retry(url, params if page == 0 else None)

            data = response.json()
            if isinstance(data, list):
                for item in data:
                    yield item
            else:
                yield data

            url = self._parse_next_link(response.headers.get("Link", ""))
            page += 1

    async def get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        """Single GET, returns parsed JSON (an object or a one-page list)."""
        response = await self._request_with_retry(path, params)
        return response.json()

    async def refresh_rate_limit(self) -> None:
        """Pull ``GET /rate_limit`` into the budget; it does not consume quota."""
        self.budget.mark_checked()
        try:
            resp = await self._client.get("/rate_limit")
            resp.raise_for_status()
        except httpx.HTTPError as exc:
            log.warning("github.rate_limit_check_failed", error=str(exc))
            return
        self.budget.update_from_payload(resp.json())

    # ── internal ───────────────────────────────────────────────────────────

    async def _request_with_retry(
        self,
        url: str,
        params: dict[str, Any] | None = None,
    ) -> httpx.Response:
        """GET with exponential backoff on 5xx and transport errors.

        Rate-limited responses are fed back into the budget, which decides how
        long to sleep before the next attempt (or raises
        :class:`~prformance.services.RateLimitExceeded`).
        """
        last_error = "no attempt made"
        last_exc: Exception | None = None
        for attempt in range(_MAX_RETRIES):
            if self.budget.needs_refresh():
                await self.refresh_rate_limit()
            await self.budget.await_capacity()

            try:
                resp = await self._client.get(url, params=params)
            except httpx.TimeoutException as exc:
                log.warning(
                    "github.timeout",
                    url=url,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_error, last_exc = "timeout", exc
            except httpx.TransportError as exc:
                log.warning(
                    "github.transport_error",
                    url=url,
                    error=str(exc),
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_error, last_exc = str(exc), exc
            else:
                self.budget.update_from_headers(resp.headers)

                # 403/429 with rate-limit headers → let the budget wait, then retry
                if resp.status_code in (403, 429) and self._is_rate_limited(resp):
                    wait = self._get_rate_limit_wait(resp)
                    log.warning(
                        "github.rate_limit",
                        url=url,
                        wait_seconds=wait,
                        attempt=attempt + 1,
                        max_retries=_MAX_RETRIES,
                    )
                    self.budget.mark_exhausted(wait)
                    last_error, last_exc = f"rate limited ({resp.status_code})", None
                    continue

                if resp.status_code < 400:
                    return resp

                if resp.status_code < 500:
                    exc = httpx.HTTPStatusError(
                        f"{resp.status_code}", request=resp.request, response=resp
                    )
                    raise SourceFetchError(url, f"HTTP {resp.status_code}") from exc

                # 5xx: retry
                log.warning(
                    "github.server_error",
                    url=url,
                    status=resp.status_code,
                    attempt=attempt + 1,
                    max_retries=_MAX_RETRIES,
                )
                last_error = f"HTTP {resp.status_code}"
                last_exc = httpx.HTTPStatusError(
                    f"{resp.status_code}", request=resp.request, response=resp
                )

            if attempt < _MAX_RETRIES - 1:
                delay = _RETRY_BASE_DELAY * (2**attempt)
                await asyncio.sleep(delay)

        raise SourceFetchError(url, last_error) from last_exc

    @staticmethod
    def _is_rate_limited(response: httpx.Response) -> bool:
        """Check if a 403/429 response is due to rate limiting."""
        remaining = response.headers.get("X-RateLimit-Remaining")
        if remaining is not None:
            try:
                if int(remaining) == 0:
                    return True
            except (ValueError, TypeError):
                pass
        # GitHub also uses Retry-After header for secondary rate limits
        return "Retry-After" in response.headers or response.status_code == 429

    @staticmethod
    def _get_rate_limit_wait(response: httpx.Response) -> int:
        """Calculate how long to wait based on rate-limit headers."""
        retry_after = response.headers.get("Retry-After")
        if retry_after is not None:
            try:
                return max(int(retry_after), 1)
            except (ValueError, TypeError):
                pass
        reset_ts = response.headers.get("X-RateLimit-Reset")
        if reset_ts is not None:
            try:
                return max(int(reset_ts) - int(time.time()), 1)
            except (ValueError, TypeError):
                pass
        return 60  # conservative fallback

    @staticmethod
    def _parse_next_link(link_header: str) -> str | None:
        """Extract the ``next`` URL from a GitHub ``Link`` header."""
        match = _NEXT_LINK_RE.search(link_header)
        return match.group(1) if match else None
