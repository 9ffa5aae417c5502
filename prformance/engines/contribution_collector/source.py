"""GitHubSource: the typed organization-scoped reads the collector consumes.

Every read is depaginated, idempotent and memoized by :class:`ResponseCache`.
"""

from __future__ import annotations

from datetime import datetime
from typing import Any

from prformance.engines.contribution_collector.cache import ResponseCache
from prformance.engines.contribution_collector.github_client import GitHubClient
from prformance.engines.contribution_collector.models import isoformat_utc, parse_datetime

Item = dict[str, Any]


class GitHubSource:
    """Read-only view of one organization on top of :class:`GitHubClient`."""

    def __init__(
        self,
        client: GitHubClient,
        org: str,
        cache: ResponseCache | None = None,
    ) -> None:
        self._client = client
        self.org = org
        self._cache = cache or ResponseCache(enabled=False)

    async def _collect(self, path: str, params: dict[str, Any] | None = None) -> list[Item]:
        return [item async for item in self._client.get_paginated(path, params)]

    # ── organization ───────────────────────────────────────────────────────

    async def list_repositories(self) -> list[str]:
        """GET /orgs/{org}/repos: repository names."""
        key = ResponseCache.make_key("repos", org=self.org)

        async def fetch() -> list[str]:
            items = await self._collect(f"/orgs/{self.org}/repos", {"type": "all"})
            return [item["name"] for item in items]

        return await self._cache.get_or_fetch(key, fetch)

    # ── repository ─────────────────────────────────────────────────────────

    async def list_commits(self, repo: str, since: datetime, until: datetime) -> list[Item]:
        """GET /repos/{org}/{repo}/commits, server-side filtered by date."""
        params = {"since": isoformat_utc(since), "until": isoformat_utc(until)}
        key = ResponseCache.make_key("commits", repo=repo, **params)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/commits", params)
        )

    async def list_pull_requests(self, repo: str, since: datetime) -> list[Item]:
        """GET /repos/{org}/{repo}/pulls: newest first, stops at *since*.

        The endpoint has no date filter; pages are sorted by creation time so
        paging stops at the first pull request created before *since*.
        """
        key = ResponseCache.make_key("pulls", repo=repo, since=isoformat_utc(since))

        async def fetch() -> list[Item]:
            params = {"state": "all", "sort": "created", "direction": "desc"}
            items: list[Item] = []
            async for item in self._client.get_paginated(
                f"/repos/{self.org}/{repo}/pulls", params
            ):
                created_at = parse_datetime(item.get("created_at"))
                if created_at is not None and created_at < since:
                    break
                items.append(item)
            return items

        return await self._cache.get_or_fetch(key, fetch)

    async def list_issues(self, repo: str, since: datetime) -> list[Item]:
        """GET /repos/{org}/{repo}/issues: issues *updated* since *since*.

        The result still contains pull requests; callers filter them out.
        """
        params = {"state": "all", "since": isoformat_utc(since)}
        key = ResponseCache.make_key("issues", repo=repo, **params)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/issues", params)
        )

    async def list_issue_events(self, repo: str, number: int) -> list[Item]:
        """GET /repos/{org}/{repo}/issues/{number}/events."""
        key = ResponseCache.make_key("issue_events", repo=repo, number=number)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/issues/{number}/events")
        )

    async def list_branches(self, repo: str) -> list[Item]:
        """GET /repos/{org}/{repo}/branches."""
        key = ResponseCache.make_key("branches", repo=repo)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/branches")
        )

    async def get_branch_commit(self, repo: str, branch: str) -> Item | None:
        """First entry of the branch's commit listing (``per_page=1``), or None."""
        key = ResponseCache.make_key("branch_commit", repo=repo, branch=branch)

        async def fetch() -> Item | None:
            data = await self._client.get(
                f"/repos/{self.org}/{repo}/commits",
                {"sha": branch, "per_page": 1, "page": 1},
            )
            if isinstance(data, list):
                return data[0] if data else None
            return None

        return await self._cache.get_or_fetch(key, fetch)

    # ── pull request ───────────────────────────────────────────────────────

    async def list_reviews(self, repo: str, number: int) -> list[Item]:
        """GET /repos/{org}/{repo}/pulls/{number}/reviews."""
        key = ResponseCache.make_key("reviews", repo=repo, number=number)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/pulls/{number}/reviews")
        )

    async def list_issue_comments(self, repo: str, number: int) -> list[Item]:
        """GET /repos/{org}/{repo}/issues/{number}/comments: conversation comments."""
        key = ResponseCache.make_key("issue_comments", repo=repo, number=number)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/issues/{number}/comments")
        )

    async def list_review_comments(self, repo: str, number: int) -> list[Item]:
        """GET /repos/{org}/{repo}/pulls/{number}/comments: inline code comments."""
        key = ResponseCache.make_key("review_comments", repo=repo, number=number)
        return await self._cache.get_or_fetch(
            key, lambda: self._collect(f"/repos/{self.org}/{repo}/pulls/{number}/comments")
        )
