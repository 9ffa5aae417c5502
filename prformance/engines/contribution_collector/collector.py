"""Per-repository collector: GitHub reads filtered to the aggregation window."""

from __future__ import annotations

import asyncio
from typing import Any

import structlog

from prformance.engines.contribution_collector.batching import gather_in_batches
from prformance.engines.contribution_collector.branches import BranchEstimator
from prformance.engines.contribution_collector.models import (
    AggregationWindow,
    CollectedRepository,
    PullRequestActivity,
)
from prformance.engines.contribution_collector.source import GitHubSource
from prformance.services import RateLimitExceeded

log = structlog.get_logger("prformance.engine")

Item = dict[str, Any]

# Review state with no approve / request-changes verdict.
COMMENTED_REVIEW_STATE = "COMMENTED"


class RepositoryCollector:
    """Collect one repository's activity for a window.

    Commits, pull requests, issues and branch estimates are fetched
    concurrently. Reviews and comments depend on the pull request numbers and
    are fetched afterwards in batches of *request_batch_size*, as are the
    close-actor lookups for issues closed in the window.
    """

    def __init__(
        self,
        source: GitHubSource,
        branch_estimator: BranchEstimator,
        *,
        request_batch_size: int = 10,
        count_comment_reviews: bool = True,
    ) -> None:
        self._source = source
        self._branches = branch_estimator
        self.request_batch_size = request_batch_size
        self.count_comment_reviews = count_comment_reviews

    async def collect(self, repo: str, window: AggregationWindow) -> CollectedRepository:
        """Fetch and filter everything for *repo*.

        Raises the first failure of the four top-level reads once all of them
        have settled; the caller treats the repository as empty.
        """
        sub_task_names = ["commits", "pull_requests", "issues", "branches"]
        results = await asyncio.gather(
            self._collect_commits(repo, window),
            self._collect_pull_requests(repo, window),
            self._collect_issues(repo, window),
            self._branches.estimate_created_branches(repo, window),
            return_exceptions=True,
        )

        for name, result in zip(sub_task_names, results, strict=True):
            if isinstance(result, BaseException):
                log.error(
                    "collector.sub_failed",
                    collector=name,
                    repository=repo,
                    error=str(result),
                )
                raise result

        commits, pull_requests, issues, branches = results
        collected = CollectedRepository(
            repository=repo,
            commits=commits,
            pull_requests=pull_requests,
            issues=issues,
            branches=branches,
        )

        collected.closed_by = await self._collect_close_actors(repo, issues, window)
        collected.reviews, collected.comments = await self._collect_pull_request_activity(
            repo, pull_requests, window
        )

        log.info(
            "collector.repository_done",
            repository=repo,
            commits=len(collected.commits),
            pull_requests=len(collected.pull_requests),
            issues=len(collected.issues),
            reviews=len(collected.reviews),
            comments=len(collected.comments),
            branches=len(collected.branches),
        )
        return collected

    # ── top-level reads ───────────────────────────────────────────────────

    async def _collect_commits(self, repo: str, window: AggregationWindow) -> list[Item]:
        """Commits whose author date lies in the window."""
        items = await self._source.list_commits(repo, window.since, window.until)
        return [
            item
            for item in items
            if window.contains(((item.get("commit") or {}).get("author") or {}).get("date"))
        ]

    async def _collect_pull_requests(self, repo: str, window: AggregationWindow) -> list[Item]:
        """Pull requests created in the window."""
        items = await self._source.list_pull_requests(repo, window.since)
        return [item for item in items if window.contains(item.get("created_at"))]

    async def _collect_issues(self, repo: str, window: AggregationWindow) -> list[Item]:
        """Issues created or closed in the window, pull requests excluded."""
        items = await self._source.list_issues(repo, window.since)
        return [
            item
            for item in items
            if "pull_request" not in item
            and (window.contains(item.get("created_at")) or window.contains(item.get("closed_at")))
        ]

    # ── dependent reads ───────────────────────────────────────────────────

    async def _collect_close_actors(
        self, repo: str, issues: list[Item], window: AggregationWindow
    ) -> dict[int, str]:
        """Map issue number to the login that closed it, for issues closed in the window."""
        closed = [issue for issue in issues if window.contains(issue.get("closed_at"))]
        if not closed:
            return {}

        async def _lookup(issue: Item) -> str | None:
            number = issue["number"]
            try:
                events = await self._source.list_issue_events(repo, number)
            except RateLimitExceeded:
                raise
            except Exception as exc:
                log.warning(
                    "collector.close_actor_failed", repository=repo, issue=number, error=str(exc)
                )
                return None
            return find_close_actor(events)

        actors = await gather_in_batches(closed, _lookup, self.request_batch_size)
        return {
            issue["number"]: actor
            for issue, actor in zip(closed, actors, strict=True)
            if isinstance(actor, str)
        }

    async def _collect_pull_request_activity(
        self, repo: str, pull_requests: list[Item], window: AggregationWindow
    ) -> tuple[list[PullRequestActivity], list[PullRequestActivity]]:
        """Reviews and comments of each pull request, filtered to the window."""

        async def _one(pr: Item) -> tuple[list[PullRequestActivity], list[PullRequestActivity]]:
            return await self._pull_request_activity(repo, pr, window)

        results = await gather_in_batches(pull_requests, _one, self.request_batch_size)
        reviews: list[PullRequestActivity] = []
        comments: list[PullRequestActivity] = []
        for pr, result in zip(pull_requests, results, strict=True):
            if isinstance(result, Exception):
                log.warning(
                    "collector.pull_request_failed",
                    repository=repo,
                    pull_request=pr.get("number"),
                    error=str(result),
                )
                continue
            reviews.extend(result[0])
            comments.extend(result[1])
        return reviews, comments

    async def _pull_request_activity(
        self, repo: str, pr: Item, window: AggregationWindow
    ) -> tuple[list[PullRequestActivity], list[PullRequestActivity]]:
        number = pr["number"]
        results = await asyncio.gather(
            self._source.list_reviews(repo, number),
            self._source.list_issue_comments(repo, number),
            self._source.list_review_comments(repo, number),
            return_exceptions=True,
        )
        for result in results:
            if isinstance(result, RateLimitExceeded):
                raise result
        failed = [r for r in results if isinstance(r, BaseException)]
        if failed:
            log.warning(
                "collector.pull_request_failed",
                repository=repo,
                pull_request=number,
                error=str(failed[0]),
            )
            return [], []

        raw_reviews, issue_comments, review_comments = results
        reviews = [
            PullRequestActivity(pull_request=pr, item=review)
            for review in raw_reviews
            if window.contains(review.get("submitted_at"))
            and (self.count_comment_reviews or review.get("state") != COMMENTED_REVIEW_STATE)
        ]
        comments = [
            PullRequestActivity(pull_request=pr, item=comment)
            for comment in [*issue_comments, *review_comments]
            if window.contains(comment.get("created_at"))
        ]
        return reviews, comments


def find_close_actor(events: list[Item]) -> str | None:
    """Login of the actor of the last ``closed`` event that names one."""
    actor: str | None = None
    for event in events:
        if event.get("event") != "closed":
            continue
        login = (event.get("actor") or {}).get("login")
        if login:
            actor = login
    return actor
