"""Branch-creation estimator.

GitHub does not expose when a branch was created. The estimate is the date of
the first commit returned for the branch reference (one ``per_page=1``
request per branch), and the creator is that commit's author login. A branch
rebased onto an old base, or one whose head commit came from someone else, is
misattributed; only the first ``sample_size`` branches are examined.
"""

from __future__ import annotations

from typing import Any

import structlog

from prformance.engines.contribution_collector.batching import gather_in_batches
from prformance.engines.contribution_collector.models import (
    AggregationWindow,
    BranchEstimate,
    parse_datetime,
)
from prformance.engines.contribution_collector.source import GitHubSource
from prformance.services import RateLimitExceeded

log = structlog.get_logger("prformance.engine")

BRANCH_SAMPLE_SIZE = 30


class BranchEstimator:
    def __init__(
        self,
        source: GitHubSource,
        *,
        sample_size: int = BRANCH_SAMPLE_SIZE,
        batch_size: int = 5,
        batch_delay: float = 0.5,
    ) -> None:
        self._source = source
        self.sample_size = sample_size
        self.batch_size = batch_size
        self.batch_delay = batch_delay

    async def estimate_created_branches(
        self, repo: str, window: AggregationWindow
    ) -> list[BranchEstimate]:
        """Return the sampled branches whose estimated creation lies in *window*."""
        branches = await self._source.list_branches(repo)
        candidates = branches[: self.sample_size]
        if len(branches) > self.sample_size:
            log.warning(
                "branches.truncated",
                repository=repo,
                total=len(branches),
                sampled=self.sample_size,
            )

        async def _estimate(branch: dict[str, Any]) -> BranchEstimate | None:
            return await self._estimate_one(repo, branch["name"], window)

        results = await gather_in_batches(
            candidates, _estimate, self.batch_size, delay=self.batch_delay
        )
        return [r for r in results if isinstance(r, BranchEstimate)]

    async def _estimate_one(
        self, repo: str, name: str, window: AggregationWindow
    ) -> BranchEstimate | None:
        try:
            commit = await self._source.get_branch_commit(repo, name)
        except RateLimitExceeded:
            raise
        except Exception as exc:
            log.warning("branches.lookup_failed", repository=repo, branch=name, error=str(exc))
            return None

        if commit is None:
            log.debug("branches.no_commits", repository=repo, branch=name)
            return None

        detail = commit.get("commit") or {}
        stamp = (detail.get("committer") or {}).get("date") or (detail.get("author") or {}).get(
            "date"
        )
        created_at = parse_datetime(stamp)
        if created_at is None or not window.contains(created_at):
            return None

        author = commit.get("author") or {}
        return BranchEstimate(
            name=name,
            creator=author.get("login"),
            created_at=created_at,
            commit_sha=commit["sha"],
            commit_url=commit.get("html_url"),
        )
