"""AggregationRunner: organization-wide fan-out, merge and ranking."""

from __future__ import annotations

from collections.abc import Mapping
from datetime import date

import structlog

from prformance.core.config import Settings
from prformance.engines.contribution_collector.accumulator import ContributionAccumulator
from prformance.engines.contribution_collector.batching import gather_in_batches
from prformance.engines.contribution_collector.branches import BranchEstimator
from prformance.engines.contribution_collector.cache import ResponseCache
from prformance.engines.contribution_collector.collector import RepositoryCollector
from prformance.engines.contribution_collector.github_client import GitHubClient
from prformance.engines.contribution_collector.models import AggregationWindow, Report
from prformance.engines.contribution_collector.rate_limit import RateLimitBudget
from prformance.engines.contribution_collector.scoring import (
    DEFAULT_WEIGHTS,
    rank,
    score,
    validate_weights,
)
from prformance.engines.contribution_collector.source import GitHubSource
from prformance.services import NoRepositoriesError, RateLimitExceeded

log = structlog.get_logger("prformance.engine")


class AggregationRunner:
    """Compute the ranked contribution report for one organization."""

    def __init__(
        self,
        source: GitHubSource,
        collector: RepositoryCollector,
        *,
        repo_batch_size: int = 30,
        weights: Mapping[str, float] = DEFAULT_WEIGHTS,
    ) -> None:
        self._source = source
        self._collector = collector
        self.repo_batch_size = repo_batch_size
        self.weights = validate_weights(weights)

    async def run(self, start: date | str | None, end: date | str | None) -> Report:
        """Aggregate every repository of the organization over ``[start, end]``.

        1. Validate and normalize the window (start-of-day UTC for both ends)
        2. List the organization's repositories
        3. Collect repositories in sequential batches, concurrently inside a batch
        4. Merge each repository into one accumulator
        5. Score and rank every contributor

        A failing repository contributes nothing; :class:`RateLimitExceeded`
        aborts the run.
        """
        window = AggregationWindow.parse(start, end)
        log.info("runner.started", org=self._source.org, **window.to_dict())

        repos = await self._source.list_repositories()
        if not repos:
            raise NoRepositoriesError(f"no repositories found for organization {self._source.org}")

        accumulator = ContributionAccumulator(window)

        async def _run_one(repo: str) -> bool:
            # Records reach the shared accumulator only after a clean merge.
            partial = ContributionAccumulator(window)
            try:
                collected = await self._collector.collect(repo, window)
                partial.merge(repo, collected)
            except RateLimitExceeded:
                raise
            except Exception as exc:
                log.error("runner.repo_failed", repository=repo, error=str(exc))
                return False
            accumulator.absorb(partial)
            return True

        outcomes = await gather_in_batches(repos, _run_one, self.repo_batch_size)
        failed = sum(1 for ok in outcomes if ok is not True)

        for profile in accumulator.profiles.values():
            profile.score = score(profile, self.weights)
        developers = rank(list(accumulator.profiles.values()))

        log.info(
            "runner.finished",
            org=self._source.org,
            repositories=len(repos),
            failed=failed,
            developers=len(developers),
        )
        return Report(window=window, developers=developers)


def build_client(settings: Settings) -> GitHubClient:
    """GitHub client with a rate-limit budget configured from *settings*."""
    budget = RateLimitBudget(
        max_wait=settings.rate_limit_max_wait,
        check_interval=settings.rate_limit_check_interval,
    )
    return GitHubClient(settings.github_token, budget=budget)


def build_runner(settings: Settings, client: GitHubClient) -> AggregationRunner:
    """Wire source, cache, estimator and collector for *settings*'s organization."""
    cache = ResponseCache(settings.cache_ttl, enabled=settings.cache_enabled)
    source = GitHubSource(client, settings.require_org(), cache)
    estimator = BranchEstimator(
        source,
        sample_size=settings.branch_sample_size,
        batch_size=settings.branch_batch_size,
        batch_delay=settings.branch_batch_delay,
    )
    collector = RepositoryCollector(
        source,
        estimator,
        request_batch_size=settings.max_concurrent_requests,
        count_comment_reviews=settings.count_comment_reviews,
    )
    return AggregationRunner(
        source,
        collector,
        repo_batch_size=settings.max_concurrent_repos,
        weights=settings.weights,
    )
