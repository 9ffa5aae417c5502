"""Contribution collector engine: GitHub organization activity to a ranked report."""

from prformance.engines.contribution_collector.accumulator import ContributionAccumulator
from prformance.engines.contribution_collector.branches import BranchEstimator
from prformance.engines.contribution_collector.cache import ResponseCache
from prformance.engines.contribution_collector.collector import RepositoryCollector
from prformance.engines.contribution_collector.github_client import GitHubClient
from prformance.engines.contribution_collector.models import (
    CONTRIBUTION_KINDS,
    AggregationWindow,
    ContributorProfile,
    Report,
    within_window,
)
from prformance.engines.contribution_collector.rate_limit import RateLimitBudget
from prformance.engines.contribution_collector.runner import (
    AggregationRunner,
    build_client,
    build_runner,
)
from prformance.engines.contribution_collector.scoring import DEFAULT_WEIGHTS, score
from prformance.engines.contribution_collector.source import GitHubSource

__all__ = [
    "CONTRIBUTION_KINDS",
    "DEFAULT_WEIGHTS",
    "AggregationRunner",
    "AggregationWindow",
    "BranchEstimator",
    "ContributionAccumulator",
    "ContributorProfile",
    "GitHubClient",
    "GitHubSource",
    "RateLimitBudget",
    "RepositoryCollector",
    "Report",
    "ResponseCache",
    "build_client",
    "build_runner",
    "score",
    "within_window",
]
