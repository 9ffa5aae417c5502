"""Dependency injection: settings, GitHub client and runner singletons."""

from __future__ import annotations

from prformance.core.config import Settings
from prformance.engines.contribution_collector.github_client import GitHubClient
from prformance.engines.contribution_collector.runner import (
    AggregationRunner,
    build_client,
    build_runner,
)

# ---------------------------------------------------------------------------
# Process-level singletons (initialised by app lifespan)
# ---------------------------------------------------------------------------
_settings: Settings | None = None
_github_client: GitHubClient | None = None
_aggregation_runner: AggregationRunner | None = None


def init_services(settings: Settings | None = None) -> AggregationRunner:
    """Create the GitHub client and aggregation runner. Called once at startup."""
    global _settings, _github_client, _aggregation_runner  # noqa: PLW0603
    _settings = settings or Settings.from_env()
    _github_client = build_client(_settings)
    _aggregation_runner = build_runner(_settings, _github_client)
    return _aggregation_runner


async def close_services() -> None:
    """Close the shared GitHub client."""
    global _github_client, _aggregation_runner  # noqa: PLW0603
    if _github_client is not None:
        await _github_client.close()
        _github_client = None
    _aggregation_runner = None


# ---------------------------------------------------------------------------
# Getters (for Depends())
# ---------------------------------------------------------------------------


def get_settings() -> Settings:
    global _settings  # noqa: PLW0603
    if _settings is None:
        _settings = Settings.from_env()
    return _settings


def get_aggregation_runner() -> AggregationRunner:
    if _aggregation_runner is None:
        raise RuntimeError("call init_services() before handling requests")
    return _aggregation_runner
