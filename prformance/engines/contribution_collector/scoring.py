"""Score calculator: weighted sum of contribution counts."""

from __future__ import annotations

from collections.abc import Mapping
from types import MappingProxyType

from prformance.engines.contribution_collector.models import (
    CONTRIBUTION_KINDS,
    ContributorProfile,
)
from prformance.services import ValidationError

DEFAULT_WEIGHTS: Mapping[str, float] = MappingProxyType(
    {
        "commits": 2,
        "pull_requests_opened": 5,
        "pull_requests_reviewed": 3,
        "issues_opened": 1,
        "issues_closed": 4,
        "pr_comments": 2,
        "branches_created": 1,
    }
)


def validate_weights(overrides: Mapping[str, float]) -> dict[str, float]:
    """Merge *overrides* onto :data:`DEFAULT_WEIGHTS`.

    Unknown kinds and negative weights are rejected.
    """
    unknown = sorted(set(overrides) - set(CONTRIBUTION_KINDS))
    if unknown:
        raise ValidationError(f"unknown contribution kinds in weights: {', '.join(unknown)}")
    negative = sorted(kind for kind, weight in overrides.items() if weight < 0)
    if negative:
        raise ValidationError(f"weights must be non-negative: {', '.join(negative)}")
    merged = dict(DEFAULT_WEIGHTS)
    merged.update(overrides)
    return merged


def score(profile: ContributorProfile, weights: Mapping[str, float] = DEFAULT_WEIGHTS) -> float:
    """Weighted sum of *profile*'s seven per-kind counts."""
    return sum(profile.count(kind) * weights.get(kind, 0) for kind in CONTRIBUTION_KINDS)


def rank(profiles: list[ContributorProfile]) -> list[ContributorProfile]:
    """Sort by score descending, then username ascending."""
    return sorted(profiles, key=lambda p: (-p.score, p.username))
