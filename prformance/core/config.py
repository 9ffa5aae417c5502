"""Process configuration read from environment variables."""

from __future__ import annotations

import os
from dataclasses import dataclass, field

from prformance.services import ValidationError


def _env_int(key: str, default: int) -> int:
    return int(os.environ.get(key, default))


def _env_float(key: str, default: float) -> float:
    return float(os.environ.get(key, default))


def _env_bool(key: str, default: bool) -> bool:
    value = os.environ.get(key)
    if value is None:
        return default
    return value.strip().lower() in ("1", "true", "yes", "on")


def _env_weights() -> dict[str, float]:
    """Collect ``PRFORMANCE_WEIGHT_<KIND>`` overrides."""
    prefix = "PRFORMANCE_WEIGHT_"
    weights: dict[str, float] = {}
    for key, value in os.environ.items():
        if not key.startswith(prefix):
            continue
        kind = key[len(prefix) :].lower()
        try:
            number = float(value)
        except ValueError as exc:
            raise ValidationError(f"{key} must be a number, got {value!r}") from exc
        weights[kind] = int(number) if number.is_integer() else number
    return weights


@dataclass
class Settings:
    """Runtime settings for collection, reporting and delivery."""

    github_token: str | None = None
    github_org: str | None = None

    max_concurrent_repos: int = 30
    max_concurrent_requests: int = 10

    cache_enabled: bool = True
    cache_ttl: float = 3600.0

    rate_limit_check_interval: float = 60.0
    rate_limit_max_wait: float = 3600.0

    branch_sample_size: int = 30
    branch_batch_size: int = 5
    branch_batch_delay: float = 0.5

    count_comment_reviews: bool = True
    weights: dict[str, float] = field(default_factory=dict)

    discord_webhook_url: str | None = None
    discord_username: str = "PRFormance Bot"
    discord_avatar_url: str = "https://github.githubassets.com/images/modules/logos_page/GitHub-Mark.png"

    report_interval: float = 7 * 24 * 3600.0
    report_lookback_days: int = 7

    port: int = 3000

    @classmethod
    def from_env(cls) -> Settings:
        """Build settings from the current environment."""
        defaults = cls()
        return cls(
            github_token=os.environ.get("GITHUB_TOKEN") or None,
            github_org=os.environ.get("GITHUB_ORG") or None,
            max_concurrent_repos=_env_int(
                "PRFORMANCE_MAX_CONCURRENT_REPOS", defaults.max_concurrent_repos
            ),
            max_concurrent_requests=_env_int(
                "PRFORMANCE_MAX_CONCURRENT_REQUESTS", defaults.max_concurrent_requests
            ),
            cache_enabled=_env_bool("PRFORMANCE_CACHE_ENABLED", defaults.cache_enabled),
            cache_ttl=_env_float("PRFORMANCE_CACHE_TTL", defaults.cache_ttl),
            rate_limit_check_interval=_env_float(
                "PRFORMANCE_RATE_LIMIT_CHECK_INTERVAL", defaults.rate_limit_check_interval
            ),
            rate_limit_max_wait=_env_float(
                "PRFORMANCE_RATE_LIMIT_MAX_WAIT", defaults.rate_limit_max_wait
            ),
            branch_sample_size=_env_int(
                "PRFORMANCE_BRANCH_SAMPLE_SIZE", defaults.branch_sample_size
            ),
            branch_batch_size=_env_int("PRFORMANCE_BRANCH_BATCH_SIZE", defaults.branch_batch_size),
            branch_batch_delay=_env_float(
                "PRFORMANCE_BRANCH_BATCH_DELAY", defaults.branch_batch_delay
            ),
            count_comment_reviews=_env_bool(
                "PRFORMANCE_COUNT_COMMENT_REVIEWS", defaults.count_comment_reviews
            ),
            weights=_env_weights(),
            discord_webhook_url=os.environ.get("DISCORD_WEBHOOK_URL") or None,
            discord_username=os.environ.get("DISCORD_USERNAME", defaults.discord_username),
            discord_avatar_url=os.environ.get("DISCORD_AVATAR_URL", defaults.discord_avatar_url),
            report_interval=_env_float("PRFORMANCE_REPORT_INTERVAL", defaults.report_interval),
            report_lookback_days=_env_int(
                "PRFORMANCE_REPORT_LOOKBACK_DAYS", defaults.report_lookback_days
            ),
            port=_env_int("PORT", defaults.port),
        )

    def require_org(self) -> str:
        """Return the organization name or raise if it is not configured."""
        if not self.github_org:
            raise ValidationError("GITHUB_ORG is not configured")
        return self.github_org
