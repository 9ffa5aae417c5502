"""Service layer errors shared by the engines, the API and the CLI."""


class ServiceError(Exception):
    """Base service exception."""


class ValidationError(ServiceError):
    """Missing, malformed or inverted input (-> HTTP 400)."""


class NoRepositoriesError(ServiceError):
    """The organization has no repositories to analyse (-> HTTP 404)."""


class SourceFetchError(ServiceError):
    """A GitHub request for one resource failed after retries."""

    def __init__(self, resource: str, reason: str) -> None:
        self.resource = resource
        self.reason = reason
        super().__init__(f"failed to fetch {resource}: {reason}")


class RateLimitExceeded(ServiceError):
    """Rate-limit budget exhausted and the wait exceeds the tolerated maximum."""

    def __init__(self, wait_seconds: float, max_wait: float) -> None:
        self.wait_seconds = wait_seconds
        self.max_wait = max_wait
        super().__init__(
            f"rate limit exhausted: reset in {wait_seconds:.0f}s exceeds max wait {max_wait:.0f}s"
        )


class WebhookNotConfiguredError(ServiceError):
    """No Discord webhook URL was given or configured."""


class DeliveryError(ServiceError):
    """The Discord webhook rejected the message."""
