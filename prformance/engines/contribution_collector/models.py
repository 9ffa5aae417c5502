"""Data models for the contribution collector engine.

These are pure data structures. GitHub JSON never leaves the collector as
anything other than the records below.
"""

from __future__ import annotations

from dataclasses import dataclass, field, fields
from datetime import date, datetime, time, timezone
from typing import Any, Literal, Union

from prformance.services import ValidationError

ContributionKind = Literal[
    "commits",
    "pull_requests_opened",
    "pull_requests_reviewed",
    "issues_opened",
    "issues_closed",
    "pr_comments",
    "branches_created",
]

CONTRIBUTION_KINDS: tuple[ContributionKind, ...] = (
    "commits",
    "pull_requests_opened",
    "pull_requests_reviewed",
    "issues_opened",
    "issues_closed",
    "pr_comments",
    "branches_created",
)

PullRequestState = Literal["open", "closed", "merged"]


def isoformat_utc(value: datetime) -> str:
    """Render *value* as ``YYYY-MM-DDTHH:MM:SSZ``."""
    return value.astimezone(timezone.utc).strftime("%Y-%m-%dT%H:%M:%SZ")


def parse_datetime(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp as returned by GitHub."""
    if not value:
        return None
    return datetime.fromisoformat(value.replace("Z", "+00:00"))


# ── records ───────────────────────────────────────────────────────────────


@dataclass(frozen=True)
class CommitRecord:
    url: str
    sha: str
    message: str
    repository: str
    authored_at: datetime


@dataclass(frozen=True)
class PullRequestRecord:
    url: str
    number: int
    title: str
    repository: str
    state: PullRequestState
    created_at: datetime


@dataclass(frozen=True)
class ReviewRecord:
    url: str
    pull_request_url: str
    pull_request_number: int
    pull_request_title: str
    repository: str
    review_state: str
    submitted_at: datetime


@dataclass(frozen=True)
class IssueOpenedRecord:
    url: str
    number: int
    title: str
    repository: str
    state: str
    created_at: datetime


@dataclass(frozen=True)
class IssueClosedRecord:
    """Recorded against the actor who closed the issue, not its opener."""

    url: str
    number: int
    title: str
    repository: str
    closed_at: datetime


@dataclass(frozen=True)
class CommentRecord:
    url: str
    pull_request_url: str
    pull_request_number: int
    pull_request_title: str
    repository: str
    body_excerpt: str
    created_at: datetime


@dataclass(frozen=True)
class BranchRecord:
    """A branch whose creation time is estimated from its head commit."""

    name: str
    repository: str
    created_at: datetime
    commit_sha: str
    commit_url: str | None


ContributionRecord = Union[
    CommitRecord,
    PullRequestRecord,
    ReviewRecord,
    IssueOpenedRecord,
    IssueClosedRecord,
    CommentRecord,
    BranchRecord,
]


def record_to_dict(record: ContributionRecord) -> dict[str, Any]:
    """Serialize a record with timestamps rendered as ISO-8601 strings."""
    out: dict[str, Any] = {}
    for f in fields(record):
        value = getattr(record, f.name)
        out[f.name] = isoformat_utc(value) if isinstance(value, datetime) else value
    return out


# ── window ────────────────────────────────────────────────────────────────


def _parse_date(value: date | str | None, name: str) -> date:
    if value is None or value == "":
        raise ValidationError(f"{name} is required")
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(value)
    except (TypeError, ValueError) as exc:
        raise ValidationError(f"{name} must be a date in YYYY-MM-DD format, got {value!r}") from exc


@dataclass(frozen=True)
class AggregationWindow:
    """Inclusive ``[since, until]`` range between two start-of-day UTC instants.

    ``until`` is the *start* of the end day, so a caller who wants the whole
    end day included passes the following day as ``end``.
    """

    start: date
    end: date

    def __post_init__(self) -> None:
        if self.start > self.end:
            raise ValidationError(
                f"startDate {self.start.isoformat()} is after endDate {self.end.isoformat()}"
            )

    @classmethod
    def parse(cls, start: date | str | None, end: date | str | None) -> AggregationWindow:
        """Build a window from dates or ``YYYY-MM-DD`` strings."""
        return cls(_parse_date(start, "startDate"), _parse_date(end, "endDate"))

    @property
    def since(self) -> datetime:
        return datetime.combine(self.start, time.min, tzinfo=timezone.utc)

    @property
    def until(self) -> datetime:
        return datetime.combine(self.end, time.min, tzinfo=timezone.utc)

    def contains(self, value: datetime | str | None) -> bool:
        return within_window(value, self)

    def to_dict(self) -> dict[str, str]:
        return {"start": self.start.isoformat(), "end": self.end.isoformat()}


def within_window(value: datetime | str | None, window: AggregationWindow) -> bool:
    """Return True if *value* lies in ``[window.since, window.until]``.

    Strings are parsed as GitHub timestamps; a missing timestamp is never
    within the window.
    """
    if isinstance(value, str):
        value = parse_datetime(value)
    if value is None:
        return False
    return window.since <= value <= window.until


# ── collector output ──────────────────────────────────────────────────────


@dataclass(frozen=True)
class BranchEstimate:
    """A branch created in the window, attributed to its head commit author."""

    name: str
    creator: str | None
    created_at: datetime
    commit_sha: str
    commit_url: str | None


@dataclass
class PullRequestActivity:
    """A review or comment together with the pull request it belongs to."""

    pull_request: dict[str, Any]
    item: dict[str, Any]


@dataclass
class CollectedRepository:
    """Everything fetched for one repository, already filtered to the window."""

    repository: str
    commits: list[dict[str, Any]] = field(default_factory=list)
    pull_requests: list[dict[str, Any]] = field(default_factory=list)
    issues: list[dict[str, Any]] = field(default_factory=list)
    # issue number -> login of the actor who closed it
    closed_by: dict[int, str] = field(default_factory=dict)
    reviews: list[PullRequestActivity] = field(default_factory=list)
    comments: list[PullRequestActivity] = field(default_factory=list)
    branches: list[BranchEstimate] = field(default_factory=list)


# ── report ────────────────────────────────────────────────────────────────


def _empty_contributions() -> dict[ContributionKind, list[ContributionRecord]]:
    return {kind: [] for kind in CONTRIBUTION_KINDS}


@dataclass
class ContributorProfile:
    """Per-contributor record sequences, in processing order, and the score."""

    username: str
    contributions: dict[ContributionKind, list[ContributionRecord]] = field(
        default_factory=_empty_contributions
    )
    score: float = 0

    def count(self, kind: ContributionKind) -> int:
        return len(self.contributions[kind])

    def counts(self) -> dict[ContributionKind, int]:
        return {kind: self.count(kind) for kind in CONTRIBUTION_KINDS}

    def to_dict(self) -> dict[str, Any]:
        return {
            "username": self.username,
            "score": self.score,
            "contributions": {
                kind: {
                    "number": len(items),
                    "items": [record_to_dict(r) for r in items],
                }
                for kind, items in self.contributions.items()
            },
        }


@dataclass
class Report:
    """Ranked result of one aggregation run."""

    window: AggregationWindow
    developers: list[ContributorProfile] = field(default_factory=list)

    def to_dict(self) -> dict[str, Any]:
        return {
            "range": self.window.to_dict(),
            "developers": [dev.to_dict() for dev in self.developers],
        }
