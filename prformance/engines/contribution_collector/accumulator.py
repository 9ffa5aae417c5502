"""Contribution accumulator: attribute collected activity to contributors."""

from __future__ import annotations

from typing import Any

import structlog

from prformance.engines.contribution_collector.models import (
    AggregationWindow,
    BranchRecord,
    CollectedRepository,
    CommentRecord,
    CommitRecord,
    ContributionKind,
    ContributionRecord,
    ContributorProfile,
    IssueClosedRecord,
    IssueOpenedRecord,
    PullRequestActivity,
    PullRequestRecord,
    ReviewRecord,
    parse_datetime,
)

log = structlog.get_logger("prformance.engine")

EXCERPT_LENGTH = 100


def excerpt(body: str | None, length: int = EXCERPT_LENGTH) -> str:
    """First *length* characters of *body*, with ``...`` appended when cut."""
    body = body or ""
    if len(body) <= length:
        return body
    return body[:length] + "..."


def _login(item: dict[str, Any] | None, key: str = "user") -> str | None:
    return ((item or {}).get(key) or {}).get("login")


class ContributionAccumulator:
    """Mapping of username to :class:`ContributorProfile` for one run.

    :meth:`merge` and :meth:`absorb` never await, so concurrent repository
    tasks on one event loop cannot interleave inside them.
    """

    def __init__(self, window: AggregationWindow) -> None:
        self.window = window
        self.profiles: dict[str, ContributorProfile] = {}

    def ensure(self, username: str) -> ContributorProfile:
        """Return the profile for *username*, creating it on first sight."""
        profile = self.profiles.get(username)
        if profile is None:
            profile = ContributorProfile(username=username)
            self.profiles[username] = profile
        return profile

    def add(self, username: str | None, kind: ContributionKind, record: ContributionRecord) -> bool:
        """Append *record* to *username*'s *kind* sequence; skip unknown actors."""
        if not username:
            log.debug("accumulator.unattributed", kind=kind, repository=record.repository)
            return False
        self.ensure(username).contributions[kind].append(record)
        return True

    def merge(self, repo: str, collected: CollectedRepository) -> None:
        """Attribute everything in *collected* to its contributors."""
        for commit in collected.commits:
            self._add_commit(repo, commit)
        for pr in collected.pull_requests:
            self._add_pull_request(repo, pr)
        for review in collected.reviews:
            self._add_review(repo, review)
        for issue in collected.issues:
            self._add_issue(repo, issue, collected.closed_by.get(issue["number"]))
        for comment in collected.comments:
            self._add_comment(repo, comment)
        for branch in collected.branches:
            self.add(
                branch.creator,
                "branches_created",
                BranchRecord(
                    name=branch.name,
                    repository=repo,
                    created_at=branch.created_at,
                    commit_sha=branch.commit_sha,
                    commit_url=branch.commit_url,
                ),
            )

    def absorb(self, other: ContributionAccumulator) -> None:
        """Append every record of *other* to this accumulator's profiles."""
        for username, partial in other.profiles.items():
            profile = self.ensure(username)
            for kind, records in partial.contributions.items():
                profile.contributions[kind].extend(records)

    # ── per-kind processors ───────────────────────────────────────────────

    def _add_commit(self, repo: str, item: dict[str, Any]) -> None:
        detail = item.get("commit") or {}
        authored_at = parse_datetime((detail.get("author") or {}).get("date"))
        if authored_at is None:
            return
        self.add(
            _login(item, "author"),
            "commits",
            CommitRecord(
                url=item.get("html_url", ""),
                sha=item["sha"],
                message=detail.get("message", ""),
                repository=repo,
                authored_at=authored_at,
            ),
        )

    def _add_pull_request(self, repo: str, item: dict[str, Any]) -> None:
        created_at = parse_datetime(item.get("created_at"))
        if created_at is None:
            return
        state = "merged" if item.get("merged_at") else item.get("state", "open")
        self.add(
            _login(item),
            "pull_requests_opened",
            PullRequestRecord(
                url=item.get("html_url", ""),
                number=item["number"],
                title=item.get("title", ""),
                repository=repo,
                state=state,
                created_at=created_at,
            ),
        )

    def _add_review(self, repo: str, activity: PullRequestActivity) -> None:
        pr, review = activity.pull_request, activity.item
        submitted_at = parse_datetime(review.get("submitted_at"))
        if submitted_at is None:
            return
        self.add(
            _login(review),
            "pull_requests_reviewed",
            ReviewRecord(
                url=review.get("html_url", ""),
                pull_request_url=pr.get("html_url", ""),
                pull_request_number=pr["number"],
                pull_request_title=pr.get("title", ""),
                repository=repo,
                review_state=review.get("state", ""),
                submitted_at=submitted_at,
            ),
        )

    def _add_issue(self, repo: str, item: dict[str, Any], closed_by: str | None) -> None:
        if "pull_request" in item:
            return
        created_at = parse_datetime(item.get("created_at"))
        if created_at is not None and self.window.contains(created_at):
            self.add(
                _login(item),
                "issues_opened",
                IssueOpenedRecord(
                    url=item.get("html_url", ""),
                    number=item["number"],
                    title=item.get("title", ""),
                    repository=repo,
                    state=item.get("state", ""),
                    created_at=created_at,
                ),
            )
        closed_at = parse_datetime(item.get("closed_at"))
        if closed_at is not None and self.window.contains(closed_at):
            self.add(
                closed_by,
                "issues_closed",
                IssueClosedRecord(
                    url=item.get("html_url", ""),
                    number=item["number"],
                    title=item.get("title", ""),
                    repository=repo,
                    closed_at=closed_at,
                ),
            )

    def _add_comment(self, repo: str, activity: PullRequestActivity) -> None:
        pr, comment = activity.pull_request, activity.item
        created_at = parse_datetime(comment.get("created_at"))
        if created_at is None:
            return
        self.add(
            _login(comment),
            "pr_comments",
            CommentRecord(
                url=comment.get("html_url", ""),
                pull_request_url=pr.get("html_url", ""),
                pull_request_number=pr["number"],
                pull_request_title=pr.get("title", ""),
                repository=repo,
                body_excerpt=excerpt(comment.get("body")),
                created_at=created_at,
            ),
        )
