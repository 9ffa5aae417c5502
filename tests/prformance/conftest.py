"""Shared fixtures for prformance tests: an in-memory GitHub organization."""

from __future__ import annotations

from collections import defaultdict
from datetime import datetime
from typing import Any

import pytest

from prformance.engines.contribution_collector.branches import BranchEstimator
from prformance.engines.contribution_collector.collector import RepositoryCollector
from prformance.engines.contribution_collector.runner import AggregationRunner

Item = dict[str, Any]


@pytest.fixture(scope="session")
def anyio_backend():
    return "asyncio"


def _user(login: str | None) -> Item | None:
    return {"login": login} if login else None


class FakeSource:
    """Same read interface as ``GitHubSource``, backed by dicts.

    ``fail(op, repo)`` makes every call of *op* on *repo* raise.
    """

    def __init__(self, org: str = "acme") -> None:
        self.org = org
        self.repos: list[str] = []
        self.commits: dict[str, list[Item]] = defaultdict(list)
        self.pulls: dict[str, list[Item]] = defaultdict(list)
        self.issues: dict[str, list[Item]] = defaultdict(list)
        self.events: dict[tuple[str, int], list[Item]] = defaultdict(list)
        self.branches: dict[str, list[Item]] = defaultdict(list)
        self.branch_commits: dict[tuple[str, str], Item | None] = {}
        self.reviews: dict[tuple[str, int], list[Item]] = defaultdict(list)
        self.issue_comments: dict[tuple[str, int], list[Item]] = defaultdict(list)
        self.review_comments: dict[tuple[str, int], list[Item]] = defaultdict(list)
        self.calls: list[tuple[Any, ...]] = []
        self._failures: dict[tuple[str, str], BaseException] = {}

    # ── builders ──────────────────────────────────────────────────────────

    def add_repo(self, name: str) -> None:
        if name not in self.repos:
            self.repos.append(name)

    def add_commit(
        self, repo: str, sha: str, login: str | None, date: str, message: str = "change"
    ) -> None:
        self.add_repo(repo)
        self.commits[repo].append(
            {
                "sha": sha,
                "html_url": f"https://github.com/{self.org}/{repo}/commit/{sha}",
                "author": _user(login),
                "commit": {"message": message, "author": {"date": date}},
            }
        )

    def add_pull(
        self,
        repo: str,
        number: int,
        login: str | None,
        created_at: str,
        *,
        state: str = "open",
        merged_at: str | None = None,
    ) -> Item:
        self.add_repo(repo)
        pr = {
            "number": number,
            "title": f"PR {number}",
            "html_url": f"https://github.com/{self.org}/{repo}/pull/{number}",
            "user": _user(login),
            "state": state,
            "created_at": created_at,
            "merged_at": merged_at,
        }
        self.pulls[repo].append(pr)
        # The issues endpoint lists pull requests too.
        self.issues[repo].append(
            {
                "number": number,
                "title": pr["title"],
                "user": _user(login),
                "state": state,
                "created_at": created_at,
                "closed_at": None,
                "pull_request": {"url": pr["html_url"]},
            }
        )
        return pr

    def add_issue(
        self,
        repo: str,
        number: int,
        login: str | None,
        created_at: str,
        *,
        closed_at: str | None = None,
        closed_by: str | None = None,
    ) -> None:
        self.add_repo(repo)
        self.issues[repo].append(
            {
                "number": number,
                "title": f"Issue {number}",
                "html_url": f"https://github.com/{self.org}/{repo}/issues/{number}",
                "user": _user(login),
                "state": "closed" if closed_at else "open",
                "created_at": created_at,
                "closed_at": closed_at,
            }
        )
        if closed_at:
            self.events[(repo, number)].append(
                {"event": "closed", "actor": _user(closed_by), "created_at": closed_at}
            )

    def add_review(
        self, repo: str, number: int, login: str | None, submitted_at: str, state: str = "APPROVED"
    ) -> None:
        self.reviews[(repo, number)].append(
            {
                "html_url": f"https://github.com/{self.org}/{repo}/pull/{number}#review",
                "user": _user(login),
                "state": state,
                "submitted_at": submitted_at,
            }
        )

    def add_comment(
        self,
        repo: str,
        number: int,
        login: str | None,
        created_at: str,
        body: str = "looks good",
        *,
        inline: bool = False,
    ) -> None:
        target = self.review_comments if inline else self.issue_comments
        target[(repo, number)].append(
            {
                "html_url": f"https://github.com/{self.org}/{repo}/pull/{number}#comment",
                "user": _user(login),
                "body": body,
                "created_at": created_at,
            }
        )

    def add_branch(
        self, repo: str, name: str, login: str | None, date: str | None, sha: str | None = None
    ) -> None:
        self.add_repo(repo)
        self.branches[repo].append({"name": name})
        if date is None:
            self.branch_commits[(repo, name)] = None
            return
        sha = sha or f"{name}-sha"
        self.branch_commits[(repo, name)] = {
            "sha": sha,
            "html_url": f"https://github.com/{self.org}/{repo}/commit/{sha}",
            "author": _user(login),
            "commit": {"author": {"date": date}, "committer": {"date": date}},
        }

    def fail(self, op: str, repo: str, exc: BaseException | None = None) -> None:
        self._failures[(op, repo)] = exc or RuntimeError(f"{op} failed for {repo}")

    # ── reads ─────────────────────────────────────────────────────────────

    def _record(self, op: str, repo: str, *args: Any) -> None:
        self.calls.append((op, repo, *args))
        exc = self._failures.get((op, repo))
        if exc is not None:
            raise exc

    async def list_repositories(self) -> list[str]:
        self.calls.append(("repos",))
        return list(self.repos)

    async def list_commits(self, repo: str, since: datetime, until: datetime) -> list[Item]:
        self._record("commits", repo)
        return list(self.commits[repo])

    async def list_pull_requests(self, repo: str, since: datetime) -> list[Item]:
        self._record("pulls", repo)
        return list(self.pulls[repo])

    async def list_issues(self, repo: str, since: datetime) -> list[Item]:
        self._record("issues", repo)
        return list(self.issues[repo])

    async def list_issue_events(self, repo: str, number: int) -> list[Item]:
        self._record("issue_events", repo, number)
        return list(self.events[(repo, number)])

    async def list_branches(self, repo: str) -> list[Item]:
        self._record("branches", repo)
        return list(self.branches[repo])

    async def get_branch_commit(self, repo: str, branch: str) -> Item | None:
        self._record("branch_commit", repo, branch)
        return self.branch_commits.get((repo, branch))

    async def list_reviews(self, repo: str, number: int) -> list[Item]:
        self._record("reviews", repo, number)
        return list(self.reviews[(repo, number)])

    async def list_issue_comments(self, repo: str, number: int) -> list[Item]:
        self._record("issue_comments", repo, number)
        return list(self.issue_comments[(repo, number)])

    async def list_review_comments(self, repo: str, number: int) -> list[Item]:
        self._record("review_comments", repo, number)
        return list(self.review_comments[(repo, number)])


@pytest.fixture
def source() -> FakeSource:
    return FakeSource()


@pytest.fixture
def make_collector():
    """Factory for a RepositoryCollector over a FakeSource, without pacing delays."""

    def _make(src: FakeSource, **kwargs: Any) -> RepositoryCollector:
        estimator = BranchEstimator(
            src,  # type: ignore[arg-type]
            sample_size=kwargs.pop("sample_size", 30),
            batch_size=kwargs.pop("branch_batch_size", 5),
            batch_delay=0,
        )
        return RepositoryCollector(src, estimator, **kwargs)  # type: ignore[arg-type]

    return _make


@pytest.fixture
def make_runner(make_collector):
    """Factory for an AggregationRunner over a FakeSource."""

    def _make(src: FakeSource, *, repo_batch_size: int = 30, **kwargs: Any) -> AggregationRunner:
        weights = kwargs.pop("weights", {})
        return AggregationRunner(
            src,  # type: ignore[arg-type]
            make_collector(src, **kwargs),
            repo_batch_size=repo_batch_size,
            weights=weights,
        )

    return _make
