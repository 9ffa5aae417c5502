"""Tests for the API layer.

Uses httpx.AsyncClient over ASGITransport; the aggregation runner is mocked
through dependency_overrides.
"""

from __future__ import annotations

import uuid
from datetime import datetime, timezone
from unittest.mock import AsyncMock, MagicMock

import pytest
from fastapi import FastAPI
from fastapi.responses import JSONResponse
from httpx import ASGITransport, AsyncClient

from prformance.api.deps import get_aggregation_runner
from prformance.api.errors import EXAMPLE_QUERY, register_error_handlers
from prformance.api.middleware.request_id import RequestIDMiddleware, resolve_request_id
from prformance.api.routers import performance
from prformance.engines.contribution_collector.models import (
    AggregationWindow,
    ContributorProfile,
    PullRequestRecord,
    Report,
)
from prformance.services import NoRepositoriesError, RateLimitExceeded, ValidationError

NOW = datetime(2024, 1, 15, 12, 0, 0, tzinfo=timezone.utc)


def _report() -> Report:
    alice = ContributorProfile(username="alice", score=5)
    alice.contributions["pull_requests_opened"].append(
        PullRequestRecord(
            url="https://github.com/acme/api/pull/1",
            number=1,
            title="Add endpoint",
            repository="api",
            state="merged",
            created_at=NOW,
        )
    )
    return Report(window=AggregationWindow.parse("2024-01-01", "2024-01-31"), developers=[alice])


@pytest.fixture
def runner():
    mock = MagicMock()
    mock.run = AsyncMock(return_value=_report())
    return mock


@pytest.fixture
def app(runner):
    app = FastAPI()
    register_error_handlers(app)
    app.add_middleware(RequestIDMiddleware)

    @app.get("/boom")
    async def boom() -> JSONResponse:
        raise RuntimeError("kaput")

    app.include_router(performance.router)
    app.include_router(performance.router, prefix="/api/developers")
    app.dependency_overrides[get_aggregation_runner] = lambda: runner
    return app


@pytest.fixture
async def client(app):
    transport = ASGITransport(app=app, raise_app_exceptions=False)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


# ── /performance ──────────────────────────────────────────────────────────


class TestPerformance:
    @pytest.mark.anyio
    async def test_report(self, client, runner):
        resp = await client.get("/performance?startDate=2024-01-01&endDate=2024-01-31")
        assert resp.status_code == 200
        body = resp.json()
        assert body["range"] == {"start": "2024-01-01", "end": "2024-01-31"}
        dev = body["developers"][0]
        assert dev["username"] == "alice"
        assert dev["score"] == 5
        pr = dev["contributions"]["pull_requests_opened"]
        assert pr["number"] == 1
        assert pr["items"][0]["state"] == "merged"
        assert pr["items"][0]["created_at"] == "2024-01-15T12:00:00Z"
        runner.run.assert_awaited_once_with("2024-01-01", "2024-01-31")

    @pytest.mark.anyio
    async def test_legacy_prefix(self, client):
        resp = await client.get(
            "/api/developers/performance?startDate=2024-01-01&endDate=2024-01-31"
        )
        assert resp.status_code == 200

    @pytest.mark.anyio
    @pytest.mark.parametrize(
        "query",
        [
            "",
            "?startDate=2024-01-01",
            "?endDate=2024-01-31",
            "?startDate=2024-1-1&endDate=2024-01-31",
            "?startDate=2024-01-01&endDate=31/01/2024",
        ],
    )
    async def test_bad_params(self, client, runner, query):
        resp = await client.get(f"/performance{query}")
        assert resp.status_code == 400
        body = resp.json()
        assert body["error"]
        assert body["example"] == EXAMPLE_QUERY
        runner.run.assert_not_called()

    @pytest.mark.anyio
    async def test_inverted_range(self, client, runner):
        runner.run.side_effect = ValidationError("startDate 2024-02-01 is after endDate 2024-01-01")
        resp = await client.get("/performance?startDate=2024-02-01&endDate=2024-01-01")
        assert resp.status_code == 400
        assert "after" in resp.json()["error"]

    @pytest.mark.anyio
    async def test_no_repositories(self, client, runner):
        runner.run.side_effect = NoRepositoriesError("no repositories found for organization acme")
        resp = await client.get("/performance?startDate=2024-01-01&endDate=2024-01-31")
        assert resp.status_code == 404
        assert "example" not in resp.json()

    @pytest.mark.anyio
    async def test_rate_limited(self, client, runner):
        runner.run.side_effect = RateLimitExceeded(7200, 3600)
        resp = await client.get("/performance?startDate=2024-01-01&endDate=2024-01-31")
        assert resp.status_code == 503

    @pytest.mark.anyio
    async def test_unexpected_failure(self, client, runner):
        runner.run.side_effect = RuntimeError("db on fire")
        resp = await client.get("/performance?startDate=2024-01-01&endDate=2024-01-31")
        assert resp.status_code == 500
        assert resp.json() == {"error": "internal server error"}


# ── middleware / ops ──────────────────────────────────────────────────────


class TestRequestID:
    @pytest.mark.anyio
    async def test_generated(self, client):
        resp = await client.get("/performance?startDate=2024-01-01&endDate=2024-01-31")
        uuid.UUID(resp.headers["X-Request-ID"])

    @pytest.mark.anyio
    async def test_propagated(self, client):
        resp = await client.get(
            "/performance?startDate=2024-01-01&endDate=2024-01-31",
            headers={"X-Request-ID": "trace-123"},
        )
        assert resp.headers["X-Request-ID"] == "trace-123"

    def test_unsafe_id_replaced(self):
        assert resolve_request_id("bad id\n") != "bad id\n"
        assert resolve_request_id("abc.DEF-1_2") == "abc.DEF-1_2"

    @pytest.mark.anyio
    async def test_unhandled_route_error(self, client):
        resp = await client.get("/boom")
        assert resp.status_code == 500
        assert resp.json() == {"error": "internal server error"}


class TestCreateApp:
    @pytest.mark.anyio
    async def test_root_and_health(self, monkeypatch):
        from prformance.api import create_app

        monkeypatch.setenv("GITHUB_ORG", "acme")
        app = create_app()
        transport = ASGITransport(app=app)
        async with AsyncClient(transport=transport, base_url="http://test") as ac:
            root = await ac.get("/")
            health = await ac.get("/health")
        assert root.status_code == 200
        assert "performance" in root.json()["endpoints"]
        assert health.json() == {"status": "ok"}
