"""PRFormance REST API: FastAPI application factory."""

from __future__ import annotations

import os
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from prformance.api.deps import close_services, get_settings, init_services
from prformance.api.errors import register_error_handlers
from prformance.api.middleware.request_id import RequestIDMiddleware
from prformance.api.routers import performance
from prformance.api.schemas.report import ServiceInfo
from prformance.core.logging import setup_logging

_ENDPOINTS = {
    "performance": "/performance?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD",
    "developers": "/api/developers/performance?startDate=YYYY-MM-DD&endDate=YYYY-MM-DD",
    "health": "/health",
}


@asynccontextmanager
async def _lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Startup: build the GitHub client and runner. Shutdown: close the client."""
    init_services(get_settings())
    yield
    await close_services()


def create_app() -> FastAPI:
    """Build and return the FastAPI application."""
    setup_logging()

    app = FastAPI(
        title="PRFormance",
        docs_url="/docs",
        openapi_url="/openapi.json",
        lifespan=_lifespan,
    )

    register_error_handlers(app)

    cors_origins = os.environ.get("PRFORMANCE_CORS_ORIGINS", "*")
    app.add_middleware(
        CORSMiddleware,
        allow_origins=[o.strip() for o in cors_origins.split(",")],
        allow_methods=["GET"],
        allow_headers=["*"],
    )
    app.add_middleware(RequestIDMiddleware)

    @app.get("/", response_model=ServiceInfo, tags=["ops"])
    async def root() -> ServiceInfo:
        return ServiceInfo(
            message="PRFormance API - GitHub developer performance analysis",
            endpoints=_ENDPOINTS,
        )

    @app.get("/health", tags=["ops"])
    async def health() -> JSONResponse:
        return JSONResponse({"status": "ok"})

    app.include_router(performance.router, tags=["performance"])
    app.include_router(performance.router, prefix="/api/developers", tags=["performance"])

    return app
