"""Unified error handling: ServiceError, RequestValidationError and crashes → JSON."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from prformance.services import (
    NoRepositoriesError,
    RateLimitExceeded,
    ServiceError,
    SourceFetchError,
    ValidationError,
)

log = structlog.get_logger("prformance.api")

EXAMPLE_QUERY = "/performance?startDate=2024-01-01&endDate=2024-02-01"

_STATUS_MAP: dict[type[ServiceError], int] = {
    ValidationError: 400,
    NoRepositoriesError: 404,
    SourceFetchError: 502,
    RateLimitExceeded: 503,
}


def _error_body(status: int, message: str) -> dict[str, str]:
    body = {"error": message}
    if status == 400:
        body["example"] = EXAMPLE_QUERY
    return body


async def _service_error_handler(_request: Request, exc: ServiceError) -> JSONResponse:
    status = 500
    for cls in type(exc).__mro__:
        if cls in _STATUS_MAP:
            status = _STATUS_MAP[cls]
            break
    if status >= 500:
        log.error("api.service_error", error=str(exc), status=status)
    return JSONResponse(status_code=status, content=_error_body(status, str(exc)))


async def _validation_error_handler(
    _request: Request, exc: RequestValidationError
) -> JSONResponse:
    messages = []
    for err in exc.errors():
        loc = " → ".join(str(part) for part in err["loc"])
        messages.append(f"{loc}: {err['msg']}")
    return JSONResponse(status_code=400, content=_error_body(400, "; ".join(messages)))


async def _unhandled_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    log.error("api.unhandled_error", error=str(exc), exc_info=exc)
    return JSONResponse(status_code=500, content={"error": "internal server error"})


def register_error_handlers(app: FastAPI) -> None:
    """Register exception handlers on the app."""
    app.add_exception_handler(ServiceError, _service_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(RequestValidationError, _validation_error_handler)  # type: ignore[arg-type]
    app.add_exception_handler(Exception, _unhandled_error_handler)
