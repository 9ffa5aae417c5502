"""Performance router: ranked contributions for a date range."""

from __future__ import annotations

import re

import structlog
from fastapi import APIRouter, Depends, Query

from prformance.api.deps import get_aggregation_runner
from prformance.api.schemas.report import ReportResponse
from prformance.engines.contribution_collector.runner import AggregationRunner
from prformance.services import ValidationError

log = structlog.get_logger("prformance.api")

router = APIRouter()

DATE_RE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


def check_date_params(start_date: str | None, end_date: str | None) -> None:
    """Reject missing parameters and anything that is not ``YYYY-MM-DD``."""
    if not start_date or not end_date:
        raise ValidationError("the startDate and endDate parameters are required")
    if not DATE_RE.match(start_date) or not DATE_RE.match(end_date):
        raise ValidationError("dates must use the YYYY-MM-DD format")


@router.get("/performance", response_model=ReportResponse)
async def get_performance(
    start_date: str | None = Query(None, alias="startDate"),
    end_date: str | None = Query(None, alias="endDate"),
    runner: AggregationRunner = Depends(get_aggregation_runner),
) -> ReportResponse:
    check_date_params(start_date, end_date)
    report = await runner.run(start_date, end_date)
    log.info("performance.computed", developers=len(report.developers))
    return ReportResponse(**report.to_dict())
