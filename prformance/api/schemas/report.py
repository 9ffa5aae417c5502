"""Contribution report response schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class ReportRange(BaseModel):
    start: str
    end: str


class ContributionGroup(BaseModel):
    number: int
    items: list[dict[str, Any]]


class DeveloperResponse(BaseModel):
    username: str
    score: float
    contributions: dict[str, ContributionGroup]


class ReportResponse(BaseModel):
    range: ReportRange
    developers: list[DeveloperResponse]


class ServiceInfo(BaseModel):
    message: str
    endpoints: dict[str, str]
