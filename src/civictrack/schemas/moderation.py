"""Moderation-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict, Field

from civictrack.domain import SpamReason, SpamReviewStatus

from .issue import PaginationResponse

if TYPE_CHECKING:
    from civictrack.models import SpamReport


class SpamReportCreate(BaseModel):
    """Schema for reporting an issue as spam."""

    reason: str = Field(..., description="One of the spam reasons")
    description: str | None = Field(None, description="Optional explanation")


class SpamReportAccepted(BaseModel):
    accepted: bool
    spam_vote_count: int
    hidden: bool


class SpamReportResponse(BaseModel):
    """Schema for spam report information returned to administrators."""

    id: int
    issue_id: int
    reporter_id: str
    reason: SpamReason
    description: str | None
    status: SpamReviewStatus
    reviewed_by: str | None
    reviewed_at: datetime | None
    action_taken: str | None
    created_at: datetime

    model_config = ConfigDict(from_attributes=True)


class SpamReportListResponse(BaseModel):
    reports: list[SpamReportResponse]
    pagination: PaginationResponse


class FiledSpamReportResponse(SpamReportResponse):
    """A spam report as seen by the principal who filed it."""

    issue_title: str

    @classmethod
    def from_row(cls, report: SpamReport, issue_title: str) -> FiledSpamReportResponse:
        base = SpamReportResponse.model_validate(report)
        return cls(**base.model_dump(), issue_title=issue_title)


class FiledSpamReportListResponse(BaseModel):
    reports: list[FiledSpamReportResponse]
    pagination: PaginationResponse


class SpamReviewRequest(BaseModel):
    """Schema for reviewing a spam report."""

    status: str = Field(..., description="Reviewed, Action Taken or Dismissed")
    action_taken: str | None = Field(None, description="What was done about the report")
