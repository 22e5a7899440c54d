"""Issue-related Pydantic schemas."""
from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from civictrack.domain import (
    IssueCategory,
    IssueHit,
    IssuePriority,
    IssueStatus,
    PaginationMeta,
    UpvoteToggle,
)


class IssueResponse(BaseModel):
    """Schema for issue information returned by the API."""

    id: int
    title: str
    description: str
    category: IssueCategory
    location: dict[str, Any]
    latitude: float
    longitude: float
    address: str | None
    owner_id: str | None
    is_anonymous: bool
    status: IssueStatus
    priority: IssuePriority
    last_status_change_at: datetime
    estimated_resolution_at: datetime | None
    actual_resolution_at: datetime | None
    admin_notes: str | None
    spam_vote_count: int
    visible: bool
    upvote_count: int
    upvoted_by: list[str]
    view_count: int
    images: list[str]
    created_at: datetime
    updated_at: datetime
    distance_m: float | None = Field(None, description="Distance from the search point in meters")

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_hit(cls, hit: IssueHit) -> IssueResponse:
        response = cls.model_validate(hit.issue)
        if hit.distance_m is not None:
            response.distance_m = round(hit.distance_m, 1)
        return response


class PaginationResponse(BaseModel):
    """Pagination metadata for list endpoints."""

    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_prev: bool

    model_config = ConfigDict(from_attributes=True)

    @classmethod
    def from_meta(cls, meta: PaginationMeta) -> PaginationResponse:
        return cls.model_validate(meta)


class IssueListResponse(BaseModel):
    issues: list[IssueResponse]
    pagination: PaginationResponse


class StatusUpdate(BaseModel):
    """Schema for an administrative status change."""

    status: str = Field(..., description="Target status")
    note: str | None = Field(None, description="Note recorded in the activity log")
    priority: str | None = Field(None, description="New priority")
    estimated_resolution_at: datetime | None = Field(None, description="Expected resolution time")
    admin_notes: str | None = Field(None, description="Internal notes")


class UpvoteResponse(BaseModel):
    action: UpvoteToggle
    upvote_count: int


class ActivityResponse(BaseModel):
    """Schema for one audit trail entry."""

    id: int
    issue_id: int
    status: IssueStatus
    previous_status: IssueStatus | None
    note: str | None
    actor_id: str | None
    timestamp: datetime
    snapshot: dict[str, Any] | None = None

    model_config = ConfigDict(from_attributes=True)
