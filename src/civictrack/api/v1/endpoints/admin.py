# src/civictrack/api/v1/endpoints/admin.py
"""Administrative endpoints for the CivicTrack API."""

from typing import Annotated

from fastapi import APIRouter, Query

from civictrack.core.settings import settings
from civictrack.domain import IssueFilter
from civictrack.schemas import (
    IssueListResponse,
    IssueResponse,
    PaginationResponse,
    SpamReportListResponse,
    SpamReportResponse,
    SpamReviewRequest,
)
from civictrack.services import DiscoveryService, ModerationService

from ..dependencies import AdminDep, SessionDep

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/issues", response_model=IssueListResponse)
def list_all_issues(
    db: SessionDep,
    _admin: AdminDep,
    category: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    search: str | None = None,
    visible: bool | None = None,
    page: int = 1,
    limit: int | None = None,
) -> IssueListResponse:
    """List issues of any visibility, newest first."""
    filters = IssueFilter(
        category=category,
        status=status_filter,
        text=search,
        visible=visible,
    )
    result = DiscoveryService(db).search(
        filters, page, limit, default_limit=settings.admin_page_limit
    )
    return IssueListResponse(
        issues=[IssueResponse.from_hit(hit) for hit in result.items],
        pagination=PaginationResponse.from_meta(result.pagination),
    )


@router.patch("/issues/{issue_id}/hide", response_model=IssueResponse)
def hide_issue(issue_id: int, db: SessionDep, _admin: AdminDep) -> IssueResponse:
    """Hide an issue from public discovery."""
    issue = ModerationService(db).set_visibility(issue_id, False)
    return IssueResponse.model_validate(issue)


@router.patch("/issues/{issue_id}/show", response_model=IssueResponse)
def show_issue(issue_id: int, db: SessionDep, _admin: AdminDep) -> IssueResponse:
    """Make a hidden issue publicly visible again."""
    issue = ModerationService(db).set_visibility(issue_id, True)
    return IssueResponse.model_validate(issue)


@router.get("/spam-reports", response_model=SpamReportListResponse)
def list_spam_reports(
    db: SessionDep,
    _admin: AdminDep,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    page: int = 1,
    limit: int | None = None,
) -> SpamReportListResponse:
    """List spam reports, newest first."""
    reports, meta = ModerationService(db).list_spam_reports(status_filter, page, limit)
    return SpamReportListResponse(
        reports=[SpamReportResponse.model_validate(report) for report in reports],
        pagination=PaginationResponse.from_meta(meta),
    )


@router.patch("/spam-reports/{report_id}/review", response_model=SpamReportResponse)
def review_spam_report(
    report_id: int,
    payload: SpamReviewRequest,
    db: SessionDep,
    admin: AdminDep,
) -> SpamReportResponse:
    """Record the outcome of reviewing a spam report."""
    report = ModerationService(db).review_spam_report(
        report_id,
        payload.status,
        admin.id,
        payload.action_taken,
    )
    return SpamReportResponse.model_validate(report)
