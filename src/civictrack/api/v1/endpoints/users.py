# src/civictrack/api/v1/endpoints/users.py
"""Reporter endpoints for the CivicTrack API."""

from fastapi import APIRouter

from civictrack.schemas import (
    FiledSpamReportListResponse,
    FiledSpamReportResponse,
    PaginationResponse,
    ReporterStatsResponse,
)
from civictrack.services.moderation import ModerationService
from civictrack.services.reporters import get_stats

from ..dependencies import PrincipalDep, SessionDep

router = APIRouter(prefix="/users", tags=["users"])


@router.get("/me/stats", response_model=ReporterStatsResponse)
def my_stats(db: SessionDep, principal: PrincipalDep) -> ReporterStatsResponse:
    """Return the caller's reporting statistics."""
    return ReporterStatsResponse.model_validate(get_stats(db, principal.id))


@router.get("/me/spam-reports", response_model=FiledSpamReportListResponse)
def my_spam_reports(
    db: SessionDep,
    principal: PrincipalDep,
    page: int = 1,
    limit: int | None = None,
) -> FiledSpamReportListResponse:
    """List the spam reports the caller filed, newest first."""
    rows, meta = ModerationService(db).list_reports_by(principal.id, page, limit)
    return FiledSpamReportListResponse(
        reports=[FiledSpamReportResponse.from_row(report, title) for report, title in rows],
        pagination=PaginationResponse.from_meta(meta),
    )
