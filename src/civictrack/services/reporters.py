"""Per-reporter statistics."""

from __future__ import annotations

from sqlalchemy import func, select
from sqlalchemy.orm import Session

from civictrack.domain import IssueStatus, ReporterSummary
from civictrack.models import Issue, ReporterStats


def get_stats(db: Session, principal_id: str) -> ReporterSummary:
    """Summarise the issues owned by ``principal_id`` and their spam history."""
    rows = db.execute(
        select(Issue.status, func.count())
        .where(Issue.owner_id == principal_id)
        .group_by(Issue.status)
    ).all()
    by_status = {status: count for status, count in rows}

    stats = db.get(ReporterStats, principal_id)
    return ReporterSummary(
        principal_id=principal_id,
        total_issues=sum(by_status.values()),
        resolved_issues=by_status.get(IssueStatus.RESOLVED, 0),
        pending_issues=by_status.get(IssueStatus.REPORTED, 0)
        + by_status.get(IssueStatus.IN_PROGRESS, 0),
        spam_reports=stats.spam_reports if stats else 0,
    )
