"""Data access helpers for the issue audit trail."""
from __future__ import annotations

from datetime import datetime

from sqlalchemy import select
from sqlalchemy.orm import Session

from civictrack.db.time import utcnow
from civictrack.domain import IssuePriority, IssueStatus
from civictrack.models import ActivityLogEntry

__all__ = ["ActivityLogRepository"]


class ActivityLogRepository:
    """Append-only access to ``ActivityLogEntry`` rows."""

    def __init__(self, session: Session) -> None:
        self.session = session

    def append(
        self,
        *,
        issue_id: int,
        status: IssueStatus,
        previous_status: IssueStatus | None,
        actor_id: str | None,
        note: str | None = None,
        priority: IssuePriority | None = None,
        estimated_resolution_at: datetime | None = None,
        admin_notes: str | None = None,
        timestamp: datetime | None = None,
    ) -> ActivityLogEntry:
        """Insert one audit entry and return it."""
        entry = ActivityLogEntry(
            issue_id=issue_id,
            status=status,
            previous_status=previous_status,
            actor_id=actor_id,
            note=note,
            priority=priority,
            estimated_resolution_at=estimated_resolution_at,
            admin_notes=admin_notes,
            timestamp=timestamp or utcnow(),
        )
        self.session.add(entry)
        self.session.flush()
        return entry

    def list_for_issue(self, issue_id: int) -> list[ActivityLogEntry]:
        """Return the entries for ``issue_id`` oldest first."""
        result = self.session.execute(
            select(ActivityLogEntry)
            .where(ActivityLogEntry.issue_id == issue_id)
            .order_by(ActivityLogEntry.timestamp.asc(), ActivityLogEntry.id.asc())
        )
        return list(result.scalars())
