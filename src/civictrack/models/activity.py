"""Append-only audit trail of issue lifecycle changes."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import DateTime, ForeignKey, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from civictrack.db.session import Base
from civictrack.db.time import utcnow
from civictrack.domain import IssuePriority, IssueStatus

from .columns import enum_column


class ActivityLogEntry(Base):
    """One lifecycle mutation of an issue.

    Rows are never updated; they disappear only with the issue they describe.
    """

    __tablename__ = "activity_log"
    __table_args__ = (Index("ix_activity_log_issue_timestamp", "issue_id", "timestamp"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    issue_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("issue.id", ondelete="CASCADE"),
        nullable=False,
    )
    status: Mapped[IssueStatus] = mapped_column(enum_column(IssueStatus), nullable=False)
    # Null for the creation entry.
    previous_status: Mapped[IssueStatus | None] = mapped_column(
        enum_column(IssueStatus), nullable=True
    )
    note: Mapped[str | None] = mapped_column(String(500), nullable=True)
    # Null for anonymous creation.
    actor_id: Mapped[str | None] = mapped_column(String(64), nullable=True, index=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    # Snapshot of the fields merged alongside the transition.
    priority: Mapped[IssuePriority | None] = mapped_column(
        enum_column(IssuePriority), nullable=True
    )
    estimated_resolution_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    admin_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    @property
    def snapshot(self) -> dict[str, Any] | None:
        """Return the metadata snapshot, or None when nothing was merged."""
        if self.priority is None and self.estimated_resolution_at is None and not self.admin_notes:
            return None
        return {
            "priority": self.priority.value if self.priority else None,
            "estimated_resolution_at": self.estimated_resolution_at,
            "admin_notes": self.admin_notes,
        }
