"""Models tracking spam reports filed against issues."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import DateTime, ForeignKey, Integer, String, UniqueConstraint
from sqlalchemy.orm import Mapped, mapped_column

from civictrack.db.session import Base
from civictrack.db.time import utcnow
from civictrack.domain import SpamReason, SpamReviewStatus

from .columns import enum_column


class SpamReport(Base):
    """A principal's report that an issue is spam, plus its review state."""

    __tablename__ = "spam_report"
    __table_args__ = (
        # One report per (issue, principal).
        UniqueConstraint("issue_id", "reporter_id", name="uq_spam_report_issue_reporter"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    issue_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("issue.id", ondelete="CASCADE"),
        nullable=False,
        index=True,
    )
    reporter_id: Mapped[str] = mapped_column(String(64), nullable=False)
    reason: Mapped[SpamReason] = mapped_column(enum_column(SpamReason), nullable=False)
    description: Mapped[str | None] = mapped_column(String(200), nullable=True)

    status: Mapped[SpamReviewStatus] = mapped_column(
        enum_column(SpamReviewStatus),
        nullable=False,
        default=SpamReviewStatus.PENDING,
        index=True,
    )
    reviewed_by: Mapped[str | None] = mapped_column(String(64), nullable=True)
    reviewed_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)
    action_taken: Mapped[str | None] = mapped_column(String(300), nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
