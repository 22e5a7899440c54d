"""Per-principal counters kept alongside the issues they own."""

from sqlalchemy import CheckConstraint, Integer, String
from sqlalchemy.orm import Mapped, mapped_column

from civictrack.db.session import Base


class ReporterStats(Base):
    """Cumulative counters for one reporting principal.

    Identity lives with the identity provider; this row only holds the
    counters the core maintains.
    """

    __tablename__ = "reporter_stats"
    __table_args__ = (
        CheckConstraint("issues_reported >= 0", name="ck_reporter_stats_issues"),
        CheckConstraint("spam_reports >= 0", name="ck_reporter_stats_spam"),
    )

    principal_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    issues_reported: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    # Times one of this principal's issues crossed the spam threshold.
    spam_reports: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
