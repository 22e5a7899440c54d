"""SQLAlchemy models for issues and their membership sets."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    DateTime,
    Float,
    ForeignKey,
    Index,
    Integer,
    String,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from civictrack.db.session import Base
from civictrack.db.time import utcnow
from civictrack.domain import IssueCategory, IssuePriority, IssueStatus

from .columns import enum_column


class Issue(Base):
    """A location-tagged civic problem reported by a citizen.

    Counters are only ever changed by conditional UPDATE statements issued by
    the repository, in the same transaction as the matching membership row, so
    ``upvote_count`` always equals the number of ``IssueUpvote`` rows and
    ``spam_vote_count`` the number of ``IssueSpamVote`` rows.
    """

    __tablename__ = "issue"
    __table_args__ = (
        CheckConstraint("latitude BETWEEN -90 AND 90", name="ck_issue_latitude"),
        CheckConstraint("longitude BETWEEN -180 AND 180", name="ck_issue_longitude"),
        CheckConstraint("spam_vote_count >= 0", name="ck_issue_spam_vote_count"),
        CheckConstraint("upvote_count >= 0", name="ck_issue_upvote_count"),
        CheckConstraint("view_count >= 0", name="ck_issue_view_count"),
        CheckConstraint(
            "(is_anonymous AND owner_id IS NULL) OR (NOT is_anonymous AND owner_id IS NOT NULL)",
            name="ck_issue_ownership",
        ),
        # Bounding-box prefilter for proximity search.
        Index("ix_issue_lat_lng", "latitude", "longitude"),
        Index("ix_issue_category_status", "category", "status"),
        Index("ix_issue_visible_created", "visible", "created_at"),
        Index("ix_issue_owner_created", "owner_id", "created_at"),
    )

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)

    title: Mapped[str] = mapped_column(String(100), nullable=False)
    description: Mapped[str] = mapped_column(String(1000), nullable=False)
    category: Mapped[IssueCategory] = mapped_column(enum_column(IssueCategory), nullable=False)

    # Immutable after creation.
    latitude: Mapped[float] = mapped_column(Float, nullable=False)
    longitude: Mapped[float] = mapped_column(Float, nullable=False)
    address: Mapped[str | None] = mapped_column(String(200), nullable=True)

    owner_id: Mapped[str | None] = mapped_column(String(64), nullable=True)
    is_anonymous: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    status: Mapped[IssueStatus] = mapped_column(
        enum_column(IssueStatus),
        nullable=False,
        default=IssueStatus.REPORTED,
    )
    priority: Mapped[IssuePriority] = mapped_column(
        enum_column(IssuePriority),
        nullable=False,
        default=IssuePriority.MEDIUM,
    )
    last_status_change_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    estimated_resolution_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    # Written once, by the transition into Resolved.
    actual_resolution_at: Mapped[datetime | None] = mapped_column(
        DateTime(timezone=True), nullable=True
    )
    admin_notes: Mapped[str | None] = mapped_column(String(500), nullable=True)

    spam_vote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    visible: Mapped[bool] = mapped_column(Boolean, nullable=False, default=True)
    # One-way latch set the first time spam votes reach the threshold.
    spam_threshold_crossed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)

    upvote_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    view_count: Mapped[int] = mapped_column(Integer, nullable=False, default=0)

    images: Mapped[list[str]] = mapped_column(JSON, nullable=False, default=list)

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), nullable=False, default=utcnow
    )

    upvotes: Mapped[list[IssueUpvote]] = relationship(
        "IssueUpvote",
        viewonly=True,
        lazy="selectin",
        order_by="IssueUpvote.principal_id",
    )
    spam_votes: Mapped[list[IssueSpamVote]] = relationship(
        "IssueSpamVote",
        viewonly=True,
        lazy="selectin",
        order_by="IssueSpamVote.principal_id",
    )

    @property
    def location(self) -> dict[str, Any]:
        """Return the GeoJSON point for this issue (longitude first)."""
        return {"type": "Point", "coordinates": [self.longitude, self.latitude]}

    @property
    def upvoted_by(self) -> list[str]:
        return [vote.principal_id for vote in self.upvotes]

    @property
    def spam_voted_by(self) -> list[str]:
        return [vote.principal_id for vote in self.spam_votes]


class IssueUpvote(Base):
    """Membership row: one principal upvoted one issue."""

    __tablename__ = "issue_upvote"

    issue_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("issue.id", ondelete="CASCADE"),
        primary_key=True,
    )
    # Composite primary key prevents duplicate upvotes from the same principal.
    principal_id: Mapped[str] = mapped_column(String(64), primary_key=True)


class IssueSpamVote(Base):
    """Membership row: one principal flagged one issue as spam."""

    __tablename__ = "issue_spam_vote"

    issue_id: Mapped[int] = mapped_column(
        Integer,
        ForeignKey("issue.id", ondelete="CASCADE"),
        primary_key=True,
    )
    principal_id: Mapped[str] = mapped_column(String(64), primary_key=True)
