"""initial schema

Revision ID: 5c1e2f7a9b30
Revises:
Create Date: 2026-10-18 09:12:40.215304

"""
from __future__ import annotations

from typing import Sequence, Union

from alembic import op
import sqlalchemy as sa

# revision identifiers, used by Alembic.
revision: str = "5c1e2f7a9b30"
down_revision: Union[str, Sequence[str], None] = None
branch_labels: Union[str, Sequence[str], None] = None
depends_on: Union[str, Sequence[str], None] = None


def upgrade() -> None:
    """Create issues, their membership sets, audit log, spam reports and reporter stats."""
    op.create_table(
        "issue",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("title", sa.String(length=100), nullable=False),
        sa.Column("description", sa.String(length=1000), nullable=False),
        sa.Column("category", sa.String(length=32), nullable=False),
        sa.Column("latitude", sa.Float(), nullable=False),
        sa.Column("longitude", sa.Float(), nullable=False),
        sa.Column("address", sa.String(length=200), nullable=True),
        sa.Column("owner_id", sa.String(length=64), nullable=True),
        sa.Column("is_anonymous", sa.Boolean(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("priority", sa.String(length=32), nullable=False),
        sa.Column("last_status_change_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("estimated_resolution_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("actual_resolution_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.String(length=500), nullable=True),
        sa.Column("spam_vote_count", sa.Integer(), nullable=False),
        sa.Column("visible", sa.Boolean(), nullable=False),
        sa.Column("spam_threshold_crossed", sa.Boolean(), nullable=False),
        sa.Column("upvote_count", sa.Integer(), nullable=False),
        sa.Column("view_count", sa.Integer(), nullable=False),
        sa.Column("images", sa.JSON(), nullable=False),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.Column("updated_at", sa.DateTime(timezone=True), nullable=False),
        sa.CheckConstraint("latitude BETWEEN -90 AND 90", name="ck_issue_latitude"),
        sa.CheckConstraint("longitude BETWEEN -180 AND 180", name="ck_issue_longitude"),
        sa.CheckConstraint("spam_vote_count >= 0", name="ck_issue_spam_vote_count"),
        sa.CheckConstraint("upvote_count >= 0", name="ck_issue_upvote_count"),
        sa.CheckConstraint("view_count >= 0", name="ck_issue_view_count"),
        sa.CheckConstraint(
            "(is_anonymous AND owner_id IS NULL) OR (NOT is_anonymous AND owner_id IS NOT NULL)",
            name="ck_issue_ownership",
        ),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index("ix_issue_lat_lng", "issue", ["latitude", "longitude"])
    op.create_index("ix_issue_category_status", "issue", ["category", "status"])
    op.create_index("ix_issue_visible_created", "issue", ["visible", "created_at"])
    op.create_index("ix_issue_owner_created", "issue", ["owner_id", "created_at"])

    for table_name in ("issue_upvote", "issue_spam_vote"):
        op.create_table(
            table_name,
            sa.Column("issue_id", sa.Integer(), nullable=False),
            sa.Column("principal_id", sa.String(length=64), nullable=False),
            sa.ForeignKeyConstraint(["issue_id"], ["issue.id"], ondelete="CASCADE"),
            sa.PrimaryKeyConstraint("issue_id", "principal_id"),
        )

    op.create_table(
        "activity_log",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("issue_id", sa.Integer(), nullable=False),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("previous_status", sa.String(length=32), nullable=True),
        sa.Column("note", sa.String(length=500), nullable=True),
        sa.Column("actor_id", sa.String(length=64), nullable=True),
        sa.Column("timestamp", sa.DateTime(timezone=True), nullable=False),
        sa.Column("priority", sa.String(length=32), nullable=True),
        sa.Column("estimated_resolution_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("admin_notes", sa.String(length=500), nullable=True),
        sa.ForeignKeyConstraint(["issue_id"], ["issue.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
    )
    op.create_index(
        "ix_activity_log_issue_timestamp", "activity_log", ["issue_id", "timestamp"]
    )
    op.create_index("ix_activity_log_actor_id", "activity_log", ["actor_id"])

    op.create_table(
        "spam_report",
        sa.Column("id", sa.Integer(), autoincrement=True, nullable=False),
        sa.Column("issue_id", sa.Integer(), nullable=False),
        sa.Column("reporter_id", sa.String(length=64), nullable=False),
        sa.Column("reason", sa.String(length=32), nullable=False),
        sa.Column("description", sa.String(length=200), nullable=True),
        sa.Column("status", sa.String(length=32), nullable=False),
        sa.Column("reviewed_by", sa.String(length=64), nullable=True),
        sa.Column("reviewed_at", sa.DateTime(timezone=True), nullable=True),
        sa.Column("action_taken", sa.String(length=300), nullable=True),
        sa.Column("created_at", sa.DateTime(timezone=True), nullable=False),
        sa.ForeignKeyConstraint(["issue_id"], ["issue.id"], ondelete="CASCADE"),
        sa.PrimaryKeyConstraint("id"),
        sa.UniqueConstraint("issue_id", "reporter_id", name="uq_spam_report_issue_reporter"),
    )
    op.create_index("ix_spam_report_issue_id", "spam_report", ["issue_id"])
    op.create_index("ix_spam_report_status", "spam_report", ["status"])

    op.create_table(
        "reporter_stats",
        sa.Column("principal_id", sa.String(length=64), nullable=False),
        sa.Column("issues_reported", sa.Integer(), nullable=False),
        sa.Column("spam_reports", sa.Integer(), nullable=False),
        sa.CheckConstraint("issues_reported >= 0", name="ck_reporter_stats_issues"),
        sa.CheckConstraint("spam_reports >= 0", name="ck_reporter_stats_spam"),
        sa.PrimaryKeyConstraint("principal_id"),
    )


def downgrade() -> None:
    """Drop every CivicTrack table."""
    op.drop_table("reporter_stats")
    op.drop_index("ix_spam_report_status", table_name="spam_report")
    op.drop_index("ix_spam_report_issue_id", table_name="spam_report")
    op.drop_table("spam_report")
    op.drop_index("ix_activity_log_actor_id", table_name="activity_log")
    op.drop_index("ix_activity_log_issue_timestamp", table_name="activity_log")
    op.drop_table("activity_log")
    op.drop_table("issue_spam_vote")
    op.drop_table("issue_upvote")
    op.drop_index("ix_issue_owner_created", table_name="issue")
    op.drop_index("ix_issue_visible_created", table_name="issue")
    op.drop_index("ix_issue_category_status", table_name="issue")
    op.drop_index("ix_issue_lat_lng", table_name="issue")
    op.drop_table("issue")
