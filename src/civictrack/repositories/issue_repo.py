"""Data access helpers for working with issues.

Every mutation here is a single conditional statement whose affected row count
decides the outcome; nothing loads an issue, edits counters in memory and
writes it back. Methods flush but never commit: the calling service owns the
transaction boundary.
"""
from __future__ import annotations

from collections.abc import Iterator, Sequence
from datetime import datetime
from typing import Any

from sqlalchemy import Table, case, delete, exists, func, insert, literal, or_, select, update
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from civictrack.core.errors import (
    ConcurrentUpdateError,
    DuplicateSpamReportError,
    IssueValidationError,
    NotFoundError,
)
from civictrack.db.time import utcnow
from civictrack.domain import (
    IssueCategory,
    IssueDraft,
    IssueFilter,
    IssuePriority,
    IssueStatus,
    UpvoteToggle,
)
from civictrack.models import (
    ActivityLogEntry,
    Issue,
    IssueSpamVote,
    IssueUpvote,
    ReporterStats,
    SpamReport,
)
from civictrack.utils.geo import is_valid_latitude, is_valid_longitude

__all__ = ["IssueRepository", "issue_filter_clauses", "validate_draft"]

TITLE_MIN, TITLE_MAX = 5, 100
DESCRIPTION_MIN, DESCRIPTION_MAX = 10, 1000
ADDRESS_MAX = 200

# Counter updates are raw conditional statements; in-memory objects are
# refreshed by the commit that follows.
_NO_SYNC = {"synchronize_session": False}


def _length_error(
    field: str, value: object, minimum: int | None, maximum: int
) -> dict[str, str] | None:
    if not isinstance(value, str):
        return {"field": field, "message": f"{field} must be a string"}
    length = len(value.strip())
    if minimum is not None and length < minimum:
        return {"field": field, "message": f"{field} must be at least {minimum} characters"}
    if length > maximum:
        return {"field": field, "message": f"{field} cannot exceed {maximum} characters"}
    return None


def validate_draft(draft: IssueDraft, *, max_images: int) -> list[dict[str, str]]:
    """Return every field-level violation in ``draft`` (empty when valid)."""
    errors: list[dict[str, str]] = []

    for field, value, minimum, maximum in (
        ("title", draft.title, TITLE_MIN, TITLE_MAX),
        ("description", draft.description, DESCRIPTION_MIN, DESCRIPTION_MAX),
    ):
        error = _length_error(field, value, minimum, maximum)
        if error:
            errors.append(error)

    if draft.category not in {category.value for category in IssueCategory}:
        allowed = ", ".join(category.value for category in IssueCategory)
        errors.append({"field": "category", "message": f"category must be one of: {allowed}"})

    if not is_valid_latitude(draft.latitude):
        errors.append({"field": "latitude", "message": "latitude must be between -90 and 90"})
    if not is_valid_longitude(draft.longitude):
        errors.append({"field": "longitude", "message": "longitude must be between -180 and 180"})

    if draft.address is not None:
        error = _length_error("address", draft.address, None, ADDRESS_MAX)
        if error:
            errors.append(error)

    if not draft.is_anonymous and not draft.owner_id:
        errors.append(
            {"field": "owner_id", "message": "An owner is required unless the issue is anonymous"}
        )

    if len(draft.images) > max_images:
        errors.append(
            {"field": "images", "message": f"Maximum {max_images} images allowed per issue"}
        )
    return errors


def issue_filter_clauses(filters: IssueFilter) -> list[ColumnElement[bool]]:
    """Translate the attribute part of ``filters`` into WHERE clauses.

    Proximity is not handled here; the geo index applies it on top of these.
    """
    errors: list[dict[str, str]] = []
    clauses: list[ColumnElement[bool]] = []

    if filters.visible is not None:
        clauses.append(Issue.visible.is_(filters.visible))

    if filters.category:
        try:
            clauses.append(Issue.category == IssueCategory(filters.category))
        except ValueError:
            errors.append({"field": "category", "message": f"Unknown category {filters.category!r}"})

    if filters.status:
        try:
            clauses.append(Issue.status == IssueStatus(filters.status))
        except ValueError:
            errors.append({"field": "status", "message": f"Unknown status {filters.status!r}"})

    if errors:
        raise IssueValidationError(errors)

    if filters.owner_id:
        clauses.append(Issue.owner_id == filters.owner_id)

    text = (filters.text or "").strip().lower()
    if text:
        clauses.append(
            or_(
                func.lower(Issue.title).contains(text, autoescape=True),
                func.lower(Issue.description).contains(text, autoescape=True),
                func.lower(Issue.address).contains(text, autoescape=True),
            )
        )
    return clauses


class IssueRepository:
    """Owner of the persisted Issue rows and their membership sets."""

    def __init__(self, session: Session) -> None:
        """Initialize the repository with a SQLAlchemy session."""
        self.session = session

    def get(self, issue_id: int) -> Issue | None:
        """Return an issue by identifier."""
        return self.session.get(Issue, issue_id)

    def require(self, issue_id: int) -> Issue:
        """Return an issue or raise ``NotFoundError``."""
        issue = self.get(issue_id)
        if issue is None:
            raise NotFoundError("Issue not found")
        return issue

    def current_status(self, issue_id: int) -> IssueStatus | None:
        """Read the status from the store, bypassing the identity map."""
        return self.session.execute(
            select(Issue.status).where(Issue.id == issue_id)
        ).scalar_one_or_none()

    def create(self, draft: IssueDraft, *, max_images: int = 5) -> Issue:
        """Validate ``draft`` and insert a new issue.

        Raises:
            IssueValidationError: Listing every violated field; nothing is written.
        """
        errors = validate_draft(draft, max_images=max_images)
        if errors:
            raise IssueValidationError(errors)

        now = utcnow()
        address = draft.address.strip() if draft.address else None
        issue = Issue(
            title=draft.title.strip(),
            description=draft.description.strip(),
            category=IssueCategory(draft.category),
            latitude=float(draft.latitude),
            longitude=float(draft.longitude),
            address=address or None,
            is_anonymous=draft.is_anonymous,
            owner_id=None if draft.is_anonymous else draft.owner_id,
            status=IssueStatus.REPORTED,
            priority=IssuePriority.MEDIUM,
            visible=True,
            spam_vote_count=0,
            upvote_count=0,
            view_count=0,
            images=list(draft.images),
            last_status_change_at=now,
            created_at=now,
            updated_at=now,
        )
        self.session.add(issue)
        self.session.flush()
        return issue

    def increment_view(self, issue_id: int) -> None:
        """Bump the monotonic view counter."""
        self.session.execute(
            update(Issue)
            .where(Issue.id == issue_id)
            .values(view_count=Issue.view_count + 1),
            execution_options=_NO_SYNC,
        )

    def toggle_upvote(self, issue_id: int, principal_id: str) -> UpvoteToggle:
        """Flip ``principal_id``'s membership in the issue's upvote set.

        The membership row and the counter change in the same transaction; a
        principal already present is removed, otherwise added.
        """
        self.require(issue_id)
        table: Table = IssueUpvote.__table__  # type: ignore[assignment]
        for _ in range(2):
            if self._remove_member(table, issue_id, principal_id):
                self._bump_counter(issue_id, upvote_count=-1)
                return UpvoteToggle.REMOVED
            if self._add_member(table, issue_id, principal_id):
                self._bump_counter(issue_id, upvote_count=1)
                return UpvoteToggle.ADDED
        raise ConcurrentUpdateError("Concurrent upvote toggles did not settle")

    def toggle_spam_vote(self, issue_id: int, principal_id: str) -> int:
        """Add ``principal_id`` to the spam set and return the new count.

        Add-only: a spam vote cannot be retracted through this path.

        Raises:
            DuplicateSpamReportError: If the principal already voted.
        """
        table: Table = IssueSpamVote.__table__  # type: ignore[assignment]
        if not self._add_member(table, issue_id, principal_id):
            raise DuplicateSpamReportError()
        self._bump_counter(issue_id, spam_vote_count=1)
        return self.session.execute(
            select(Issue.spam_vote_count).where(Issue.id == issue_id)
        ).scalar_one()

    def hide_on_threshold(self, issue_id: int, threshold: int) -> bool:
        """Hide the issue if its spam count reached ``threshold`` for the first time.

        Returns True only for the call that performs the crossing; the latch
        column makes every later call a no-op even after an admin re-shows it.
        """
        result = self.session.execute(
            update(Issue)
            .where(
                Issue.id == issue_id,
                Issue.spam_threshold_crossed.is_(False),
                Issue.spam_vote_count >= threshold,
            )
            .values(visible=False, spam_threshold_crossed=True, updated_at=utcnow()),
            execution_options=_NO_SYNC,
        )
        return result.rowcount == 1

    def set_visibility(self, issue_id: int, visible: bool) -> bool:
        """Force the visibility flag; returns False when the issue is absent."""
        result = self.session.execute(
            update(Issue)
            .where(Issue.id == issue_id)
            .values(visible=visible, updated_at=utcnow()),
            execution_options=_NO_SYNC,
        )
        return result.rowcount == 1

    def apply_transition(
        self,
        issue_id: int,
        *,
        from_status: IssueStatus,
        to_status: IssueStatus,
        at: datetime,
        priority: IssuePriority | None = None,
        estimated_resolution_at: datetime | None = None,
        admin_notes: str | None = None,
    ) -> bool:
        """Move the issue from ``from_status`` to ``to_status`` if it is still there.

        Returns False when a concurrent writer changed the status first.
        """
        values: dict[str, Any] = {
            "status": to_status,
            "last_status_change_at": at,
            "updated_at": at,
        }
        conditions: list[ColumnElement[bool]] = [
            Issue.id == issue_id,
            Issue.status == from_status,
        ]
        if to_status is IssueStatus.RESOLVED:
            values["actual_resolution_at"] = at
            conditions.append(Issue.actual_resolution_at.is_(None))
        if priority is not None:
            values["priority"] = priority
        if estimated_resolution_at is not None:
            values["estimated_resolution_at"] = estimated_resolution_at
        if admin_notes:
            values["admin_notes"] = admin_notes

        result = self.session.execute(
            update(Issue).where(*conditions).values(**values),
            execution_options=_NO_SYNC,
        )
        return result.rowcount == 1

    def delete(self, issue_id: int) -> None:
        """Delete an issue with its audit entries, spam reports and votes."""
        self.require(issue_id)
        for model in (ActivityLogEntry, SpamReport, IssueUpvote, IssueSpamVote):
            self.session.execute(
                delete(model).where(model.issue_id == issue_id),
                execution_options=_NO_SYNC,
            )
        # Default synchronisation marks the loaded instance as deleted.
        self.session.execute(delete(Issue).where(Issue.id == issue_id))

    def count(self, clauses: Sequence[ColumnElement[bool]]) -> int:
        """Return how many issues satisfy ``clauses``."""
        return self.session.execute(
            select(func.count()).select_from(Issue).where(*clauses)
        ).scalar_one()

    def list_newest(
        self,
        clauses: Sequence[ColumnElement[bool]],
        *,
        offset: int,
        limit: int,
    ) -> list[Issue]:
        """Return one page of issues satisfying ``clauses``, newest first."""
        result = self.session.execute(
            select(Issue)
            .where(*clauses)
            .order_by(Issue.created_at.desc(), Issue.id.desc())
            .offset(offset)
            .limit(limit)
        )
        return list(result.scalars())

    def by_ids(self, issue_ids: Sequence[int]) -> dict[int, Issue]:
        """Return the issues for ``issue_ids`` keyed by id."""
        if not issue_ids:
            return {}
        result = self.session.execute(select(Issue).where(Issue.id.in_(issue_ids)))
        return {issue.id: issue for issue in result.scalars()}

    def iter_locations(
        self,
        clauses: Sequence[ColumnElement[bool]],
        *,
        batch_size: int = 500,
    ) -> Iterator[tuple[int, float, float]]:
        """Stream ``(id, latitude, longitude)`` for issues satisfying ``clauses``."""
        result = self.session.execute(
            select(Issue.id, Issue.latitude, Issue.longitude)
            .where(*clauses)
            .execution_options(yield_per=batch_size)
        )
        for issue_id, latitude, longitude in result:
            yield issue_id, latitude, longitude

    def bump_reporter(self, principal_id: str, *, issues: int = 0, spam_reports: int = 0) -> None:
        """Adjust a reporter's counters, creating the row on first use.

        ``issues_reported`` never drops below zero.
        """
        new_issues = ReporterStats.issues_reported + issues
        result = self.session.execute(
            update(ReporterStats)
            .where(ReporterStats.principal_id == principal_id)
            .values(
                issues_reported=case((new_issues < 0, 0), else_=new_issues),
                spam_reports=ReporterStats.spam_reports + spam_reports,
            ),
            execution_options=_NO_SYNC,
        )
        if result.rowcount == 0:
            self.session.add(
                ReporterStats(
                    principal_id=principal_id,
                    issues_reported=max(issues, 0),
                    spam_reports=max(spam_reports, 0),
                )
            )
            self.session.flush()

    def _bump_counter(self, issue_id: int, **deltas: int) -> None:
        values = {name: getattr(Issue, name) + delta for name, delta in deltas.items()}
        self.session.execute(
            update(Issue).where(Issue.id == issue_id).values(**values),
            execution_options=_NO_SYNC,
        )

    def _add_member(self, table: Table, issue_id: int, principal_id: str) -> bool:
        already_member = exists().where(
            table.c.issue_id == issue_id,
            table.c.principal_id == principal_id,
        )
        stmt = insert(table).from_select(
            ["issue_id", "principal_id"],
            select(
                literal(issue_id, type_=table.c.issue_id.type),
                literal(principal_id, type_=table.c.principal_id.type),
            ).where(~already_member),
        )
        return self.session.execute(stmt).rowcount == 1

    def _remove_member(self, table: Table, issue_id: int, principal_id: str) -> bool:
        stmt = delete(table).where(
            table.c.issue_id == issue_id,
            table.c.principal_id == principal_id,
        )
        return self.session.execute(stmt).rowcount == 1
