"""Issue lifecycle state machine."""

from __future__ import annotations

import logging
from datetime import datetime

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from civictrack.core.errors import InvalidTransitionError, IssueValidationError, NotFoundError
from civictrack.db.time import utcnow
from civictrack.domain import IssuePriority, IssueStatus
from civictrack.models import Issue
from civictrack.repositories import ActivityLogRepository, IssueRepository

logger = logging.getLogger(__name__)

NOTE_MAX = 500
ADMIN_NOTES_MAX = 500

# Status only moves forward; Resolved is terminal.
ALLOWED_TRANSITIONS: dict[IssueStatus, frozenset[IssueStatus]] = {
    IssueStatus.REPORTED: frozenset({IssueStatus.IN_PROGRESS, IssueStatus.RESOLVED}),
    IssueStatus.IN_PROGRESS: frozenset({IssueStatus.RESOLVED}),
    IssueStatus.RESOLVED: frozenset(),
}


def can_transition(from_status: IssueStatus, to_status: IssueStatus) -> bool:
    """Return True if ``to_status`` is an allowed successor of ``from_status``."""
    return to_status in ALLOWED_TRANSITIONS.get(from_status, frozenset())


def _parse_enum(enum_cls, field: str, value, errors: list[dict[str, str]]):
    if value is None or isinstance(value, enum_cls):
        return value
    try:
        return enum_cls(value)
    except ValueError:
        allowed = ", ".join(member.value for member in enum_cls)
        errors.append({"field": field, "message": f"{field} must be one of: {allowed}"})
        return None


class LifecycleService:
    """Validate and apply status transitions, recording each in the audit log."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.issues = IssueRepository(db)
        self.activity = ActivityLogRepository(db)

    def transition(
        self,
        issue_id: int,
        requested_status: IssueStatus | str,
        actor_id: str,
        note: str | None = None,
        priority: IssuePriority | str | None = None,
        estimated_resolution_at: datetime | None = None,
        admin_notes: str | None = None,
    ) -> Issue:
        """Move an issue to ``requested_status`` and return the updated issue.

        The status update is committed first; the audit entry is appended
        afterwards and a failure there is logged, not raised.

        Raises:
            IssueValidationError: If the status, priority or notes are malformed.
            NotFoundError: If the issue does not exist.
            InvalidTransitionError: If the move is not allowed from the current status.
        """
        errors: list[dict[str, str]] = []
        to_status = _parse_enum(IssueStatus, "status", requested_status, errors)
        if requested_status is None:
            errors.append({"field": "status", "message": "status is required"})
        new_priority = _parse_enum(IssuePriority, "priority", priority, errors)
        if note is not None and len(note) > NOTE_MAX:
            errors.append({"field": "note", "message": f"note cannot exceed {NOTE_MAX} characters"})
        if admin_notes is not None and len(admin_notes) > ADMIN_NOTES_MAX:
            errors.append(
                {
                    "field": "admin_notes",
                    "message": f"admin_notes cannot exceed {ADMIN_NOTES_MAX} characters",
                }
            )
        if errors:
            raise IssueValidationError(errors)

        now = utcnow()
        from_status: IssueStatus | None = None
        # A lost race re-reads the status; forward-only moves bound the retries.
        for _ in range(len(ALLOWED_TRANSITIONS)):
            from_status = self.issues.current_status(issue_id)
            if from_status is None:
                raise NotFoundError("Issue not found")
            if not can_transition(from_status, to_status):
                raise InvalidTransitionError(from_status.value, to_status.value)
            if self.issues.apply_transition(
                issue_id,
                from_status=from_status,
                to_status=to_status,
                at=now,
                priority=new_priority,
                estimated_resolution_at=estimated_resolution_at,
                admin_notes=admin_notes,
            ):
                break
        else:
            current = self.issues.current_status(issue_id) or from_status
            raise InvalidTransitionError(current.value, to_status.value)
        self.db.commit()

        logger.info(
            "Issue %s moved from %s to %s by %s",
            issue_id,
            from_status.value,
            to_status.value,
            actor_id,
        )
        self._record(
            issue_id=issue_id,
            status=to_status,
            previous_status=from_status,
            actor_id=actor_id,
            note=note,
            priority=new_priority,
            estimated_resolution_at=estimated_resolution_at,
            admin_notes=admin_notes or None,
            timestamp=now,
        )
        return self.issues.require(issue_id)

    def _record(self, **entry) -> None:
        try:
            self.activity.append(**entry)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning(
                "Failed to append activity entry for issue %s", entry["issue_id"], exc_info=True
            )
