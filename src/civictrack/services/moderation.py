"""Moderation services for CivicTrack."""

from __future__ import annotations

import logging

from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from civictrack.core.errors import DuplicateSpamReportError, IssueValidationError, NotFoundError
from civictrack.core.settings import settings
from civictrack.db.time import utcnow
from civictrack.domain import PaginationMeta, SpamReason, SpamReportOutcome, SpamReviewStatus
from civictrack.models import Issue, SpamReport
from civictrack.repositories import IssueRepository
from civictrack.services.discovery import clamp_page

logger = logging.getLogger(__name__)

SPAM_DESCRIPTION_MAX = 200
ACTION_TAKEN_MAX = 300

REVIEW_OUTCOMES = frozenset(
    {SpamReviewStatus.REVIEWED, SpamReviewStatus.ACTION_TAKEN, SpamReviewStatus.DISMISSED}
)


class ModerationService:
    """Service handling spam reports, the auto-hide threshold and visibility."""

    def __init__(self, db: Session, threshold: int | None = None) -> None:
        self.db = db
        self.issues = IssueRepository(db)
        self.threshold = threshold or settings.spam_threshold

    def report_spam(
        self,
        issue_id: int,
        reporter_id: str,
        reason: SpamReason | str,
        description: str | None = None,
    ) -> SpamReportOutcome:
        """File a spam report and apply the auto-hide threshold.

        The report, the vote, the visibility flip and the owner's counter are
        written in one transaction. Only the report that moves the count from
        below the threshold to at-or-above it hides the issue and bumps the
        owner's counter.

        Raises:
            IssueValidationError: If the reason or description is malformed.
            NotFoundError: If the issue does not exist.
            DuplicateSpamReportError: If ``reporter_id`` already reported the issue.
        """
        errors: list[dict[str, str]] = []
        try:
            spam_reason = SpamReason(reason)
        except ValueError:
            allowed = ", ".join(member.value for member in SpamReason)
            errors.append({"field": "reason", "message": f"reason must be one of: {allowed}"})
        if description is not None and len(description) > SPAM_DESCRIPTION_MAX:
            errors.append(
                {
                    "field": "description",
                    "message": f"description cannot exceed {SPAM_DESCRIPTION_MAX} characters",
                }
            )
        if errors:
            raise IssueValidationError(errors)

        issue = self.issues.require(issue_id)
        owner_id = issue.owner_id

        already_reported = self.db.execute(
            select(SpamReport.id).where(
                SpamReport.issue_id == issue_id,
                SpamReport.reporter_id == reporter_id,
            )
        ).first()
        if already_reported is not None:
            raise DuplicateSpamReportError()

        try:
            self.db.add(
                SpamReport(
                    issue_id=issue_id,
                    reporter_id=reporter_id,
                    reason=spam_reason,
                    description=description or None,
                    status=SpamReviewStatus.PENDING,
                )
            )
            self.db.flush()
            count = self.issues.toggle_spam_vote(issue_id, reporter_id)
            hidden_now = self.issues.hide_on_threshold(issue_id, self.threshold)
            if hidden_now and owner_id:
                self.issues.bump_reporter(owner_id, spam_reports=1)
            self.db.commit()
        except IntegrityError as err:
            self.db.rollback()
            raise DuplicateSpamReportError() from err
        except DuplicateSpamReportError:
            self.db.rollback()
            raise

        if hidden_now:
            logger.info(
                "Issue %s hidden after reaching %d spam reports (threshold %d)",
                issue_id,
                count,
                self.threshold,
            )
        return SpamReportOutcome(accepted=True, spam_vote_count=count, hidden_now=hidden_now)

    def set_visibility(self, issue_id: int, visible: bool) -> Issue:
        """Administratively hide or show an issue.

        Showing an auto-hidden issue leaves the threshold latch set, so further
        spam reports do not hide it again.
        """
        if not self.issues.set_visibility(issue_id, visible):
            raise NotFoundError("Issue not found")
        self.db.commit()
        logger.info("Issue %s visibility set to %s", issue_id, visible)
        return self.issues.require(issue_id)

    def list_spam_reports(
        self,
        status: SpamReviewStatus | str | None = None,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[SpamReport], PaginationMeta]:
        """Return spam reports newest first, optionally filtered by review status."""
        page, limit = clamp_page(page, limit, default_limit=settings.admin_page_limit)
        clauses = []
        if status:
            try:
                clauses.append(SpamReport.status == SpamReviewStatus(status))
            except ValueError as err:
                raise IssueValidationError.single(
                    "status", f"Unknown review status {status!r}"
                ) from err

        total = self.db.execute(
            select(func.count()).select_from(SpamReport).where(*clauses)
        ).scalar_one()
        reports = list(
            self.db.execute(
                select(SpamReport)
                .where(*clauses)
                .order_by(SpamReport.created_at.desc(), SpamReport.id.desc())
                .offset((page - 1) * limit)
                .limit(limit)
            ).scalars()
        )
        return reports, PaginationMeta.build(page=page, limit=limit, total=total)

    def list_reports_by(
        self,
        reporter_id: str,
        page: int | None = None,
        limit: int | None = None,
    ) -> tuple[list[tuple[SpamReport, str]], PaginationMeta]:
        """Return the reports ``reporter_id`` filed, newest first, with each issue's title."""
        page, limit = clamp_page(page, limit, default_limit=settings.default_page_limit)
        total = self.db.execute(
            select(func.count())
            .select_from(SpamReport)
            .where(SpamReport.reporter_id == reporter_id)
        ).scalar_one()
        rows = self.db.execute(
            select(SpamReport, Issue.title)
            .join(Issue, Issue.id == SpamReport.issue_id)
            .where(SpamReport.reporter_id == reporter_id)
            .order_by(SpamReport.created_at.desc(), SpamReport.id.desc())
            .offset((page - 1) * limit)
            .limit(limit)
        ).all()
        reports = [(report, title) for report, title in rows]
        return reports, PaginationMeta.build(page=page, limit=limit, total=total)

    def review_spam_report(
        self,
        report_id: int,
        status: SpamReviewStatus | str,
        reviewer_id: str,
        action_taken: str | None = None,
    ) -> SpamReport:
        """Record an administrator's review of a spam report.

        Only the report's review state changes; issue visibility is untouched.
        """
        errors: list[dict[str, str]] = []
        try:
            outcome = SpamReviewStatus(status)
        except ValueError:
            outcome = None
        if outcome not in REVIEW_OUTCOMES:
            allowed = ", ".join(sorted(member.value for member in REVIEW_OUTCOMES))
            errors.append({"field": "status", "message": f"status must be one of: {allowed}"})
        if action_taken is not None and len(action_taken) > ACTION_TAKEN_MAX:
            errors.append(
                {
                    "field": "action_taken",
                    "message": f"action_taken cannot exceed {ACTION_TAKEN_MAX} characters",
                }
            )
        if errors:
            raise IssueValidationError(errors)

        report = self.db.get(SpamReport, report_id)
        if report is None:
            raise NotFoundError("Spam report not found")

        report.status = outcome
        report.reviewed_by = reviewer_id
        report.reviewed_at = utcnow()
        if action_taken:
            report.action_taken = action_taken
        self.db.commit()
        self.db.refresh(report)
        logger.info("Spam report %s marked %s by %s", report_id, outcome.value, reviewer_id)
        return report
