"""Issue service: creation, reads, engagement and deletion."""

from __future__ import annotations

import logging
from dataclasses import replace

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session

from civictrack.core.errors import IssueValidationError
from civictrack.core.settings import settings
from civictrack.domain import ImageUpload, IssueDraft, IssueStatus, UpvoteToggle
from civictrack.models import ActivityLogEntry, Issue
from civictrack.repositories import ActivityLogRepository, IssueRepository
from civictrack.repositories.issue_repo import validate_draft
from civictrack.services.geocoding import ReverseGeocoder, resolve_address
from civictrack.services.media import ImageStore, validate_images

logger = logging.getLogger(__name__)

CREATION_NOTE = "Issue reported"


class IssueService:
    """Coordinates the issue store with the image store and the geocoder."""

    def __init__(
        self,
        db: Session,
        image_store: ImageStore,
        geocoder: ReverseGeocoder | None = None,
    ) -> None:
        self.db = db
        self.image_store = image_store
        self.geocoder = geocoder
        self.issues = IssueRepository(db)
        self.activity = ActivityLogRepository(db)

    def create_issue(self, draft: IssueDraft, uploads: list[ImageUpload] | None = None) -> Issue:
        """Validate, store images, persist the issue and record its creation.

        Nothing is stored until every field and image has been validated. Any
        failure after the first image was stored deletes the stored images
        before the error propagates.

        Raises:
            IssueValidationError: Listing every violated field and image.
            UploadFailedError: If the image store rejects an upload.
        """
        uploads = uploads or []
        max_images = settings.max_images_per_issue
        errors = validate_draft(draft, max_images=max_images)
        errors.extend(validate_images(uploads, max_count=max_images))
        if errors:
            raise IssueValidationError(errors)

        stored: list[str] = []
        try:
            for upload in uploads:
                stored.append(
                    self.image_store.store(upload.data, upload.content_type, upload.filename)
                )
            address = draft.address
            if not address or not address.strip():
                address = resolve_address(self.geocoder, draft.latitude, draft.longitude)
            issue = self.issues.create(
                replace(draft, address=address, images=stored),
                max_images=max_images,
            )
            if issue.owner_id:
                self.issues.bump_reporter(issue.owner_id, issues=1)
            self.db.commit()
        except Exception:
            self.db.rollback()
            for url in stored:
                self.image_store.delete(url)
            raise

        issue_id = issue.id
        logger.info("Issue %s reported in %s", issue_id, issue.category.value)
        try:
            self.activity.append(
                issue_id=issue_id,
                status=IssueStatus.REPORTED,
                previous_status=None,
                actor_id=issue.owner_id,
                note=CREATION_NOTE,
            )
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Failed to record creation of issue %s", issue_id, exc_info=True)
        return self.issues.require(issue_id)

    def get_issue(self, issue_id: int) -> Issue:
        """Return an issue, bumping its view counter on a best-effort basis."""
        self.issues.require(issue_id)
        try:
            self.issues.increment_view(issue_id)
            self.db.commit()
        except SQLAlchemyError:
            self.db.rollback()
            logger.warning("Failed to record a view of issue %s", issue_id, exc_info=True)
        return self.issues.require(issue_id)

    def toggle_upvote(self, issue_id: int, principal_id: str) -> tuple[UpvoteToggle, int]:
        """Flip the principal's upvote and return the outcome and the new count."""
        try:
            outcome = self.issues.toggle_upvote(issue_id, principal_id)
            self.db.commit()
        except IntegrityError:
            # A concurrent toggle by the same principal won; replay against its result.
            self.db.rollback()
            outcome = self.issues.toggle_upvote(issue_id, principal_id)
            self.db.commit()
        count = self.db.execute(
            select(Issue.upvote_count).where(Issue.id == issue_id)
        ).scalar_one()
        return outcome, count

    def list_activity(self, issue_id: int) -> list[ActivityLogEntry]:
        """Return the issue's audit trail oldest first."""
        self.issues.require(issue_id)
        return self.activity.list_for_issue(issue_id)

    def delete_issue(self, issue_id: int) -> None:
        """Delete an issue, its dependents and its stored images."""
        issue = self.issues.require(issue_id)
        images = list(issue.images or [])
        owner_id = issue.owner_id

        self.issues.delete(issue_id)
        if owner_id:
            self.issues.bump_reporter(owner_id, issues=-1)
        self.db.commit()

        for url in images:
            self.image_store.delete(url)
        logger.info("Issue %s deleted", issue_id)
