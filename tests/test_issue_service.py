# tests/test_issue_service.py
"""Tests for issue creation, reads, upvotes, deletion and reporter statistics."""

import logging

import pytest
from sqlalchemy.exc import OperationalError

from civictrack.core.errors import IssueValidationError, NotFoundError, UploadFailedError
from civictrack.domain import ImageUpload, IssueStatus, UpvoteToggle
from civictrack.models import ReporterStats
from civictrack.services.issues import IssueService
from civictrack.services.lifecycle import LifecycleService
from civictrack.services.reporters import get_stats

from .conftest import StaticGeocoder, build_draft

PNG = ImageUpload(filename="pothole.png", content_type="image/png", data=b"\x89PNG" + b"0" * 64)


def test_create_stores_images_in_order(db_session, image_store) -> None:
    service = IssueService(db_session, image_store)
    jpeg = ImageUpload(filename="close-up.jpg", content_type="image/jpeg", data=b"jpeg-bytes")

    issue = service.create_issue(build_draft(), [PNG, jpeg])

    assert issue.images == image_store.stored
    assert len(issue.images) == 2
    assert issue.images[0].endswith("pothole.png")


def test_create_validates_images_before_storing(db_session, image_store) -> None:
    service = IssueService(db_session, image_store)
    too_big = ImageUpload(
        filename="huge.png", content_type="image/png", data=b"0" * (2 * 1024 * 1024 + 1)
    )
    gif = ImageUpload(filename="anim.gif", content_type="image/gif", data=b"GIF89a")

    with pytest.raises(IssueValidationError) as excinfo:
        service.create_issue(build_draft(title="Hole"), [too_big, gif])

    messages = [error["message"] for error in excinfo.value.errors]
    assert any("huge.png" in message for message in messages)
    assert any("anim.gif" in message for message in messages)
    assert {error["field"] for error in excinfo.value.errors} == {"title", "images"}
    assert image_store.stored == []


def test_create_rejects_six_images(db_session, image_store) -> None:
    with pytest.raises(IssueValidationError):
        IssueService(db_session, image_store).create_issue(build_draft(), [PNG] * 6)
    assert image_store.stored == []


def test_upload_failure_unwinds_stored_images(db_session, image_store) -> None:
    image_store.fail_on = 3
    service = IssueService(db_session, image_store)

    with pytest.raises(UploadFailedError):
        service.create_issue(build_draft(), [PNG, PNG, PNG])

    assert len(image_store.stored) == 2
    assert image_store.deleted == image_store.stored
    assert get_stats(db_session, "citizen-1").total_issues == 0


def test_missing_address_uses_geocoder(db_session, image_store) -> None:
    service = IssueService(db_session, image_store, StaticGeocoder("Law Garden, Ahmedabad"))
    issue = service.create_issue(build_draft(address=None))
    assert issue.address == "Law Garden, Ahmedabad"


@pytest.mark.parametrize(
    "geocoder",
    [StaticGeocoder(None), StaticGeocoder(error=TimeoutError("geocoder down")), None],
)
def test_geocoder_failure_falls_back_to_placeholder(db_session, image_store, geocoder) -> None:
    service = IssueService(db_session, image_store, geocoder)
    issue = service.create_issue(build_draft(address=None, latitude=23.0225, longitude=72.5714))
    assert issue.address == "Location: 23.022500, 72.571400"


def test_create_records_activity_and_stats(db_session, issue_service) -> None:
    issue = issue_service.create_issue(build_draft())

    entries = issue_service.list_activity(issue.id)
    assert len(entries) == 1
    assert entries[0].status is IssueStatus.REPORTED
    assert entries[0].previous_status is None
    assert entries[0].note == "Issue reported"
    assert entries[0].actor_id == "citizen-1"
    assert db_session.get(ReporterStats, "citizen-1").issues_reported == 1


def test_anonymous_creation_has_no_actor(db_session, issue_service) -> None:
    issue = issue_service.create_issue(build_draft(is_anonymous=True, owner_id=None))
    assert issue.owner_id is None
    assert issue_service.list_activity(issue.id)[0].actor_id is None
    assert db_session.get(ReporterStats, "citizen-1") is None


def test_get_issue_counts_views(issue_service, test_issue) -> None:
    issue_service.get_issue(test_issue.id)
    issue = issue_service.get_issue(test_issue.id)
    assert issue.view_count == 2


def test_get_issue_survives_view_counter_failure(
    issue_service, test_issue, monkeypatch, caplog
) -> None:
    def _fail(issue_id: int) -> None:
        raise OperationalError("UPDATE issue", {}, Exception("locked"))

    monkeypatch.setattr(issue_service.issues, "increment_view", _fail)
    with caplog.at_level(logging.WARNING, logger="civictrack.services.issues"):
        issue = issue_service.get_issue(test_issue.id)

    assert issue.id == test_issue.id
    assert issue.view_count == 0
    assert "Failed to record a view" in caplog.text


def test_get_missing_issue(issue_service) -> None:
    with pytest.raises(NotFoundError):
        issue_service.get_issue(9999)
    with pytest.raises(NotFoundError):
        issue_service.list_activity(9999)


def test_toggle_upvote_returns_count(issue_service, test_issue) -> None:
    assert issue_service.toggle_upvote(test_issue.id, "voter-1") == (UpvoteToggle.ADDED, 1)
    assert issue_service.toggle_upvote(test_issue.id, "voter-2") == (UpvoteToggle.ADDED, 2)
    assert issue_service.toggle_upvote(test_issue.id, "voter-1") == (UpvoteToggle.REMOVED, 1)


def test_delete_issue_removes_images_and_stats(db_session, image_store) -> None:
    service = IssueService(db_session, image_store)
    issue = service.create_issue(build_draft(), [PNG])
    stored = list(issue.images)
    issue_id = issue.id

    service.delete_issue(issue_id)

    assert image_store.deleted == stored
    assert db_session.get(ReporterStats, "citizen-1").issues_reported == 0
    with pytest.raises(NotFoundError):
        service.get_issue(issue_id)
    with pytest.raises(NotFoundError):
        service.delete_issue(issue_id)


def test_reporter_stats(db_session, make_issue) -> None:
    first = make_issue()
    second = make_issue()
    make_issue()
    make_issue(owner_id="citizen-2")
    lifecycle = LifecycleService(db_session)
    lifecycle.transition(first.id, "Resolved", "admin-1")
    lifecycle.transition(second.id, "In Progress", "admin-1")

    stats = get_stats(db_session, "citizen-1")
    assert stats.total_issues == 3
    assert stats.resolved_issues == 1
    assert stats.pending_issues == 2
    assert stats.spam_reports == 0

    assert get_stats(db_session, "nobody").total_issues == 0
