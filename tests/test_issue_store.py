# tests/test_issue_store.py
"""Tests for the issue repository's validation and atomic mutations."""

import threading
from collections.abc import Callable, Iterator
from concurrent.futures import ThreadPoolExecutor
from typing import TypeVar

import pytest
from sqlalchemy import create_engine, event, func, select
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker

from civictrack.core.errors import (
    ConcurrentUpdateError,
    DuplicateSpamReportError,
    IssueValidationError,
    NotFoundError,
)
from civictrack.db.session import Base, register_sqlite_functions
from civictrack.domain import IssuePriority, IssueStatus, SpamReportOutcome, UpvoteToggle
from civictrack.models import (
    ActivityLogEntry,
    Issue,
    IssueSpamVote,
    IssueUpvote,
    ReporterStats,
    SpamReport,
)
from civictrack.repositories import IssueRepository
from civictrack.services.issues import IssueService
from civictrack.services.moderation import ModerationService

from .conftest import FakeImageStore, build_draft

T = TypeVar("T")


def _member_count(db_session, model, issue_id: int) -> int:
    return db_session.execute(
        select(func.count()).select_from(model).where(model.issue_id == issue_id)
    ).scalar_one()


def test_create_applies_defaults(db_session) -> None:
    repo = IssueRepository(db_session)
    issue = repo.create(build_draft())
    db_session.commit()

    assert issue.id is not None
    assert issue.status is IssueStatus.REPORTED
    assert issue.priority is IssuePriority.MEDIUM
    assert issue.visible is True
    assert issue.spam_vote_count == issue.upvote_count == issue.view_count == 0
    assert issue.actual_resolution_at is None
    assert issue.location == {"type": "Point", "coordinates": [72.5714, 23.0225]}


def test_create_reports_every_invalid_field(db_session) -> None:
    draft = build_draft(
        title="Hole",
        description="short",
        category="Parks",
        latitude=95.0,
        longitude=-200.0,
        owner_id=None,
    )
    with pytest.raises(IssueValidationError) as excinfo:
        IssueRepository(db_session).create(draft)

    fields = {error["field"] for error in excinfo.value.errors}
    assert fields == {"title", "description", "category", "latitude", "longitude", "owner_id"}
    assert db_session.execute(select(func.count()).select_from(Issue)).scalar_one() == 0


def test_create_rejects_more_than_five_images(db_session) -> None:
    draft = build_draft(images=[f"https://images.test/{i}" for i in range(6)])
    with pytest.raises(IssueValidationError) as excinfo:
        IssueRepository(db_session).create(draft)
    assert excinfo.value.errors[0]["field"] == "images"


def test_anonymous_issue_carries_no_owner(db_session) -> None:
    issue = IssueRepository(db_session).create(build_draft(is_anonymous=True, owner_id="someone"))
    db_session.commit()
    assert issue.is_anonymous is True
    assert issue.owner_id is None


def test_upvote_toggle_is_self_inverse(db_session, test_issue) -> None:
    repo = IssueRepository(db_session)

    assert repo.toggle_upvote(test_issue.id, "voter-1") is UpvoteToggle.ADDED
    db_session.commit()
    assert test_issue.upvote_count == 1
    assert test_issue.upvoted_by == ["voter-1"]

    assert repo.toggle_upvote(test_issue.id, "voter-1") is UpvoteToggle.REMOVED
    db_session.commit()
    assert test_issue.upvote_count == 0
    assert test_issue.upvoted_by == []


def test_upvote_count_matches_membership(db_session, test_issue) -> None:
    repo = IssueRepository(db_session)
    for principal in ("a", "b", "c", "a", "d", "b", "a"):
        repo.toggle_upvote(test_issue.id, principal)
    db_session.commit()

    # a toggled three times (in), b twice (out), c and d once (in).
    assert test_issue.upvote_count == 3
    assert test_issue.upvote_count == _member_count(db_session, IssueUpvote, test_issue.id)
    assert sorted(test_issue.upvoted_by) == ["a", "c", "d"]


def test_upvote_on_missing_issue_raises(db_session) -> None:
    with pytest.raises(NotFoundError):
        IssueRepository(db_session).toggle_upvote(9999, "voter-1")


def test_upvote_toggle_that_never_settles_raises_conflict(
    db_session, test_issue, monkeypatch
) -> None:
    repo = IssueRepository(db_session)
    # Another writer always flips the row back before this one can.
    monkeypatch.setattr(repo, "_remove_member", lambda *args: False)
    monkeypatch.setattr(repo, "_add_member", lambda *args: False)

    with pytest.raises(ConcurrentUpdateError) as excinfo:
        repo.toggle_upvote(test_issue.id, "voter-1")

    assert excinfo.value.status_code == 409
    db_session.rollback()
    assert _member_count(db_session, IssueUpvote, test_issue.id) == 0


def test_spam_vote_is_add_only(db_session, test_issue) -> None:
    repo = IssueRepository(db_session)
    assert repo.toggle_spam_vote(test_issue.id, "flagger-1") == 1
    with pytest.raises(DuplicateSpamReportError):
        repo.toggle_spam_vote(test_issue.id, "flagger-1")
    assert repo.toggle_spam_vote(test_issue.id, "flagger-2") == 2
    db_session.commit()

    assert test_issue.spam_vote_count == 2
    assert test_issue.spam_vote_count == _member_count(db_session, IssueSpamVote, test_issue.id)


def test_hide_on_threshold_fires_once(db_session, test_issue) -> None:
    repo = IssueRepository(db_session)
    for principal in ("a", "b"):
        repo.toggle_spam_vote(test_issue.id, principal)
    assert repo.hide_on_threshold(test_issue.id, 3) is False

    repo.toggle_spam_vote(test_issue.id, "c")
    assert repo.hide_on_threshold(test_issue.id, 3) is True
    assert repo.hide_on_threshold(test_issue.id, 3) is False
    db_session.commit()

    assert test_issue.visible is False
    assert test_issue.spam_threshold_crossed is True


def test_increment_view_is_monotonic(db_session, test_issue) -> None:
    repo = IssueRepository(db_session)
    repo.increment_view(test_issue.id)
    repo.increment_view(test_issue.id)
    db_session.commit()
    assert test_issue.view_count == 2


def test_delete_cascades_dependents(db_session, test_issue) -> None:
    issue_id = test_issue.id
    repo = IssueRepository(db_session)
    repo.toggle_upvote(issue_id, "voter-1")
    db_session.commit()
    ModerationService(db_session, threshold=3).report_spam(issue_id, "flagger-1", "Spam")

    repo.delete(issue_id)
    db_session.commit()

    assert repo.get(issue_id) is None
    for model in (ActivityLogEntry, SpamReport, IssueUpvote, IssueSpamVote):
        assert _member_count(db_session, model, issue_id) == 0


def test_delete_missing_issue_raises(db_session) -> None:
    with pytest.raises(NotFoundError):
        IssueRepository(db_session).delete(9999)


@pytest.fixture()
def file_engine(tmp_path) -> Iterator[Engine]:
    """File-backed SQLite engine shared by worker threads.

    Each transaction opens with ``BEGIN IMMEDIATE`` so writers queue on the
    database lock instead of failing with "database is locked".
    """
    engine = create_engine(
        f"sqlite:///{tmp_path / 'concurrency.db'}",
        connect_args={"check_same_thread": False, "timeout": 30},
    )
    register_sqlite_functions(engine)

    @event.listens_for(engine, "connect")
    def _disable_driver_transactions(dbapi_connection, connection_record) -> None:
        dbapi_connection.isolation_level = None

    @event.listens_for(engine, "begin")
    def _begin_immediate(conn) -> None:
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        engine.dispose()


def _run_in_threads(engine: Engine, jobs: list[Callable[[Session], T]]) -> list[T]:
    """Run every job on its own thread and session, starting them together."""
    factory = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    barrier = threading.Barrier(len(jobs))

    def _run(job: Callable[[Session], T]) -> T:
        with factory() as session:
            barrier.wait()
            return job(session)

    with ThreadPoolExecutor(max_workers=len(jobs)) as pool:
        return [future.result() for future in [pool.submit(_run, job) for job in jobs]]


def _create_issue(engine: Engine) -> int:
    with Session(engine) as session:
        return IssueService(session, FakeImageStore()).create_issue(build_draft()).id


def test_concurrent_upvote_toggles_keep_count_consistent(file_engine) -> None:
    issue_id = _create_issue(file_engine)
    principals = ["voter-1", "voter-2", "voter-3"]
    toggles_each = 5

    def _toggle_repeatedly(principal: str) -> Callable[[Session], list[UpvoteToggle]]:
        def _job(session: Session) -> list[UpvoteToggle]:
            service = IssueService(session, FakeImageStore())
            return [service.toggle_upvote(issue_id, principal)[0] for _ in range(toggles_each)]

        return _job

    # Two threads per principal so the same membership row is contended.
    jobs = [_toggle_repeatedly(principal) for principal in principals for _ in range(2)]
    outcomes = _run_in_threads(file_engine, jobs)

    with Session(file_engine) as session:
        issue = session.get(Issue, issue_id)
        assert issue.upvote_count == _member_count(session, IssueUpvote, issue_id)
        members = set(issue.upvoted_by)
        assert issue.upvote_count == 0

    for index, principal in enumerate(principals):
        mine = outcomes[2 * index] + outcomes[2 * index + 1]
        added = mine.count(UpvoteToggle.ADDED)
        removed = mine.count(UpvoteToggle.REMOVED)
        assert added + removed == 2 * toggles_each
        # An even number of toggles per principal always nets out to "not a member".
        assert added - removed == 0
        assert principal not in members


def test_concurrent_spam_reports_cross_threshold_once(file_engine) -> None:
    issue_id = _create_issue(file_engine)
    reporters = [f"flagger-{i}" for i in range(6)]

    def _report(reporter: str) -> Callable[[Session], SpamReportOutcome]:
        def _job(session: Session) -> SpamReportOutcome:
            return ModerationService(session, threshold=3).report_spam(issue_id, reporter, "Spam")

        return _job

    outcomes = _run_in_threads(file_engine, [_report(reporter) for reporter in reporters])

    assert sum(outcome.hidden_now for outcome in outcomes) == 1
    assert sorted(outcome.spam_vote_count for outcome in outcomes) == list(range(1, 7))
    with Session(file_engine) as session:
        issue = session.get(Issue, issue_id)
        assert issue.visible is False
        assert issue.spam_threshold_crossed is True
        assert issue.spam_vote_count == len(reporters)
        assert _member_count(session, IssueSpamVote, issue_id) == len(reporters)
        assert _member_count(session, SpamReport, issue_id) == len(reporters)
        assert session.get(ReporterStats, "citizen-1").spam_reports == 1


def test_concurrent_duplicate_spam_reports_accept_one(file_engine) -> None:
    issue_id = _create_issue(file_engine)

    def _job(session: Session) -> SpamReportOutcome | DuplicateSpamReportError:
        try:
            return ModerationService(session, threshold=3).report_spam(
                issue_id, "flagger-1", "Spam"
            )
        except DuplicateSpamReportError as err:
            return err

    results = _run_in_threads(file_engine, [_job] * 4)

    accepted = [result for result in results if isinstance(result, SpamReportOutcome)]
    assert len(accepted) == 1
    assert sum(isinstance(result, DuplicateSpamReportError) for result in results) == 3
    with Session(file_engine) as session:
        assert session.get(Issue, issue_id).spam_vote_count == 1
        assert _member_count(session, IssueSpamVote, issue_id) == 1
