# tests/test_discovery.py
"""Tests for the discovery engine and pagination metadata."""

import time

import pytest

from civictrack.core.errors import IssueValidationError, SearchTimeoutError
from civictrack.domain import IssueFilter, PaginationMeta
from civictrack.services.discovery import DiscoveryService, clamp_page
from civictrack.services.lifecycle import LifecycleService
from civictrack.services.moderation import ModerationService

from .conftest import AHMEDABAD


def test_pagination_meta_math() -> None:
    meta = PaginationMeta.build(page=2, limit=10, total=25)
    assert meta.total_pages == 3
    assert meta.has_next is True
    assert meta.has_prev is True

    empty = PaginationMeta.build(page=1, limit=10, total=0)
    assert empty.total_pages == 0
    assert empty.has_next is False
    assert empty.has_prev is False


def test_clamp_page() -> None:
    assert clamp_page(None, None, default_limit=10) == (1, 10)
    assert clamp_page(0, 0, default_limit=10) == (1, 1)
    assert clamp_page(-3, 1000, default_limit=10) == (1, 100)


def test_search_newest_first_with_meta(db_session, make_issue) -> None:
    created = [make_issue(title=f"Pothole number {i}") for i in range(3)]

    result = DiscoveryService(db_session).search(IssueFilter(), page=1, limit=2)
    assert [hit.issue.id for hit in result.items] == [created[2].id, created[1].id]
    assert result.pagination.total_count == 3
    assert result.pagination.total_pages == 2
    assert result.pagination.has_next is True
    assert result.pagination.has_prev is False

    result = DiscoveryService(db_session).search(IssueFilter(), page=2, limit=2)
    assert [hit.issue.id for hit in result.items] == [created[0].id]
    assert result.pagination.has_next is False
    assert all(hit.distance_m is None for hit in result.items)


def test_search_filters_compose(db_session, make_issue) -> None:
    road = make_issue(category="Road", title="Cracked road surface")
    make_issue(category="Water", title="Leaking water pipe", address="Canal bank, Paldi")
    lamp = make_issue(
        category="Lighting",
        title="Dark street corner",
        owner_id="citizen-2",
        address="Near the ROAD junction",
    )
    LifecycleService(db_session).transition(road.id, "In Progress", "admin-1")
    service = DiscoveryService(db_session)

    assert [h.issue.id for h in service.search(IssueFilter(category="Road")).items] == [road.id]
    assert [h.issue.id for h in service.search(IssueFilter(status="In Progress")).items] == [
        road.id
    ]
    assert [h.issue.id for h in service.search(IssueFilter(owner_id="citizen-2")).items] == [
        lamp.id
    ]
    matched = {h.issue.id for h in service.search(IssueFilter(text="road")).items}
    assert matched == {road.id, lamp.id}


def test_search_text_is_literal(db_session, make_issue) -> None:
    make_issue(title="Pothole 100% blocking lane")
    make_issue(title="Pothole blocking lane too")
    result = DiscoveryService(db_session).search(IssueFilter(text="100%"))
    assert result.pagination.total_count == 1


def test_search_text_folds_non_ascii_case(db_session, make_issue) -> None:
    umlaut = make_issue(title="Ärger über Straße", address="Ölweg 4, Köln")
    make_issue(title="Broken bench in park", address="Law Garden")
    service = DiscoveryService(db_session)

    for text in ("ärger", "ÄRGER", "ölweg"):
        result = service.search(IssueFilter(text=text))
        assert [hit.issue.id for hit in result.items] == [umlaut.id], text


def test_search_rejects_unknown_enums(db_session) -> None:
    with pytest.raises(IssueValidationError) as excinfo:
        DiscoveryService(db_session).search(IssueFilter(category="Parks", status="Closed"))
    assert {error["field"] for error in excinfo.value.errors} == {"category", "status"}


def test_hidden_issues_only_for_any_visibility(db_session, make_issue) -> None:
    shown = make_issue()
    hidden = make_issue()
    ModerationService(db_session).set_visibility(hidden.id, False)
    service = DiscoveryService(db_session)

    public = service.search(IssueFilter())
    assert [hit.issue.id for hit in public.items] == [shown.id]
    assert public.pagination.total_count == 1

    everything = service.search(IssueFilter(visible=None))
    assert {hit.issue.id for hit in everything.items} == {shown.id, hidden.id}

    only_hidden = service.search(IssueFilter(visible=False))
    assert [hit.issue.id for hit in only_hidden.items] == [hidden.id]


def test_search_geo_path(db_session, make_issue) -> None:
    lat, lng = AHMEDABAD
    far = make_issue(latitude=lat + 0.01, longitude=lng)
    near = make_issue(latitude=lat + 0.001, longitude=lng)
    make_issue(latitude=lat + 1.0, longitude=lng)

    result = DiscoveryService(db_session).search(
        IssueFilter(latitude=lat, longitude=lng, radius_m=3000)
    )
    assert [hit.issue.id for hit in result.items] == [near.id, far.id]
    assert result.pagination.total_count == 2
    assert result.items[0].distance_m < result.items[1].distance_m


def test_search_requires_both_coordinates(db_session) -> None:
    with pytest.raises(IssueValidationError) as excinfo:
        DiscoveryService(db_session).search(IssueFilter(latitude=AHMEDABAD[0]))
    assert excinfo.value.errors[0]["field"] == "longitude"


def test_search_default_limits(db_session, make_issue) -> None:
    make_issue()
    service = DiscoveryService(db_session)
    assert service.search(IssueFilter()).pagination.limit == 10
    assert service.search(IssueFilter(), default_limit=20).pagination.limit == 20
    assert service.search(IssueFilter(), limit=5000).pagination.limit == 100


def test_search_deadline(db_session, make_issue) -> None:
    make_issue()
    with pytest.raises(SearchTimeoutError):
        DiscoveryService(db_session).search(IssueFilter(), deadline=time.monotonic() - 1)
