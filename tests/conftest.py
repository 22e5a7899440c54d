# tests/conftest.py
from __future__ import annotations

import os
from collections.abc import Callable, Generator, Iterator
from typing import Any

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient
from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import StaticPool

os.environ.setdefault("SECRET_KEY", "test-secret-key")
os.environ.setdefault("DATABASE_URL", "sqlite://")

from civictrack.api.v1.dependencies import get_geocoder_dep, get_image_store_dep
from civictrack.core.errors import UploadFailedError
from civictrack.core.security import ADMIN_ROLE, USER_ROLE, create_access_token
from civictrack.db.session import Base, register_sqlite_functions
from civictrack.db.session import get_db as app_get_session
from civictrack.domain import IssueDraft
from civictrack.main import app as fastapi_app
from civictrack.models import Issue
from civictrack.services.geocoding import ReverseGeocoder
from civictrack.services.issues import IssueService
from civictrack.services.media import ImageStore

TEST_DB_URL = "sqlite://"

# Ahmedabad, the reference point used across the geo tests.
AHMEDABAD = (23.0225, 72.5714)


class FakeImageStore(ImageStore):
    """In-memory image store that can be told to fail on the Nth upload."""

    def __init__(self) -> None:
        self.stored: list[str] = []
        self.deleted: list[str] = []
        self.fail_on: int | None = None
        self._counter = 0

    def store(self, data: bytes, content_type: str, filename: str) -> str:
        self._counter += 1
        if self.fail_on is not None and self._counter >= self.fail_on:
            raise UploadFailedError(f"Failed to store image {filename}")
        url = f"https://images.test/{self._counter}-{filename}"
        self.stored.append(url)
        return url

    def delete(self, url: str) -> None:
        self.deleted.append(url)


class StaticGeocoder(ReverseGeocoder):
    def __init__(self, address: str | None = None, error: Exception | None = None) -> None:
        self.address = address
        self.error = error

    def resolve(self, latitude: float, longitude: float) -> str | None:
        if self.error is not None:
            raise self.error
        return self.address


@pytest.fixture(scope="session")
def engine() -> Generator[Engine, None, None]:
    engine = create_engine(
        TEST_DB_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    register_sqlite_functions(engine)
    Base.metadata.create_all(bind=engine)
    try:
        yield engine
    finally:
        Base.metadata.drop_all(bind=engine)
        engine.dispose()


@pytest.fixture()
def db_session(engine: Engine) -> Iterator[Session]:
    SessionLocal = sessionmaker(bind=engine, autocommit=False, autoflush=False)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.rollback()
        session.close()

        # Services commit, so every test starts from empty tables.
        with engine.begin() as cleanup_conn:
            for table in reversed(Base.metadata.sorted_tables):
                cleanup_conn.execute(table.delete())


@pytest.fixture()
def image_store() -> FakeImageStore:
    return FakeImageStore()


@pytest.fixture()
def geocoder() -> StaticGeocoder:
    return StaticGeocoder()


@pytest.fixture(scope="session")
def app() -> FastAPI:
    return fastapi_app


@pytest.fixture(autouse=True)
def override_dependencies(
    app: FastAPI,
    db_session: Session,
    image_store: FakeImageStore,
    geocoder: StaticGeocoder,
) -> Iterator[None]:
    def _get_session_override() -> Generator[Session, None, None]:
        yield db_session

    app.dependency_overrides[app_get_session] = _get_session_override
    app.dependency_overrides[get_image_store_dep] = lambda: image_store
    app.dependency_overrides[get_geocoder_dep] = lambda: geocoder
    try:
        yield
    finally:
        app.dependency_overrides.clear()


@pytest.fixture()
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app, base_url="http://test") as test_client:
        yield test_client


def auth_headers(principal_id: str, role: str = USER_ROLE) -> dict[str, str]:
    """Return an Authorization header for ``principal_id``."""
    return {"Authorization": f"Bearer {create_access_token(principal_id, role=role)}"}


@pytest.fixture()
def user_headers() -> dict[str, str]:
    return auth_headers("citizen-1")


@pytest.fixture()
def admin_headers() -> dict[str, str]:
    return auth_headers("admin-1", role=ADMIN_ROLE)


@pytest.fixture()
def issue_service(db_session: Session, image_store: FakeImageStore) -> IssueService:
    return IssueService(db_session, image_store, StaticGeocoder())


def build_draft(**overrides: Any) -> IssueDraft:
    """Return a valid draft owned by ``citizen-1`` unless overridden."""
    values: dict[str, Any] = {
        "title": "Pothole on main road",
        "description": "A deep pothole near the bus stop is damaging vehicles.",
        "category": "Road",
        "latitude": AHMEDABAD[0],
        "longitude": AHMEDABAD[1],
        "address": "Relief Road, Ahmedabad",
        "is_anonymous": False,
        "owner_id": "citizen-1",
    }
    values.update(overrides)
    return IssueDraft(**values)


@pytest.fixture()
def make_issue(issue_service: IssueService) -> Callable[..., Issue]:
    """Create issues through the service with sensible defaults."""

    def _make(**overrides: Any) -> Issue:
        return issue_service.create_issue(build_draft(**overrides))

    return _make


@pytest.fixture()
def test_issue(make_issue: Callable[..., Issue]) -> Issue:
    return make_issue()
