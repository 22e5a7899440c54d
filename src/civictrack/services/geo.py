"""Geo index adapter: proximity search over issue coordinates.

The store keeps a composite (latitude, longitude) index. A query first narrows
candidates to the bounding box of the search circle together with the
attribute predicate, then ranks the survivors by exact great-circle distance.
Ordering is nearest first (ties broken by id) and is never re-sorted by
attribute fields.
"""

from __future__ import annotations

import logging
import math
import time
from collections.abc import Sequence

from sqlalchemy import and_, or_
from sqlalchemy.orm import Session
from sqlalchemy.sql.elements import ColumnElement

from civictrack.core.errors import InvalidCoordinatesError, InvalidRadiusError, SearchTimeoutError
from civictrack.core.settings import settings
from civictrack.domain import IssueFilter, IssueHit
from civictrack.models import Issue
from civictrack.repositories.issue_repo import IssueRepository, issue_filter_clauses
from civictrack.utils.geo import (
    BoundingBox,
    bounding_box,
    haversine_m,
    is_valid_latitude,
    is_valid_longitude,
)

logger = logging.getLogger(__name__)

# Rows scanned between deadline checks.
DEADLINE_CHECK_INTERVAL = 256


def validate_coordinates(lat: object, lng: object) -> tuple[float, float]:
    """Return ``(lat, lng)`` as floats or raise ``InvalidCoordinatesError``."""
    if not is_valid_latitude(lat) or not is_valid_longitude(lng):
        raise InvalidCoordinatesError(
            "Latitude must be within [-90, 90] and longitude within [-180, 180]"
        )
    return float(lat), float(lng)  # type: ignore[arg-type]


def resolve_radius(
    radius_m: float | None,
    *,
    default_m: float,
    max_m: float,
) -> float:
    """Apply the default and the upper clamp to a requested radius.

    Raises:
        InvalidRadiusError: If the radius is not a positive finite number.
    """
    if radius_m is None:
        return min(default_m, max_m)
    if isinstance(radius_m, bool) or not isinstance(radius_m, int | float):
        raise InvalidRadiusError("Radius must be a number of meters")
    if not math.isfinite(radius_m) or radius_m <= 0:
        raise InvalidRadiusError("Radius must be a positive number of meters")
    return min(float(radius_m), max_m)


def check_deadline(deadline: float | None) -> None:
    """Raise ``SearchTimeoutError`` if the monotonic ``deadline`` has passed."""
    if deadline is not None and time.monotonic() > deadline:
        raise SearchTimeoutError()


def _box_clauses(box: BoundingBox) -> list[ColumnElement[bool]]:
    clauses: list[ColumnElement[bool]] = [
        Issue.latitude >= box.min_lat,
        Issue.latitude <= box.max_lat,
    ]
    if box.min_lng is None or box.max_lng is None:
        return clauses
    if box.wraps_antimeridian:
        clauses.append(or_(Issue.longitude >= box.min_lng, Issue.longitude <= box.max_lng))
    else:
        clauses.append(and_(Issue.longitude >= box.min_lng, Issue.longitude <= box.max_lng))
    return clauses


class GeoIndex:
    """Distance-annotated, filtered, paginated proximity queries."""

    def __init__(
        self,
        session: Session,
        *,
        default_radius_m: float | None = None,
        max_radius_m: float | None = None,
    ) -> None:
        self.repo = IssueRepository(session)
        self.default_radius_m = default_radius_m or settings.default_search_radius_m
        self.max_radius_m = max_radius_m or settings.max_search_radius_m

    def find_near(
        self,
        lat: float,
        lng: float,
        radius_m: float | None,
        filters: IssueFilter | None,
        page: int,
        limit: int,
        *,
        deadline: float | None = None,
    ) -> tuple[list[IssueHit], int]:
        """Return one page of issues within the radius, nearest first, and the total.

        The total is the exact number of issues satisfying the same radius and
        filter predicate, so pagination metadata matches the ranked set.
        """
        ranked = self._rank(lat, lng, radius_m, filters, deadline)
        total = len(ranked)

        offset = (page - 1) * limit
        window = ranked[offset:offset + limit]
        issues = self.repo.by_ids([issue_id for issue_id, _ in window])
        check_deadline(deadline)

        hits = [
            IssueHit(issue=issues[issue_id], distance_m=distance)
            for issue_id, distance in window
            if issue_id in issues
        ]
        return hits, total

    def count_near(
        self,
        lat: float,
        lng: float,
        radius_m: float | None,
        filters: IssueFilter | None,
        *,
        deadline: float | None = None,
    ) -> int:
        """Count issues within the radius that satisfy ``filters``."""
        return len(self._rank(lat, lng, radius_m, filters, deadline))

    def _rank(
        self,
        lat: float,
        lng: float,
        radius_m: float | None,
        filters: IssueFilter | None,
        deadline: float | None,
    ) -> list[tuple[int, float]]:
        lat, lng = validate_coordinates(lat, lng)
        radius = resolve_radius(
            radius_m,
            default_m=self.default_radius_m,
            max_m=self.max_radius_m,
        )
        clauses: Sequence[ColumnElement[bool]] = [
            *_box_clauses(bounding_box(lat, lng, radius)),
            *issue_filter_clauses(filters or IssueFilter()),
        ]

        check_deadline(deadline)
        ranked: list[tuple[int, float]] = []
        scanned = 0
        for issue_id, issue_lat, issue_lng in self.repo.iter_locations(clauses):
            scanned += 1
            if scanned % DEADLINE_CHECK_INTERVAL == 0:
                check_deadline(deadline)
            distance = haversine_m(lat, lng, issue_lat, issue_lng)
            if distance <= radius:
                ranked.append((issue_id, distance))
        check_deadline(deadline)

        ranked.sort(key=lambda item: (item[1], item[0]))
        logger.debug(
            "Geo query at (%f, %f) r=%.0fm scanned %d candidates, %d within radius",
            lat,
            lng,
            radius,
            scanned,
            len(ranked),
        )
        return ranked
