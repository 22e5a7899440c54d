"""Discovery engine: filtered, paginated issue listings."""

from __future__ import annotations

import logging
import time

from sqlalchemy.orm import Session

from civictrack.core.errors import IssueValidationError
from civictrack.core.settings import settings
from civictrack.domain import IssueFilter, IssueHit, PaginationMeta, SearchResult
from civictrack.repositories.issue_repo import IssueRepository, issue_filter_clauses
from civictrack.services.geo import GeoIndex, check_deadline

logger = logging.getLogger(__name__)


def clamp_page(page: int | None, limit: int | None, *, default_limit: int) -> tuple[int, int]:
    """Return ``(page, limit)`` with page >= 1 and limit in ``[1, MAX_PAGE_LIMIT]``."""
    page = max(page or 1, 1)
    if limit is None:
        limit = default_limit
    limit = min(max(limit, 1), settings.max_page_limit)
    return page, limit


class DiscoveryService:
    """Compose attribute filters with the geo index and paginate the result."""

    def __init__(self, db: Session) -> None:
        self.db = db
        self.repo = IssueRepository(db)
        self.geo = GeoIndex(db)

    def search(
        self,
        filters: IssueFilter,
        page: int | None = None,
        limit: int | None = None,
        *,
        default_limit: int | None = None,
        deadline: float | None = None,
    ) -> SearchResult:
        """Return one page of issues matching ``filters`` with its pagination metadata.

        With both coordinates present the page is ranked nearest first;
        otherwise newest first. ``deadline`` is a ``time.monotonic()`` value and
        defaults to ``SEARCH_TIMEOUT_SECONDS`` from now.
        """
        page, limit = clamp_page(
            page, limit, default_limit=default_limit or settings.default_page_limit
        )
        if deadline is None:
            deadline = time.monotonic() + settings.search_timeout_seconds

        if (filters.latitude is None) != (filters.longitude is None):
            missing = "longitude" if filters.longitude is None else "latitude"
            raise IssueValidationError.single(
                missing, "latitude and longitude must be supplied together"
            )

        if filters.is_geo:
            hits, total = self.geo.find_near(
                filters.latitude,  # type: ignore[arg-type]
                filters.longitude,  # type: ignore[arg-type]
                filters.radius_m,
                filters,
                page,
                limit,
                deadline=deadline,
            )
        else:
            clauses = issue_filter_clauses(filters)
            total = self.repo.count(clauses)
            check_deadline(deadline)
            issues = self.repo.list_newest(clauses, offset=(page - 1) * limit, limit=limit)
            check_deadline(deadline)
            hits = [IssueHit(issue=issue) for issue in issues]

        logger.debug("Search page=%d limit=%d returned %d of %d", page, limit, len(hits), total)
        return SearchResult(
            items=hits,
            pagination=PaginationMeta.build(page=page, limit=limit, total=total),
        )
