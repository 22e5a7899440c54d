"""Value types shared by the store, the engines and the API layer."""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from civictrack.models import Issue


class IssueCategory(str, Enum):
    """Closed set of issue categories."""

    ROAD = "Road"
    WATER = "Water"
    CLEANLINESS = "Cleanliness"
    LIGHTING = "Lighting"
    SAFETY = "Safety"


class IssueStatus(str, Enum):
    """Lifecycle states; Resolved is terminal."""

    REPORTED = "Reported"
    IN_PROGRESS = "In Progress"
    RESOLVED = "Resolved"


class IssuePriority(str, Enum):
    LOW = "Low"
    MEDIUM = "Medium"
    HIGH = "High"
    CRITICAL = "Critical"


class SpamReason(str, Enum):
    INAPPROPRIATE_CONTENT = "Inappropriate Content"
    FAKE_REPORT = "Fake Report"
    DUPLICATE = "Duplicate"
    SPAM = "Spam"
    OTHER = "Other"


class SpamReviewStatus(str, Enum):
    PENDING = "Pending"
    REVIEWED = "Reviewed"
    ACTION_TAKEN = "Action Taken"
    DISMISSED = "Dismissed"


class UpvoteToggle(str, Enum):
    """Outcome of an upvote toggle."""

    ADDED = "added"
    REMOVED = "removed"


@dataclass
class IssueDraft:
    """Caller-supplied content for a new issue, before any validation."""

    title: str
    description: str
    category: str
    latitude: float
    longitude: float
    address: str | None = None
    is_anonymous: bool = False
    owner_id: str | None = None
    images: list[str] = field(default_factory=list)


@dataclass(frozen=True)
class ImageUpload:
    """Raw image bytes received with an issue submission."""

    filename: str
    content_type: str
    data: bytes


@dataclass
class IssueFilter:
    """Attribute and proximity filters for discovery.

    ``visible`` defaults to public semantics (visible only); ``None`` means
    "any visibility" and is reserved for administrative listings.
    """

    category: str | None = None
    status: str | None = None
    text: str | None = None
    owner_id: str | None = None
    visible: bool | None = True
    latitude: float | None = None
    longitude: float | None = None
    radius_m: float | None = None

    @property
    def is_geo(self) -> bool:
        return self.latitude is not None and self.longitude is not None


@dataclass(frozen=True)
class PaginationMeta:
    """Pagination metadata derived from a total count and a page window."""

    current_page: int
    total_pages: int
    total_count: int
    limit: int
    has_next: bool
    has_prev: bool

    @classmethod
    def build(cls, *, page: int, limit: int, total: int) -> PaginationMeta:
        total_pages = math.ceil(total / limit) if limit else 0
        return cls(
            current_page=page,
            total_pages=total_pages,
            total_count=total,
            limit=limit,
            has_next=page < total_pages,
            has_prev=page > 1,
        )


@dataclass(frozen=True)
class IssueHit:
    """An issue in a result page, annotated with its distance when geo-ranked."""

    issue: Issue
    distance_m: float | None = None


@dataclass(frozen=True)
class SearchResult:
    items: list[IssueHit]
    pagination: PaginationMeta


@dataclass(frozen=True)
class SpamReportOutcome:
    """Result of an accepted spam report."""

    accepted: bool
    spam_vote_count: int
    hidden_now: bool


@dataclass(frozen=True)
class ReporterSummary:
    principal_id: str
    total_issues: int
    resolved_issues: int
    pending_issues: int
    spam_reports: int
