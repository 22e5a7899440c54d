"""
Pydantic schemas for API request/response models.

These schemas define the structure of API data for serialization and validation.
"""

from .issue import (
    ActivityResponse,
    IssueListResponse,
    IssueResponse,
    PaginationResponse,
    StatusUpdate,
    UpvoteResponse,
)
from .moderation import (
    FiledSpamReportListResponse,
    FiledSpamReportResponse,
    SpamReportAccepted,
    SpamReportCreate,
    SpamReportListResponse,
    SpamReportResponse,
    SpamReviewRequest,
)
from .user import ReporterStatsResponse

__all__ = [
    "ActivityResponse", "IssueListResponse", "IssueResponse",
    "PaginationResponse", "StatusUpdate", "UpvoteResponse",
    "FiledSpamReportListResponse", "FiledSpamReportResponse",
    "SpamReportAccepted", "SpamReportCreate", "SpamReportListResponse",
    "SpamReportResponse", "SpamReviewRequest",
    "ReporterStatsResponse",
]
