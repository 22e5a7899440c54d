"""Repositories wrapping persistent storage access."""

from .activity_repo import ActivityLogRepository
from .issue_repo import IssueRepository

__all__ = ["ActivityLogRepository", "IssueRepository"]
