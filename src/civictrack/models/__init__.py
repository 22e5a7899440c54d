# src/civictrack/models/__init__.py
"""SQLAlchemy models for the CivicTrack application."""

from .activity import ActivityLogEntry
from .issue import Issue, IssueSpamVote, IssueUpvote
from .reporter import ReporterStats
from .spam_report import SpamReport

__all__ = [
    "ActivityLogEntry",
    "Issue", "IssueSpamVote", "IssueUpvote",
    "ReporterStats",
    "SpamReport",
]
