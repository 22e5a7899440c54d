"""Service layer for CivicTrack."""

from .discovery import DiscoveryService
from .geo import GeoIndex
from .issues import IssueService
from .lifecycle import LifecycleService
from .moderation import ModerationService

__all__ = [
    "DiscoveryService",
    "GeoIndex",
    "IssueService",
    "LifecycleService",
    "ModerationService",
]
