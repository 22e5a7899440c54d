"""Domain exceptions raised by the CivicTrack core.

Every exception carries the HTTP status the API layer maps it to; the core
itself never builds HTTP responses.
"""

from __future__ import annotations

from typing import Any


class CivicTrackError(RuntimeError):
    """Base exception for all domain failures."""

    status_code: int = 400

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message

    def to_dict(self) -> dict[str, Any]:
        """Return a JSON-serialisable payload describing the error."""
        return {"detail": self.message}


class IssueValidationError(CivicTrackError):
    """Raised when input is malformed or out of range.

    ``errors`` lists every violated field, not just the first one found.
    """

    status_code = 422

    def __init__(self, errors: list[dict[str, str]]) -> None:
        fields = ", ".join(error["field"] for error in errors)
        super().__init__(f"Validation failed for: {fields}")
        self.errors = errors

    @classmethod
    def single(cls, field: str, message: str) -> IssueValidationError:
        """Build an error for one offending field."""
        return cls([{"field": field, "message": message}])

    def to_dict(self) -> dict[str, Any]:
        return {"detail": self.message, "errors": self.errors}


class NotFoundError(CivicTrackError):
    """Raised when a referenced issue or spam report does not exist."""

    status_code = 404


class InvalidTransitionError(CivicTrackError):
    """Raised when a lifecycle transition is not allowed."""

    status_code = 409

    def __init__(self, from_status: str, to_status: str) -> None:
        super().__init__(f"Invalid status transition from {from_status} to {to_status}")
        self.from_status = from_status
        self.to_status = to_status


class DuplicateSpamReportError(CivicTrackError):
    """Raised when a principal reports the same issue twice."""

    status_code = 409

    def __init__(self, message: str = "You have already reported this issue") -> None:
        super().__init__(message)


class ConcurrentUpdateError(CivicTrackError):
    """Raised when concurrent writers keep an update from settling."""

    status_code = 409

    def __init__(self, message: str = "The issue changed concurrently, retry the request") -> None:
        super().__init__(message)


class InvalidCoordinatesError(CivicTrackError):
    """Raised when latitude or longitude fall outside the valid range."""

    status_code = 400


class InvalidRadiusError(CivicTrackError):
    """Raised when a search radius is not a positive number."""

    status_code = 400


class SearchTimeoutError(CivicTrackError):
    """Raised when a discovery query cannot finish before its deadline."""

    status_code = 504

    def __init__(self, message: str = "Search did not complete before the deadline") -> None:
        super().__init__(message)


class UploadFailedError(CivicTrackError):
    """Raised when the image store rejects or fails an upload."""

    status_code = 502
