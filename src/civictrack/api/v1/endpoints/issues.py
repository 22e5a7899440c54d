# src/civictrack/api/v1/endpoints/issues.py
"""Issue endpoints for the CivicTrack API."""

from typing import Annotated

from fastapi import APIRouter, File, Form, HTTPException, Query, UploadFile, status

from civictrack.domain import ImageUpload, IssueDraft, IssueFilter
from civictrack.repositories import IssueRepository
from civictrack.schemas import (
    ActivityResponse,
    IssueListResponse,
    IssueResponse,
    PaginationResponse,
    SpamReportAccepted,
    SpamReportCreate,
    StatusUpdate,
    UpvoteResponse,
)
from civictrack.services import (
    DiscoveryService,
    IssueService,
    LifecycleService,
    ModerationService,
)

from ..dependencies import (
    AdminDep,
    GeocoderDep,
    ImageStoreDep,
    OptionalPrincipalDep,
    PrincipalDep,
    SessionDep,
)

router = APIRouter(prefix="/issues", tags=["issues"])


def _list_response(result) -> IssueListResponse:
    return IssueListResponse(
        issues=[IssueResponse.from_hit(hit) for hit in result.items],
        pagination=PaginationResponse.from_meta(result.pagination),
    )


@router.get("", response_model=IssueListResponse)
def list_issues(
    db: SessionDep,
    category: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    search: str | None = None,
    owner_id: str | None = None,
    lat: float | None = None,
    lng: float | None = None,
    distance: float | None = Query(None, description="Search radius in meters"),
    page: int = 1,
    limit: int | None = None,
) -> IssueListResponse:
    """List visible issues, nearest first when a location is supplied."""
    filters = IssueFilter(
        category=category,
        status=status_filter,
        text=search,
        owner_id=owner_id,
        latitude=lat,
        longitude=lng,
        radius_m=distance,
    )
    return _list_response(DiscoveryService(db).search(filters, page, limit))


@router.get("/nearby", response_model=IssueListResponse)
def nearby_issues(
    db: SessionDep,
    lat: float,
    lng: float,
    distance: float | None = Query(None, description="Search radius in meters"),
    category: str | None = None,
    status_filter: Annotated[str | None, Query(alias="status")] = None,
    page: int = 1,
    limit: int | None = None,
) -> IssueListResponse:
    """List visible issues around a point, nearest first."""
    filters = IssueFilter(
        category=category,
        status=status_filter,
        latitude=lat,
        longitude=lng,
        radius_m=distance,
    )
    return _list_response(DiscoveryService(db).search(filters, page, limit))


@router.post("", response_model=IssueResponse, status_code=status.HTTP_201_CREATED)
def create_issue(
    db: SessionDep,
    image_store: ImageStoreDep,
    geocoder: GeocoderDep,
    principal: OptionalPrincipalDep,
    title: Annotated[str, Form()],
    description: Annotated[str, Form()],
    category: Annotated[str, Form()],
    latitude: Annotated[float, Form()],
    longitude: Annotated[float, Form()],
    address: Annotated[str | None, Form()] = None,
    is_anonymous: Annotated[bool, Form()] = False,
    images: Annotated[list[UploadFile] | None, File()] = None,
) -> IssueResponse:
    """Report a new issue; callers without a token report anonymously."""
    anonymous = is_anonymous or principal is None
    draft = IssueDraft(
        title=title,
        description=description,
        category=category,
        latitude=latitude,
        longitude=longitude,
        address=address,
        is_anonymous=anonymous,
        owner_id=None if anonymous else principal.id,
    )
    uploads = [
        ImageUpload(
            filename=upload.filename or "image",
            content_type=upload.content_type or "",
            data=upload.file.read(),
        )
        for upload in images or []
    ]
    issue = IssueService(db, image_store, geocoder).create_issue(draft, uploads)
    return IssueResponse.model_validate(issue)


@router.get("/{issue_id}", response_model=IssueResponse)
def get_issue(issue_id: int, db: SessionDep, image_store: ImageStoreDep) -> IssueResponse:
    """Return one issue and count the view."""
    issue = IssueService(db, image_store).get_issue(issue_id)
    return IssueResponse.model_validate(issue)


@router.delete("/{issue_id}", status_code=status.HTTP_204_NO_CONTENT)
def delete_issue(
    issue_id: int,
    db: SessionDep,
    image_store: ImageStoreDep,
    principal: PrincipalDep,
) -> None:
    """Delete an issue; only its owner or an administrator may do so."""
    issue = IssueRepository(db).require(issue_id)
    if not principal.is_admin and issue.owner_id != principal.id:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Not authorized to delete this issue",
        )
    IssueService(db, image_store).delete_issue(issue_id)


@router.patch("/{issue_id}/status", response_model=IssueResponse)
def update_status(
    issue_id: int,
    payload: StatusUpdate,
    db: SessionDep,
    admin: AdminDep,
) -> IssueResponse:
    """Move an issue through its lifecycle."""
    issue = LifecycleService(db).transition(
        issue_id,
        payload.status,
        admin.id,
        note=payload.note,
        priority=payload.priority,
        estimated_resolution_at=payload.estimated_resolution_at,
        admin_notes=payload.admin_notes,
    )
    return IssueResponse.model_validate(issue)


@router.post(
    "/{issue_id}/spam",
    response_model=SpamReportAccepted,
    status_code=status.HTTP_201_CREATED,
)
def report_spam(
    issue_id: int,
    payload: SpamReportCreate,
    db: SessionDep,
    principal: PrincipalDep,
) -> SpamReportAccepted:
    """Report an issue as spam."""
    outcome = ModerationService(db).report_spam(
        issue_id,
        principal.id,
        payload.reason,
        payload.description,
    )
    return SpamReportAccepted(
        accepted=outcome.accepted,
        spam_vote_count=outcome.spam_vote_count,
        hidden=outcome.hidden_now,
    )


@router.post("/{issue_id}/upvote", response_model=UpvoteResponse)
def toggle_upvote(
    issue_id: int,
    db: SessionDep,
    image_store: ImageStoreDep,
    principal: PrincipalDep,
) -> UpvoteResponse:
    """Add or remove the caller's upvote."""
    action, count = IssueService(db, image_store).toggle_upvote(issue_id, principal.id)
    return UpvoteResponse(action=action, upvote_count=count)


@router.get("/{issue_id}/activity", response_model=list[ActivityResponse])
def list_activity(
    issue_id: int,
    db: SessionDep,
    image_store: ImageStoreDep,
) -> list[ActivityResponse]:
    """Return the issue's status history, oldest first."""
    entries = IssueService(db, image_store).list_activity(issue_id)
    return [ActivityResponse.model_validate(entry) for entry in entries]
