"""Shared API dependencies for authentication and collaborators."""

from typing import Annotated

from fastapi import Depends, HTTPException, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.orm import Session

from civictrack.core.security import Principal, decode_principal
from civictrack.db.session import get_db
from civictrack.services.geocoding import ReverseGeocoder, get_geocoder
from civictrack.services.media import ImageStore, get_image_store

# HTTP Bearer scheme for JWT authentication
bearer_scheme = HTTPBearer()
optional_bearer_scheme = HTTPBearer(auto_error=False)

# Type alias for database session dependency
SessionDep = Annotated[Session, Depends(get_db)]


def _principal_from(credentials: HTTPAuthorizationCredentials) -> Principal:
    try:
        return decode_principal(credentials.credentials)
    except ValueError as err:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Could not validate credentials",
            headers={"WWW-Authenticate": "Bearer"},
        ) from err


def get_current_principal(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(bearer_scheme)],
) -> Principal:
    """Return the principal carried by the bearer token.

    Raises:
        HTTPException: If the token is invalid or expired.
    """
    return _principal_from(credentials)


def get_optional_principal(
    credentials: Annotated[HTTPAuthorizationCredentials | None, Depends(optional_bearer_scheme)],
) -> Principal | None:
    """Return the principal when a bearer token is supplied, otherwise None."""
    if credentials is None:
        return None
    return _principal_from(credentials)


def require_admin(
    principal: Annotated[Principal, Depends(get_current_principal)],
) -> Principal:
    """Return the principal if it carries the admin role."""
    if not principal.is_admin:
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="Administrator access required",
        )
    return principal


def get_image_store_dep() -> ImageStore:
    """Return the image store used for issue attachments."""
    return get_image_store()


def get_geocoder_dep() -> ReverseGeocoder:
    """Return the reverse geocoder used for missing addresses."""
    return get_geocoder()


PrincipalDep = Annotated[Principal, Depends(get_current_principal)]
OptionalPrincipalDep = Annotated[Principal | None, Depends(get_optional_principal)]
AdminDep = Annotated[Principal, Depends(require_admin)]
ImageStoreDep = Annotated[ImageStore, Depends(get_image_store_dep)]
GeocoderDep = Annotated[ReverseGeocoder, Depends(get_geocoder_dep)]
