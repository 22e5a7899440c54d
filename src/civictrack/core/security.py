"""Bearer token helpers for the identity boundary.

Token issuance belongs to the identity provider; this module only knows how to
read the principal out of a signed token (and mint one for local tooling and
tests).
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta

from jose import JWTError, jwt

from civictrack.core.settings import settings

ADMIN_ROLE = "admin"
USER_ROLE = "user"


@dataclass(frozen=True)
class Principal:
    """Authenticated actor issuing a request."""

    id: str
    is_admin: bool = False


def create_access_token(subject: str, role: str = USER_ROLE) -> str:
    """Create a JWT access token for a principal."""
    expire = datetime.now(UTC) + timedelta(minutes=settings.access_token_expire_minutes)
    to_encode: dict[str, object] = {"sub": subject, "role": role, "exp": expire}
    encoded_jwt: str = jwt.encode(
        to_encode,
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    return encoded_jwt


def decode_principal(token: str) -> Principal:
    """Decode a bearer token into a principal.

    Raises:
        ValueError: If the token is invalid, expired or carries no subject.
    """
    try:
        payload = jwt.decode(token, settings.secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError as err:
        raise ValueError("Could not validate credentials") from err

    subject = payload.get("sub")
    if not subject:
        raise ValueError("Could not validate credentials")
    return Principal(id=str(subject), is_admin=payload.get("role") == ADMIN_ROLE)
