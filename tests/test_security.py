# tests/test_security.py
"""Tests for bearer token decoding at the identity boundary."""

from datetime import UTC, datetime, timedelta

import pytest
from jose import jwt

from civictrack.core.security import ADMIN_ROLE, create_access_token, decode_principal
from civictrack.core.settings import settings


def test_decode_user_and_admin_tokens() -> None:
    user = decode_principal(create_access_token("citizen-1"))
    assert user.id == "citizen-1"
    assert user.is_admin is False

    admin = decode_principal(create_access_token("admin-1", role=ADMIN_ROLE))
    assert admin.is_admin is True


def test_decode_rejects_bad_signature() -> None:
    token = jwt.encode({"sub": "citizen-1"}, "other-secret", algorithm=settings.jwt_algorithm)
    with pytest.raises(ValueError):
        decode_principal(token)


def test_decode_rejects_expired_token() -> None:
    expired = datetime.now(UTC) - timedelta(minutes=1)
    token = jwt.encode(
        {"sub": "citizen-1", "exp": expired},
        settings.secret_key,
        algorithm=settings.jwt_algorithm,
    )
    with pytest.raises(ValueError):
        decode_principal(token)


def test_decode_requires_subject() -> None:
    token = jwt.encode({"role": "admin"}, settings.secret_key, algorithm=settings.jwt_algorithm)
    with pytest.raises(ValueError):
        decode_principal(token)
