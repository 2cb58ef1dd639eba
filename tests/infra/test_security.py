"""Tests for password hashing, tokens and the current-user dependency."""

from datetime import timedelta
from uuid import uuid4

import jwt
import pytest
from fastapi import HTTPException

from bursar.auth import get_current_user_id
from bursar.config import settings
from bursar.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    verify_password,
)


def test_password_round_trip():
    hashed = hash_password("s3cret-pass")

    assert hashed != "s3cret-pass"
    assert verify_password("s3cret-pass", hashed)
    assert not verify_password("wrong", hashed)


def test_token_carries_subject_and_expiry():
    token = create_access_token({"sub": "abc"}, expires_delta=timedelta(minutes=5))

    payload = decode_access_token(token)

    assert payload["sub"] == "abc"
    assert "exp" in payload


def test_expired_token_decodes_to_none():
    token = create_access_token({"sub": "abc"}, expires_delta=timedelta(seconds=-10))

    assert decode_access_token(token) is None


def test_foreign_signature_decodes_to_none():
    token = jwt.encode({"sub": "abc"}, "another-secret", algorithm=settings.jwt_algorithm)

    assert decode_access_token(token) is None


@pytest.mark.asyncio
async def test_current_user_resolves(db, test_user):
    token = create_access_token({"sub": str(test_user.id)})

    assert await get_current_user_id(token, db) == test_user.id


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("claims", "message"),
    [
        ({"role": "clerk"}, "Token missing subject"),
        ({"sub": "not-a-uuid"}, "Invalid user ID format in token"),
        ({"sub": str(uuid4())}, "User not found"),
    ],
)
async def test_current_user_rejections(db, claims, message):
    token = create_access_token(claims)

    with pytest.raises(HTTPException) as exc_info:
        await get_current_user_id(token, db)

    assert exc_info.value.status_code == 401
    assert exc_info.value.detail == message
