"""Tests for credential hashing, JWT helpers and the token store."""

from uuid import uuid4

import jwt
import pytest
from sqlalchemy.exc import OperationalError
from sqlalchemy.ext.asyncio import AsyncSession

from core import (
    access_token_ttl,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    refresh_token_ttl,
    verify_password,
)
from core import security
from models import User
from services.auth import hash_refresh_token, issue_token_pair, refresh_token_matches, rotate_refresh_token
from services.errors import InternalError, NotFoundError, UnauthorizedError


def test_verify_password_matches_and_mismatches():
    password_hash = hash_password("Sup3rSecret!")

    assert password_hash != "Sup3rSecret!"
    assert verify_password("Sup3rSecret!", password_hash) is True
    assert verify_password("wrong-password", password_hash) is False


def test_verify_password_requires_stored_hash():
    with pytest.raises(ValueError):
        verify_password("Sup3rSecret!", None)


def test_tokens_carry_subject_and_type():
    subject = str(uuid4())

    access_claims = decode_token(create_access_token(subject), "access")
    refresh_claims = decode_token(create_refresh_token(subject), "refresh")

    assert access_claims["sub"] == subject
    assert access_claims["type"] == "access"
    assert refresh_claims["sub"] == subject
    assert refresh_claims["type"] == "refresh"
    assert refresh_claims["exp"] > access_claims["exp"]


def test_tokens_minted_together_are_distinct():
    subject = str(uuid4())

    assert create_refresh_token(subject) != create_refresh_token(subject)


def test_decode_token_rejects_wrong_secret_type():
    with pytest.raises(ValueError, match="Invalid refresh token"):
        decode_token(create_access_token(str(uuid4())), "refresh")


def test_refresh_token_matches_compares_hashes():
    user = User(
        username="matcher",
        email="matcher@example.com",
        full_name="Matcher",
        password_hash="unused",
        avatar_url="https://cdn.test/a.png",
        avatar_key="a.png",
        refresh_token_hash=hash_refresh_token("token-a"),
    )

    assert refresh_token_matches(user, "token-a")
    assert not refresh_token_matches(user, "token-b")
    user.refresh_token_hash = None
    assert not refresh_token_matches(user, "token-a")


async def _create_user(session: AsyncSession) -> User:
    user = User(
        username=f"token_{uuid4().hex[:8]}",
        email=f"token_{uuid4().hex[:8]}@example.com",
        full_name="Token User",
        password_hash=hash_password("Sup3rSecret!"),
        avatar_url="https://cdn.test/avatars/token.png",
        avatar_key="avatars/token.png",
    )
    session.add(user)
    await session.commit()
    return user


@pytest.mark.asyncio
async def test_issue_token_pair_persists_refresh_hash(db_session: AsyncSession):
    user = await _create_user(db_session)

    pair = await issue_token_pair(db_session, user.id)

    assert user.refresh_token_hash == hash_refresh_token(pair.refresh_token)
    assert decode_token(pair.access_token, "access")["sub"] == user.id


@pytest.mark.asyncio
async def test_issue_token_pair_wraps_missing_user(db_session: AsyncSession):
    with pytest.raises(InternalError) as exc_info:
        await issue_token_pair(db_session, str(uuid4()))

    assert exc_info.value.detail == "Something went wrong while generating tokens"
    assert exc_info.value.status_code == 500


@pytest.mark.asyncio
async def test_rotate_refresh_token_is_use_once(db_session: AsyncSession):
    user = await _create_user(db_session)
    pair = await issue_token_pair(db_session, user.id)

    rotated = await rotate_refresh_token(db_session, pair.refresh_token)

    assert rotated.refresh_token != pair.refresh_token
    with pytest.raises(UnauthorizedError, match="expired or used"):
        await rotate_refresh_token(db_session, pair.refresh_token)


@pytest.mark.asyncio
async def test_rotate_refresh_token_rejects_blank_and_unknown(db_session: AsyncSession):
    with pytest.raises(UnauthorizedError, match="Unauthorized request"):
        await rotate_refresh_token(db_session, "   ")

    with pytest.raises(NotFoundError):
        await rotate_refresh_token(db_session, create_refresh_token(str(uuid4())))


@pytest.mark.asyncio
async def test_issue_token_pair_reports_expiry_in_seconds(db_session: AsyncSession):
    user = await _create_user(db_session)

    pair = await issue_token_pair(db_session, user.id)

    assert pair.access_expires_in == int(access_token_ttl().total_seconds())
    assert pair.refresh_expires_in == int(refresh_token_ttl().total_seconds())


@pytest.mark.asyncio
async def test_issue_token_pair_wraps_signing_failure(db_session: AsyncSession, monkeypatch):
    user = await _create_user(db_session)

    def failing_encode(*args, **kwargs):
        raise jwt.InvalidKeyError("bad key")

    monkeypatch.setattr(security.jwt, "encode", failing_encode)

    with pytest.raises(InternalError) as exc_info:
        await issue_token_pair(db_session, user.id)

    assert exc_info.value.detail == "Something went wrong while generating tokens"
    assert isinstance(exc_info.value.__cause__, jwt.InvalidKeyError)
    stored = await db_session.get(User, user.id)
    assert stored is not None and stored.refresh_token_hash is None


@pytest.mark.asyncio
async def test_rotate_refresh_token_wraps_database_failure(db_session: AsyncSession, monkeypatch):
    user = await _create_user(db_session)
    pair = await issue_token_pair(db_session, user.id)

    async def failing_get(*args, **kwargs):
        raise OperationalError("SELECT users", {}, Exception("db down"))

    monkeypatch.setattr(db_session, "get", failing_get)

    with pytest.raises(InternalError) as exc_info:
        await rotate_refresh_token(db_session, pair.refresh_token)

    assert exc_info.value.status_code == 500
    assert exc_info.value.detail == "Failed to verify refresh token"
