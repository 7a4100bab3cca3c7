"""Refresh-token issuance, rotation and revocation.

Each user has at most one accepted refresh token. Only its SHA-256 digest is
stored on the user row, and every issue overwrites it, so a rotated or
logged-out token stops working even while its signature is still valid.
"""

from __future__ import annotations

import hashlib
import hmac
import logging
from dataclasses import dataclass

import jwt
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import (
    access_token_ttl,
    create_access_token,
    create_refresh_token,
    decode_token,
    refresh_token_ttl,
)
from models import User
from services.errors import InternalError, NotFoundError, UnauthorizedError

logger = logging.getLogger(__name__)

TOKEN_GENERATION_FAILED = "Something went wrong while generating tokens"


@dataclass(frozen=True)
class TokenPair:
    access_token: str
    refresh_token: str
    access_expires_in: int
    refresh_expires_in: int


def hash_refresh_token(token: str) -> str:
    return hashlib.sha256(token.encode("utf-8")).hexdigest()


def refresh_token_matches(user: User, token: str) -> bool:
    if not user.refresh_token_hash:
        return False
    return hmac.compare_digest(user.refresh_token_hash, hash_refresh_token(token))


async def issue_token_pair(session: AsyncSession, user_id: str) -> TokenPair:
    """Mint an access/refresh pair and make the refresh token the only valid one."""
    try:
        user = await session.get(User, user_id)
        if user is None:
            raise LookupError(f"user {user_id} not found")

        pair = TokenPair(
            access_token=create_access_token(user_id),
            refresh_token=create_refresh_token(user_id),
            access_expires_in=int(access_token_ttl().total_seconds()),
            refresh_expires_in=int(refresh_token_ttl().total_seconds()),
        )
        user.refresh_token_hash = hash_refresh_token(pair.refresh_token)
        session.add(user)
        await session.commit()
    except (LookupError, SQLAlchemyError, ValueError, jwt.PyJWTError, NotImplementedError) as exc:
        await session.rollback()
        raise InternalError(TOKEN_GENERATION_FAILED) from exc
    return pair


async def rotate_refresh_token(session: AsyncSession, incoming: str | None) -> TokenPair:
    """Exchange a valid, current refresh token for a fresh pair."""
    token = (incoming or "").strip()
    if not token:
        raise UnauthorizedError("Unauthorized request")

    try:
        payload = decode_token(token, "refresh")
    except ValueError as exc:
        raise UnauthorizedError(str(exc)) from exc

    user_id = str(payload["sub"])
    try:
        user = await session.get(User, user_id)
    except SQLAlchemyError as exc:
        await session.rollback()
        raise InternalError("Failed to verify refresh token") from exc
    if user is None:
        raise NotFoundError("User not found")

    if not refresh_token_matches(user, token):
        logger.info("Rejected superseded refresh token", extra={"user_id": user_id})
        raise UnauthorizedError("Refresh token is expired or used")

    return await issue_token_pair(session, user_id)


async def revoke_refresh_token(session: AsyncSession, user_id: str) -> None:
    """Forget the persisted refresh token so no outstanding one can rotate."""
    user = await session.get(User, user_id)
    if user is None:
        return
    user.refresh_token_hash = None
    session.add(user)
    await session.commit()
