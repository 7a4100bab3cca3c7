"""Password hashing and JWT helpers."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone
from typing import Any, Literal
from uuid import uuid4

import jwt
from passlib.context import CryptContext

from .config import settings

TokenType = Literal["access", "refresh"]

pwd_context = CryptContext(schemes=["argon2"], deprecated="auto")


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, password_hash: str | None) -> bool:
    """Return True when the password matches the stored salted hash.

    A wrong password yields False. A missing hash is an internal error and
    raises ValueError.
    """
    if not password_hash:
        raise ValueError("Stored password hash is missing")
    return pwd_context.verify(password, password_hash)


def needs_rehash(password_hash: str) -> bool:
    return pwd_context.needs_update(password_hash)


def _secret_for(token_type: TokenType) -> str:
    if token_type == "access":
        return settings.access_token_secret
    return settings.refresh_token_secret


def _create_token(subject: str, token_type: TokenType, ttl: timedelta) -> str:
    now = datetime.now(timezone.utc)
    payload: dict[str, Any] = {
        "sub": subject,
        "type": token_type,
        "iat": int(now.timestamp()),
        "exp": int((now + ttl).timestamp()),
        "jti": uuid4().hex,
    }
    return jwt.encode(payload, _secret_for(token_type), algorithm=settings.jwt_algorithm)


def access_token_ttl() -> timedelta:
    return timedelta(minutes=settings.access_token_expire_minutes)


def refresh_token_ttl() -> timedelta:
    return timedelta(days=settings.refresh_token_expire_days)


def create_access_token(subject: str) -> str:
    return _create_token(subject, "access", access_token_ttl())


def create_refresh_token(subject: str) -> str:
    return _create_token(subject, "refresh", refresh_token_ttl())


def decode_token(token: str, token_type: TokenType = "access") -> dict[str, Any]:
    """Verify signature, expiry and token type, returning the claims.

    Raises ValueError with a human-readable reason on any failure.
    """
    try:
        payload = jwt.decode(
            token,
            _secret_for(token_type),
            algorithms=[settings.jwt_algorithm],
            options={"require": ["sub", "exp", "iat"]},
        )
    except jwt.ExpiredSignatureError as exc:
        raise ValueError(f"{token_type.capitalize()} token has expired") from exc
    except jwt.InvalidTokenError as exc:
        raise ValueError(f"Invalid {token_type} token") from exc

    if payload.get("type") != token_type:
        raise ValueError(f"Invalid {token_type} token")
    return payload
