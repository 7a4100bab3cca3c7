"""Identity normalization and lookup helpers."""

from __future__ import annotations

from typing import Any, cast

from sqlalchemy import or_, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import User


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def normalize_email(value: str) -> str:
    return value.strip().lower()


def normalize_username(value: str) -> str:
    return value.strip().lower()


async def registration_conflict_exists(
    session: AsyncSession,
    *,
    username: str,
    normalized_email: str,
) -> bool:
    existing = await session.execute(
        select(User)
        .where(
            or_(
                _eq(User.username, username),
                _eq(User.email, normalized_email),
            )
        )
        .limit(1)
    )
    return existing.scalar_one_or_none() is not None


async def email_taken_by_other(
    session: AsyncSession,
    *,
    normalized_email: str,
    user_id: str,
) -> bool:
    existing = await session.execute(
        select(User)
        .where(_eq(User.email, normalized_email), ~_eq(User.id, user_id))
        .limit(1)
    )
    return existing.scalar_one_or_none() is not None


async def find_login_user(session: AsyncSession, identifier: str) -> User | None:
    """Resolve a login identifier: emails contain '@', usernames never do."""
    if "@" in identifier:
        stmt = select(User).where(_eq(User.email, normalize_email(identifier)))
    else:
        stmt = select(User).where(_eq(User.username, normalize_username(identifier)))
    result = await session.execute(stmt.limit(1))
    return result.scalar_one_or_none()
