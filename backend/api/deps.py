"""Shared FastAPI dependencies."""

from __future__ import annotations

from collections.abc import AsyncIterator

from fastapi import Depends, Request
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.ext.asyncio import AsyncSession

from core import decode_token
from db import get_session
from models import User
from services import AccountService, AssetStore, UnauthorizedError
from services.auth import ACCESS_COOKIE

bearer_scheme = HTTPBearer(auto_error=False)


async def get_db() -> AsyncIterator[AsyncSession]:
    async for session in get_session():
        yield session


def get_asset_store(request: Request) -> AssetStore:
    return request.app.state.asset_store


def get_account_service(
    session: AsyncSession = Depends(get_db),
    assets: AssetStore = Depends(get_asset_store),
) -> AccountService:
    return AccountService(session, assets)


async def get_current_user(
    request: Request,
    credentials: HTTPAuthorizationCredentials | None = Depends(bearer_scheme),
    session: AsyncSession = Depends(get_db),
) -> User:
    """Resolve the caller from the access-token cookie or a bearer header."""
    token = request.cookies.get(ACCESS_COOKIE)
    if not token and credentials is not None and credentials.scheme.lower() == "bearer":
        token = credentials.credentials
    if not token:
        raise UnauthorizedError("Unauthorized request")

    try:
        payload = decode_token(token, "access")
    except ValueError as exc:
        raise UnauthorizedError(str(exc)) from exc

    user = await session.get(User, str(payload["sub"]))
    if user is None:
        raise UnauthorizedError("Invalid access token")
    return user
