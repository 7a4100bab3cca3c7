"""Authentication endpoints."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, File, Form, Request, Response, UploadFile, status
from pydantic import BaseModel

from api.deps import get_account_service, get_current_user
from models import User
from services import AccountService, RegistrationFields, UserPublic
from services.auth import REFRESH_COOKIE, clear_token_cookies, set_token_cookies

from .uploads import stage_uploads

router = APIRouter(prefix="/auth", tags=["auth"])


class LoginRequest(BaseModel):
    # Either identifier is accepted; username wins when both are sent.
    username: str | None = None
    email: str | None = None
    password: str | None = None


class RefreshRequest(BaseModel):
    refresh_token: str | None = None


class ChangePasswordRequest(BaseModel):
    old_password: str | None = None
    new_password: str | None = None


class TokenResponse(BaseModel):
    access_token: str
    refresh_token: str
    token_type: str = "bearer"
    expires_in: int


class LoginResponse(TokenResponse):
    user: UserPublic


@router.post("/register", status_code=status.HTTP_201_CREATED, response_model=UserPublic)
async def register(
    full_name: str | None = Form(default=None),
    email: str | None = Form(default=None),
    username: str | None = Form(default=None),
    password: str | None = Form(default=None),
    avatar: UploadFile | None = File(default=None),
    cover_image: UploadFile | None = File(default=None),
    service: AccountService = Depends(get_account_service),
) -> UserPublic:
    avatar_path, cover_path = await stage_uploads(avatar, cover_image)
    fields = RegistrationFields(
        full_name=full_name,
        email=email,
        username=username,
        password=password,
    )
    return await service.register(fields, avatar_path, cover_path)


@router.post("/login", response_model=LoginResponse)
async def login(
    payload: LoginRequest,
    response: Response,
    service: AccountService = Depends(get_account_service),
) -> LoginResponse:
    identifier = payload.username or payload.email
    user, tokens = await service.login(identifier, payload.password)
    set_token_cookies(response, tokens)
    return LoginResponse(
        user=user,
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.access_expires_in,
    )


@router.post("/refresh", response_model=TokenResponse)
async def refresh_tokens(
    request: Request,
    response: Response,
    payload: RefreshRequest | None = None,
    service: AccountService = Depends(get_account_service),
) -> TokenResponse:
    incoming = request.cookies.get(REFRESH_COOKIE)
    if not incoming and payload is not None:
        incoming = payload.refresh_token

    tokens = await service.refresh(incoming)
    set_token_cookies(response, tokens)
    return TokenResponse(
        access_token=tokens.access_token,
        refresh_token=tokens.refresh_token,
        expires_in=tokens.access_expires_in,
    )


@router.post("/logout", status_code=status.HTTP_200_OK)
async def logout(
    response: Response,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await service.logout(current_user.id)
    clear_token_cookies(response)
    return {"detail": "Logged out"}


@router.post("/change-password", status_code=status.HTTP_200_OK)
async def change_password(
    payload: ChangePasswordRequest,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> dict[str, Any]:
    await service.change_password(
        current_user.id,
        payload.old_password,
        payload.new_password,
    )
    return {"detail": "Password changed successfully"}
