"""User profile, channel and history endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends, File, UploadFile
from pydantic import BaseModel

from api.deps import get_account_service, get_current_user
from models import User
from services import AccountService, UserPublic
from services.channels import ChannelProfile, WatchedVideo

from .uploads import stage_optional_upload

router = APIRouter(prefix="/users", tags=["users"])


class AccountDetailsUpdate(BaseModel):
    full_name: str | None = None
    email: str | None = None


@router.get("/me", response_model=UserPublic)
async def get_me(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserPublic:
    """Return the authenticated user's profile."""
    return await service.get_current_user(current_user.id)


@router.patch("/me", response_model=UserPublic)
async def update_account_details(
    payload: AccountDetailsUpdate,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserPublic:
    return await service.update_account_details(
        current_user.id,
        payload.full_name,
        payload.email,
    )


@router.patch("/me/avatar", response_model=UserPublic)
async def update_avatar(
    avatar: UploadFile | None = File(default=None),
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserPublic:
    """Replace the avatar; the previous object is removed from storage."""
    local_path = await stage_optional_upload(avatar)
    return await service.update_avatar(current_user.id, local_path)


@router.patch("/me/cover-image", response_model=UserPublic)
async def update_cover_image(
    cover_image: UploadFile | None = File(default=None),
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> UserPublic:
    local_path = await stage_optional_upload(cover_image)
    return await service.update_cover_image(current_user.id, local_path)


@router.get("/me/history", response_model=list[WatchedVideo])
async def get_watch_history(
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> list[WatchedVideo]:
    return await service.get_watch_history(current_user.id)


@router.post("/me/history/{video_id}", response_model=list[WatchedVideo])
async def add_to_watch_history(
    video_id: int,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> list[WatchedVideo]:
    return await service.add_to_watch_history(current_user.id, video_id)


@router.get("/c/{username}", response_model=ChannelProfile)
async def get_channel_profile(
    username: str,
    current_user: User = Depends(get_current_user),
    service: AccountService = Depends(get_account_service),
) -> ChannelProfile:
    """Channel header: profile, subscription counts and viewer subscription flag."""
    return await service.get_channel_profile(username, current_user.id)
