"""Account orchestration: registration, sessions, credentials and media."""

from __future__ import annotations

import logging
from collections.abc import AsyncIterator
from contextlib import asynccontextmanager
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

from pydantic import BaseModel, EmailStr, TypeAdapter, ValidationError
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from core import hash_password, needs_rehash, verify_password
from db.errors import is_unique_violation
from models import User, Video

from .auth import (
    TokenPair,
    email_taken_by_other,
    find_login_user,
    issue_token_pair,
    normalize_email,
    normalize_username,
    registration_conflict_exists,
    revoke_refresh_token,
    rotate_refresh_token,
)
from .channels import (
    AssetRefOut,
    ChannelProfile,
    WatchedVideo,
    asset_ref_out,
    avatar_ref,
    cover_image_ref,
    find_channel_profile,
    list_watch_history,
    record_watch,
)
from .errors import (
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    UnauthorizedError,
    UploadFailedError,
)
from .storage import AssetRef, AssetStore
from .uploads import commit_asset, discard_local_file, discard_remote_asset

logger = logging.getLogger(__name__)

MAX_USERNAME_LENGTH = 30
MAX_FULL_NAME_LENGTH = 80
_email_adapter = TypeAdapter(EmailStr)

LocalPath = str | Path | None


@dataclass(frozen=True)
class RegistrationFields:
    full_name: str | None
    email: str | None
    username: str | None
    password: str | None


class UserPublic(BaseModel):
    """User record without password hash or refresh token."""

    id: str
    username: str
    email: str
    full_name: str
    avatar: AssetRefOut | None = None
    cover_image: AssetRefOut | None = None
    created_at: datetime | None = None

    @classmethod
    def from_user(cls, user: User) -> UserPublic:
        return cls(
            id=user.id,
            username=user.username,
            email=user.email,
            full_name=user.full_name,
            avatar=asset_ref_out(user.avatar_url, user.avatar_key),
            cover_image=asset_ref_out(user.cover_image_url, user.cover_image_key),
            created_at=user.created_at,
        )


def _is_blank(value: str | None) -> bool:
    return value is None or not value.strip()


def _validate_email(value: str) -> str:
    try:
        return normalize_email(str(_email_adapter.validate_python(value.strip())))
    except ValidationError as exc:
        raise InvalidInputError("Email address is invalid") from exc


def _validate_full_name(value: str) -> str:
    normalized = value.strip()
    if len(normalized) > MAX_FULL_NAME_LENGTH:
        raise InvalidInputError(f"Full name must be at most {MAX_FULL_NAME_LENGTH} characters")
    return normalized


def _validate_username(value: str) -> str:
    normalized = normalize_username(value)
    if "@" in normalized:
        raise InvalidInputError("Username cannot contain '@'")
    if len(normalized) > MAX_USERNAME_LENGTH:
        raise InvalidInputError(f"Username must be at most {MAX_USERNAME_LENGTH} characters")
    return normalized


class AccountService:
    """Composes credential checks, token lifecycle and asset commits.

    One instance serves one request: `session` is the request's database
    session and `assets` the process-wide remote asset store.
    """

    def __init__(self, session: AsyncSession, assets: AssetStore) -> None:
        self.session = session
        self.assets = assets

    @asynccontextmanager
    async def _reading(self, failure_detail: str) -> AsyncIterator[None]:
        """Turn database failures during a lookup into `InternalError`."""
        try:
            yield
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InternalError(failure_detail) from exc

    async def _require_user(self, user_id: str) -> User:
        async with self._reading("Failed to load user"):
            user = await self.session.get(User, user_id)
        if user is None:
            raise NotFoundError("User not found")
        return user

    async def _save(self, user: User, *, failure_detail: str) -> None:
        self.session.add(user)
        try:
            await self.session.commit()
        except IntegrityError as exc:
            await self.session.rollback()
            if is_unique_violation(exc):
                raise ConflictError() from exc
            raise InternalError(failure_detail) from exc
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InternalError(failure_detail) from exc
        await self.session.refresh(user)

    async def _public(self, user: User) -> UserPublic:
        await self.session.refresh(user)
        return UserPublic.from_user(user)

    async def register(
        self,
        fields: RegistrationFields,
        avatar_path: LocalPath,
        cover_path: LocalPath = None,
    ) -> UserPublic:
        try:
            return await self._register(fields, avatar_path, cover_path)
        finally:
            discard_local_file(avatar_path)
            discard_local_file(cover_path)

    async def _register(
        self,
        fields: RegistrationFields,
        avatar_path: LocalPath,
        cover_path: LocalPath,
    ) -> UserPublic:
        if any(
            _is_blank(value)
            for value in (fields.full_name, fields.email, fields.username, fields.password)
        ):
            raise InvalidInputError("All fields are required")

        full_name = _validate_full_name(str(fields.full_name))
        email = _validate_email(str(fields.email))
        username = _validate_username(str(fields.username))

        async with self._reading("Something went wrong while registering user"):
            conflict = await registration_conflict_exists(
                self.session,
                username=username,
                normalized_email=email,
            )
        if conflict:
            raise ConflictError()

        if not avatar_path:
            raise InvalidInputError("Avatar file is required")

        avatar = await commit_asset(self.assets, avatar_path, label="Avatar", prefix="avatars")

        cover: AssetRef | None = None
        if cover_path:
            try:
                cover = await commit_asset(
                    self.assets,
                    cover_path,
                    label="Cover image",
                    prefix="covers",
                )
            except UploadFailedError as exc:
                logger.warning(
                    "Cover image upload failed during registration; continuing without it",
                    extra={"username": username},
                    exc_info=exc,
                )

        user = User(
            username=username,
            email=email,
            full_name=full_name,
            password_hash=hash_password(str(fields.password)),
            avatar_url=avatar.url,
            avatar_key=avatar.storage_key,
            cover_image_url=cover.url if cover else None,
            cover_image_key=cover.storage_key if cover else None,
        )
        try:
            await self._save(user, failure_detail="Something went wrong while registering user")
        except (ConflictError, InternalError):
            await discard_remote_asset(self.assets, avatar.storage_key)
            if cover is not None:
                await discard_remote_asset(self.assets, cover.storage_key)
            raise

        logger.info("Registered user", extra={"user_id": user.id})
        return UserPublic.from_user(user)

    async def login(self, identifier: str | None, password: str | None) -> tuple[UserPublic, TokenPair]:
        normalized_identifier = (identifier or "").strip()
        if not normalized_identifier:
            raise InvalidInputError("Username or email is required")
        if not password:
            raise InvalidInputError("Password is required")

        async with self._reading("Unable to verify credentials"):
            user = await find_login_user(self.session, normalized_identifier)
        if user is None:
            raise NotFoundError("User does not exist")

        try:
            password_matches = verify_password(password, user.password_hash)
        except ValueError as exc:
            raise InternalError("Unable to verify credentials") from exc
        if not password_matches:
            raise UnauthorizedError("Invalid user credentials")

        if needs_rehash(user.password_hash):
            user.password_hash = hash_password(password)
            self.session.add(user)

        tokens = await issue_token_pair(self.session, user.id)
        logger.info("User logged in", extra={"user_id": user.id})
        return await self._public(user), tokens

    async def logout(self, user_id: str) -> None:
        try:
            await revoke_refresh_token(self.session, user_id)
        except SQLAlchemyError as exc:
            await self.session.rollback()
            raise InternalError("Failed to log out") from exc
        logger.info("User logged out", extra={"user_id": user_id})

    async def refresh(self, incoming: str | None) -> TokenPair:
        return await rotate_refresh_token(self.session, incoming)

    async def change_password(
        self,
        user_id: str,
        old_password: str | None,
        new_password: str | None,
    ) -> None:
        if _is_blank(old_password) or _is_blank(new_password):
            raise InvalidInputError("Old and new password are required")

        user = await self._require_user(user_id)
        try:
            old_matches = verify_password(str(old_password), user.password_hash)
        except ValueError as exc:
            raise InternalError("Unable to verify credentials") from exc
        if not old_matches:
            raise InvalidInputError("Old password is incorrect")

        user.password_hash = hash_password(str(new_password))
        await self._save(user, failure_detail="Failed to change password")

    async def get_current_user(self, user_id: str) -> UserPublic:
        user = await self._require_user(user_id)
        return UserPublic.from_user(user)

    async def update_account_details(
        self,
        user_id: str,
        full_name: str | None,
        email: str | None,
    ) -> UserPublic:
        if _is_blank(full_name) or _is_blank(email):
            raise InvalidInputError("Full name and email are required")

        normalized_name = _validate_full_name(str(full_name))
        normalized_email = _validate_email(str(email))
        user = await self._require_user(user_id)

        async with self._reading("Failed to update account details"):
            email_taken = await email_taken_by_other(
                self.session,
                normalized_email=normalized_email,
                user_id=user.id,
            )
        if email_taken:
            raise ConflictError("Email is already in use")

        user.full_name = normalized_name
        user.email = normalized_email
        await self._save(user, failure_detail="Failed to update account details")
        return UserPublic.from_user(user)

    async def update_avatar(self, user_id: str, local_path: LocalPath) -> UserPublic:
        try:
            user = await self._require_user(user_id)

            async def persist(ref: AssetRef) -> None:
                user.avatar_url = ref.url
                user.avatar_key = ref.storage_key
                await self._save(user, failure_detail="Failed to update avatar")

            await commit_asset(
                self.assets,
                local_path,
                previous=avatar_ref(user),
                persist=persist,
                label="Avatar",
                prefix="avatars",
            )
        finally:
            discard_local_file(local_path)
        return UserPublic.from_user(user)

    async def update_cover_image(self, user_id: str, local_path: LocalPath) -> UserPublic:
        try:
            user = await self._require_user(user_id)

            async def persist(ref: AssetRef) -> None:
                user.cover_image_url = ref.url
                user.cover_image_key = ref.storage_key
                await self._save(user, failure_detail="Failed to update cover image")

            await commit_asset(
                self.assets,
                local_path,
                previous=cover_image_ref(user),
                persist=persist,
                label="Cover image",
                prefix="covers",
            )
        finally:
            discard_local_file(local_path)
        return UserPublic.from_user(user)

    async def get_channel_profile(self, username: str | None, viewer_id: str | None) -> ChannelProfile:
        if _is_blank(username):
            raise InvalidInputError("Username is missing")

        async with self._reading("Failed to load channel profile"):
            profile = await find_channel_profile(
                self.session,
                username=normalize_username(str(username)),
                viewer_id=viewer_id,
            )
        if profile is None:
            raise NotFoundError("Channel does not exist")
        return profile

    async def get_watch_history(self, user_id: str) -> list[WatchedVideo]:
        await self._require_user(user_id)
        async with self._reading("Failed to load watch history"):
            return await list_watch_history(self.session, user_id)

    async def add_to_watch_history(self, user_id: str, video_id: int) -> list[WatchedVideo]:
        """Record a view of `video_id`, moving it to the front of the history."""
        await self._require_user(user_id)
        async with self._reading("Failed to update watch history"):
            video = await self.session.get(Video, video_id)
            if video is None:
                raise NotFoundError("Video not found")
            await record_watch(self.session, user_id=user_id, video_id=video_id)
            return await list_watch_history(self.session, user_id)
