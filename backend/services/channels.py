"""Channel profile and watch-history read models."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import Any, cast

from pydantic import BaseModel
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from sqlalchemy.sql import ColumnElement

from models import Subscription, User, Video, WatchHistoryEntry

from .storage import AssetRef


def _eq(column: Any, value: Any) -> ColumnElement[bool]:
    return cast(ColumnElement[bool], column == value)


def _desc(column: Any) -> Any:
    return cast(Any, column).desc()


class AssetRefOut(BaseModel):
    url: str
    storage_key: str


def asset_ref_out(url: str | None, storage_key: str | None) -> AssetRefOut | None:
    if not url or not storage_key:
        return None
    return AssetRefOut(url=url, storage_key=storage_key)


def avatar_ref(user: User) -> AssetRef | None:
    if not user.avatar_url or not user.avatar_key:
        return None
    return AssetRef(url=user.avatar_url, storage_key=user.avatar_key)


def cover_image_ref(user: User) -> AssetRef | None:
    if not user.cover_image_url or not user.cover_image_key:
        return None
    return AssetRef(url=user.cover_image_url, storage_key=user.cover_image_key)


class ChannelProfile(BaseModel):
    id: str
    username: str
    full_name: str
    email: str
    avatar: AssetRefOut | None = None
    cover_image: AssetRefOut | None = None
    subscribers_count: int = 0
    channel_subscribed_to_count: int = 0
    is_subscribed: bool = False


class VideoOwner(BaseModel):
    username: str
    full_name: str
    avatar: AssetRefOut | None = None


class WatchedVideo(BaseModel):
    id: int
    title: str
    description: str | None = None
    video_url: str
    thumbnail_url: str | None = None
    duration: float = 0.0
    views: int = 0
    created_at: datetime | None = None
    watched_at: datetime | None = None
    owner: VideoOwner | None = None


async def find_channel_profile(
    session: AsyncSession,
    *,
    username: str,
    viewer_id: str | None,
) -> ChannelProfile | None:
    """Load a channel with its subscription counts relative to `viewer_id`."""
    result = await session.execute(select(User).where(_eq(User.username, username)).limit(1))
    channel = result.scalar_one_or_none()
    if channel is None:
        return None

    subscribers_count = await session.scalar(
        select(func.count()).select_from(Subscription).where(_eq(Subscription.channel_id, channel.id))
    )
    subscribed_to_count = await session.scalar(
        select(func.count()).select_from(Subscription).where(_eq(Subscription.subscriber_id, channel.id))
    )

    is_subscribed = False
    if viewer_id is not None:
        subscription = await session.execute(
            select(Subscription).where(
                _eq(Subscription.channel_id, channel.id),
                _eq(Subscription.subscriber_id, viewer_id),
            )
        )
        is_subscribed = subscription.scalar_one_or_none() is not None

    return ChannelProfile(
        id=channel.id,
        username=channel.username,
        full_name=channel.full_name,
        email=channel.email,
        avatar=asset_ref_out(channel.avatar_url, channel.avatar_key),
        cover_image=asset_ref_out(channel.cover_image_url, channel.cover_image_key),
        subscribers_count=subscribers_count or 0,
        channel_subscribed_to_count=subscribed_to_count or 0,
        is_subscribed=is_subscribed,
    )


async def list_watch_history(session: AsyncSession, user_id: str) -> list[WatchedVideo]:
    """Return watched videos newest first, each joined with its owner."""
    watched_at_column = cast(Any, WatchHistoryEntry.watched_at)
    result = await session.execute(
        select(Video, User, watched_at_column)
        .join(WatchHistoryEntry, _eq(WatchHistoryEntry.video_id, Video.id))
        .join(User, _eq(User.id, Video.owner_id))
        .where(_eq(WatchHistoryEntry.user_id, user_id))
        .order_by(_desc(watched_at_column), _desc(Video.id))
    )

    history: list[WatchedVideo] = []
    for video, owner, watched_at in result.all():
        if video.id is None:
            continue
        history.append(
            WatchedVideo(
                id=video.id,
                title=video.title,
                description=video.description,
                video_url=video.video_url,
                thumbnail_url=video.thumbnail_url,
                duration=video.duration,
                views=video.views,
                created_at=video.created_at,
                watched_at=watched_at,
                owner=VideoOwner(
                    username=owner.username,
                    full_name=owner.full_name,
                    avatar=asset_ref_out(owner.avatar_url, owner.avatar_key),
                ),
            )
        )
    return history


async def record_watch(
    session: AsyncSession,
    *,
    user_id: str,
    video_id: int,
    watched_at: datetime | None = None,
) -> None:
    """Move `video_id` to the front of the user's watch history."""
    moment = watched_at or datetime.now(timezone.utc)
    entry = await session.get(WatchHistoryEntry, (user_id, video_id))
    if entry is None:
        entry = WatchHistoryEntry(user_id=user_id, video_id=video_id, watched_at=moment)
    else:
        entry.watched_at = moment
    session.add(entry)
    await session.commit()
