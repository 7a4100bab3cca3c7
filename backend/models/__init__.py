"""SQLModel models package."""

from .subscription import Subscription
from .user import User
from .video import Video
from .watch_history import WatchHistoryEntry

__all__ = [
    "User",
    "Subscription",
    "Video",
    "WatchHistoryEntry",
]
