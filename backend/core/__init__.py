"""Core configuration and security primitives."""

from .config import Settings, settings
from .logging_config import configure_logging
from .security import (
    access_token_ttl,
    create_access_token,
    create_refresh_token,
    decode_token,
    hash_password,
    needs_rehash,
    refresh_token_ttl,
    verify_password,
)

__all__ = [
    "Settings",
    "settings",
    "configure_logging",
    "access_token_ttl",
    "create_access_token",
    "create_refresh_token",
    "decode_token",
    "hash_password",
    "needs_rehash",
    "refresh_token_ttl",
    "verify_password",
]
