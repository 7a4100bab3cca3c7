"""Authentication domain services."""

from .cookies import (
    ACCESS_COOKIE,
    REFRESH_COOKIE,
    clear_token_cookies,
    cookies_are_secure,
    set_token_cookies,
)
from .identity_resolution import (
    email_taken_by_other,
    find_login_user,
    normalize_email,
    normalize_username,
    registration_conflict_exists,
)
from .token_store import (
    TokenPair,
    hash_refresh_token,
    issue_token_pair,
    refresh_token_matches,
    revoke_refresh_token,
    rotate_refresh_token,
)

__all__ = [
    "ACCESS_COOKIE",
    "REFRESH_COOKIE",
    "clear_token_cookies",
    "cookies_are_secure",
    "set_token_cookies",
    "email_taken_by_other",
    "find_login_user",
    "normalize_email",
    "normalize_username",
    "registration_conflict_exists",
    "TokenPair",
    "hash_refresh_token",
    "issue_token_pair",
    "refresh_token_matches",
    "revoke_refresh_token",
    "rotate_refresh_token",
]
