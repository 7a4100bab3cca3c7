"""HTTP cookie transport for issued token pairs."""

from __future__ import annotations

from typing import Literal

from fastapi import Response

from core import settings

from .token_store import TokenPair

ACCESS_COOKIE = "access_token"
REFRESH_COOKIE = "refresh_token"
COOKIE_PATH = "/"
COOKIE_SAMESITE: Literal["lax", "strict", "none"] = "lax"


def cookies_are_secure() -> bool:
    """Secure cookies everywhere except local/test or when explicitly allowed."""
    if settings.allow_insecure_http_cookies:
        return False
    return settings.app_env.strip().lower() not in {"local", "test"}


def set_token_cookies(response: Response, tokens: TokenPair) -> None:
    """Attach both tokens as HTTP-only cookies that expire with the tokens."""
    secure = cookies_are_secure()
    for key, value, max_age in (
        (ACCESS_COOKIE, tokens.access_token, tokens.access_expires_in),
        (REFRESH_COOKIE, tokens.refresh_token, tokens.refresh_expires_in),
    ):
        response.set_cookie(
            key=key,
            value=value,
            httponly=True,
            secure=secure,
            samesite=COOKIE_SAMESITE,
            max_age=max_age,
            path=COOKIE_PATH,
        )


def clear_token_cookies(response: Response) -> None:
    secure = cookies_are_secure()
    for key in (ACCESS_COOKIE, REFRESH_COOKIE):
        response.delete_cookie(
            key=key,
            path=COOKIE_PATH,
            secure=secure,
            httponly=True,
            samesite=COOKIE_SAMESITE,
        )
