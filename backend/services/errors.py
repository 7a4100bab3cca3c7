"""Typed failures raised by account services.

Every error carries the HTTP status it maps to and a message that is safe to
show to the client. The application renders them through one exception
handler, so routes never build error responses themselves.
"""

from __future__ import annotations

from fastapi import status


class AccountError(Exception):
    status_code: int = status.HTTP_500_INTERNAL_SERVER_ERROR
    default_detail = "Something went wrong"

    def __init__(self, detail: str | None = None) -> None:
        self.detail = detail or self.default_detail
        super().__init__(self.detail)


class InvalidInputError(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Invalid input"


class PayloadTooLargeError(InvalidInputError):
    status_code = 413
    default_detail = "Upload exceeds the maximum allowed size"


class ConflictError(AccountError):
    status_code = status.HTTP_409_CONFLICT
    default_detail = "User with that username or email already exists"


class NotFoundError(AccountError):
    status_code = status.HTTP_404_NOT_FOUND
    default_detail = "Not found"


class UnauthorizedError(AccountError):
    status_code = status.HTTP_401_UNAUTHORIZED
    default_detail = "Unauthorized request"


class UploadFailedError(AccountError):
    status_code = status.HTTP_400_BAD_REQUEST
    default_detail = "Upload failed"


class InternalError(AccountError):
    pass


__all__ = [
    "AccountError",
    "InvalidInputError",
    "PayloadTooLargeError",
    "ConflictError",
    "NotFoundError",
    "UnauthorizedError",
    "UploadFailedError",
    "InternalError",
]
