"""Business logic services."""

from .accounts import AccountService, RegistrationFields, UserPublic
from .errors import (
    AccountError,
    ConflictError,
    InternalError,
    InvalidInputError,
    NotFoundError,
    PayloadTooLargeError,
    UnauthorizedError,
    UploadFailedError,
)
from .storage import (
    AssetRef,
    AssetStore,
    MinioAssetStore,
    delete_object,
    ensure_bucket,
    get_minio_client,
)
from .uploads import commit_asset, discard_local_file, stage_upload

__all__ = [
    "AccountService",
    "RegistrationFields",
    "UserPublic",
    "AccountError",
    "ConflictError",
    "InternalError",
    "InvalidInputError",
    "NotFoundError",
    "PayloadTooLargeError",
    "UnauthorizedError",
    "UploadFailedError",
    "AssetRef",
    "AssetStore",
    "MinioAssetStore",
    "delete_object",
    "ensure_bucket",
    "get_minio_client",
    "commit_asset",
    "discard_local_file",
    "stage_upload",
]
