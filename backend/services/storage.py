"""MinIO-backed remote asset store."""

from __future__ import annotations

import mimetypes
from dataclasses import dataclass
from functools import lru_cache
from pathlib import Path
from typing import Protocol
from uuid import uuid4

from minio import Minio
from minio.error import S3Error

from core import settings

DEFAULT_CONTENT_TYPE = "application/octet-stream"
MISSING_OBJECT_CODES = frozenset({"NoSuchKey", "NoSuchObject", "ResourceNotFound"})


@dataclass(frozen=True)
class AssetRef:
    """Location of an uploaded media object: public URL plus storage key."""

    url: str
    storage_key: str


class AssetStore(Protocol):
    def upload(self, local_path: str | Path, *, prefix: str = "uploads") -> AssetRef: ...

    def delete(self, storage_key: str) -> None: ...


@lru_cache
def get_minio_client() -> Minio:
    """Return a cached MinIO client configured from settings."""
    return Minio(
        settings.minio_endpoint,
        access_key=settings.minio_access_key,
        secret_key=settings.minio_secret_key,
        secure=settings.minio_secure,
    )


def ensure_bucket(client: Minio | None = None) -> None:
    """Ensure the configured bucket exists."""
    client = client or get_minio_client()
    bucket_name = settings.minio_bucket

    if client.bucket_exists(bucket_name):  # pragma: no cover - network call
        return

    try:
        client.make_bucket(bucket_name)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - handle race conditions
        allowed_codes = {"BucketAlreadyOwnedByYou", "BucketAlreadyExists"}
        if exc.code not in allowed_codes:
            raise


def delete_object(object_key: str, client: Minio | None = None) -> None:
    """Delete an object from the configured bucket when it exists."""
    client = client or get_minio_client()
    try:
        client.remove_object(settings.minio_bucket, object_key)  # pragma: no cover - network call
    except S3Error as exc:  # pragma: no cover - network call
        if exc.code not in MISSING_OBJECT_CODES:
            raise


def build_object_key(local_path: str | Path, *, prefix: str) -> str:
    suffix = Path(local_path).suffix.lower()
    normalized_prefix = prefix.strip().strip("/") or "uploads"
    return f"{normalized_prefix}/{uuid4().hex}{suffix}"


def build_object_url(object_key: str) -> str:
    base_url = settings.minio_public_base_url.rstrip("/")
    return f"{base_url}/{settings.minio_bucket}/{object_key}"


class MinioAssetStore:
    """Uploads local files to the configured bucket and deletes them by key."""

    def __init__(self, client: Minio | None = None) -> None:
        self._client = client
        self._bucket_checked = False

    @property
    def client(self) -> Minio:
        if self._client is None:
            self._client = get_minio_client()
        return self._client

    def upload(self, local_path: str | Path, *, prefix: str = "uploads") -> AssetRef:
        if not self._bucket_checked:
            ensure_bucket(self.client)
            self._bucket_checked = True

        object_key = build_object_key(local_path, prefix=prefix)
        content_type, _ = mimetypes.guess_type(str(local_path))
        self.client.fput_object(
            settings.minio_bucket,
            object_key,
            str(local_path),
            content_type=content_type or DEFAULT_CONTENT_TYPE,
        )
        return AssetRef(url=build_object_url(object_key), storage_key=object_key)

    def delete(self, storage_key: str) -> None:
        delete_object(storage_key, self.client)
