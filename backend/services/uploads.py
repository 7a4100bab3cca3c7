"""Local upload staging and the upload-then-commit workflow."""

from __future__ import annotations

import asyncio
import logging
import os
from collections.abc import Awaitable, Callable
from pathlib import Path
from uuid import uuid4

from fastapi import UploadFile

from .errors import AccountError, InternalError, InvalidInputError, PayloadTooLargeError, UploadFailedError
from .storage import AssetRef, AssetStore

logger = logging.getLogger(__name__)

UPLOAD_CHUNK_SIZE = 1024 * 1024
PersistFn = Callable[[AssetRef], Awaitable[None]]


async def stage_upload(upload: UploadFile, directory: str | Path, max_bytes: int) -> Path:
    """Stream an incoming upload to a uniquely named file under `directory`."""
    target_dir = Path(directory)
    target_dir.mkdir(parents=True, exist_ok=True)
    suffix = Path(upload.filename or "").suffix.lower()
    target = target_dir / f"{uuid4().hex}{suffix}"

    written = 0
    try:
        with target.open("wb") as file_handle:
            while chunk := await upload.read(UPLOAD_CHUNK_SIZE):
                written += len(chunk)
                if written > max_bytes:
                    raise PayloadTooLargeError(
                        f"Upload exceeds the maximum allowed size of {max_bytes} bytes"
                    )
                file_handle.write(chunk)
    except BaseException:
        discard_local_file(target)
        raise
    finally:
        await upload.close()
    return target


def discard_local_file(local_path: str | Path | None) -> None:
    """Remove a staged file; never raises."""
    if not local_path:
        return
    try:
        os.remove(local_path)
    except FileNotFoundError:
        return
    except OSError as exc:
        logger.warning(
            "Failed to remove staged upload",
            extra={"local_path": str(local_path)},
            exc_info=exc,
        )


async def discard_remote_asset(store: AssetStore, storage_key: str | None) -> bool:
    """Best-effort remote delete. Failures are logged and reported as False."""
    if not storage_key:
        return True
    try:
        await asyncio.to_thread(store.delete, storage_key)
    except Exception as exc:
        logger.warning(
            "Failed to delete remote asset",
            extra={"storage_key": storage_key},
            exc_info=exc,
        )
        return False
    return True


async def upload_local_file(
    store: AssetStore,
    local_path: str | Path,
    *,
    label: str,
    prefix: str,
) -> AssetRef:
    """Upload a staged file and always remove it from local disk afterwards."""
    try:
        ref = await asyncio.to_thread(store.upload, local_path, prefix=prefix)
    except Exception as exc:
        logger.warning(
            "Remote upload failed",
            extra={"label": label, "local_path": str(local_path)},
            exc_info=exc,
        )
        raise UploadFailedError(f"{label} upload error") from exc
    finally:
        discard_local_file(local_path)

    if ref is None or not ref.url or not ref.storage_key:
        raise UploadFailedError(f"{label} upload error")
    return ref


async def commit_asset(
    store: AssetStore,
    local_path: str | Path | None,
    *,
    previous: AssetRef | None = None,
    persist: PersistFn | None = None,
    label: str = "Asset",
    prefix: str = "uploads",
) -> AssetRef:
    """Upload `local_path`, persist the new reference, then drop `previous`.

    The staged file is gone when this returns, whatever the outcome. The old
    remote object is only deleted once the replacement is committed, and a
    failed delete is logged rather than failing the update.
    """
    if not local_path:
        raise InvalidInputError(f"{label} file is missing")

    ref = await upload_local_file(store, local_path, label=label, prefix=prefix)

    if persist is not None:
        try:
            await persist(ref)
        except Exception as exc:
            await discard_remote_asset(store, ref.storage_key)
            if isinstance(exc, AccountError):
                raise
            raise InternalError(f"Failed to save {label.lower()}") from exc

    if previous is not None and previous.storage_key and previous.storage_key != ref.storage_key:
        await discard_remote_asset(store, previous.storage_key)

    return ref
