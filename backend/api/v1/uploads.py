"""Multipart upload staging shared by the auth and user routes."""

from __future__ import annotations

from pathlib import Path

from fastapi import UploadFile

from core import settings
from services import discard_local_file, stage_upload


async def stage_optional_upload(upload: UploadFile | None) -> Path | None:
    if upload is None or not upload.filename:
        return None
    return await stage_upload(upload, settings.upload_temp_dir, settings.upload_max_bytes)


async def stage_uploads(*uploads: UploadFile | None) -> list[Path | None]:
    """Stage several uploads; on any failure nothing staged is left behind."""
    staged: list[Path | None] = []
    try:
        for upload in uploads:
            staged.append(await stage_optional_upload(upload))
    except BaseException:
        for path in staged:
            discard_local_file(path)
        raise
    return staged
