"""
Uploaded file storage on local disk.

Files are validated by extension and declared content type, capped at
MAX_UPLOAD_BYTES, and stored under a generated name so client file names
never reach the filesystem. Only the stored name is persisted.
"""

import os
import secrets
import time
from pathlib import Path
from typing import Optional

from fastapi import HTTPException, UploadFile, status
from starlette.concurrency import run_in_threadpool

from guesthouse.core.config import Settings
from guesthouse.core.logging import get_logger
from guesthouse.core.metrics import uploads_rejected

logger = get_logger(__name__)

IMAGE_TYPES = {
    ".jpg": {"image/jpeg"},
    ".jpeg": {"image/jpeg"},
    ".png": {"image/png"},
    ".webp": {"image/webp"},
}

DOCUMENT_TYPES = {
    **IMAGE_TYPES,
    ".pdf": {"application/pdf"},
}

CHUNK_SIZE = 64 * 1024


def upload_dir(settings: Settings) -> Path:
    path = Path(settings.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def _reject(reason: str, detail: str, filename: Optional[str]) -> HTTPException:
    uploads_rejected.labels(reason=reason).inc()
    logger.warning("upload_rejected", reason=reason, filename=filename)
    return HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail=detail)


def _generate_name(extension: str) -> str:
    return f"{int(time.time() * 1000)}-{secrets.token_hex(6)}{extension}"


def _describe_size(limit: int) -> str:
    if limit >= 1024 * 1024:
        return f"{limit // (1024 * 1024)}MB"
    return f"{limit // 1024}KB"


def _write(path: Path, data: bytes) -> None:
    with open(path, "wb") as fh:
        fh.write(data)


async def save_upload(
    upload: Optional[UploadFile],
    settings: Settings,
    allowed: dict[str, set[str]] = IMAGE_TYPES,
) -> Optional[str]:
    """
    Validate and store an uploaded file; returns the stored file name, or
    None when no file was sent. Raises 400 for a bad type or size.
    """
    if upload is None or not upload.filename:
        return None

    extension = os.path.splitext(upload.filename)[1].lower()
    content_type = (upload.content_type or "").split(";")[0].strip().lower()
    if extension not in allowed or content_type not in allowed[extension]:
        kinds = ", ".join(sorted(ext.lstrip(".") for ext in allowed))
        raise _reject("type", f"Only {kinds} files are allowed", upload.filename)

    data = bytearray()
    while True:
        chunk = await upload.read(CHUNK_SIZE)
        if not chunk:
            break
        data.extend(chunk)
        if len(data) > settings.MAX_UPLOAD_BYTES:
            raise _reject("size", f"File too large (max {_describe_size(settings.MAX_UPLOAD_BYTES)})", upload.filename)

    if not data:
        raise _reject("empty", "Uploaded file is empty", upload.filename)

    name = _generate_name(extension)
    await run_in_threadpool(_write, upload_dir(settings) / name, bytes(data))
    logger.info("upload_stored", stored_as=name, size=len(data), content_type=content_type)
    return name


def resolve_upload(filename: str, settings: Settings) -> Optional[Path]:
    """Path of a stored upload, or None if absent or outside the upload dir."""
    root = Path(settings.UPLOAD_DIR).resolve()
    candidate = (root / filename).resolve()
    if root not in candidate.parents or not candidate.is_file():
        return None
    return candidate


def delete_uploads(filenames: list[Optional[str]], settings: Settings) -> None:
    """Best-effort removal of stored uploads; failures are logged only."""
    for name in filenames:
        if not name:
            continue
        path = resolve_upload(name, settings)
        if path is None:
            continue
        try:
            path.unlink()
            logger.info("upload_deleted", filename=name)
        except OSError as e:
            logger.warning("upload_delete_failed", filename=name, error=str(e))
