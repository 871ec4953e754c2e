"""Multipart upload intake: stores one uploaded file per request on disk."""

from __future__ import annotations

from dataclasses import dataclass
import logging
from pathlib import Path
import shutil
import uuid

from fastapi import UploadFile

logger = logging.getLogger(__name__)

NO_FILE_MESSAGE = "No file uploaded"


@dataclass
class UploadedFile:
    path: Path
    original_filename: str
    size: int

    @property
    def filename(self) -> str:
        return self.path.name


def store_upload(upload: UploadFile, uploads_dir: Path) -> UploadedFile:
    """
    Copy an uploaded file to a unique path under `uploads_dir`.

    The caller owns the returned file and must `discard` it when done. A
    failed copy leaves nothing behind.
    """
    path = uploads_dir / uuid.uuid4().hex
    try:
        with path.open("wb") as out:
            shutil.copyfileobj(upload.file, out)
        size = path.stat().st_size
    except OSError:
        path.unlink(missing_ok=True)
        raise
    logger.debug("Stored upload %r at %s (%d bytes)", upload.filename, path, size)
    return UploadedFile(path=path, original_filename=upload.filename or "", size=size)


def discard(uploaded: UploadedFile) -> None:
    """Delete a stored upload; failures are logged and never raised."""
    try:
        uploaded.path.unlink()
    except OSError as exc:
        logger.warning("Failed to delete temporary upload %s: %s", uploaded.path, exc)
