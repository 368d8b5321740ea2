"""Supabase Storage access for course PDFs, payment receipts and CVs.

Objects are stored under a random name that keeps the original file
extension. Names are never reused, so re-uploading a receipt leaves the
previous object in place.
"""

import uuid
from dataclasses import dataclass

from fastapi import UploadFile
from supabase import Client

from .config import Settings
from .errors import WorkflowValidationError, store_call
from .logging_config import get_logger

logger = get_logger("ethiolearn.storage")


@dataclass
class Upload:
    """A file received from a client, fully read into memory."""

    filename: str
    content: bytes
    content_type: str | None = None

    @property
    def size(self) -> int:
        return len(self.content)


async def read_upload(file: UploadFile | None, settings: Settings) -> Upload | None:
    """Read a multipart upload, enforcing the configured size limit.

    Returns None when no file (or an empty file) was sent.
    """
    if file is None or not file.filename:
        return None
    content = await file.read(settings.max_upload_bytes + 1)
    if len(content) > settings.max_upload_bytes:
        raise WorkflowValidationError(
            f"File too large (max {settings.max_upload_bytes // (1024 * 1024)} MB)"
        )
    if not content:
        return None
    return Upload(filename=file.filename, content=content, content_type=file.content_type)


def generate_object_name(filename: str) -> str:
    """Return ``<uuid4 hex>.<ext>`` for an uploaded file name."""
    stem = uuid.uuid4().hex
    _, dot, ext = filename.rpartition(".")
    if not dot or not ext or "/" in ext:
        return stem
    return f"{stem}.{ext.lower()}"


async def upload_blob(db: Client, bucket: str, upload: Upload) -> str:
    """Upload a file under a fresh unique name and return that name."""
    name = generate_object_name(upload.filename)
    file_options = {"content-type": upload.content_type} if upload.content_type else None

    with store_call(f"upload {bucket}/{name}"):
        if file_options:
            db.storage.from_(bucket).upload(name, upload.content, file_options)
        else:
            db.storage.from_(bucket).upload(name, upload.content)

    logger.info(f"Uploaded blob | bucket={bucket} | name={name} | bytes={upload.size}")
    return name


async def download_blob(db: Client, bucket: str, name: str) -> bytes:
    """Download an object by name."""
    with store_call(f"download {bucket}/{name}"):
        data = db.storage.from_(bucket).download(name)
    logger.info(f"Downloaded blob | bucket={bucket} | name={name}")
    return data
