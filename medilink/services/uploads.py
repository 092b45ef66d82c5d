"""
Prescription image uploads: gate on extension and declared MIME type, cap the
size, store under UPLOAD_DIR with a unique name and return the public URL.
"""
import logging
import os
import uuid
from pathlib import Path
from typing import Optional

from fastapi import UploadFile

from medilink.core import config
from medilink.core.errors import ValidationFailed

logger = logging.getLogger(__name__)

ALLOWED_EXTENSIONS = {".jpg", ".jpeg", ".png", ".gif", ".webp"}
ALLOWED_CONTENT_TYPES = {"image/jpeg", "image/jpg", "image/png", "image/gif", "image/webp"}
PUBLIC_PREFIX = "/uploads"


def _upload_dir() -> Path:
    path = Path(config.UPLOAD_DIR)
    path.mkdir(parents=True, exist_ok=True)
    return path


def validate_image(filename: Optional[str], content_type: Optional[str]) -> str:
    """Return the lower-cased extension if both extension and MIME type are accepted."""
    ext = os.path.splitext(filename or "")[1].lower()
    mime = (content_type or "").split(";")[0].strip().lower()
    if ext not in ALLOWED_EXTENSIONS or mime not in ALLOWED_CONTENT_TYPES:
        raise ValidationFailed("Only image files are allowed")
    return ext


async def save_prescription_image(upload: Optional[UploadFile]) -> str:
    if upload is None or not upload.filename:
        raise ValidationFailed("Prescription image is required")
    ext = validate_image(upload.filename, upload.content_type)

    data = await upload.read(config.MAX_UPLOAD_BYTES + 1)
    if len(data) > config.MAX_UPLOAD_BYTES:
        raise ValidationFailed(f"Image must be at most {config.MAX_UPLOAD_BYTES // (1024 * 1024)} MB")
    if not data:
        raise ValidationFailed("Prescription image is empty")

    name = f"{uuid.uuid4().hex}{ext}"
    path = _upload_dir() / name
    with open(path, "wb") as f:
        f.write(data)
    logger.info("prescription_stored", extra={"file": name, "bytes": len(data)})
    return f"{PUBLIC_PREFIX}/{name}"


def discard_prescription_image(image_url: str) -> None:
    """Remove a stored image whose order was never created."""
    name = image_url.rsplit("/", 1)[-1]
    path = Path(config.UPLOAD_DIR) / name
    path.unlink(missing_ok=True)
    logger.info("prescription_discarded", extra={"file": name})
