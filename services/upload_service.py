import os
import uuid
from fastapi import UploadFile
from fastapi.concurrency import run_in_threadpool
from core.exceptions import ValidationError
from settings.config import settings
from utils.logger import get_logger

logger = get_logger("Upload_Service")

ALLOWED_CONTENT_TYPES = {
    "image/jpeg": ".jpg",
    "image/jpg": ".jpg",
    "image/png": ".png",
    "image/webp": ".webp",
}

def _write_file(path: str, data: bytes):
    with open(path, "wb") as f:
        f.write(data)

async def save_upload(file: UploadFile, upload_dir: str | None = None) -> dict:
    """Store an image under a random name and return its public URL."""
    if file is None or not file.filename:
        raise ValidationError("No file uploaded")
    extension = ALLOWED_CONTENT_TYPES.get((file.content_type or "").lower())
    if extension is None:
        raise ValidationError("Only JPEG, PNG and WebP images are allowed")

    # read one byte past the limit so oversized files are caught without loading them whole
    data = await file.read(settings.MAX_UPLOAD_BYTES + 1)
    if len(data) > settings.MAX_UPLOAD_BYTES:
        raise ValidationError(f"File too large (max {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB)")
    if not data:
        raise ValidationError("Uploaded file is empty")

    target_dir = upload_dir or settings.UPLOAD_DIR
    os.makedirs(target_dir, exist_ok=True)
    name = f"{uuid.uuid4().hex}{extension}"
    await run_in_threadpool(_write_file, os.path.join(target_dir, name), data)
    logger.info(f"Stored upload {file.filename} as {name} ({len(data)} bytes)")
    return {"url": f"{settings.UPLOAD_URL_PREFIX}/{name}"}
