# casehub/routes/files.py
import asyncio

from fastapi import APIRouter, Depends, HTTPException, UploadFile, File, status
import structlog

from casehub.config import settings
from casehub.errors import ValidationError
from casehub.middleware.auth import get_current_user
from casehub.schemas.document import FileUploadResponse, PresignedUrlResponse
from casehub.services.storage import storage

logger = structlog.get_logger()
router = APIRouter()

ALLOWED_EXTENSIONS = {
    "pdf", "doc", "docx", "xls", "xlsx", "ppt", "pptx", "txt", "png", "jpg", "jpeg",
}
PRESIGNED_URL_TTL = 3600


async def read_upload(file: UploadFile) -> bytes:
    """Read an upload after checking its extension and size."""
    filename = file.filename or ""
    ext = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""
    if ext not in ALLOWED_EXTENSIONS:
        raise ValidationError.for_field(
            "file", f"Unsupported file type '.{ext}'. Allowed: {', '.join(sorted(ALLOWED_EXTENSIONS))}"
        )

    file_bytes = await file.read()
    if len(file_bytes) > settings.MAX_UPLOAD_BYTES:
        raise HTTPException(
            status_code=status.HTTP_413_REQUEST_ENTITY_TOO_LARGE,
            detail=f"File too large. Max size: {settings.MAX_UPLOAD_BYTES // (1024 * 1024)} MB",
        )
    if not file_bytes:
        raise ValidationError.for_field("file", "File is empty")
    return file_bytes


async def store_upload(file: UploadFile, folder: str) -> FileUploadResponse:
    file_bytes = await read_upload(file)
    key = storage.build_key(folder, file.filename)
    content_type = file.content_type or "application/octet-stream"
    await asyncio.to_thread(storage.upload, file_bytes, key, content_type)
    return FileUploadResponse(
        file_key=key,
        original_name=file.filename,
        mime_type=content_type,
        size_bytes=len(file_bytes),
    )


@router.post("/upload", response_model=FileUploadResponse, status_code=status.HTTP_201_CREATED)
async def upload_file(
    file: UploadFile = File(...),
    current_user: dict = Depends(get_current_user),
):
    """Upload an attachment (receipt scan, invoice PDF, photo). Returns its key."""
    uploaded = await store_upload(file, "attachments")
    logger.info("file_uploaded", key=uploaded.file_key, user_id=current_user["user_id"])
    return uploaded


@router.get("/{file_key:path}", response_model=PresignedUrlResponse)
async def get_file_url(
    file_key: str,
    current_user: dict = Depends(get_current_user),
):
    """Get a presigned download URL for an uploaded attachment."""
    key = storage.extract_key(file_key)
    if not key or not key.startswith("attachments/"):
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Access denied")

    url = await asyncio.to_thread(storage.get_presigned_url, key, PRESIGNED_URL_TTL)
    return PresignedUrlResponse(url=url, expires_in=PRESIGNED_URL_TTL)
