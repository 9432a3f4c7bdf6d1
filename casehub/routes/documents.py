import asyncio
import uuid
from typing import Optional

from fastapi import APIRouter, Depends, File, Form, Query, UploadFile, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.database import get_db
from casehub.errors import AuthorizationError, NotFoundError, ValidationError
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user, current_user_id
from casehub.middleware.authorization import is_owner_or_manager, require_roles
from casehub.models.document import Document, DOCUMENT_CATEGORIES
from casehub.routes.files import PRESIGNED_URL_TTL, store_upload
from casehub.schemas.common import PaginatedResponse, build_pagination
from casehub.schemas.document import DocumentResponse, DocumentUpdate, PresignedUrlResponse
from casehub.services.storage import storage

logger = structlog.get_logger()
router = APIRouter()


def _to_response(d: Document) -> DocumentResponse:
    return DocumentResponse(
        id=str(d.id),
        title=d.title,
        file_key=d.file_key,
        original_name=d.original_name,
        mime_type=d.mime_type,
        size_bytes=d.size_bytes,
        category=d.category,
        uploaded_by=str(d.uploaded_by) if d.uploaded_by else None,
        is_public=d.is_public,
        tags=d.tags or [],
        description=d.description,
        created_at=d.created_at.isoformat() if d.created_at else "",
        updated_at=d.updated_at.isoformat() if d.updated_at else "",
    )


async def _get_document(db: AsyncSession, document_id: uuid.UUID) -> Document:
    doc = (await db.execute(select(Document).where(Document.id == document_id))).scalar_one_or_none()
    if not doc:
        raise NotFoundError("Document not found")
    return doc


def _parse_tags(raw: Optional[str]) -> list[str]:
    if not raw:
        return []
    return [t.strip() for t in raw.split(",") if t.strip()]


@router.get("", response_model=PaginatedResponse[DocumentResponse])
async def list_documents(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(None),
    category: str = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    filters = []
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(Document.title).like(pattern),
                func.lower(Document.original_name).like(pattern),
            )
        )
    if category:
        filters.append(Document.category == category)

    total = (await db.execute(select(func.count(Document.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Document)
        .where(*filters)
        .order_by(Document.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [_to_response(d) for d in result.scalars().all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.post("", response_model=DocumentResponse, status_code=status.HTTP_201_CREATED)
async def upload_document(
    file: UploadFile = File(...),
    title: str = Form(..., min_length=1, max_length=255),
    category: str = Form("other"),
    is_public: bool = Form(False),
    tags: Optional[str] = Form(None),
    description: Optional[str] = Form(None),
    current_user: dict = Depends(get_current_user),
    trail: AuditTrail = Depends(audit_action("upload", "document")),
    db: AsyncSession = Depends(get_db),
):
    if category not in DOCUMENT_CATEGORIES:
        raise ValidationError.for_field(
            "category", f"Category must be one of {', '.join(DOCUMENT_CATEGORIES)}"
        )

    uploaded = await store_upload(file, "documents")
    doc = Document(
        title=title.strip(),
        file_key=uploaded.file_key,
        original_name=uploaded.original_name or uploaded.file_key,
        mime_type=uploaded.mime_type,
        size_bytes=uploaded.size_bytes,
        category=category,
        uploaded_by=current_user_id(current_user),
        is_public=is_public,
        tags=_parse_tags(tags),
        description=description,
    )
    db.add(doc)
    await db.flush()
    await db.refresh(doc)

    logger.info("document_uploaded", document_id=str(doc.id), key=doc.file_key)
    trail.record(doc.id, {"title": doc.title, "category": category, "is_public": is_public})
    return _to_response(doc)


@router.get("/{document_id}/download", response_model=PresignedUrlResponse)
async def download_document(
    document_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(db, document_id)
    if not doc.is_public and not is_owner_or_manager(current_user, doc.uploaded_by):
        raise AuthorizationError("Access denied")

    url = await asyncio.to_thread(storage.get_presigned_url, doc.file_key, PRESIGNED_URL_TTL)
    return PresignedUrlResponse(url=url, expires_in=PRESIGNED_URL_TTL)


@router.put("/{document_id}", response_model=DocumentResponse)
async def update_document(
    document_id: uuid.UUID,
    body: DocumentUpdate,
    current_user: dict = Depends(get_current_user),
    trail: AuditTrail = Depends(audit_action("update", "document")),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(db, document_id)
    if not is_owner_or_manager(current_user, doc.uploaded_by):
        raise AuthorizationError("Access denied")

    for field, value in body.model_dump(exclude_unset=True).items():
        setattr(doc, field, value)
    await db.flush()
    await db.refresh(doc)

    trail.record(doc.id, body)
    return _to_response(doc)


@router.delete("/{document_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_document(
    document_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("delete", "document")),
    db: AsyncSession = Depends(get_db),
):
    doc = await _get_document(db, document_id)
    await asyncio.to_thread(storage.delete, doc.file_key)
    await db.delete(doc)
    await db.flush()

    logger.info("document_deleted", document_id=str(document_id))
    trail.record(document_id)
