import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from casehub.config import settings
from casehub.database import get_db
from casehub.errors import NotFoundError, ValidationError
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user, current_user_id
from casehub.middleware.authorization import require_roles
from casehub.models.receipt import Receipt, ReceiptLineItem
from casehub.schemas.common import PaginatedResponse, build_pagination
from casehub.schemas.receipt import (
    ReceiptCreate,
    ReceiptUpdate,
    ReceiptStatusUpdate,
    ReceiptResponse,
    ReceiptLineItemResponse,
)
from casehub.services import financial_service
from casehub.services.financial_service import RECEIPT_STATUSES, LineInput
from casehub.services.money import line_total_cents

router = APIRouter()


def _line_to_response(li: ReceiptLineItem) -> ReceiptLineItemResponse:
    return ReceiptLineItemResponse(
        id=str(li.id),
        line_number=li.line_number,
        description=li.description,
        quantity=li.quantity,
        unit_price_cents=li.unit_price_cents,
        line_total_cents=line_total_cents(li.quantity, li.unit_price_cents),
        taxable=li.taxable,
    )


def _to_response(r: Receipt, line_items: list[ReceiptLineItem]) -> ReceiptResponse:
    return ReceiptResponse(
        id=str(r.id),
        receipt_number=r.receipt_number,
        vendor=r.vendor,
        receipt_date=r.receipt_date.isoformat(),
        category=r.category,
        description=r.description,
        status=r.status,
        subtotal_cents=r.subtotal_cents,
        tax_rate=r.tax_rate,
        tax_cents=r.tax_cents,
        total_cents=r.total_cents,
        document_key=r.document_key,
        uploaded_by=str(r.uploaded_by) if r.uploaded_by else None,
        decided_by=str(r.decided_by) if r.decided_by else None,
        decided_at=r.decided_at.isoformat() if r.decided_at else None,
        line_items=[_line_to_response(li) for li in line_items],
        created_at=r.created_at.isoformat() if r.created_at else "",
        updated_at=r.updated_at.isoformat() if r.updated_at else "",
    )


def _lines(body: ReceiptCreate) -> list[LineInput]:
    return [
        LineInput(
            description=li.description,
            quantity=li.quantity,
            unit_price_cents=li.unit_price_cents,
            taxable=li.taxable,
        )
        for li in body.line_items
    ]


def _submitted_totals(body: ReceiptCreate) -> dict:
    return {
        "subtotal_cents": body.subtotal_cents,
        "tax_cents": body.tax_cents,
        "total_cents": body.total_cents,
    }


async def _respond(db: AsyncSession, r: Receipt) -> ReceiptResponse:
    await db.refresh(r)
    line_items = await financial_service.get_receipt_lines(db, r.id)
    return _to_response(r, line_items)


@router.get("", response_model=PaginatedResponse[ReceiptResponse])
async def list_receipts(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    receipt_status: str = Query(None, alias="status"),
    category: str = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    q = select(Receipt)
    count_q = select(func.count(Receipt.id))

    if receipt_status:
        if receipt_status not in RECEIPT_STATUSES:
            raise ValidationError.for_field("status", f"Unknown receipt status '{receipt_status}'")
        q = q.where(Receipt.status == receipt_status)
        count_q = count_q.where(Receipt.status == receipt_status)
    if category:
        q = q.where(Receipt.category == category)
        count_q = count_q.where(Receipt.category == category)

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Receipt.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )

    receipts = result.scalars().all()
    lines_by_receipt = await financial_service.get_receipt_lines_by_receipt(db, [r.id for r in receipts])
    items = [_to_response(r, lines_by_receipt[r.id]) for r in receipts]

    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{receipt_id}", response_model=ReceiptResponse)
async def get_receipt(
    receipt_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Receipt).where(Receipt.id == receipt_id))
    r = result.scalar_one_or_none()
    if not r:
        raise NotFoundError("Receipt not found")

    line_items = await financial_service.get_receipt_lines(db, r.id)
    return _to_response(r, line_items)


@router.post("", response_model=ReceiptResponse, status_code=status.HTTP_201_CREATED)
async def create_receipt(
    body: ReceiptCreate,
    current_user: dict = Depends(get_current_user),
    trail: AuditTrail = Depends(audit_action("create", "receipt")),
    db: AsyncSession = Depends(get_db),
):
    """Any authenticated staff member may submit a receipt for approval."""
    r = await financial_service.create_receipt(
        db,
        vendor=body.vendor,
        receipt_date=body.receipt_date,
        category=body.category,
        lines=_lines(body),
        tax_rate=body.tax_rate if body.tax_rate is not None else settings.DEFAULT_VAT_RATE,
        uploaded_by=current_user_id(current_user),
        description=body.description,
        document_key=body.document_key,
        submitted=_submitted_totals(body),
    )
    trail.record(r.id, body)
    return await _respond(db, r)


@router.put("/{receipt_id}", response_model=ReceiptResponse)
async def update_receipt(
    receipt_id: uuid.UUID,
    body: ReceiptUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("update", "receipt")),
    db: AsyncSession = Depends(get_db),
):
    r = await financial_service.update_receipt(
        db,
        receipt_id,
        vendor=body.vendor,
        receipt_date=body.receipt_date,
        category=body.category,
        lines=_lines(body),
        tax_rate=body.tax_rate if body.tax_rate is not None else settings.DEFAULT_VAT_RATE,
        description=body.description,
        document_key=body.document_key,
        submitted=_submitted_totals(body),
    )
    trail.record(r.id, body)
    return await _respond(db, r)


@router.patch("/{receipt_id}/status", response_model=ReceiptResponse)
async def update_receipt_status(
    receipt_id: uuid.UUID,
    body: ReceiptStatusUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("status_change", "receipt")),
    db: AsyncSession = Depends(get_db),
):
    r = await financial_service.decide_receipt(
        db, receipt_id, body.status, decided_by=current_user_id(current_user)
    )
    trail.record(r.id, body)
    return await _respond(db, r)
