import uuid
from datetime import datetime

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.config import settings
from casehub.database import get_db
from casehub.errors import NotFoundError, ValidationError
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user, current_user_id
from casehub.middleware.authorization import require_roles
from casehub.models.invoice import Invoice, InvoiceLineItem
from casehub.schemas.common import PaginatedResponse, build_pagination
from casehub.schemas.invoice import (
    InvoiceCreate,
    InvoiceUpdate,
    InvoiceStatusUpdate,
    InvoicePayRequest,
    InvoiceResponse,
    InvoiceLineItemResponse,
)
from casehub.services import financial_service
from casehub.services.financial_service import INVOICE_STATUSES, LineInput, is_overdue
from casehub.services.money import line_total_cents

logger = structlog.get_logger()
router = APIRouter()


def _line_to_response(li: InvoiceLineItem) -> InvoiceLineItemResponse:
    return InvoiceLineItemResponse(
        id=str(li.id),
        line_number=li.line_number,
        description=li.description,
        quantity=li.quantity,
        unit_price_cents=li.unit_price_cents,
        line_total_cents=line_total_cents(li.quantity, li.unit_price_cents),
    )


def _to_response(inv: Invoice, line_items: list[InvoiceLineItem]) -> InvoiceResponse:
    return InvoiceResponse(
        id=str(inv.id),
        invoice_number=inv.invoice_number,
        vendor=inv.vendor,
        description=inv.description,
        status=inv.status,
        is_overdue=is_overdue(inv.status, inv.due_date),
        issue_date=inv.issue_date.isoformat(),
        due_date=inv.due_date.isoformat(),
        subtotal_cents=inv.subtotal_cents,
        vat_rate=inv.vat_rate,
        vat_cents=inv.vat_cents,
        total_cents=inv.total_cents,
        paid_date=inv.paid_date.isoformat() if inv.paid_date else None,
        payment_method=inv.payment_method,
        notes=inv.notes,
        document_key=inv.document_key,
        created_by=str(inv.created_by) if inv.created_by else None,
        line_items=[_line_to_response(li) for li in line_items],
        created_at=inv.created_at.isoformat() if inv.created_at else "",
        updated_at=inv.updated_at.isoformat() if inv.updated_at else "",
    )


def _lines(body: InvoiceCreate) -> list[LineInput]:
    return [
        LineInput(
            description=li.description,
            quantity=li.quantity,
            unit_price_cents=li.unit_price_cents,
        )
        for li in body.line_items
    ]


def _submitted_totals(body: InvoiceCreate) -> dict:
    return {
        "subtotal_cents": body.subtotal_cents,
        "vat_cents": body.vat_cents,
        "total_cents": body.total_cents,
    }


async def _respond(db: AsyncSession, inv: Invoice) -> InvoiceResponse:
    await db.refresh(inv)
    line_items = await financial_service.get_invoice_lines(db, inv.id)
    return _to_response(inv, line_items)


@router.get("", response_model=PaginatedResponse[InvoiceResponse])
async def list_invoices(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    inv_status: str = Query(None, alias="status"),
    vendor: str = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    q = select(Invoice)
    count_q = select(func.count(Invoice.id))

    if inv_status == "overdue":
        today = datetime.utcnow().date()
        cond = (Invoice.status == "pending") & (Invoice.due_date < today)
        q = q.where(cond)
        count_q = count_q.where(cond)
    elif inv_status:
        if inv_status not in INVOICE_STATUSES:
            raise ValidationError.for_field("status", f"Unknown invoice status '{inv_status}'")
        q = q.where(Invoice.status == inv_status)
        count_q = count_q.where(Invoice.status == inv_status)
    if vendor:
        pattern = f"%{vendor.lower()}%"
        q = q.where(func.lower(Invoice.vendor).like(pattern))
        count_q = count_q.where(func.lower(Invoice.vendor).like(pattern))

    total = (await db.execute(count_q)).scalar() or 0
    result = await db.execute(
        q.order_by(Invoice.created_at.desc()).offset((page - 1) * limit).limit(limit)
    )
    invoices = result.scalars().all()

    lines_by_invoice = await financial_service.get_invoice_lines_by_invoice(db, [inv.id for inv in invoices])
    items = [_to_response(inv, lines_by_invoice[inv.id]) for inv in invoices]

    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{invoice_id}", response_model=InvoiceResponse)
async def get_invoice(
    invoice_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    result = await db.execute(select(Invoice).where(Invoice.id == invoice_id))
    inv = result.scalar_one_or_none()
    if not inv:
        raise NotFoundError("Invoice not found")

    line_items = await financial_service.get_invoice_lines(db, inv.id)
    return _to_response(inv, line_items)


@router.post("", response_model=InvoiceResponse, status_code=status.HTTP_201_CREATED)
async def create_invoice(
    body: InvoiceCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("create", "invoice")),
    db: AsyncSession = Depends(get_db),
):
    inv = await financial_service.create_invoice(
        db,
        vendor=body.vendor,
        issue_date=body.issue_date,
        due_date=body.due_date,
        lines=_lines(body),
        vat_rate=body.vat_rate if body.vat_rate is not None else settings.DEFAULT_VAT_RATE,
        created_by=current_user_id(current_user),
        description=body.description,
        notes=body.notes,
        document_key=body.document_key,
        submitted=_submitted_totals(body),
    )
    trail.record(inv.id, body)
    return await _respond(db, inv)


@router.put("/{invoice_id}", response_model=InvoiceResponse)
async def update_invoice(
    invoice_id: uuid.UUID,
    body: InvoiceUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("update", "invoice")),
    db: AsyncSession = Depends(get_db),
):
    inv = await financial_service.update_invoice(
        db,
        invoice_id,
        vendor=body.vendor,
        issue_date=body.issue_date,
        due_date=body.due_date,
        lines=_lines(body),
        vat_rate=body.vat_rate if body.vat_rate is not None else settings.DEFAULT_VAT_RATE,
        description=body.description,
        notes=body.notes,
        document_key=body.document_key,
        submitted=_submitted_totals(body),
    )
    trail.record(inv.id, body)
    return await _respond(db, inv)


@router.patch("/{invoice_id}/status", response_model=InvoiceResponse)
async def update_invoice_status(
    invoice_id: uuid.UUID,
    body: InvoiceStatusUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("status_change", "invoice")),
    db: AsyncSession = Depends(get_db),
):
    inv = await financial_service.transition_invoice(
        db,
        invoice_id,
        body.status,
        paid_date=body.paid_date,
        payment_method=body.payment_method,
    )
    trail.record(inv.id, body)
    return await _respond(db, inv)


@router.patch("/{invoice_id}/pay", response_model=InvoiceResponse)
async def pay_invoice(
    invoice_id: uuid.UUID,
    body: InvoicePayRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("pay", "invoice")),
    db: AsyncSession = Depends(get_db),
):
    inv = await financial_service.transition_invoice(
        db,
        invoice_id,
        "paid",
        paid_date=body.paid_date,
        payment_method=body.payment_method,
    )
    trail.record(inv.id, body)
    return await _respond(db, inv)


@router.delete("/{invoice_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_invoice(
    invoice_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    trail: AuditTrail = Depends(audit_action("delete", "invoice")),
    db: AsyncSession = Depends(get_db),
):
    await financial_service.delete_invoice(db, invoice_id)
    trail.record(invoice_id)
