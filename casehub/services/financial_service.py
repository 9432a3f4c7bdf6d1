"""
Financial document service: invoice/receipt totals, numbering, status machines.

Totals are always recomputed from the line items in integer cents. Invoices
apply VAT to the whole subtotal; receipts apply tax only to taxable lines.

All functions use the caller's session (no commit). get_db() auto-commits,
so a document and its line items land in one transaction.
"""

import secrets
import uuid
from dataclasses import dataclass
from datetime import date, datetime
from decimal import Decimal
from typing import Optional, Sequence

from sqlalchemy import delete, select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.errors import (
    ConflictError,
    InvalidTransitionError,
    NotFoundError,
    ValidationError,
)
from casehub.models.invoice import Invoice, InvoiceLineItem
from casehub.models.receipt import Receipt, ReceiptLineItem
from casehub.services.money import apply_rate, line_total_cents

logger = structlog.get_logger()

INVOICE_PREFIX = "INV"
RECEIPT_PREFIX = "RCP"

INVOICE_STATUSES = ("pending", "approved", "rejected", "paid", "cancelled")
RECEIPT_STATUSES = ("pending", "approved", "rejected")

INVOICE_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"approved", "rejected", "paid", "cancelled"}),
    "approved": frozenset({"paid"}),
    "rejected": frozenset(),
    "paid": frozenset(),
    "cancelled": frozenset(),
}

RECEIPT_TRANSITIONS: dict[str, frozenset[str]] = {
    "pending": frozenset({"approved", "rejected"}),
    "approved": frozenset(),
    "rejected": frozenset(),
}


@dataclass(frozen=True)
class LineInput:
    description: str
    quantity: int
    unit_price_cents: int
    taxable: bool = True


@dataclass(frozen=True)
class DocumentTotals:
    subtotal_cents: int
    taxable_subtotal_cents: int
    tax_cents: int
    total_cents: int


# ---------- pure computation ----------

def _validate_lines(lines: Sequence[LineInput]) -> None:
    if not lines:
        raise ValidationError.for_field("line_items", "At least one line item is required")
    problems = []
    for idx, line in enumerate(lines):
        if not line.description or not line.description.strip():
            problems.append({"field": f"line_items.{idx}.description", "message": "Description is required"})
        if line.quantity < 1:
            problems.append({"field": f"line_items.{idx}.quantity", "message": "Quantity must be at least 1"})
        if line.unit_price_cents < 0:
            problems.append({"field": f"line_items.{idx}.unit_price_cents", "message": "Unit price cannot be negative"})
    if problems:
        raise ValidationError("Invalid line items", details=problems)


def _validate_rate(rate: Decimal, field: str) -> None:
    if rate < 0 or rate > 1:
        raise ValidationError.for_field(field, "Rate must be between 0 and 1")


def compute_invoice_totals(lines: Sequence[LineInput], vat_rate: Decimal) -> DocumentTotals:
    """VAT is charged on the full subtotal."""
    _validate_lines(lines)
    _validate_rate(vat_rate, "vat_rate")
    subtotal = sum(line_total_cents(li.quantity, li.unit_price_cents) for li in lines)
    vat = apply_rate(subtotal, vat_rate)
    return DocumentTotals(
        subtotal_cents=subtotal,
        taxable_subtotal_cents=subtotal,
        tax_cents=vat,
        total_cents=subtotal + vat,
    )


def compute_receipt_totals(lines: Sequence[LineInput], tax_rate: Decimal) -> DocumentTotals:
    """Tax is charged only on lines flagged taxable."""
    _validate_lines(lines)
    _validate_rate(tax_rate, "tax_rate")
    subtotal = 0
    taxable_subtotal = 0
    for li in lines:
        amount = line_total_cents(li.quantity, li.unit_price_cents)
        subtotal += amount
        if li.taxable:
            taxable_subtotal += amount
    tax = apply_rate(taxable_subtotal, tax_rate)
    return DocumentTotals(
        subtotal_cents=subtotal,
        taxable_subtotal_cents=taxable_subtotal,
        tax_cents=tax,
        total_cents=subtotal + tax,
    )


def verify_submitted_totals(
    totals: DocumentTotals,
    tax_field: str,
    subtotal_cents: Optional[int] = None,
    tax_cents: Optional[int] = None,
    total_cents: Optional[int] = None,
) -> None:
    """Reject client-supplied totals that disagree with the line items."""
    submitted = {
        "subtotal_cents": (subtotal_cents, totals.subtotal_cents),
        tax_field: (tax_cents, totals.tax_cents),
        "total_cents": (total_cents, totals.total_cents),
    }
    problems = [
        {"field": field, "message": f"Expected {expected}, got {given}"}
        for field, (given, expected) in submitted.items()
        if given is not None and given != expected
    ]
    if problems:
        raise ValidationError("Submitted totals do not match line items", details=problems)


def check_transition(
    machine: dict[str, frozenset[str]], entity: str, current: str, requested: str
) -> None:
    if requested not in machine:
        raise ValidationError.for_field("status", f"Unknown {entity} status '{requested}'")
    if requested not in machine.get(current, frozenset()):
        raise InvalidTransitionError(entity, current, requested)


def is_overdue(status: str, due_date: Optional[date], today: Optional[date] = None) -> bool:
    """Overdue is derived, never stored: a pending invoice past its due date."""
    if status != "pending" or due_date is None:
        return False
    return due_date < (today or datetime.utcnow().date())


def generate_document_number(prefix: str, now: Optional[datetime] = None) -> str:
    now = now or datetime.utcnow()
    return f"{prefix}-{now:%Y%m%d}-{secrets.token_hex(3).upper()}"


# ---------- invoices ----------

async def get_invoice_lines(session: AsyncSession, invoice_id: uuid.UUID) -> list[InvoiceLineItem]:
    result = await session.execute(
        select(InvoiceLineItem)
        .where(InvoiceLineItem.invoice_id == invoice_id)
        .order_by(InvoiceLineItem.line_number)
    )
    return list(result.scalars().all())


async def get_invoice_lines_by_invoice(
    session: AsyncSession, invoice_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, list[InvoiceLineItem]]:
    """Line items for a page of invoices, loaded in one query."""
    grouped: dict[uuid.UUID, list[InvoiceLineItem]] = {invoice_id: [] for invoice_id in invoice_ids}
    if not grouped:
        return grouped
    result = await session.execute(
        select(InvoiceLineItem)
        .where(InvoiceLineItem.invoice_id.in_(list(grouped)))
        .order_by(InvoiceLineItem.invoice_id, InvoiceLineItem.line_number)
    )
    for line in result.scalars().all():
        grouped[line.invoice_id].append(line)
    return grouped


async def _lock_invoice(session: AsyncSession, invoice_id: uuid.UUID) -> Invoice:
    result = await session.execute(
        select(Invoice).where(Invoice.id == invoice_id).with_for_update()
    )
    inv = result.scalar_one_or_none()
    if not inv:
        raise NotFoundError("Invoice not found")
    return inv


def _add_invoice_lines(session: AsyncSession, invoice_id: uuid.UUID, lines: Sequence[LineInput]) -> None:
    for idx, li in enumerate(lines, start=1):
        session.add(InvoiceLineItem(
            invoice_id=invoice_id,
            line_number=idx,
            description=li.description.strip(),
            quantity=li.quantity,
            unit_price_cents=li.unit_price_cents,
        ))


async def _ensure_number_free(session: AsyncSession, column, number: str) -> None:
    existing = await session.execute(select(column).where(column == number))
    if existing.scalar_one_or_none() is not None:
        raise ConflictError(f"Document number '{number}' already exists")


async def create_invoice(
    session: AsyncSession,
    *,
    vendor: str,
    issue_date: date,
    due_date: date,
    lines: Sequence[LineInput],
    vat_rate: Decimal,
    created_by: Optional[uuid.UUID] = None,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    document_key: Optional[str] = None,
    submitted: Optional[dict] = None,
) -> Invoice:
    totals = compute_invoice_totals(lines, vat_rate)
    verify_submitted_totals(totals, "vat_cents", **_submitted(submitted, "vat_cents"))

    invoice_number = generate_document_number(INVOICE_PREFIX)
    await _ensure_number_free(session, Invoice.invoice_number, invoice_number)

    inv = Invoice(
        invoice_number=invoice_number,
        vendor=vendor.strip(),
        description=description,
        status="pending",
        issue_date=issue_date,
        due_date=due_date,
        subtotal_cents=totals.subtotal_cents,
        vat_rate=vat_rate,
        vat_cents=totals.tax_cents,
        total_cents=totals.total_cents,
        notes=notes,
        document_key=document_key,
        created_by=created_by,
    )
    session.add(inv)
    await session.flush()

    _add_invoice_lines(session, inv.id, lines)
    await session.flush()

    logger.info(
        "invoice_created",
        invoice_id=str(inv.id),
        invoice_number=invoice_number,
        total_cents=totals.total_cents,
    )
    return inv


async def update_invoice(
    session: AsyncSession,
    invoice_id: uuid.UUID,
    *,
    vendor: str,
    issue_date: date,
    due_date: date,
    lines: Sequence[LineInput],
    vat_rate: Decimal,
    description: Optional[str] = None,
    notes: Optional[str] = None,
    document_key: Optional[str] = None,
    submitted: Optional[dict] = None,
) -> Invoice:
    """Replace an invoice's header and line items wholesale."""
    totals = compute_invoice_totals(lines, vat_rate)
    verify_submitted_totals(totals, "vat_cents", **_submitted(submitted, "vat_cents"))

    inv = await _lock_invoice(session, invoice_id)
    if inv.status != "pending":
        raise ConflictError(f"Only pending invoices can be edited (status is '{inv.status}')")

    await session.execute(
        delete(InvoiceLineItem).where(InvoiceLineItem.invoice_id == inv.id)
    )
    _add_invoice_lines(session, inv.id, lines)

    inv.vendor = vendor.strip()
    inv.description = description
    inv.issue_date = issue_date
    inv.due_date = due_date
    inv.vat_rate = vat_rate
    inv.subtotal_cents = totals.subtotal_cents
    inv.vat_cents = totals.tax_cents
    inv.total_cents = totals.total_cents
    inv.notes = notes
    if document_key is not None:
        inv.document_key = document_key
    await session.flush()

    logger.info("invoice_updated", invoice_id=str(inv.id), total_cents=totals.total_cents)
    return inv


async def transition_invoice(
    session: AsyncSession,
    invoice_id: uuid.UUID,
    new_status: str,
    paid_date: Optional[date] = None,
    payment_method: Optional[str] = None,
) -> Invoice:
    """Move an invoice along its status machine under a row lock."""
    inv = await _lock_invoice(session, invoice_id)
    previous = inv.status
    check_transition(INVOICE_TRANSITIONS, "invoice", previous, new_status)

    inv.status = new_status
    if new_status == "paid":
        inv.paid_date = paid_date or datetime.utcnow().date()
        if payment_method:
            inv.payment_method = payment_method
    await session.flush()

    logger.info(
        "invoice_status_changed",
        invoice_id=str(inv.id),
        from_status=previous,
        to_status=new_status,
    )
    return inv


async def delete_invoice(session: AsyncSession, invoice_id: uuid.UUID) -> None:
    inv = await _lock_invoice(session, invoice_id)
    if inv.status not in ("pending", "cancelled"):
        raise ConflictError(f"Cannot delete an invoice in '{inv.status}' status")
    await session.execute(
        delete(InvoiceLineItem).where(InvoiceLineItem.invoice_id == inv.id)
    )
    await session.delete(inv)
    await session.flush()
    logger.info("invoice_deleted", invoice_id=str(invoice_id))


# ---------- receipts ----------

async def get_receipt_lines(session: AsyncSession, receipt_id: uuid.UUID) -> list[ReceiptLineItem]:
    result = await session.execute(
        select(ReceiptLineItem)
        .where(ReceiptLineItem.receipt_id == receipt_id)
        .order_by(ReceiptLineItem.line_number)
    )
    return list(result.scalars().all())


async def get_receipt_lines_by_receipt(
    session: AsyncSession, receipt_ids: Sequence[uuid.UUID]
) -> dict[uuid.UUID, list[ReceiptLineItem]]:
    grouped: dict[uuid.UUID, list[ReceiptLineItem]] = {receipt_id: [] for receipt_id in receipt_ids}
    if not grouped:
        return grouped
    result = await session.execute(
        select(ReceiptLineItem)
        .where(ReceiptLineItem.receipt_id.in_(list(grouped)))
        .order_by(ReceiptLineItem.receipt_id, ReceiptLineItem.line_number)
    )
    for line in result.scalars().all():
        grouped[line.receipt_id].append(line)
    return grouped


async def _lock_receipt(session: AsyncSession, receipt_id: uuid.UUID) -> Receipt:
    result = await session.execute(
        select(Receipt).where(Receipt.id == receipt_id).with_for_update()
    )
    receipt = result.scalar_one_or_none()
    if not receipt:
        raise NotFoundError("Receipt not found")
    return receipt


def _add_receipt_lines(session: AsyncSession, receipt_id: uuid.UUID, lines: Sequence[LineInput]) -> None:
    for idx, li in enumerate(lines, start=1):
        session.add(ReceiptLineItem(
            receipt_id=receipt_id,
            line_number=idx,
            description=li.description.strip(),
            quantity=li.quantity,
            unit_price_cents=li.unit_price_cents,
            taxable=li.taxable,
        ))


async def create_receipt(
    session: AsyncSession,
    *,
    vendor: str,
    receipt_date: date,
    category: str,
    lines: Sequence[LineInput],
    tax_rate: Decimal,
    uploaded_by: Optional[uuid.UUID] = None,
    description: Optional[str] = None,
    document_key: Optional[str] = None,
    submitted: Optional[dict] = None,
) -> Receipt:
    totals = compute_receipt_totals(lines, tax_rate)
    verify_submitted_totals(totals, "tax_cents", **_submitted(submitted, "tax_cents"))

    receipt_number = generate_document_number(RECEIPT_PREFIX)
    await _ensure_number_free(session, Receipt.receipt_number, receipt_number)

    receipt = Receipt(
        receipt_number=receipt_number,
        vendor=vendor.strip(),
        receipt_date=receipt_date,
        category=category.strip(),
        description=description,
        status="pending",
        subtotal_cents=totals.subtotal_cents,
        tax_rate=tax_rate,
        tax_cents=totals.tax_cents,
        total_cents=totals.total_cents,
        document_key=document_key,
        uploaded_by=uploaded_by,
    )
    session.add(receipt)
    await session.flush()

    _add_receipt_lines(session, receipt.id, lines)
    await session.flush()

    logger.info(
        "receipt_created",
        receipt_id=str(receipt.id),
        receipt_number=receipt_number,
        total_cents=totals.total_cents,
    )
    return receipt


async def update_receipt(
    session: AsyncSession,
    receipt_id: uuid.UUID,
    *,
    vendor: str,
    receipt_date: date,
    category: str,
    lines: Sequence[LineInput],
    tax_rate: Decimal,
    description: Optional[str] = None,
    document_key: Optional[str] = None,
    submitted: Optional[dict] = None,
) -> Receipt:
    """Replace a receipt's header and line items. Status is left untouched."""
    totals = compute_receipt_totals(lines, tax_rate)
    verify_submitted_totals(totals, "tax_cents", **_submitted(submitted, "tax_cents"))

    receipt = await _lock_receipt(session, receipt_id)
    if receipt.status != "pending":
        raise ConflictError(f"Only pending receipts can be edited (status is '{receipt.status}')")

    await session.execute(
        delete(ReceiptLineItem).where(ReceiptLineItem.receipt_id == receipt.id)
    )
    _add_receipt_lines(session, receipt.id, lines)

    receipt.vendor = vendor.strip()
    receipt.receipt_date = receipt_date
    receipt.category = category.strip()
    receipt.description = description
    receipt.tax_rate = tax_rate
    receipt.subtotal_cents = totals.subtotal_cents
    receipt.tax_cents = totals.tax_cents
    receipt.total_cents = totals.total_cents
    if document_key is not None:
        receipt.document_key = document_key
    await session.flush()

    logger.info("receipt_updated", receipt_id=str(receipt.id), total_cents=totals.total_cents)
    return receipt


async def decide_receipt(
    session: AsyncSession,
    receipt_id: uuid.UUID,
    new_status: str,
    decided_by: Optional[uuid.UUID] = None,
) -> Receipt:
    """Approve or reject a pending receipt. Decisions are final."""
    receipt = await _lock_receipt(session, receipt_id)
    previous = receipt.status
    check_transition(RECEIPT_TRANSITIONS, "receipt", previous, new_status)

    receipt.status = new_status
    receipt.decided_by = decided_by
    receipt.decided_at = datetime.utcnow()
    await session.flush()

    logger.info(
        "receipt_status_changed",
        receipt_id=str(receipt.id),
        from_status=previous,
        to_status=new_status,
    )
    return receipt


def _submitted(submitted: Optional[dict], tax_field: str) -> dict:
    submitted = submitted or {}
    return {
        "subtotal_cents": submitted.get("subtotal_cents"),
        "tax_cents": submitted.get(tax_field),
        "total_cents": submitted.get("total_cents"),
    }
