"""Federated search across the main entity tables."""

from fastapi import APIRouter, Depends, Query
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from casehub.database import get_db
from casehub.middleware.auth import get_current_user
from casehub.models.document import Document
from casehub.models.inventory import InventoryItem
from casehub.models.invoice import Invoice
from casehub.models.mentee import Mentee
from casehub.models.receipt import Receipt
from casehub.models.staff import Staff
from casehub.schemas.dashboard import SearchHit, SearchResponse

router = APIRouter()

RESULTS_PER_TYPE = 10


def _matches(pattern: str, *columns):
    return or_(*(func.lower(col).like(pattern) for col in columns))


@router.get("", response_model=SearchResponse)
async def search(
    q: str = Query(..., min_length=1, max_length=100),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    pattern = f"%{q.strip().lower()}%"
    results: dict[str, list[SearchHit]] = {}

    mentees = await db.execute(
        select(Mentee)
        .where(_matches(pattern, Mentee.first_name, Mentee.last_name, Mentee.email))
        .limit(RESULTS_PER_TYPE)
    )
    results["mentees"] = [
        SearchHit(id=str(m.id), type="mentee", title=f"{m.first_name} {m.last_name}", subtitle=m.status)
        for m in mentees.scalars().all()
    ]

    staff = await db.execute(
        select(Staff)
        .where(_matches(pattern, Staff.first_name, Staff.last_name, Staff.email))
        .limit(RESULTS_PER_TYPE)
    )
    results["staff"] = [
        SearchHit(id=str(s.id), type="staff", title=f"{s.first_name} {s.last_name}", subtitle=s.role)
        for s in staff.scalars().all()
    ]

    documents = await db.execute(
        select(Document).where(_matches(pattern, Document.title)).limit(RESULTS_PER_TYPE)
    )
    results["documents"] = [
        SearchHit(id=str(d.id), type="document", title=d.title, subtitle=d.category)
        for d in documents.scalars().all()
    ]

    invoices = await db.execute(
        select(Invoice)
        .where(_matches(pattern, Invoice.invoice_number, Invoice.vendor, Invoice.description))
        .limit(RESULTS_PER_TYPE)
    )
    results["invoices"] = [
        SearchHit(id=str(i.id), type="invoice", title=i.invoice_number, subtitle=i.vendor)
        for i in invoices.scalars().all()
    ]

    receipts = await db.execute(
        select(Receipt)
        .where(_matches(
            pattern, Receipt.receipt_number, Receipt.vendor, Receipt.category, Receipt.description
        ))
        .limit(RESULTS_PER_TYPE)
    )
    results["receipts"] = [
        SearchHit(id=str(r.id), type="receipt", title=r.receipt_number, subtitle=r.vendor)
        for r in receipts.scalars().all()
    ]

    inventory = await db.execute(
        select(InventoryItem)
        .where(
            InventoryItem.is_active == True,  # noqa: E712
            _matches(
                pattern,
                InventoryItem.item_name,
                InventoryItem.description,
                InventoryItem.category,
                InventoryItem.supplier,
                InventoryItem.sku,
            ),
        )
        .limit(RESULTS_PER_TYPE)
    )
    results["inventory"] = [
        SearchHit(id=str(i.id), type="inventory", title=i.item_name, subtitle=i.sku)
        for i in inventory.scalars().all()
    ]

    return SearchResponse(
        query=q,
        total=sum(len(hits) for hits in results.values()),
        results=results,
    )
