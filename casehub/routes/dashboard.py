from datetime import datetime

from fastapi import APIRouter, Depends
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from casehub.database import get_db
from casehub.middleware.auth import get_current_user
from casehub.models.document import Document
from casehub.models.inventory import InventoryItem
from casehub.models.invoice import Invoice
from casehub.models.mentee import Mentee
from casehub.models.receipt import Receipt
from casehub.models.staff import Staff
from casehub.schemas.dashboard import DashboardCounts, DashboardStats, RecentActivity, RecentItem

router = APIRouter()

RECENT_LIMIT = 5


async def _count(db: AsyncSession, q) -> int:
    return (await db.execute(q)).scalar() or 0


@router.get("/stats", response_model=DashboardStats)
async def get_dashboard_stats(
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    today = datetime.utcnow().date()
    open_invoice = Invoice.status.in_(["pending", "approved"])

    counts = DashboardCounts(
        total_staff=await _count(
            db, select(func.count(Staff.id)).where(Staff.is_active == True)  # noqa: E712
        ),
        total_mentees=await _count(db, select(func.count(Mentee.id))),
        active_mentees=await _count(
            db, select(func.count(Mentee.id)).where(Mentee.status == "active")
        ),
        total_documents=await _count(db, select(func.count(Document.id))),
        pending_invoices=await _count(
            db, select(func.count(Invoice.id)).where(Invoice.status == "pending")
        ),
        overdue_invoices=await _count(
            db,
            select(func.count(Invoice.id)).where(
                Invoice.status == "pending", Invoice.due_date < today
            ),
        ),
        outstanding_invoice_cents=await _count(
            db, select(func.coalesce(func.sum(Invoice.total_cents), 0)).where(open_invoice)
        ),
        pending_receipts=await _count(
            db, select(func.count(Receipt.id)).where(Receipt.status == "pending")
        ),
        low_stock_items=await _count(
            db,
            select(func.count(InventoryItem.id)).where(
                InventoryItem.is_active == True,  # noqa: E712
                InventoryItem.quantity <= InventoryItem.min_stock,
            ),
        ),
    )

    mentees = await db.execute(
        select(Mentee).order_by(Mentee.created_at.desc()).limit(RECENT_LIMIT)
    )
    documents = await db.execute(
        select(Document).order_by(Document.created_at.desc()).limit(RECENT_LIMIT)
    )
    invoices = await db.execute(
        select(Invoice)
        .where(Invoice.status == "pending")
        .order_by(Invoice.issue_date.desc())
        .limit(RECENT_LIMIT)
    )

    recent = RecentActivity(
        new_mentees=[
            RecentItem(
                id=str(m.id),
                title=f"{m.first_name} {m.last_name}",
                subtitle=m.status,
                created_at=m.created_at.isoformat() if m.created_at else "",
            )
            for m in mentees.scalars().all()
        ],
        new_documents=[
            RecentItem(
                id=str(d.id),
                title=d.title,
                subtitle=d.category,
                created_at=d.created_at.isoformat() if d.created_at else "",
            )
            for d in documents.scalars().all()
        ],
        pending_invoices=[
            RecentItem(
                id=str(i.id),
                title=i.vendor,
                subtitle=i.invoice_number,
                created_at=i.created_at.isoformat() if i.created_at else "",
            )
            for i in invoices.scalars().all()
        ],
    )

    return DashboardStats(stats=counts, recent_activity=recent)
