from typing import Dict, List, Optional

from pydantic import BaseModel


class SearchHit(BaseModel):
    id: str
    type: str
    title: str
    subtitle: Optional[str] = None


class SearchResponse(BaseModel):
    query: str
    total: int
    results: Dict[str, List[SearchHit]]


class DashboardCounts(BaseModel):
    total_staff: int
    total_mentees: int
    active_mentees: int
    total_documents: int
    pending_invoices: int
    overdue_invoices: int
    outstanding_invoice_cents: int
    pending_receipts: int
    low_stock_items: int


class RecentItem(BaseModel):
    id: str
    title: str
    subtitle: Optional[str] = None
    created_at: str


class RecentActivity(BaseModel):
    new_mentees: List[RecentItem] = []
    new_documents: List[RecentItem] = []
    pending_invoices: List[RecentItem] = []


class DashboardStats(BaseModel):
    stats: DashboardCounts
    recent_activity: RecentActivity
