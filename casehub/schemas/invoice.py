from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field, model_validator


class InvoiceLineItemCreate(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    unit_price_cents: int = Field(..., ge=0)


class InvoiceCreate(BaseModel):
    vendor: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    issue_date: date
    due_date: date
    vat_rate: Optional[Decimal] = Field(None, ge=0, le=1, max_digits=5, decimal_places=4)
    line_items: List[InvoiceLineItemCreate] = Field(..., min_length=1)
    notes: Optional[str] = None
    document_key: Optional[str] = None
    # Optional client-computed totals; checked against the server's figures.
    subtotal_cents: Optional[int] = None
    vat_cents: Optional[int] = None
    total_cents: Optional[int] = None

    @model_validator(mode="after")
    def check_dates(self):
        if self.due_date < self.issue_date:
            raise ValueError("due_date cannot be before issue_date")
        return self


class InvoiceUpdate(InvoiceCreate):
    pass


class InvoiceStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)


class InvoicePayRequest(BaseModel):
    paid_date: Optional[date] = None
    payment_method: Optional[str] = Field(None, max_length=50)


class InvoiceLineItemResponse(BaseModel):
    id: str
    line_number: int
    description: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int

    model_config = {"from_attributes": True}


class InvoiceResponse(BaseModel):
    id: str
    invoice_number: str
    vendor: str
    description: Optional[str] = None
    status: str
    is_overdue: bool
    issue_date: str
    due_date: str
    subtotal_cents: int
    vat_rate: Decimal
    vat_cents: int
    total_cents: int
    paid_date: Optional[str] = None
    payment_method: Optional[str] = None
    notes: Optional[str] = None
    document_key: Optional[str] = None
    created_by: Optional[str] = None
    line_items: List[InvoiceLineItemResponse] = []
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
