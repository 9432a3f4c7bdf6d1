from datetime import date
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, Field


class ReceiptLineItemCreate(BaseModel):
    description: str = Field(..., min_length=1)
    quantity: int = Field(..., ge=1)
    unit_price_cents: int = Field(..., ge=0)
    taxable: bool = True


class ReceiptCreate(BaseModel):
    vendor: str = Field(..., min_length=1, max_length=255)
    receipt_date: date
    category: str = Field(..., min_length=1, max_length=100)
    description: Optional[str] = None
    tax_rate: Optional[Decimal] = Field(None, ge=0, le=1, max_digits=5, decimal_places=4)
    line_items: List[ReceiptLineItemCreate] = Field(..., min_length=1)
    document_key: Optional[str] = None
    subtotal_cents: Optional[int] = None
    tax_cents: Optional[int] = None
    total_cents: Optional[int] = None


class ReceiptUpdate(ReceiptCreate):
    pass


class ReceiptStatusUpdate(BaseModel):
    status: str = Field(..., min_length=1)


class ReceiptLineItemResponse(BaseModel):
    id: str
    line_number: int
    description: str
    quantity: int
    unit_price_cents: int
    line_total_cents: int
    taxable: bool

    model_config = {"from_attributes": True}


class ReceiptResponse(BaseModel):
    id: str
    receipt_number: str
    vendor: str
    receipt_date: str
    category: str
    description: Optional[str] = None
    status: str
    subtotal_cents: int
    tax_rate: Decimal
    tax_cents: int
    total_cents: int
    document_key: Optional[str] = None
    uploaded_by: Optional[str] = None
    decided_by: Optional[str] = None
    decided_at: Optional[str] = None
    line_items: List[ReceiptLineItemResponse] = []
    created_at: str
    updated_at: str

    model_config = {"from_attributes": True}
