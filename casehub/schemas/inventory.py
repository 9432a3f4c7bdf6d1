from typing import Literal, Optional

from pydantic import BaseModel, Field, field_validator


class InventoryCreate(BaseModel):
    item_name: str = Field(..., min_length=1, max_length=255)
    description: Optional[str] = None
    category: str = Field(..., min_length=1, max_length=100)
    quantity: int = Field(0, ge=0)
    min_stock: int = Field(5, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    unit_price_cents: Optional[int] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    sku: Optional[str] = Field(None, min_length=1, max_length=64)


class InventoryUpdate(BaseModel):
    """Descriptive fields only; quantity moves through the stock endpoint."""

    item_name: Optional[str] = Field(None, min_length=1, max_length=255)
    description: Optional[str] = None
    category: Optional[str] = Field(None, min_length=1, max_length=100)
    min_stock: Optional[int] = Field(None, ge=0)
    max_stock: Optional[int] = Field(None, ge=0)
    unit_price_cents: Optional[int] = Field(None, ge=0)
    supplier: Optional[str] = Field(None, max_length=255)
    location: Optional[str] = Field(None, max_length=255)
    sku: Optional[str] = Field(None, min_length=1, max_length=64)

    model_config = {"extra": "forbid"}

    @field_validator("item_name", "category", "min_stock", "sku")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class StockAdjustment(BaseModel):
    quantity: int = Field(..., ge=0, strict=True)
    operation: Literal["set", "add", "subtract"]


class InventoryResponse(BaseModel):
    id: str
    item_name: str
    description: Optional[str] = None
    category: str
    quantity: int
    min_stock: int
    max_stock: Optional[int] = None
    unit_price_cents: Optional[int] = None
    supplier: Optional[str] = None
    location: Optional[str] = None
    sku: str
    stock_status: str
    is_active: bool
    created_at: str
    updated_at: str
