"""
Stock service: quantity adjustments and stock-level classification.

Adjustments are a single UPDATE whose new quantity is evaluated by the
database (``quantity + :n`` etc.), so concurrent adjustments on one item
serialize on the row and never lose an update.
"""

import secrets
import uuid
from datetime import datetime
from typing import Optional

from sqlalchemy import case, select, update
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.errors import ConflictError, NotFoundError, ValidationError
from casehub.models.inventory import InventoryItem

logger = structlog.get_logger()

STOCK_OPERATIONS = ("set", "add", "subtract")

OUT_OF_STOCK = "out-of-stock"
LOW_STOCK = "low-stock"
OVERSTOCK = "overstock"
IN_STOCK = "in-stock"


def classify_stock(quantity: int, min_stock: int, max_stock: Optional[int] = None) -> str:
    if quantity <= 0:
        return OUT_OF_STOCK
    if quantity <= min_stock:
        return LOW_STOCK
    if max_stock is not None and quantity >= max_stock:
        return OVERSTOCK
    return IN_STOCK


def validate_stock_request(requested_quantity: int, operation: str) -> None:
    if operation not in STOCK_OPERATIONS:
        raise ValidationError.for_field(
            "operation", f"Operation must be one of {', '.join(STOCK_OPERATIONS)}"
        )
    if (
        isinstance(requested_quantity, bool)
        or not isinstance(requested_quantity, int)
        or requested_quantity < 0
    ):
        raise ValidationError.for_field("quantity", "Quantity must be a non-negative integer")


def compute_new_quantity(current: int, requested_quantity: int, operation: str) -> int:
    validate_stock_request(requested_quantity, operation)
    if operation == "set":
        return requested_quantity
    if operation == "add":
        return current + requested_quantity
    return max(0, current - requested_quantity)


def quantity_expression(requested_quantity: int, operation: str):
    """SQL expression for the new quantity, evaluated against the stored row."""
    validate_stock_request(requested_quantity, operation)
    if operation == "set":
        return requested_quantity
    if operation == "add":
        return InventoryItem.quantity + requested_quantity
    return case(
        (InventoryItem.quantity > requested_quantity, InventoryItem.quantity - requested_quantity),
        else_=0,
    )


async def apply_stock_change(
    session: AsyncSession,
    item_id: uuid.UUID,
    requested_quantity: int,
    operation: str,
) -> InventoryItem:
    stmt = (
        update(InventoryItem)
        .where(InventoryItem.id == item_id)
        .values(
            quantity=quantity_expression(requested_quantity, operation),
            updated_at=datetime.utcnow(),
        )
        .returning(InventoryItem.quantity)
        .execution_options(synchronize_session=False)
    )
    result = await session.execute(stmt)
    new_quantity = result.scalar_one_or_none()
    if new_quantity is None:
        raise NotFoundError("Inventory item not found")

    item = (
        await session.execute(
            select(InventoryItem)
            .where(InventoryItem.id == item_id)
            .execution_options(populate_existing=True)
        )
    ).scalar_one()

    logger.info(
        "stock_adjusted",
        item_id=str(item_id),
        operation=operation,
        requested=requested_quantity,
        quantity=new_quantity,
        stock_status=classify_stock(item.quantity, item.min_stock, item.max_stock),
    )
    return item


def generate_sku() -> str:
    return f"SKU-{secrets.token_hex(4).upper()}"


def _check_stock_bounds(min_stock: int, max_stock: Optional[int]) -> None:
    if max_stock is not None and max_stock < min_stock:
        raise ValidationError.for_field("max_stock", "max_stock cannot be lower than min_stock")


async def _ensure_sku_free(
    session: AsyncSession, sku: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    q = select(InventoryItem.id).where(InventoryItem.sku == sku)
    if exclude_id is not None:
        q = q.where(InventoryItem.id != exclude_id)
    if (await session.execute(q)).scalar_one_or_none() is not None:
        raise ConflictError(f"SKU '{sku}' already exists")


async def create_item(session: AsyncSession, **fields) -> InventoryItem:
    """Create an inventory item, generating a SKU when none is given."""
    quantity = fields.get("quantity", 0)
    min_stock = fields.get("min_stock", 5)
    if quantity < 0:
        raise ValidationError.for_field("quantity", "Quantity must be a non-negative integer")
    if min_stock < 0:
        raise ValidationError.for_field("min_stock", "Minimum stock must be a non-negative integer")
    _check_stock_bounds(min_stock, fields.get("max_stock"))

    sku = fields.pop("sku", None) or generate_sku()
    await _ensure_sku_free(session, sku)

    item = InventoryItem(sku=sku, **fields)
    session.add(item)
    await session.flush()

    logger.info("inventory_item_created", item_id=str(item.id), sku=sku)
    return item


async def get_item(session: AsyncSession, item_id: uuid.UUID) -> InventoryItem:
    result = await session.execute(select(InventoryItem).where(InventoryItem.id == item_id))
    item = result.scalar_one_or_none()
    if not item:
        raise NotFoundError("Inventory item not found")
    return item


_REQUIRED_ITEM_FIELDS = ("item_name", "category", "min_stock", "sku")


async def update_item(session: AsyncSession, item_id: uuid.UUID, changes: dict) -> InventoryItem:
    """Update descriptive fields. Quantity only moves through apply_stock_change."""
    if "quantity" in changes:
        raise ValidationError.for_field("quantity", "Use the stock endpoint to change quantity")
    for field in _REQUIRED_ITEM_FIELDS:
        if field in changes and changes[field] is None:
            raise ValidationError.for_field(field, f"{field} cannot be null")

    item = await get_item(session, item_id)
    min_stock = changes.get("min_stock", item.min_stock)
    max_stock = changes["max_stock"] if "max_stock" in changes else item.max_stock
    _check_stock_bounds(min_stock, max_stock)

    if changes.get("sku") and changes["sku"] != item.sku:
        await _ensure_sku_free(session, changes["sku"], exclude_id=item.id)

    for field, value in changes.items():
        setattr(item, field, value)
    await session.flush()

    logger.info("inventory_item_updated", item_id=str(item.id), fields=sorted(changes))
    return item


async def deactivate_item(session: AsyncSession, item_id: uuid.UUID) -> InventoryItem:
    item = await get_item(session, item_id)
    item.is_active = False
    await session.flush()
    logger.info("inventory_item_deactivated", item_id=str(item.id))
    return item
