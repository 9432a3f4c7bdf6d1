import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession

from casehub.database import get_db
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user
from casehub.middleware.authorization import require_roles
from casehub.models.inventory import InventoryItem
from casehub.schemas.common import PaginatedResponse, build_pagination
from casehub.schemas.inventory import (
    InventoryCreate,
    InventoryUpdate,
    InventoryResponse,
    StockAdjustment,
)
from casehub.services import stock_service

router = APIRouter()


def _to_response(item: InventoryItem) -> InventoryResponse:
    return InventoryResponse(
        id=str(item.id),
        item_name=item.item_name,
        description=item.description,
        category=item.category,
        quantity=item.quantity,
        min_stock=item.min_stock,
        max_stock=item.max_stock,
        unit_price_cents=item.unit_price_cents,
        supplier=item.supplier,
        location=item.location,
        sku=item.sku,
        stock_status=stock_service.classify_stock(item.quantity, item.min_stock, item.max_stock),
        is_active=item.is_active,
        created_at=item.created_at.isoformat() if item.created_at else "",
        updated_at=item.updated_at.isoformat() if item.updated_at else "",
    )


@router.get("", response_model=PaginatedResponse[InventoryResponse])
async def list_inventory(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    category: str = Query(None),
    low_stock: bool = Query(False),
    search: str = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    filters = [InventoryItem.is_active == True]  # noqa: E712
    if category:
        filters.append(InventoryItem.category == category)
    if low_stock:
        filters.append(InventoryItem.quantity <= InventoryItem.min_stock)
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(InventoryItem.item_name).like(pattern),
                func.lower(InventoryItem.description).like(pattern),
                func.lower(InventoryItem.sku).like(pattern),
            )
        )

    total = (await db.execute(select(func.count(InventoryItem.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(InventoryItem)
        .where(*filters)
        .order_by(InventoryItem.item_name)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [_to_response(i) for i in result.scalars().all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{item_id}", response_model=InventoryResponse)
async def get_inventory_item(
    item_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _to_response(await stock_service.get_item(db, item_id))


@router.post("", response_model=InventoryResponse, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    body: InventoryCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("create", "inventory")),
    db: AsyncSession = Depends(get_db),
):
    item = await stock_service.create_item(db, **body.model_dump())
    await db.refresh(item)
    trail.record(item.id, body)
    return _to_response(item)


@router.put("/{item_id}", response_model=InventoryResponse)
async def update_inventory_item(
    item_id: uuid.UUID,
    body: InventoryUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("update", "inventory")),
    db: AsyncSession = Depends(get_db),
):
    item = await stock_service.update_item(db, item_id, body.model_dump(exclude_unset=True))
    await db.refresh(item)
    trail.record(item.id, body)
    return _to_response(item)


@router.patch("/{item_id}/stock", response_model=InventoryResponse)
async def adjust_stock(
    item_id: uuid.UUID,
    body: StockAdjustment,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("stock_update", "inventory")),
    db: AsyncSession = Depends(get_db),
):
    item = await stock_service.apply_stock_change(db, item_id, body.quantity, body.operation)
    trail.record(item.id, body.model_dump())
    return _to_response(item)


@router.delete("/{item_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_inventory_item(
    item_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("delete", "inventory")),
    db: AsyncSession = Depends(get_db),
):
    await stock_service.deactivate_item(db, item_id)
    trail.record(item_id)
