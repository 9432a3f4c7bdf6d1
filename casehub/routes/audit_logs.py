import csv
import io
import uuid
from datetime import date, datetime
from typing import Optional

from fastapi import APIRouter, Depends, Query, Response
from sqlalchemy import select, func
from sqlalchemy.ext.asyncio import AsyncSession

from casehub.database import get_db
from casehub.middleware.auth import get_current_user
from casehub.middleware.authorization import require_roles
from casehub.models.audit_log import AuditLog
from casehub.schemas.audit_log import AuditLogResponse
from casehub.schemas.common import PaginatedResponse, build_pagination

router = APIRouter()

EXPORT_ROW_LIMIT = 10_000


def _filters(
    action: Optional[str],
    resource: Optional[str],
    resource_id: Optional[str],
    actor_id: Optional[uuid.UUID],
    from_date: Optional[date],
    to_date: Optional[date],
) -> list:
    filters = []
    if action:
        filters.append(AuditLog.action == action)
    if resource:
        filters.append(AuditLog.resource == resource)
    if resource_id:
        filters.append(AuditLog.resource_id == resource_id)
    if actor_id:
        filters.append(AuditLog.actor_id == actor_id)
    if from_date:
        filters.append(AuditLog.created_at >= datetime.combine(from_date, datetime.min.time()))
    if to_date:
        filters.append(AuditLog.created_at <= datetime.combine(to_date, datetime.max.time()))
    return filters


def _to_response(log: AuditLog) -> AuditLogResponse:
    return AuditLogResponse(
        id=str(log.id),
        actor_id=str(log.actor_id) if log.actor_id else None,
        actor_email=log.actor_email,
        action=log.action,
        resource=log.resource,
        resource_id=log.resource_id,
        details=log.details,
        ip_address=log.ip_address,
        user_agent=log.user_agent,
        request_id=log.request_id,
        created_at=log.created_at.isoformat() if log.created_at else "",
    )


@router.get("", response_model=PaginatedResponse[AuditLogResponse])
async def list_audit_logs(
    action: Optional[str] = Query(None),
    resource: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    actor_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    page: int = Query(1, ge=1, le=1000),
    limit: int = Query(20, ge=1, le=100),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    db: AsyncSession = Depends(get_db),
):
    filters = _filters(action, resource, resource_id, actor_id, from_date, to_date)

    total = (await db.execute(select(func.count(AuditLog.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(AuditLog)
        .where(*filters)
        .order_by(AuditLog.created_at.desc())
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [_to_response(log) for log in result.scalars().all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/export")
async def export_audit_logs(
    action: Optional[str] = Query(None),
    resource: Optional[str] = Query(None),
    resource_id: Optional[str] = Query(None),
    actor_id: Optional[uuid.UUID] = Query(None),
    from_date: Optional[date] = Query(None),
    to_date: Optional[date] = Query(None),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    db: AsyncSession = Depends(get_db),
):
    """Export audit logs as CSV. Max 10,000 rows."""
    filters = _filters(action, resource, resource_id, actor_id, from_date, to_date)
    result = await db.execute(
        select(AuditLog)
        .where(*filters)
        .order_by(AuditLog.created_at.desc())
        .limit(EXPORT_ROW_LIMIT)
    )

    output = io.StringIO()
    writer = csv.writer(output)
    writer.writerow([
        "id", "actor_email", "action", "resource", "resource_id",
        "ip_address", "details", "created_at",
    ])
    for log in result.scalars().all():
        writer.writerow([
            str(log.id),
            log.actor_email or "",
            log.action,
            log.resource,
            log.resource_id or "",
            log.ip_address or "",
            str(log.details) if log.details else "",
            log.created_at.isoformat() if log.created_at else "",
        ])

    filename = f"audit_logs_{datetime.utcnow().strftime('%Y%m%d_%H%M%S')}.csv"
    return Response(
        content=output.getvalue(),
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )
