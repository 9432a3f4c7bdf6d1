import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.database import get_db
from casehub.errors import ConflictError, NotFoundError
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user
from casehub.middleware.authorization import require_roles
from casehub.models.staff import Staff
from casehub.models.user import User
from casehub.schemas.auth import SetPasswordRequest
from casehub.schemas.common import MessageResponse, PaginatedResponse, build_pagination
from casehub.schemas.staff import (
    StaffCreate,
    StaffUpdate,
    StaffResponse,
    StaffCreateResponse,
)
from casehub.services.auth_service import generate_temporary_password, hash_password

logger = structlog.get_logger()
router = APIRouter()


def _fields(s: Staff) -> dict:
    return dict(
        id=str(s.id),
        user_id=str(s.user_id) if s.user_id else None,
        first_name=s.first_name,
        last_name=s.last_name,
        email=s.email,
        phone=s.phone,
        role=s.role,
        department=s.department,
        hire_date=s.hire_date.isoformat() if s.hire_date else None,
        bio=s.bio,
        skills=s.skills or [],
        is_active=s.is_active,
        created_at=s.created_at.isoformat() if s.created_at else "",
        updated_at=s.updated_at.isoformat() if s.updated_at else "",
    )


def _to_response(s: Staff) -> StaffResponse:
    return StaffResponse(**_fields(s))


async def _get_staff(db: AsyncSession, staff_id: uuid.UUID) -> Staff:
    staff = (await db.execute(select(Staff).where(Staff.id == staff_id))).scalar_one_or_none()
    if not staff:
        raise NotFoundError("Staff member not found")
    return staff


async def _linked_user(db: AsyncSession, staff: Staff) -> User | None:
    if not staff.user_id:
        return None
    return (await db.execute(select(User).where(User.id == staff.user_id))).scalar_one_or_none()


@router.get("", response_model=PaginatedResponse[StaffResponse])
async def list_staff(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(None),
    role: str = Query(None),
    include_inactive: bool = Query(False),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    filters = []
    if not include_inactive:
        filters.append(Staff.is_active == True)  # noqa: E712
    if role:
        filters.append(Staff.role == role)
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(Staff.first_name).like(pattern),
                func.lower(Staff.last_name).like(pattern),
                func.lower(Staff.email).like(pattern),
            )
        )

    total = (await db.execute(select(func.count(Staff.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Staff)
        .where(*filters)
        .order_by(Staff.last_name, Staff.first_name)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [_to_response(s) for s in result.scalars().all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{staff_id}", response_model=StaffResponse)
async def get_staff(
    staff_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    return _to_response(await _get_staff(db, staff_id))


@router.post("", response_model=StaffCreateResponse, status_code=status.HTTP_201_CREATED)
async def create_staff(
    body: StaffCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    trail: AuditTrail = Depends(audit_action("create", "staff")),
    db: AsyncSession = Depends(get_db),
):
    """Create the login account and the staff profile in one transaction."""
    email = body.email.lower()
    taken = await db.execute(
        select(func.count()).select_from(
            select(User.id).where(User.email == email)
            .union_all(select(Staff.id).where(Staff.email == email))
            .subquery()
        )
    )
    if taken.scalar():
        raise ConflictError("Email already registered")

    temporary_password = generate_temporary_password()
    user = User(
        email=email,
        password_hash=hash_password(temporary_password),
        first_name=body.first_name,
        last_name=body.last_name,
        role=body.role,
    )
    db.add(user)
    await db.flush()

    staff = Staff(
        user_id=user.id,
        first_name=body.first_name,
        last_name=body.last_name,
        email=email,
        phone=body.phone,
        role=body.role,
        department=body.department,
        hire_date=body.hire_date,
        bio=body.bio,
        skills=body.skills,
    )
    db.add(staff)
    await db.flush()
    await db.refresh(staff)

    logger.info("staff_created", staff_id=str(staff.id), user_id=str(user.id), role=body.role)
    trail.record(staff.id, body)
    return StaffCreateResponse(**_fields(staff), temporary_password=temporary_password)


@router.put("/{staff_id}", response_model=StaffResponse)
async def update_staff(
    staff_id: uuid.UUID,
    body: StaffUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    trail: AuditTrail = Depends(audit_action("update", "staff")),
    db: AsyncSession = Depends(get_db),
):
    staff = await _get_staff(db, staff_id)
    changes = body.model_dump(exclude_unset=True)
    for field, value in changes.items():
        setattr(staff, field, value)

    # Keep the login account in step with the profile.
    user = await _linked_user(db, staff)
    if user:
        for field in ("first_name", "last_name", "role", "is_active"):
            if field in changes:
                setattr(user, field, changes[field])

    await db.flush()
    await db.refresh(staff)
    trail.record(staff.id, body)
    return _to_response(staff)


@router.delete("/{staff_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_staff(
    staff_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    trail: AuditTrail = Depends(audit_action("delete", "staff")),
    db: AsyncSession = Depends(get_db),
):
    """Deactivate the staff profile and its login account."""
    staff = await _get_staff(db, staff_id)
    staff.is_active = False
    user = await _linked_user(db, staff)
    if user:
        user.is_active = False
    await db.flush()

    logger.info("staff_deactivated", staff_id=str(staff.id))
    trail.record(staff_id)


@router.put("/{staff_id}/set-password", response_model=MessageResponse)
async def set_staff_password(
    staff_id: uuid.UUID,
    body: SetPasswordRequest,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    trail: AuditTrail = Depends(audit_action("set_password", "staff")),
    db: AsyncSession = Depends(get_db),
):
    staff = await _get_staff(db, staff_id)
    user = await _linked_user(db, staff)
    if not user:
        raise NotFoundError("Staff member has no login account")

    user.password_hash = hash_password(body.password)
    await db.flush()

    logger.info("staff_password_set", staff_id=str(staff.id), user_id=str(user.id))
    trail.record(staff_id, body)
    return MessageResponse(message=f"Password for {user.first_name} {user.last_name} has been updated")
