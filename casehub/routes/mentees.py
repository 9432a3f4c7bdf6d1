import uuid
from typing import Optional

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import delete, select, func, or_
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.database import get_db
from casehub.errors import ConflictError, NotFoundError, ValidationError
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user
from casehub.middleware.authorization import require_roles
from casehub.models.mentee import Mentee, TherapyNote, MENTEE_STATUSES
from casehub.models.staff import Staff
from casehub.schemas.common import PaginatedResponse, build_pagination
from casehub.schemas.mentee import MenteeCreate, MenteeUpdate, MenteeResponse

logger = structlog.get_logger()
router = APIRouter()


def _to_response(m: Mentee, mentor: Optional[Staff] = None) -> MenteeResponse:
    return MenteeResponse(
        id=str(m.id),
        first_name=m.first_name,
        last_name=m.last_name,
        email=m.email,
        phone=m.phone,
        mentor_id=str(m.mentor_id) if m.mentor_id else None,
        mentor_name=f"{mentor.first_name} {mentor.last_name}" if mentor else None,
        program_start_date=m.program_start_date.isoformat(),
        program_end_date=m.program_end_date.isoformat() if m.program_end_date else None,
        status=m.status,
        goals=m.goals or [],
        notes=m.notes,
        photo_key=m.photo_key,
        created_at=m.created_at.isoformat() if m.created_at else "",
        updated_at=m.updated_at.isoformat() if m.updated_at else "",
    )


async def _get_mentee(db: AsyncSession, mentee_id: uuid.UUID) -> Mentee:
    mentee = (await db.execute(select(Mentee).where(Mentee.id == mentee_id))).scalar_one_or_none()
    if not mentee:
        raise NotFoundError("Mentee not found")
    return mentee


async def _get_mentor(db: AsyncSession, mentor_id: Optional[uuid.UUID]) -> Optional[Staff]:
    """Resolve a mentor reference; a dangling id is a client error."""
    if mentor_id is None:
        return None
    mentor = (await db.execute(select(Staff).where(Staff.id == mentor_id))).scalar_one_or_none()
    if not mentor:
        raise ValidationError.for_field("mentor_id", "Mentor does not exist")
    return mentor


async def _ensure_email_free(
    db: AsyncSession, email: str, exclude_id: Optional[uuid.UUID] = None
) -> None:
    q = select(Mentee.id).where(Mentee.email == email)
    if exclude_id is not None:
        q = q.where(Mentee.id != exclude_id)
    if (await db.execute(q)).scalar_one_or_none() is not None:
        raise ConflictError("A mentee with this email already exists")


@router.get("", response_model=PaginatedResponse[MenteeResponse])
async def list_mentees(
    page: int = Query(1, ge=1),
    limit: int = Query(20, ge=1, le=100),
    search: str = Query(None),
    mentee_status: str = Query(None, alias="status"),
    mentor_id: Optional[uuid.UUID] = Query(None),
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    filters = []
    if search:
        pattern = f"%{search.lower()}%"
        filters.append(
            or_(
                func.lower(Mentee.first_name).like(pattern),
                func.lower(Mentee.last_name).like(pattern),
                func.lower(Mentee.email).like(pattern),
            )
        )
    if mentee_status:
        if mentee_status not in MENTEE_STATUSES:
            raise ValidationError.for_field("status", f"Unknown mentee status '{mentee_status}'")
        filters.append(Mentee.status == mentee_status)
    if mentor_id:
        filters.append(Mentee.mentor_id == mentor_id)

    total = (await db.execute(select(func.count(Mentee.id)).where(*filters))).scalar() or 0
    result = await db.execute(
        select(Mentee, Staff)
        .outerjoin(Staff, Staff.id == Mentee.mentor_id)
        .where(*filters)
        .order_by(Mentee.first_name, Mentee.last_name)
        .offset((page - 1) * limit)
        .limit(limit)
    )
    items = [_to_response(m, mentor) for m, mentor in result.all()]
    return PaginatedResponse(data=items, pagination=build_pagination(page, limit, total))


@router.get("/{mentee_id}", response_model=MenteeResponse)
async def get_mentee(
    mentee_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    db: AsyncSession = Depends(get_db),
):
    mentee = await _get_mentee(db, mentee_id)
    mentor = await _get_mentor(db, mentee.mentor_id) if mentee.mentor_id else None
    return _to_response(mentee, mentor)


@router.post("", response_model=MenteeResponse, status_code=status.HTTP_201_CREATED)
async def create_mentee(
    body: MenteeCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("create", "mentee")),
    db: AsyncSession = Depends(get_db),
):
    email = body.email.lower()
    await _ensure_email_free(db, email)
    mentor = await _get_mentor(db, body.mentor_id)

    mentee = Mentee(**body.model_dump(exclude={"email"}), email=email)
    db.add(mentee)
    await db.flush()
    await db.refresh(mentee)

    logger.info("mentee_created", mentee_id=str(mentee.id))
    trail.record(mentee.id, body)
    return _to_response(mentee, mentor)


@router.put("/{mentee_id}", response_model=MenteeResponse)
async def update_mentee(
    mentee_id: uuid.UUID,
    body: MenteeUpdate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator")),
    trail: AuditTrail = Depends(audit_action("update", "mentee")),
    db: AsyncSession = Depends(get_db),
):
    mentee = await _get_mentee(db, mentee_id)
    changes = body.model_dump(exclude_unset=True)

    if changes.get("email"):
        changes["email"] = changes["email"].lower()
        await _ensure_email_free(db, changes["email"], exclude_id=mentee.id)
    if "mentor_id" in changes:
        await _get_mentor(db, changes["mentor_id"])

    start = changes.get("program_start_date", mentee.program_start_date)
    end = changes["program_end_date"] if "program_end_date" in changes else mentee.program_end_date
    if end and start and end < start:
        raise ValidationError.for_field(
            "program_end_date", "program_end_date cannot be before program_start_date"
        )

    for field, value in changes.items():
        setattr(mentee, field, value)
    await db.flush()
    await db.refresh(mentee)

    mentor = await _get_mentor(db, mentee.mentor_id) if mentee.mentor_id else None
    trail.record(mentee.id, body)
    return _to_response(mentee, mentor)


@router.delete("/{mentee_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_mentee(
    mentee_id: uuid.UUID,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin")),
    trail: AuditTrail = Depends(audit_action("delete", "mentee")),
    db: AsyncSession = Depends(get_db),
):
    mentee = await _get_mentee(db, mentee_id)
    await db.execute(delete(TherapyNote).where(TherapyNote.mentee_id == mentee.id))
    await db.delete(mentee)
    await db.flush()

    logger.info("mentee_deleted", mentee_id=str(mentee_id))
    trail.record(mentee_id)
