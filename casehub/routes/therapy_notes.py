import uuid

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession
import structlog

from casehub.database import get_db
from casehub.errors import NotFoundError
from casehub.middleware.audit import AuditTrail, audit_action
from casehub.middleware.auth import get_current_user, current_user_id
from casehub.middleware.authorization import require_roles
from casehub.models.mentee import Mentee, TherapyNote
from casehub.schemas.mentee import TherapyNoteCreate, TherapyNoteResponse

logger = structlog.get_logger()
router = APIRouter()


def _to_response(n: TherapyNote) -> TherapyNoteResponse:
    return TherapyNoteResponse(
        id=str(n.id),
        mentee_id=str(n.mentee_id),
        session_date=n.session_date.isoformat(),
        session_type=n.session_type,
        duration_minutes=n.duration_minutes,
        therapist_name=n.therapist_name,
        session_notes=n.session_notes,
        progress_observations=n.progress_observations,
        goals_addressed=n.goals_addressed or [],
        next_steps=n.next_steps,
        risk_level=n.risk_level,
        mood_rating=n.mood_rating,
        confidential=n.confidential,
        created_by=str(n.created_by) if n.created_by else None,
        created_at=n.created_at.isoformat() if n.created_at else "",
    )


async def _ensure_mentee(db: AsyncSession, mentee_id: uuid.UUID) -> None:
    found = (await db.execute(select(Mentee.id).where(Mentee.id == mentee_id))).scalar_one_or_none()
    if not found:
        raise NotFoundError("Mentee not found")


@router.get("", response_model=list[TherapyNoteResponse])
async def list_therapy_notes(
    mentee_id: uuid.UUID = Query(...),
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator", "mentor")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_mentee(db, mentee_id)
    result = await db.execute(
        select(TherapyNote)
        .where(TherapyNote.mentee_id == mentee_id)
        .order_by(TherapyNote.session_date.desc(), TherapyNote.created_at.desc())
    )
    return [_to_response(n) for n in result.scalars().all()]


@router.post("", response_model=TherapyNoteResponse, status_code=status.HTTP_201_CREATED)
async def create_therapy_note(
    body: TherapyNoteCreate,
    current_user: dict = Depends(get_current_user),
    _auth: None = Depends(require_roles("admin", "coordinator", "mentor")),
    trail: AuditTrail = Depends(audit_action("create", "therapy_note")),
    db: AsyncSession = Depends(get_db),
):
    await _ensure_mentee(db, body.mentee_id)

    note = TherapyNote(**body.model_dump(), created_by=current_user_id(current_user))
    db.add(note)
    await db.flush()
    await db.refresh(note)

    logger.info("therapy_note_created", note_id=str(note.id), mentee_id=str(body.mentee_id))
    # Session content stays out of the audit trail.
    trail.record(note.id, {"mentee_id": str(body.mentee_id), "risk_level": body.risk_level})
    return _to_response(note)
