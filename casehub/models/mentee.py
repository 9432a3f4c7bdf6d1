import uuid
from datetime import datetime, date
from typing import Optional

from sqlalchemy import (
    String,
    Integer,
    Boolean,
    Date,
    DateTime,
    ForeignKey,
    Text,
    JSON,
    CheckConstraint,
    Index,
    Uuid,
)
from sqlalchemy.orm import Mapped, mapped_column

from casehub.database import Base

MENTEE_STATUSES = ("active", "completed", "on-hold", "dropped")


class Mentee(Base):
    __tablename__ = "mentees"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    first_name: Mapped[str] = mapped_column(String(100), nullable=False)
    last_name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), unique=True, nullable=False)
    phone: Mapped[Optional[str]] = mapped_column(String(50))
    mentor_id: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("staff.id", ondelete="SET NULL")
    )
    program_start_date: Mapped[date] = mapped_column(Date, nullable=False)
    program_end_date: Mapped[Optional[date]] = mapped_column(Date)
    status: Mapped[str] = mapped_column(String(20), default="active")
    goals: Mapped[list] = mapped_column(JSON, default=list)
    notes: Mapped[Optional[str]] = mapped_column(Text)
    photo_key: Mapped[Optional[str]] = mapped_column(Text)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow, onupdate=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint(
            "status IN ('active','completed','on-hold','dropped')",
            name="chk_mentee_status",
        ),
        Index("idx_mentees_mentor", "mentor_id"),
        Index("idx_mentees_status", "status"),
    )


class TherapyNote(Base):
    __tablename__ = "therapy_notes"

    id: Mapped[uuid.UUID] = mapped_column(
        Uuid, primary_key=True, default=uuid.uuid4
    )
    mentee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("mentees.id", ondelete="CASCADE"), nullable=False
    )
    session_date: Mapped[date] = mapped_column(Date, nullable=False)
    session_type: Mapped[str] = mapped_column(String(100), nullable=False)
    duration_minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    therapist_name: Mapped[str] = mapped_column(String(200), nullable=False)
    session_notes: Mapped[str] = mapped_column(Text, nullable=False)
    progress_observations: Mapped[Optional[str]] = mapped_column(Text)
    goals_addressed: Mapped[list] = mapped_column(JSON, default=list)
    next_steps: Mapped[Optional[str]] = mapped_column(Text)
    risk_level: Mapped[str] = mapped_column(String(10), default="low")
    mood_rating: Mapped[Optional[int]] = mapped_column(Integer)
    confidential: Mapped[bool] = mapped_column(Boolean, default=True)
    created_by: Mapped[Optional[uuid.UUID]] = mapped_column(
        Uuid, ForeignKey("users.id")
    )
    created_at: Mapped[datetime] = mapped_column(
        DateTime, default=datetime.utcnow
    )

    __table_args__ = (
        CheckConstraint("duration_minutes > 0", name="chk_note_duration"),
        CheckConstraint(
            "risk_level IN ('low','medium','high')", name="chk_note_risk"
        ),
        Index("idx_therapy_notes_mentee", "mentee_id"),
    )
