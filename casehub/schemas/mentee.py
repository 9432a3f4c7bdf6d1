import uuid
from datetime import date
from typing import List, Literal, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator, model_validator

MenteeStatus = Literal["active", "completed", "on-hold", "dropped"]
RiskLevel = Literal["low", "medium", "high"]


class MenteeCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    mentor_id: Optional[uuid.UUID] = None
    program_start_date: date
    program_end_date: Optional[date] = None
    status: MenteeStatus = "active"
    goals: List[str] = Field(default_factory=list)
    notes: Optional[str] = None
    photo_key: Optional[str] = None

    @model_validator(mode="after")
    def check_program_dates(self):
        if self.program_end_date and self.program_end_date < self.program_start_date:
            raise ValueError("program_end_date cannot be before program_start_date")
        return self


class MenteeUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    email: Optional[EmailStr] = None
    phone: Optional[str] = Field(None, max_length=50)
    mentor_id: Optional[uuid.UUID] = None
    program_start_date: Optional[date] = None
    program_end_date: Optional[date] = None
    status: Optional[MenteeStatus] = None
    goals: Optional[List[str]] = None
    notes: Optional[str] = None
    photo_key: Optional[str] = None

    @field_validator("first_name", "last_name", "email", "program_start_date", "status", "goals")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class MenteeResponse(BaseModel):
    id: str
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    mentor_id: Optional[str] = None
    mentor_name: Optional[str] = None
    program_start_date: str
    program_end_date: Optional[str] = None
    status: str
    goals: List[str] = []
    notes: Optional[str] = None
    photo_key: Optional[str] = None
    created_at: str
    updated_at: str


class TherapyNoteCreate(BaseModel):
    mentee_id: uuid.UUID
    session_date: date
    session_type: str = Field(..., min_length=1, max_length=100)
    duration_minutes: int = Field(..., ge=1, le=600)
    therapist_name: str = Field(..., min_length=1, max_length=200)
    session_notes: str = Field(..., min_length=1)
    progress_observations: Optional[str] = None
    goals_addressed: List[str] = Field(default_factory=list)
    next_steps: Optional[str] = None
    risk_level: RiskLevel = "low"
    mood_rating: Optional[int] = Field(None, ge=1, le=5)
    confidential: bool = True


class TherapyNoteResponse(BaseModel):
    id: str
    mentee_id: str
    session_date: str
    session_type: str
    duration_minutes: int
    therapist_name: str
    session_notes: str
    progress_observations: Optional[str] = None
    goals_addressed: List[str] = []
    next_steps: Optional[str] = None
    risk_level: str
    mood_rating: Optional[int] = None
    confidential: bool
    created_by: Optional[str] = None
    created_at: str
