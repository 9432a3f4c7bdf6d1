from datetime import date
from typing import List, Optional

from pydantic import BaseModel, EmailStr, Field, field_validator

STAFF_ROLES = ("admin", "coordinator", "mentor")


class StaffCreate(BaseModel):
    first_name: str = Field(..., min_length=1, max_length=100)
    last_name: str = Field(..., min_length=1, max_length=100)
    email: EmailStr
    phone: Optional[str] = Field(None, max_length=50)
    role: str
    department: Optional[str] = Field(None, max_length=100)
    hire_date: Optional[date] = None
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v is not None and v not in STAFF_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {STAFF_ROLES}")
        return v


class StaffUpdate(BaseModel):
    first_name: Optional[str] = Field(None, min_length=1, max_length=100)
    last_name: Optional[str] = Field(None, min_length=1, max_length=100)
    phone: Optional[str] = Field(None, max_length=50)
    role: Optional[str] = None
    department: Optional[str] = Field(None, max_length=100)
    hire_date: Optional[date] = None
    bio: Optional[str] = None
    skills: Optional[List[str]] = None
    is_active: Optional[bool] = None

    @field_validator("role")
    @classmethod
    def validate_role(cls, v):
        if v is not None and v not in STAFF_ROLES:
            raise ValueError(f"Invalid role. Must be one of: {STAFF_ROLES}")
        return v

    @field_validator("first_name", "last_name", "role", "skills", "is_active")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class StaffResponse(BaseModel):
    id: str
    user_id: Optional[str] = None
    first_name: str
    last_name: str
    email: str
    phone: Optional[str] = None
    role: str
    department: Optional[str] = None
    hire_date: Optional[str] = None
    bio: Optional[str] = None
    skills: List[str] = []
    is_active: bool
    created_at: str
    updated_at: str


class StaffCreateResponse(StaffResponse):
    temporary_password: str
