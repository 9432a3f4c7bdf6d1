from typing import List, Literal, Optional

from pydantic import BaseModel, Field, field_validator

DocumentCategory = Literal["weekly-plan", "policy", "training", "template", "other"]


class DocumentUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=1, max_length=255)
    category: Optional[DocumentCategory] = None
    is_public: Optional[bool] = None
    tags: Optional[List[str]] = None
    description: Optional[str] = None

    @field_validator("title", "category", "is_public", "tags")
    @classmethod
    def reject_null(cls, v, info):
        if v is None:
            raise ValueError(f"{info.field_name} cannot be null")
        return v


class DocumentResponse(BaseModel):
    id: str
    title: str
    file_key: str
    original_name: str
    mime_type: str
    size_bytes: int
    category: str
    uploaded_by: Optional[str] = None
    is_public: bool
    tags: List[str] = []
    description: Optional[str] = None
    created_at: str
    updated_at: str


class PresignedUrlResponse(BaseModel):
    url: str
    expires_in: int


class FileUploadResponse(BaseModel):
    file_key: str
    original_name: Optional[str] = None
    mime_type: str
    size_bytes: int
