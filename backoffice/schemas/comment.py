"""Pydantic schemas for project comments."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backoffice.schemas.employee import EmployeeOption


class CommentCreate(BaseModel):
    content: str = Field(..., min_length=1, max_length=5000)

    @field_validator("content")
    @classmethod
    def clean_content(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("コメントを入力してください")
        return v


class CommentRead(BaseModel):
    id: UUID
    project_id: UUID
    author_id: UUID | None
    author_name: str | None = None
    content: str
    created_at: datetime
    acknowledged_by: list[EmployeeOption] = []
