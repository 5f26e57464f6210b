"""Pydantic schemas for document templates and generation."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.db.enums import RecipientType


class DocumentTemplateUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=2000)


class DocumentTemplateReorder(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)


class DocumentTemplateRead(BaseModel):
    id: UUID
    name: str
    description: str | None
    file_name: str
    file_size: int | None
    sort_order: int
    created_at: datetime

    model_config = {"from_attributes": True}


class DocumentGenerate(BaseModel):
    recipient_type: RecipientType
    recipient_id: UUID
    sender_id: UUID | None = None  # defaults to the current employee
    document_date: date | None = None
