"""Pydantic schemas for stakeholder tags and project stakeholders."""

from uuid import UUID

from pydantic import BaseModel, Field

COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class StakeholderTagCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field("#6b7280", pattern=COLOR_PATTERN)


class StakeholderTagUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=50)
    color: str | None = Field(None, pattern=COLOR_PATTERN)
    sort_order: int | None = Field(None, ge=0)


class StakeholderTagRead(BaseModel):
    id: UUID
    name: str
    color: str
    sort_order: int

    model_config = {"from_attributes": True}


class StakeholderCreate(BaseModel):
    contact_id: UUID
    tag_id: UUID
    note: str | None = Field(None, max_length=1000)


class StakeholderUpdate(BaseModel):
    tag_id: UUID | None = None
    note: str | None = Field(None, max_length=1000)


class StakeholderRead(BaseModel):
    id: UUID
    project_id: UUID
    contact_id: UUID
    contact_name: str
    account_id: UUID | None = None
    company_name: str | None = None
    phone: str | None = None
    tag: StakeholderTagRead
    note: str | None = None
