"""Pydantic schemas for project tasks and task template sets."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.db.enums import TaskStatus
from backoffice.schemas.project import ProjectSummary


class TaskCreate(BaseModel):
    """Request to create a task (or a subtask when parent_id is set)."""
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    parent_id: UUID | None = None
    status: TaskStatus = TaskStatus.NOT_STARTED
    due_date: date | None = None
    assigned_to: UUID | None = None
    estimated_minutes: int | None = Field(None, ge=0, le=100_000)


class TaskUpdate(BaseModel):
    """Request to update a task (partial)."""
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    status: TaskStatus | None = None
    due_date: date | None = None
    assigned_to: UUID | None = None
    estimated_minutes: int | None = Field(None, ge=0, le=100_000)


class TaskRead(BaseModel):
    id: UUID
    project_id: UUID
    parent_id: UUID | None
    title: str
    description: str | None
    status: TaskStatus
    is_completed: bool
    due_date: date | None
    assigned_to: UUID | None
    assignee_name: str | None = None
    sort_order: int
    estimated_minutes: int | None
    started_at: datetime | None
    completed_at: datetime | None
    actual_minutes: int | None
    created_at: datetime
    children: list["TaskRead"] = []


class TaskReorderItem(BaseModel):
    id: UUID
    sort_order: int = Field(..., ge=0)


class TaskReorder(BaseModel):
    items: list[TaskReorderItem] = Field(..., min_length=1)


class DashboardTask(BaseModel):
    """Incomplete task with enough project context for the dashboard."""
    id: UUID
    title: str
    status: TaskStatus
    due_date: date | None
    assigned_to: UUID | None
    assignee_name: str | None = None
    parent_id: UUID | None
    project: ProjectSummary


class TemplateSetCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=100)


class TemplateSetApply(BaseModel):
    template_set_id: UUID
    default_assignee_id: UUID | None = None


class TemplateItemRead(BaseModel):
    id: UUID
    title: str
    estimated_minutes: int | None
    sort_order: int

    model_config = {"from_attributes": True}


class TemplateSetRead(BaseModel):
    id: UUID
    name: str
    created_at: datetime
    items: list[TemplateItemRead] = []

    model_config = {"from_attributes": True}
