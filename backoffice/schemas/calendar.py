"""Pydantic schemas for calendar events and event categories."""

from datetime import date, datetime, time
from uuid import UUID

from pydantic import BaseModel, Field, model_validator

from backoffice.db.enums import EventLabel
from backoffice.schemas.employee import EmployeeOption

COLOR_PATTERN = r"^#[0-9a-fA-F]{6}$"


class EventCategoryCreate(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    color: str = Field(..., pattern=COLOR_PATTERN)


class EventCategoryUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=50)
    color: str | None = Field(None, pattern=COLOR_PATTERN)


class EventCategoryRead(BaseModel):
    id: UUID
    name: str
    color: str
    sort_order: int

    model_config = {"from_attributes": True}


class EventCategoryReorder(BaseModel):
    ids: list[UUID] = Field(..., min_length=1)


class EventCreate(BaseModel):
    """
    Request to create an event.

    end_date defaults to start_date; all-day events drop their times.
    """
    title: str = Field(..., min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    category: EventLabel | None = None
    event_category_id: UUID | None = None
    start_date: date
    start_time: time | None = None
    end_date: date | None = None
    end_time: time | None = None
    all_day: bool = False
    location: str | None = Field(None, max_length=255)
    map_url: str | None = Field(None, max_length=1000)
    project_id: UUID | None = None
    task_id: UUID | None = None
    participant_ids: list[UUID] = Field(default_factory=list)

    @model_validator(mode="after")
    def check_range(self) -> "EventCreate":
        if self.end_date is None:
            self.end_date = self.start_date
        if self.all_day:
            self.start_time = None
            self.end_time = None
        validate_event_range(self.start_date, self.start_time, self.end_date, self.end_time)
        return self


class EventUpdate(BaseModel):
    """Partial update; participant_ids replaces the participant list when given."""
    title: str | None = Field(None, min_length=1, max_length=255)
    description: str | None = Field(None, max_length=5000)
    category: EventLabel | None = None
    event_category_id: UUID | None = None
    start_date: date | None = None
    start_time: time | None = None
    end_date: date | None = None
    end_time: time | None = None
    all_day: bool | None = None
    location: str | None = Field(None, max_length=255)
    map_url: str | None = Field(None, max_length=1000)
    project_id: UUID | None = None
    task_id: UUID | None = None
    participant_ids: list[UUID] | None = None


class EventMove(BaseModel):
    """Drag/resize result from the calendar view."""
    start_date: date
    start_time: time | None = None
    end_date: date | None = None
    end_time: time | None = None
    all_day: bool | None = None


def validate_event_range(
    start_date: date,
    start_time: time | None,
    end_date: date,
    end_time: time | None,
) -> None:
    if end_date < start_date:
        raise ValueError("終了日は開始日以降の日付を指定してください")
    if end_date == start_date and start_time and end_time and end_time < start_time:
        raise ValueError("終了時刻は開始時刻以降を指定してください")


class EventProject(BaseModel):
    id: UUID
    code: str
    name: str


class EventTask(BaseModel):
    id: UUID
    title: str


class EventRead(BaseModel):
    id: UUID
    title: str
    description: str | None
    category: EventLabel | None
    event_category: EventCategoryRead | None = None
    start_date: date
    start_time: time | None
    end_date: date
    end_time: time | None
    all_day: bool
    location: str | None
    map_url: str | None
    project: EventProject | None = None
    task: EventTask | None = None
    creator: EmployeeOption | None = None
    participants: list[EmployeeOption] = []
    created_at: datetime


class ProjectWithTasks(BaseModel):
    id: UUID
    code: str
    name: str
    tasks: list[EventTask] = []
