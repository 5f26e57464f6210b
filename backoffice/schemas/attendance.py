"""Pydantic schemas for attendance and work logs."""

from datetime import date, datetime
from uuid import UUID

from pydantic import BaseModel, Field


class WorkLogInput(BaseModel):
    project_id: UUID
    minutes: int = Field(..., gt=0, le=24 * 60)
    comment: str | None = Field(None, max_length=1000)


class WorkLogsSave(BaseModel):
    logs: list[WorkLogInput] = Field(default_factory=list)


class WorkLogRead(BaseModel):
    id: UUID
    project_id: UUID
    project_code: str | None = None
    project_name: str | None = None
    minutes: int
    comment: str | None


class AttendanceRead(BaseModel):
    id: UUID
    employee_id: UUID
    date: date
    clock_in: datetime | None
    clock_out: datetime | None
    status: str
    worked_minutes: int | None = None
    work_logs: list[WorkLogRead] = []


class AttendanceToday(BaseModel):
    date: date
    record: AttendanceRead | None = None


class AttendanceMonth(BaseModel):
    employee_id: UUID
    month: str
    records: list[AttendanceRead]
    total_worked_minutes: int
