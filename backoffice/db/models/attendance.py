"""SQLAlchemy ORM models for attendance and per-project work logs."""

from __future__ import annotations

import uuid
from datetime import date as date_type, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    ForeignKey,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.db.enums import AttendanceStatus
from backoffice.utils.datetime_utils import as_utc, minutes_between, utcnow

if TYPE_CHECKING:
    from backoffice.db.models import Employee, Project


class AttendanceDaily(Base):
    """One row per employee per business day."""

    __tablename__ = "attendance_daily"
    __table_args__ = (
        UniqueConstraint("employee_id", "date", name="uq_attendance_employee_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    date: Mapped[date_type] = mapped_column(Date, nullable=False)
    clock_in: Mapped[datetime | None] = mapped_column(nullable=True)
    clock_out: Mapped[datetime | None] = mapped_column(nullable=True)
    status: Mapped[str] = mapped_column(
        String(20),
        default=AttendanceStatus.WORK.value,
        server_default=text(f"'{AttendanceStatus.WORK.value}'"),
        nullable=False,
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    employee: Mapped["Employee"] = relationship()
    work_logs: Mapped[list["WorkLog"]] = relationship(
        back_populates="attendance",
        cascade="all, delete-orphan",
    )

    @property
    def worked_minutes(self) -> int | None:
        if not self.clock_in or not self.clock_out:
            return None
        return minutes_between(as_utc(self.clock_in), as_utc(self.clock_out))


class WorkLog(Base):
    """Minutes spent on a project during an attendance day."""

    __tablename__ = "work_logs"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    attendance_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("attendance_daily.id", ondelete="CASCADE"), nullable=False
    )
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    minutes: Mapped[int] = mapped_column(Integer, nullable=False)
    comment: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    attendance: Mapped[AttendanceDaily] = relationship(back_populates="work_logs")
    project: Mapped["Project"] = relationship()
