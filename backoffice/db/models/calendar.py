"""SQLAlchemy ORM models for the shared calendar."""

from __future__ import annotations

import uuid
from datetime import date, datetime, time
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Time,
    Uuid,
    false,
    func,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from backoffice.db.models import Employee, Project, Task


class EventCategory(Base):
    """Colour-coded event category master."""

    __tablename__ = "event_categories"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False)
    color: Mapped[str] = mapped_column(String(7), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class CalendarEvent(Base):
    """
    A calendar entry spanning start_date..end_date (inclusive).

    Times are NULL for all-day events. end_date is always set (equal to
    start_date for single-day events) so range queries need no COALESCE.
    """

    __tablename__ = "calendar_events"
    __table_args__ = (
        Index("idx_calendar_events_range", "start_date", "end_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    category: Mapped[str | None] = mapped_column(String(20), nullable=True)
    event_category_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("event_categories.id", ondelete="SET NULL"), nullable=True
    )
    start_date: Mapped[date] = mapped_column(Date, nullable=False)
    start_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    end_date: Mapped[date] = mapped_column(Date, nullable=False)
    end_time: Mapped[time | None] = mapped_column(Time, nullable=True)
    all_day: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    map_url: Mapped[str | None] = mapped_column(String(1000), nullable=True)
    project_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="SET NULL"), nullable=True
    )
    task_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="SET NULL"), nullable=True
    )
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    event_category: Mapped[EventCategory | None] = relationship()
    project: Mapped["Project | None"] = relationship()
    task: Mapped["Task | None"] = relationship()
    creator: Mapped["Employee | None"] = relationship()
    participants: Mapped[list["CalendarEventParticipant"]] = relationship(
        back_populates="event",
        cascade="all, delete-orphan",
    )


class CalendarEventParticipant(Base):
    __tablename__ = "calendar_event_participants"

    event_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("calendar_events.id", ondelete="CASCADE"), primary_key=True
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), primary_key=True
    )

    event: Mapped[CalendarEvent] = relationship(back_populates="participants")
    employee: Mapped["Employee"] = relationship()
