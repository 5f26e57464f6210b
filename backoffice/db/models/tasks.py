"""SQLAlchemy ORM models for project tasks and task template sets."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    Uuid,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.db.enums import TaskStatus
from backoffice.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from backoffice.db.models import Employee, Project


class Task(Base):
    """
    To-do item scoped to a project.

    Nesting is one level deep: a subtask's parent is always a top-level task
    of the same project. Timing fields are maintained by status transitions:
    - started_at: first entry into 進行中
    - completed_at / actual_minutes: entry into 完了
    """

    __tablename__ = "tasks"
    __table_args__ = (
        Index("idx_tasks_project_parent_sort", "project_id", "parent_id", "sort_order"),
        Index("idx_tasks_assignee_status", "assigned_to", "status"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    parent_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("tasks.id", ondelete="CASCADE"), nullable=True
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    description: Mapped[str | None] = mapped_column(Text, nullable=True)
    status: Mapped[str] = mapped_column(
        String(10),
        default=TaskStatus.NOT_STARTED.value,
        server_default=text(f"'{TaskStatus.NOT_STARTED.value}'"),
        nullable=False,
    )
    due_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    assigned_to: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    estimated_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    started_at: Mapped[datetime | None] = mapped_column(nullable=True)
    completed_at: Mapped[datetime | None] = mapped_column(nullable=True)
    actual_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )

    project: Mapped["Project"] = relationship()
    assignee: Mapped["Employee | None"] = relationship()
    children: Mapped[list["Task"]] = relationship(
        cascade="all, delete-orphan",
        order_by="Task.sort_order",
    )

    @property
    def is_completed(self) -> bool:
        return self.status == TaskStatus.DONE.value


class TaskTemplateSet(Base):
    """Reusable list of task titles saved from a project."""

    __tablename__ = "task_template_sets"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    created_by: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    items: Mapped[list["TaskTemplateItem"]] = relationship(
        back_populates="template_set",
        cascade="all, delete-orphan",
        order_by="TaskTemplateItem.sort_order",
    )


class TaskTemplateItem(Base):
    __tablename__ = "task_template_items"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    template_set_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("task_template_sets.id", ondelete="CASCADE"), nullable=False
    )
    title: Mapped[str] = mapped_column(String(255), nullable=False)
    estimated_minutes: Mapped[int | None] = mapped_column(Integer, nullable=True)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)

    template_set: Mapped[TaskTemplateSet] = relationship(back_populates="items")
