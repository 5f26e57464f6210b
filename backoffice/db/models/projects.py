"""SQLAlchemy ORM models for projects, stakeholders, related projects and comments."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    JSON,
    Boolean,
    CheckConstraint,
    Date,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    UniqueConstraint,
    Uuid,
    false,
    func,
    text,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from backoffice.db.base import Base
from backoffice.db.enums import ProjectStatus
from backoffice.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from backoffice.db.models import Contact, Employee


class Project(Base):
    """
    A tracked case (業務).

    `details` holds category-specific fields (validated per category in the
    schema layer). `monthly_allocations` maps "YYYY-MM" to yen amounts.
    """

    __tablename__ = "projects"
    __table_args__ = (
        Index("idx_projects_category", "category"),
        Index("idx_projects_status", "status"),
        Index("idx_projects_manager", "manager_id"),
        CheckConstraint("fee_tax_excluded >= 0", name="ck_projects_fee_nonnegative"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(20), nullable=False, unique=True)
    category: Mapped[str] = mapped_column(String(30), nullable=False)
    name: Mapped[str] = mapped_column(String(255), nullable=False)
    status: Mapped[str] = mapped_column(
        String(20),
        default=ProjectStatus.RECEIVED.value,
        server_default=text(f"'{ProjectStatus.RECEIVED.value}'"),
        nullable=False,
    )
    contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    manager_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    start_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    end_date: Mapped[date | None] = mapped_column(Date, nullable=True)
    fee_tax_excluded: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    location: Mapped[str | None] = mapped_column(String(255), nullable=True)
    location_detail: Mapped[str | None] = mapped_column(Text, nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_urgent: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    is_on_hold: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    details: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)
    monthly_allocations: Mapped[dict] = mapped_column(JSON, default=dict, nullable=False)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    contact: Mapped["Contact | None"] = relationship()
    manager: Mapped["Employee | None"] = relationship()

    @property
    def allocated_total(self) -> int:
        return sum(int(v or 0) for v in (self.monthly_allocations or {}).values())


class ProjectLink(Base):
    """Related-project link. Stored in both directions."""

    __tablename__ = "project_links"
    __table_args__ = (
        UniqueConstraint("project_id", "related_project_id", name="uq_project_links_pair"),
        CheckConstraint("project_id <> related_project_id", name="ck_project_links_not_self"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    related_project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    related_project: Mapped[Project] = relationship(foreign_keys=[related_project_id])


class StakeholderTag(Base):
    """Master of stakeholder roles (e.g. 隣接地主, 紹介者)."""

    __tablename__ = "stakeholder_tags"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    color: Mapped[str] = mapped_column(String(20), default="#6b7280", nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class ProjectStakeholder(Base):
    __tablename__ = "project_stakeholders"
    __table_args__ = (
        UniqueConstraint(
            "project_id", "contact_id", "tag_id", name="uq_project_stakeholders_triple"
        ),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    contact_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="CASCADE"), nullable=False
    )
    tag_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("stakeholder_tags.id", ondelete="RESTRICT"), nullable=False
    )
    note: Mapped[str | None] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    contact: Mapped["Contact"] = relationship()
    tag: Mapped[StakeholderTag] = relationship()


class Comment(Base):
    """Project comment. Author or admin can delete."""

    __tablename__ = "comments"
    __table_args__ = (Index("idx_comments_project_created", "project_id", "created_at"),)

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="CASCADE"), nullable=False
    )
    author_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    content: Mapped[str] = mapped_column(Text, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    author: Mapped["Employee | None"] = relationship()
    acknowledgements: Mapped[list["CommentAcknowledgement"]] = relationship(
        back_populates="comment",
        cascade="all, delete-orphan",
        order_by="CommentAcknowledgement.created_at",
    )


class CommentAcknowledgement(Base):
    """An employee's 確認済み mark on a comment (one per employee)."""

    __tablename__ = "comment_acknowledgements"
    __table_args__ = (
        UniqueConstraint("comment_id", "employee_id", name="uq_comment_ack"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    comment_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("comments.id", ondelete="CASCADE"), nullable=False
    )
    employee_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="CASCADE"), nullable=False
    )
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )

    comment: Mapped[Comment] = relationship(back_populates="acknowledgements")
    employee: Mapped["Employee"] = relationship()
