"""SQLAlchemy ORM models for invoicing."""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
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
from backoffice.utils.datetime_utils import utcnow

if TYPE_CHECKING:
    from backoffice.db.models import Contact, Employee, Project


class BusinessEntity(Base):
    """Issuing entity (事業者) whose code prefixes invoice numbers."""

    __tablename__ = "business_entities"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    code: Mapped[str] = mapped_column(String(10), nullable=False, unique=True)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    sort_order: Mapped[int] = mapped_column(Integer, default=0, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )


class Invoice(Base):
    """
    Invoice for a project.

    invoice_number = {entity code}-{project code}-{sequence:02d}; sequence is
    per (business entity, project) and never reused, soft-deleted rows included.
    """

    __tablename__ = "invoices"
    __table_args__ = (
        UniqueConstraint(
            "business_entity_id", "project_id", "sequence_number",
            name="uq_invoices_entity_project_seq",
        ),
        Index("idx_invoices_project", "project_id"),
        Index("idx_invoices_date", "invoice_date"),
    )

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    invoice_number: Mapped[str] = mapped_column(String(50), nullable=False, unique=True)
    project_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("projects.id", ondelete="RESTRICT"), nullable=False
    )
    business_entity_id: Mapped[uuid.UUID] = mapped_column(
        Uuid, ForeignKey("business_entities.id", ondelete="RESTRICT"), nullable=False
    )
    sequence_number: Mapped[int] = mapped_column(Integer, nullable=False)
    invoice_date: Mapped[date] = mapped_column(Date, nullable=False)
    recipient_contact_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("contacts.id", ondelete="SET NULL"), nullable=True
    )
    person_in_charge_id: Mapped[uuid.UUID | None] = mapped_column(
        Uuid, ForeignKey("employees.id", ondelete="SET NULL"), nullable=True
    )
    fee_tax_excluded: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    expenses: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    total_amount: Mapped[int] = mapped_column(
        Integer, default=0, server_default=text("0"), nullable=False
    )
    pdf_path: Mapped[str | None] = mapped_column(String(500), nullable=True)
    notes: Mapped[str | None] = mapped_column(Text, nullable=True)
    is_accounting_registered: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    is_payment_received: Mapped[bool] = mapped_column(
        Boolean, default=False, server_default=false(), nullable=False
    )
    payment_received_date: Mapped[date | None] = mapped_column(Date, nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    project: Mapped["Project"] = relationship()
    business_entity: Mapped[BusinessEntity] = relationship()
    recipient: Mapped["Contact | None"] = relationship()
    person_in_charge: Mapped["Employee | None"] = relationship()
