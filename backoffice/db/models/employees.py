"""SQLAlchemy ORM models for employees (staff with optional login)."""

from __future__ import annotations

import uuid
from datetime import datetime

from sqlalchemy import Boolean, Integer, String, Uuid, func, text, true
from sqlalchemy.orm import Mapped, mapped_column

from backoffice.db.base import Base
from backoffice.db.enums import EmployeeRole
from backoffice.utils.datetime_utils import utcnow


class Employee(Base):
    """
    A staff member.

    password_hash is NULL when the employee has no login account.
    token_version is bumped to revoke outstanding sessions.
    Email is stored lower-cased and unique across active and deleted rows.
    """

    __tablename__ = "employees"

    id: Mapped[uuid.UUID] = mapped_column(Uuid, primary_key=True, default=uuid.uuid4)
    name: Mapped[str] = mapped_column(String(100), nullable=False)
    email: Mapped[str] = mapped_column(String(255), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(
        String(20),
        default=EmployeeRole.STAFF.value,
        server_default=text(f"'{EmployeeRole.STAFF.value}'"),
        nullable=False,
    )
    password_hash: Mapped[str | None] = mapped_column(String(255), nullable=True)
    token_version: Mapped[int] = mapped_column(
        Integer, default=1, server_default=text("1"), nullable=False
    )
    is_active: Mapped[bool] = mapped_column(
        Boolean, default=True, server_default=true(), nullable=False
    )
    last_login_at: Mapped[datetime | None] = mapped_column(nullable=True)

    created_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), nullable=False
    )
    updated_at: Mapped[datetime] = mapped_column(
        default=utcnow, server_default=func.now(), onupdate=utcnow, nullable=False
    )
    deleted_at: Mapped[datetime | None] = mapped_column(nullable=True)

    @property
    def has_login(self) -> bool:
        return self.password_hash is not None
