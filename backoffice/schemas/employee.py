"""Pydantic schemas for employees."""

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel, Field, field_validator

from backoffice.db.enums import EmployeeRole
from backoffice.utils.normalization import normalize_email

MIN_PASSWORD_LENGTH = 8


class EmployeeCreate(BaseModel):
    """Create an employee; a password also creates the login account."""
    name: str = Field(..., min_length=1, max_length=100)
    email: str = Field(..., min_length=3, max_length=255)
    role: EmployeeRole = EmployeeRole.STAFF
    password: str | None = Field(None, min_length=MIN_PASSWORD_LENGTH, max_length=72)

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str) -> str:
        v = normalize_email(v) or ""
        if "@" not in v:
            raise ValueError("メールアドレスの形式が正しくありません")
        return v


class EmployeeUpdate(BaseModel):
    name: str | None = Field(None, min_length=1, max_length=100)
    email: str | None = Field(None, min_length=3, max_length=255)
    role: EmployeeRole | None = None
    is_active: bool | None = None

    @field_validator("email")
    @classmethod
    def clean_email(cls, v: str | None) -> str | None:
        if v is None:
            return None
        v = normalize_email(v) or ""
        if "@" not in v:
            raise ValueError("メールアドレスの形式が正しくありません")
        return v


class PasswordReset(BaseModel):
    password: str = Field(..., min_length=MIN_PASSWORD_LENGTH, max_length=72)


class EmployeeRead(BaseModel):
    id: UUID
    name: str
    email: str
    role: EmployeeRole
    is_active: bool
    has_login: bool
    last_login_at: datetime | None
    created_at: datetime

    model_config = {"from_attributes": True}


class EmployeeOption(BaseModel):
    """Compact employee for pickers and nested displays."""
    id: UUID
    name: str

    model_config = {"from_attributes": True}
