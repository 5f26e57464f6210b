"""Authentication-related Pydantic schemas."""

from uuid import UUID

from pydantic import BaseModel, Field

from backoffice.db.enums import EmployeeRole


class EmployeeSession(BaseModel):
    """
    Session context for authenticated requests.

    Returned by the get_current_session dependency.
    """
    employee_id: UUID
    role: EmployeeRole
    email: str
    name: str


class LoginRequest(BaseModel):
    email: str = Field(..., min_length=1, max_length=255)
    password: str = Field(..., min_length=1, max_length=128)


class MeResponse(BaseModel):
    """Response schema for GET /auth/me endpoint."""
    employee_id: UUID
    email: str
    name: str
    role: EmployeeRole
