"""Request dependencies: database session, login session, roles and the CSRF header."""

from typing import Generator
from uuid import UUID

import jwt
from fastapi import Depends, HTTPException, Request
from sqlalchemy.orm import Session

from backoffice.core.security import decode_session_token
from backoffice.db.enums import EmployeeRole
from backoffice.db.models import Employee
from backoffice.db.session import SessionLocal
from backoffice.schemas.auth import EmployeeSession

COOKIE_NAME = "backoffice_session"
CSRF_HEADER = "X-Requested-With"
CSRF_HEADER_VALUE = "XMLHttpRequest"


def get_db() -> Generator[Session, None, None]:
    db = SessionLocal()
    try:
        yield db
    finally:
        db.close()


def _unauthorized(detail: str) -> HTTPException:
    return HTTPException(status_code=401, detail=detail)


def get_current_employee(request: Request, db: Session = Depends(get_db)) -> Employee:
    """
    Resolve the logged-in employee from the session cookie.

    A token is rejected once the employee is deleted or deactivated, and once
    their token_version has moved on (password reset, revoke-sessions).
    """
    token = request.cookies.get(COOKIE_NAME)
    if not token:
        raise _unauthorized("Not authenticated")

    try:
        claims = decode_session_token(token)
        employee_id = UUID(claims["sub"])
    except (jwt.InvalidTokenError, KeyError, TypeError, ValueError):
        raise _unauthorized("Invalid session")

    employee = db.get(Employee, employee_id)
    if employee is None or employee.deleted_at is not None:
        raise _unauthorized("Employee not found")
    if not employee.is_active:
        raise _unauthorized("Account disabled")
    if employee.token_version != claims.get("token_version"):
        raise _unauthorized("Session revoked")
    return employee


def get_current_session(request: Request, db: Session = Depends(get_db)) -> EmployeeSession:
    employee = get_current_employee(request, db)
    # A role string written outside the app must not surface as a 500
    if not EmployeeRole.has_value(employee.role):
        raise HTTPException(status_code=403, detail=f"Unknown role '{employee.role}'")
    return EmployeeSession(
        employee_id=employee.id,
        role=EmployeeRole(employee.role),
        email=employee.email,
        name=employee.name,
    )


def require_roles(allowed_roles):
    """Session dependency that answers 403 unless the role is in allowed_roles."""

    def dependency(request: Request, db: Session = Depends(get_db)) -> EmployeeSession:
        session = get_current_session(request, db)
        if session.role not in allowed_roles:
            raise HTTPException(status_code=403, detail="この操作を行う権限がありません")
        return session

    return dependency


def require_csrf_header(request: Request) -> None:
    """Mutating routes only accept requests sent by the front end's fetch wrapper."""
    if request.headers.get(CSRF_HEADER) != CSRF_HEADER_VALUE:
        raise HTTPException(status_code=403, detail=f"Missing CSRF header '{CSRF_HEADER}'")
