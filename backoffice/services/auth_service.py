"""Auth service - password login for employees."""

import logging

from sqlalchemy.orm import Session

from backoffice.core.security import create_session_token, verify_password
from backoffice.db.models import Employee
from backoffice.services import employee_service
from backoffice.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

INVALID_CREDENTIALS_MESSAGE = "メールアドレスまたはパスワードが正しくありません"


class AuthenticationError(Exception):
    """Login rejected. The message is safe to show to the user."""


def authenticate(db: Session, email: str, password: str) -> Employee:
    """
    Verify credentials and return the employee.

    Unknown email, wrong password, no login account, deleted or inactive
    employees all fail with the same message.
    """
    employee = employee_service.get_employee_by_email(db, email)
    if (
        employee is None
        or employee.deleted_at is not None
        or not employee.is_active
        or not verify_password(password, employee.password_hash)
    ):
        logger.info("Login rejected")
        raise AuthenticationError(INVALID_CREDENTIALS_MESSAGE)
    return employee


def login(db: Session, email: str, password: str) -> tuple[Employee, str]:
    """Authenticate and mint a session token."""
    employee = authenticate(db, email, password)
    employee.last_login_at = utcnow()
    db.commit()
    token = create_session_token(
        employee_id=employee.id,
        role=employee.role,
        token_version=employee.token_version,
    )
    logger.info("Login succeeded", extra={"employee_id": str(employee.id)})
    return employee, token
