"""Employee service - staff records and their login accounts."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ConflictError
from backoffice.core.security import hash_password
from backoffice.db.models import Employee
from backoffice.schemas.employee import EmployeeCreate, EmployeeUpdate
from backoffice.utils.datetime_utils import utcnow

logger = logging.getLogger(__name__)

DUPLICATE_EMAIL_MESSAGE = "このメールアドレスは既に登録されています"


def get_employee(db: Session, employee_id: UUID) -> Employee | None:
    return db.query(Employee).filter(
        Employee.id == employee_id,
        Employee.deleted_at.is_(None),
    ).first()


def get_employee_by_email(db: Session, email: str) -> Employee | None:
    """Lookup by email, including deleted rows (emails are never reused)."""
    return db.query(Employee).filter(
        func.lower(Employee.email) == email.strip().lower()
    ).first()


def list_employees(db: Session, include_inactive: bool = False) -> list[Employee]:
    query = db.query(Employee).filter(Employee.deleted_at.is_(None))
    if not include_inactive:
        query = query.filter(Employee.is_active.is_(True))
    return query.order_by(Employee.name).all()


def create_employee(db: Session, data: EmployeeCreate) -> Employee:
    if get_employee_by_email(db, data.email):
        raise ConflictError(DUPLICATE_EMAIL_MESSAGE)
    employee = Employee(
        name=data.name.strip(),
        email=data.email,
        role=data.role.value,
        password_hash=hash_password(data.password) if data.password else None,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    logger.info("Employee created", extra={"employee_id": str(employee.id)})
    return employee


def update_employee(db: Session, employee: Employee, data: EmployeeUpdate) -> Employee:
    update_data = data.model_dump(exclude_unset=True)

    new_email = update_data.get("email")
    if new_email and new_email != employee.email:
        other = get_employee_by_email(db, new_email)
        if other and other.id != employee.id:
            raise ConflictError(DUPLICATE_EMAIL_MESSAGE)

    for field, value in update_data.items():
        if value is None:
            continue
        if field == "role":
            value = value.value
        setattr(employee, field, value)

    if update_data.get("is_active") is False:
        # Deactivation ends existing sessions
        employee.token_version += 1

    db.commit()
    db.refresh(employee)
    return employee


def delete_employee(db: Session, employee: Employee, actor_id: UUID) -> None:
    """Soft-delete and deactivate; the login stops working immediately."""
    if employee.id == actor_id:
        raise ValueError("自分自身は削除できません")
    employee.deleted_at = utcnow()
    employee.is_active = False
    employee.token_version += 1
    db.commit()
    logger.info("Employee deleted", extra={"employee_id": str(employee.id)})


def reset_password(db: Session, employee: Employee, password: str) -> Employee:
    """Set a new password and revoke existing sessions."""
    if not employee.has_login:
        raise ValueError("ログインアカウントが存在しません")
    employee.password_hash = hash_password(password)
    employee.token_version += 1
    db.commit()
    db.refresh(employee)
    return employee


def create_login(db: Session, employee: Employee, password: str) -> Employee:
    """Give an existing employee a login account."""
    if employee.has_login:
        raise ConflictError("ログインアカウントは既に存在します")
    employee.password_hash = hash_password(password)
    db.commit()
    db.refresh(employee)
    return employee
