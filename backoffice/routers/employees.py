"""Employees router - staff management and login accounts."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from backoffice.db.enums import ROLES_CAN_ADMINISTER, ROLES_CAN_MANAGE_MASTERS
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.employee import (
    EmployeeCreate,
    EmployeeOption,
    EmployeeRead,
    EmployeeUpdate,
    PasswordReset,
)
from backoffice.services import employee_service

router = APIRouter()


def _get_or_404(db: Session, employee_id: UUID):
    employee = employee_service.get_employee(db, employee_id)
    if not employee:
        raise HTTPException(status_code=404, detail="社員が見つかりません")
    return employee


@router.get("/options", response_model=list[EmployeeOption])
def list_employee_options(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Active employees for assignee/participant pickers."""
    return employee_service.list_employees(db)


@router.get("", response_model=list[EmployeeRead])
def list_employees(
    include_inactive: bool = False,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return employee_service.list_employees(db, include_inactive=include_inactive)


@router.get("/{employee_id}", response_model=EmployeeRead)
def get_employee(
    employee_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return _get_or_404(db, employee_id)


@router.post(
    "",
    response_model=EmployeeRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_employee(
    data: EmployeeCreate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return employee_service.create_employee(db, data)


@router.patch("/{employee_id}", response_model=EmployeeRead, dependencies=[Depends(require_csrf_header)])
def update_employee(
    employee_id: UUID,
    data: EmployeeUpdate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    employee = _get_or_404(db, employee_id)
    if employee.id == session.employee_id and data.is_active is False:
        raise HTTPException(status_code=400, detail="自分自身を無効にはできません")
    return employee_service.update_employee(db, employee, data)


@router.delete("/{employee_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_employee(
    employee_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_ADMINISTER)),
    db: Session = Depends(get_db),
):
    employee = _get_or_404(db, employee_id)
    try:
        employee_service.delete_employee(db, employee, actor_id=session.employee_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/{employee_id}/reset-password",
    response_model=EmployeeRead,
    dependencies=[Depends(require_csrf_header)],
)
def reset_password(
    employee_id: UUID,
    data: PasswordReset,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_ADMINISTER)),
    db: Session = Depends(get_db),
):
    employee = _get_or_404(db, employee_id)
    try:
        return employee_service.reset_password(db, employee, data.password)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/{employee_id}/login",
    response_model=EmployeeRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_login(
    employee_id: UUID,
    data: PasswordReset,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    """Give an employee without a login account a password."""
    employee = _get_or_404(db, employee_id)
    return employee_service.create_login(db, employee, data.password)
