"""Attendance router - clock in/out, monthly records and work logs."""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header
from backoffice.db.enums import ROLES_CAN_MANAGE_MASTERS
from backoffice.schemas.attendance import AttendanceMonth, AttendanceRead, AttendanceToday, WorkLogsSave
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.project import ProjectSummary
from backoffice.services import attendance_service

router = APIRouter()


@router.get("/today", response_model=AttendanceToday)
def get_today(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    today, record = attendance_service.get_today(db, session.employee_id)
    return AttendanceToday(date=today, record=attendance_service.to_read(record) if record else None)


@router.post("/clock-in", response_model=AttendanceRead, dependencies=[Depends(require_csrf_header)])
def clock_in(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        record = attendance_service.clock_in(db, session.employee_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return attendance_service.to_read(record)


@router.post("/clock-out", response_model=AttendanceRead, dependencies=[Depends(require_csrf_header)])
def clock_out(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        record = attendance_service.clock_out(db, session.employee_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return attendance_service.to_read(record)


@router.get("/month", response_model=AttendanceMonth)
def list_month(
    month: str = Query(..., description="YYYY-MM"),
    employee_id: UUID | None = None,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """A month of records. Managers may view other employees."""
    target_id = employee_id or session.employee_id
    if target_id != session.employee_id and session.role not in ROLES_CAN_MANAGE_MASTERS:
        raise HTTPException(status_code=403, detail="他の社員の勤怠は閲覧できません")
    try:
        records = attendance_service.list_month(db, target_id, month)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return AttendanceMonth(
        employee_id=target_id,
        month=month,
        records=[attendance_service.to_read(r) for r in records],
        total_worked_minutes=sum(r.worked_minutes or 0 for r in records),
    )


@router.put(
    "/{attendance_id}/work-logs",
    response_model=AttendanceRead,
    dependencies=[Depends(require_csrf_header)],
)
def save_work_logs(
    attendance_id: UUID,
    data: WorkLogsSave,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Replace all work logs of a day."""
    record = attendance_service.get_record_by_id(db, attendance_id)
    if not record:
        raise HTTPException(status_code=404, detail="勤怠記録が見つかりません")
    try:
        record = attendance_service.save_work_logs(db, record, session.employee_id, data.logs)
    except PermissionError as e:
        raise HTTPException(status_code=403, detail=str(e))
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return attendance_service.to_read(record)


@router.get("/projects", response_model=list[ProjectSummary])
def list_loggable_projects(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return attendance_service.list_loggable_projects(db)
