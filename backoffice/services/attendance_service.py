"""Attendance service - daily clock in/out and per-project work logs."""

import calendar
import logging
from datetime import date
from uuid import UUID

from sqlalchemy.orm import Session, joinedload

from backoffice.db.enums import ACTIVE_PROJECT_STATUSES, AttendanceStatus
from backoffice.db.models import AttendanceDaily, Project, WorkLog
from backoffice.schemas.attendance import WorkLogInput
from backoffice.utils.datetime_utils import local_today, parse_month, utcnow

logger = logging.getLogger(__name__)


def get_record(db: Session, employee_id: UUID, day: date) -> AttendanceDaily | None:
    return db.query(AttendanceDaily).options(
        joinedload(AttendanceDaily.work_logs).joinedload(WorkLog.project),
    ).filter(
        AttendanceDaily.employee_id == employee_id,
        AttendanceDaily.date == day,
    ).first()


def get_record_by_id(db: Session, attendance_id: UUID) -> AttendanceDaily | None:
    return db.query(AttendanceDaily).filter(AttendanceDaily.id == attendance_id).first()


def get_today(db: Session, employee_id: UUID) -> tuple[date, AttendanceDaily | None]:
    today = local_today()
    return today, get_record(db, employee_id, today)


def clock_in(db: Session, employee_id: UUID) -> AttendanceDaily:
    today = local_today()
    record = get_record(db, employee_id, today)
    if record and record.clock_in:
        raise ValueError("既に出勤打刻済みです")
    if record is None:
        record = AttendanceDaily(employee_id=employee_id, date=today)
        db.add(record)
    record.clock_in = utcnow()
    record.status = AttendanceStatus.WORK.value
    db.commit()
    db.refresh(record)
    logger.info("Clock in", extra={"employee_id": str(employee_id)})
    return record


def clock_out(db: Session, employee_id: UUID) -> AttendanceDaily:
    record = get_record(db, employee_id, local_today())
    if not record or not record.clock_in:
        raise ValueError("出勤打刻がありません")
    if record.clock_out:
        raise ValueError("既に退勤打刻済みです")
    record.clock_out = utcnow()
    db.commit()
    db.refresh(record)
    logger.info("Clock out", extra={"employee_id": str(employee_id)})
    return record


def list_month(db: Session, employee_id: UUID, month: str) -> list[AttendanceDaily]:
    """One employee's records for a YYYY-MM, oldest day first."""
    year, month_number = parse_month(month)
    first = date(year, month_number, 1)
    last = date(year, month_number, calendar.monthrange(year, month_number)[1])
    return db.query(AttendanceDaily).options(
        joinedload(AttendanceDaily.work_logs).joinedload(WorkLog.project),
    ).filter(
        AttendanceDaily.employee_id == employee_id,
        AttendanceDaily.date >= first,
        AttendanceDaily.date <= last,
    ).order_by(AttendanceDaily.date).all()


def save_work_logs(
    db: Session,
    record: AttendanceDaily,
    employee_id: UUID,
    logs: list[WorkLogInput],
) -> AttendanceDaily:
    """Replace all work logs of a record. Only its owner may save."""
    if record.employee_id != employee_id:
        raise PermissionError("他の社員の勤怠は編集できません")

    project_ids = {log.project_id for log in logs}
    if project_ids:
        found = {
            row[0] for row in db.query(Project.id).filter(
                Project.id.in_(project_ids), Project.deleted_at.is_(None)
            ).all()
        }
        if found != project_ids:
            raise ValueError("業務が見つかりません")

    record.work_logs.clear()
    db.flush()
    for log in logs:
        record.work_logs.append(
            WorkLog(project_id=log.project_id, minutes=log.minutes, comment=log.comment)
        )
    db.commit()
    return get_record(db, record.employee_id, record.date)


def list_loggable_projects(db: Session) -> list[Project]:
    """Active projects for the work log picker, newest code first."""
    return db.query(Project).filter(
        Project.deleted_at.is_(None),
        Project.status.in_([s.value for s in ACTIVE_PROJECT_STATUSES]),
    ).order_by(Project.code.desc()).all()


def to_read(record: AttendanceDaily) -> dict:
    return {
        "id": record.id,
        "employee_id": record.employee_id,
        "date": record.date,
        "clock_in": record.clock_in,
        "clock_out": record.clock_out,
        "status": record.status,
        "worked_minutes": record.worked_minutes,
        "work_logs": [
            {
                "id": log.id,
                "project_id": log.project_id,
                "project_code": log.project.code if log.project else None,
                "project_name": log.project.name if log.project else None,
                "minutes": log.minutes,
                "comment": log.comment,
            }
            for log in record.work_logs
        ],
    }
