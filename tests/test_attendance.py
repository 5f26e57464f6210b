"""Tests for clock in/out, monthly records and work logs."""
from datetime import date, datetime, timezone

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.db.enums import ProjectCategory
from backoffice.db.models import AttendanceDaily
from backoffice.schemas.attendance import WorkLogInput
from backoffice.schemas.project import ProjectCreate
from backoffice.services import attendance_service, project_service
from backoffice.utils.datetime_utils import local_today


def _day(db: Session, employee, day: date, start: tuple[int, int], end: tuple[int, int] | None):
    record = AttendanceDaily(
        employee_id=employee.id,
        date=day,
        clock_in=datetime(day.year, day.month, day.day, *start, tzinfo=timezone.utc),
        clock_out=datetime(day.year, day.month, day.day, *end, tzinfo=timezone.utc) if end else None,
    )
    db.add(record)
    db.commit()
    db.refresh(record)
    return record


# =============================================================================
# Clock in / out
# =============================================================================

def test_clock_in_then_out(db: Session, staff):
    record = attendance_service.clock_in(db, staff.id)
    assert record.date == local_today()
    assert record.status == "Work"
    assert record.clock_out is None

    with pytest.raises(ValueError):
        attendance_service.clock_in(db, staff.id)

    record = attendance_service.clock_out(db, staff.id)
    assert record.clock_out is not None
    assert record.worked_minutes == 0

    with pytest.raises(ValueError):
        attendance_service.clock_out(db, staff.id)


def test_clock_out_requires_clock_in(db: Session, staff):
    with pytest.raises(ValueError):
        attendance_service.clock_out(db, staff.id)


# =============================================================================
# Month
# =============================================================================

def test_list_month_is_scoped_to_employee_and_month(db: Session, admin, staff):
    _day(db, staff, date(2025, 5, 2), (0, 0), (8, 30))
    _day(db, staff, date(2025, 5, 1), (0, 0), (8, 0))
    _day(db, staff, date(2025, 6, 1), (0, 0), (8, 0))
    _day(db, admin, date(2025, 5, 1), (0, 0), (8, 0))

    records = attendance_service.list_month(db, staff.id, "2025-05")
    assert [r.date for r in records] == [date(2025, 5, 1), date(2025, 5, 2)]
    assert sum(r.worked_minutes for r in records) == 990

    with pytest.raises(ValueError):
        attendance_service.list_month(db, staff.id, "2025-13")


# =============================================================================
# Work logs
# =============================================================================

def test_save_work_logs_replaces_previous(db: Session, staff, admin):
    project = project_service.create_project(db, ProjectCreate(category=ProjectCategory.SURVEY, name="測量"))
    record = _day(db, staff, date(2025, 5, 1), (0, 0), (8, 0))

    attendance_service.save_work_logs(
        db, record, staff.id, [WorkLogInput(project_id=project.id, minutes=120, comment="現地")]
    )
    record = attendance_service.save_work_logs(
        db, record, staff.id, [WorkLogInput(project_id=project.id, minutes=60)]
    )
    data = attendance_service.to_read(record)
    assert [(w["minutes"], w["project_code"]) for w in data["work_logs"]] == [(60, project.code)]

    with pytest.raises(PermissionError):
        attendance_service.save_work_logs(db, record, admin.id, [])


def test_work_logs_reject_deleted_projects(db: Session, staff):
    project = project_service.create_project(db, ProjectCreate(category=ProjectCategory.SURVEY, name="測量"))
    project_service.delete_project(db, project)
    record = _day(db, staff, date(2025, 5, 1), (0, 0), None)

    with pytest.raises(ValueError):
        attendance_service.save_work_logs(
            db, record, staff.id, [WorkLogInput(project_id=project.id, minutes=30)]
        )


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_attendance_api(staff_client: AsyncClient):
    response = await staff_client.get("/attendance/today")
    assert response.status_code == 200
    assert response.json()["record"] is None

    response = await staff_client.post("/attendance/clock-out")
    assert response.status_code == 400

    response = await staff_client.post("/attendance/clock-in")
    assert response.status_code == 200
    record = response.json()

    response = await staff_client.post("/attendance/clock-in")
    assert response.status_code == 400
    assert response.json()["detail"] == "既に出勤打刻済みです"

    month = local_today().strftime("%Y-%m")
    response = await staff_client.get("/attendance/month", params={"month": month})
    assert [r["id"] for r in response.json()["records"]] == [record["id"]]

    response = await staff_client.get("/attendance/month", params={"month": "bad"})
    assert response.status_code == 400


@pytest.mark.asyncio
async def test_staff_cannot_view_or_edit_others(staff_client: AsyncClient, db: Session, admin):
    record = _day(db, admin, date(2025, 5, 1), (0, 0), (8, 0))

    response = await staff_client.get(
        "/attendance/month", params={"month": "2025-05", "employee_id": str(admin.id)}
    )
    assert response.status_code == 403

    response = await staff_client.put(f"/attendance/{record.id}/work-logs", json={"logs": []})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_admin_views_staff_month(authed_client: AsyncClient, db: Session, staff):
    _day(db, staff, date(2025, 5, 1), (0, 0), (7, 45))

    response = await authed_client.get(
        "/attendance/month", params={"month": "2025-05", "employee_id": str(staff.id)}
    )
    assert response.status_code == 200
    assert response.json()["total_worked_minutes"] == 465


@pytest.mark.asyncio
async def test_work_logs_api(authed_client: AsyncClient, db: Session, test_auth):
    project = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "測量"})).json()
    record = _day(db, test_auth.employee, date(2025, 5, 1), (0, 0), (8, 0))

    response = await authed_client.get("/attendance/projects")
    assert [p["id"] for p in response.json()] == [project["id"]]

    response = await authed_client.put(
        f"/attendance/{record.id}/work-logs",
        json={"logs": [{"project_id": project["id"], "minutes": 90, "comment": "図面作成"}]},
    )
    assert response.status_code == 200
    assert response.json()["work_logs"][0]["project_name"] == "測量"

    response = await authed_client.put(
        f"/attendance/{record.id}/work-logs",
        json={"logs": [{"project_id": project["id"], "minutes": 0}]},
    )
    assert response.status_code == 422
