"""Calendar router - event categories and events."""

from datetime import date
from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException, Query
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header, require_roles
from backoffice.db.enums import ROLES_CAN_MANAGE_MASTERS
from backoffice.db.models import CalendarEvent
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.calendar import (
    EventCategoryCreate,
    EventCategoryRead,
    EventCategoryReorder,
    EventCategoryUpdate,
    EventCreate,
    EventMove,
    EventRead,
    EventUpdate,
    ProjectWithTasks,
)
from backoffice.services import calendar_service

router = APIRouter()


def _event_or_404(db: Session, event_id: UUID) -> CalendarEvent:
    event = calendar_service.get_event(db, event_id)
    if not event:
        raise HTTPException(status_code=404, detail="予定が見つかりません")
    return event


# =============================================================================
# Categories
# =============================================================================

@router.get("/categories", response_model=list[EventCategoryRead])
def list_categories(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return calendar_service.list_categories(db)


@router.get("/categories/colors", response_model=list[str])
def list_category_colors(session: EmployeeSession = Depends(get_current_session)):
    return calendar_service.DEFAULT_CATEGORY_COLORS


@router.post(
    "/categories",
    response_model=EventCategoryRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_category(
    data: EventCategoryCreate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    return calendar_service.create_category(db, data)


@router.post(
    "/categories/reorder",
    response_model=list[EventCategoryRead],
    dependencies=[Depends(require_csrf_header)],
)
def reorder_categories(
    data: EventCategoryReorder,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    try:
        return calendar_service.reorder_categories(db, data.ids)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.patch(
    "/categories/{category_id}",
    response_model=EventCategoryRead,
    dependencies=[Depends(require_csrf_header)],
)
def update_category(
    category_id: UUID,
    data: EventCategoryUpdate,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    category = calendar_service.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="カテゴリが見つかりません")
    return calendar_service.update_category(db, category, data)


@router.delete("/categories/{category_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_category(
    category_id: UUID,
    session: EmployeeSession = Depends(require_roles(ROLES_CAN_MANAGE_MASTERS)),
    db: Session = Depends(get_db),
):
    category = calendar_service.get_category(db, category_id)
    if not category:
        raise HTTPException(status_code=404, detail="カテゴリが見つかりません")
    calendar_service.delete_category(db, category)


# =============================================================================
# Events
# =============================================================================

@router.get("/events", response_model=list[EventRead])
def list_events(
    start: date = Query(..., description="Range start (inclusive)"),
    end: date = Query(..., description="Range end (inclusive)"),
    participant_id: UUID | None = None,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Events overlapping [start, end]."""
    try:
        events = calendar_service.list_events(db, start, end, participant_id=participant_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [calendar_service.to_read(e) for e in events]


@router.get("/projects", response_model=list[ProjectWithTasks])
def list_projects_with_tasks(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Active projects with open tasks, for linking an event."""
    return calendar_service.list_projects_with_tasks(db)


@router.post("/events", response_model=EventRead, status_code=201, dependencies=[Depends(require_csrf_header)])
def create_event(
    data: EventCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    try:
        event = calendar_service.create_event(db, data, created_by=session.employee_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return calendar_service.to_read(event)


@router.get("/events/{event_id}", response_model=EventRead)
def get_event(
    event_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return calendar_service.to_read(_event_or_404(db, event_id))


@router.patch("/events/{event_id}", response_model=EventRead, dependencies=[Depends(require_csrf_header)])
def update_event(
    event_id: UUID,
    data: EventUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    event = _event_or_404(db, event_id)
    try:
        event = calendar_service.update_event(db, event, data)
    except ValueError as e:
        db.rollback()
        raise HTTPException(status_code=400, detail=str(e))
    return calendar_service.to_read(event)


@router.patch("/events/{event_id}/move", response_model=EventRead, dependencies=[Depends(require_csrf_header)])
def move_event(
    event_id: UUID,
    data: EventMove,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Drag/resize: dates and times only."""
    event = _event_or_404(db, event_id)
    try:
        event = calendar_service.move_event(db, event, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return calendar_service.to_read(event)


@router.delete("/events/{event_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_event(
    event_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    calendar_service.delete_event(db, _event_or_404(db, event_id))
