"""Calendar service - event categories and calendar events."""

import logging
from datetime import date
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backoffice.db.enums import ACTIVE_PROJECT_STATUSES, TaskStatus
from backoffice.db.models import (
    CalendarEvent,
    CalendarEventParticipant,
    Employee,
    EventCategory,
    Project,
    Task,
)
from backoffice.schemas.calendar import (
    EventCategoryCreate,
    EventCategoryUpdate,
    EventCreate,
    EventMove,
    EventUpdate,
    validate_event_range,
)

logger = logging.getLogger(__name__)

# Palette offered by the category editor
DEFAULT_CATEGORY_COLORS = [
    "#3b82f6", "#ef4444", "#10b981", "#f59e0b", "#8b5cf6",
    "#ec4899", "#14b8a6", "#f97316", "#6366f1", "#84cc16",
    "#06b6d4", "#e11d48", "#22c55e", "#eab308", "#a855f7",
    "#0ea5e9", "#d946ef", "#64748b", "#78716c", "#0f766e",
]


# =============================================================================
# Categories
# =============================================================================

def list_categories(db: Session) -> list[EventCategory]:
    return db.query(EventCategory).order_by(EventCategory.sort_order, EventCategory.name).all()


def get_category(db: Session, category_id: UUID) -> EventCategory | None:
    return db.query(EventCategory).filter(EventCategory.id == category_id).first()


def create_category(db: Session, data: EventCategoryCreate) -> EventCategory:
    max_order = db.query(func.max(EventCategory.sort_order)).scalar()
    category = EventCategory(
        name=data.name.strip(),
        color=data.color,
        sort_order=(max_order + 1) if max_order is not None else 0,
    )
    db.add(category)
    db.commit()
    db.refresh(category)
    return category


def update_category(db: Session, category: EventCategory, data: EventCategoryUpdate) -> EventCategory:
    for field, value in data.model_dump(exclude_unset=True, exclude_none=True).items():
        setattr(category, field, value.strip() if field == "name" else value)
    db.commit()
    db.refresh(category)
    return category


def delete_category(db: Session, category: EventCategory) -> None:
    """Delete a category; events keep existing without one."""
    db.query(CalendarEvent).filter(
        CalendarEvent.event_category_id == category.id
    ).update({CalendarEvent.event_category_id: None}, synchronize_session=False)
    db.delete(category)
    db.commit()


def reorder_categories(db: Session, ids: list[UUID]) -> list[EventCategory]:
    """Sort order follows the position in ids."""
    categories = {c.id: c for c in db.query(EventCategory).filter(EventCategory.id.in_(ids)).all()}
    if len(categories) != len(set(ids)):
        raise ValueError("カテゴリが見つかりません")
    for index, category_id in enumerate(ids):
        categories[category_id].sort_order = index
    db.commit()
    return list_categories(db)


# =============================================================================
# Events
# =============================================================================

def _event_query(db: Session):
    return db.query(CalendarEvent).options(
        joinedload(CalendarEvent.event_category),
        joinedload(CalendarEvent.project),
        joinedload(CalendarEvent.task),
        joinedload(CalendarEvent.creator),
        joinedload(CalendarEvent.participants).joinedload(CalendarEventParticipant.employee),
    )


def get_event(db: Session, event_id: UUID) -> CalendarEvent | None:
    return _event_query(db).filter(CalendarEvent.id == event_id).first()


def list_events(
    db: Session,
    start: date,
    end: date,
    participant_id: UUID | None = None,
) -> list[CalendarEvent]:
    """Events overlapping [start, end], optionally only those with a participant."""
    if end < start:
        raise ValueError("終了日は開始日以降の日付を指定してください")
    query = _event_query(db).filter(
        CalendarEvent.start_date <= end,
        CalendarEvent.end_date >= start,
    )
    if participant_id is not None:
        query = query.filter(
            CalendarEvent.participants.any(CalendarEventParticipant.employee_id == participant_id)
        )
    return query.order_by(
        CalendarEvent.start_date,
        CalendarEvent.all_day.desc(),
        CalendarEvent.start_time,
        CalendarEvent.title,
    ).all()


def _check_links(db: Session, data: dict) -> None:
    if data.get("event_category_id") and not get_category(db, data["event_category_id"]):
        raise ValueError("カテゴリが見つかりません")
    project_id = data.get("project_id")
    if project_id:
        exists = db.query(Project.id).filter(
            Project.id == project_id, Project.deleted_at.is_(None)
        ).first()
        if not exists:
            raise ValueError("業務が見つかりません")
    task_id = data.get("task_id")
    if task_id:
        task = db.query(Task).filter(Task.id == task_id).first()
        if not task:
            raise ValueError("タスクが見つかりません")
        if project_id and task.project_id != project_id:
            raise ValueError("タスクが選択した業務に属していません")


def _set_participants(db: Session, event: CalendarEvent, employee_ids: list[UUID]) -> None:
    unique_ids = list(dict.fromkeys(employee_ids))
    if unique_ids:
        found = {
            row[0] for row in db.query(Employee.id).filter(
                Employee.id.in_(unique_ids), Employee.deleted_at.is_(None)
            ).all()
        }
        if len(found) != len(unique_ids):
            raise ValueError("参加者が見つかりません")
    event.participants.clear()
    db.flush()
    for employee_id in unique_ids:
        event.participants.append(CalendarEventParticipant(employee_id=employee_id))


def create_event(db: Session, data: EventCreate, created_by: UUID | None) -> CalendarEvent:
    values = data.model_dump(exclude={"participant_ids", "category"})
    _check_links(db, values)
    event = CalendarEvent(
        **values,
        category=data.category.value if data.category else None,
        created_by=created_by,
    )
    db.add(event)
    _set_participants(db, event, data.participant_ids)
    db.commit()
    logger.info("Event created", extra={"event_id": str(event.id)})
    return get_event(db, event.id)


def update_event(db: Session, event: CalendarEvent, data: EventUpdate) -> CalendarEvent:
    """
    Update event fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    participant_ids, when present, replaces the whole participant list.
    """
    update_data = data.model_dump(exclude_unset=True)
    participant_ids = update_data.pop("participant_ids", None)

    clearable_fields = {
        "description", "category", "event_category_id", "start_time", "end_time",
        "location", "map_url", "project_id", "task_id",
    }
    links = {
        "event_category_id": update_data.get("event_category_id"),
        "project_id": update_data.get("project_id", event.project_id),
        "task_id": update_data.get("task_id"),
    }
    _check_links(db, links)

    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        if field == "category" and value is not None:
            value = value.value
        setattr(event, field, value)

    # Moving the start past the end without a new end collapses to one day
    if "end_date" not in update_data and event.end_date < event.start_date:
        event.end_date = event.start_date
    if event.all_day:
        event.start_time = None
        event.end_time = None
    validate_event_range(event.start_date, event.start_time, event.end_date, event.end_time)

    if participant_ids is not None:
        _set_participants(db, event, participant_ids)

    db.commit()
    return get_event(db, event.id)


def move_event(db: Session, event: CalendarEvent, data: EventMove) -> CalendarEvent:
    """Apply a drag/resize; the duration in days is kept when end_date is omitted."""
    if data.end_date is None:
        span = event.end_date - event.start_date
        end_date = data.start_date + span
    else:
        end_date = data.end_date
    all_day = event.all_day if data.all_day is None else data.all_day
    # Times not sent with the drop stay as they were
    start_time = data.start_time if "start_time" in data.model_fields_set else event.start_time
    end_time = data.end_time if "end_time" in data.model_fields_set else event.end_time
    if all_day:
        start_time = None
        end_time = None
    validate_event_range(data.start_date, start_time, end_date, end_time)

    event.start_date = data.start_date
    event.end_date = end_date
    event.all_day = all_day
    event.start_time = start_time
    event.end_time = end_time
    db.commit()
    return get_event(db, event.id)


def delete_event(db: Session, event: CalendarEvent) -> None:
    db.delete(event)
    db.commit()


def list_projects_with_tasks(db: Session) -> list[dict]:
    """Active projects and their open top-level tasks, for linking events."""
    projects = db.query(Project).filter(
        Project.deleted_at.is_(None),
        Project.status.in_([s.value for s in ACTIVE_PROJECT_STATUSES]),
    ).order_by(Project.code.desc()).all()
    if not projects:
        return []

    tasks = db.query(Task).filter(
        Task.project_id.in_([p.id for p in projects]),
        Task.parent_id.is_(None),
        Task.status != TaskStatus.DONE.value,
    ).order_by(Task.sort_order, Task.created_at).all()

    by_project: dict[UUID, list[dict]] = {}
    for task in tasks:
        by_project.setdefault(task.project_id, []).append({"id": task.id, "title": task.title})

    return [
        {"id": p.id, "code": p.code, "name": p.name, "tasks": by_project.get(p.id, [])}
        for p in projects
    ]


def to_read(event: CalendarEvent) -> dict:
    return {
        "id": event.id,
        "title": event.title,
        "description": event.description,
        "category": event.category,
        "event_category": event.event_category,
        "start_date": event.start_date,
        "start_time": event.start_time,
        "end_date": event.end_date,
        "end_time": event.end_time,
        "all_day": event.all_day,
        "location": event.location,
        "map_url": event.map_url,
        "project": (
            {"id": event.project.id, "code": event.project.code, "name": event.project.name}
            if event.project else None
        ),
        "task": {"id": event.task.id, "title": event.task.title} if event.task else None,
        "creator": (
            {"id": event.creator.id, "name": event.creator.name} if event.creator else None
        ),
        "participants": [
            {"id": p.employee.id, "name": p.employee.name}
            for p in event.participants
            if p.employee is not None
        ],
        "created_at": event.created_at,
    }
