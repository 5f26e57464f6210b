"""Task service - business logic for project tasks and task template sets."""

import logging
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session, joinedload

from backoffice.db.enums import ACTIVE_PROJECT_STATUSES, TaskStatus
from backoffice.db.models import Employee, Project, Task, TaskTemplateItem, TaskTemplateSet
from backoffice.schemas.task import TaskCreate, TaskReorderItem, TaskUpdate
from backoffice.utils.datetime_utils import as_utc, minutes_between, utcnow

logger = logging.getLogger(__name__)


# =============================================================================
# Status transitions
# =============================================================================

def apply_status(task: Task, status: TaskStatus) -> None:
    """
    Move a task to a status and maintain its timing fields.

    - 進行中: started_at is set the first time
    - 完了: completed_at is set; actual_minutes is derived from started_at
    - leaving 完了 clears completed_at and actual_minutes
    """
    status = TaskStatus(status)
    now = utcnow()

    if status == TaskStatus.IN_PROGRESS and task.started_at is None:
        task.started_at = now

    if status == TaskStatus.DONE:
        if task.status != TaskStatus.DONE.value or task.completed_at is None:
            task.completed_at = now
            task.actual_minutes = (
                minutes_between(as_utc(task.started_at), now) if task.started_at else None
            )
    elif task.status == TaskStatus.DONE.value:
        task.completed_at = None
        task.actual_minutes = None

    task.status = status.value


def cycle_status(db: Session, task: Task) -> Task:
    """未着手 → 進行中 → 完了 → 未着手."""
    apply_status(task, TaskStatus(task.status).next())
    db.commit()
    db.refresh(task)
    return task


def toggle_complete(db: Session, task: Task) -> Task:
    """Flip between 完了 and 未着手 (dashboard checkbox)."""
    target = TaskStatus.NOT_STARTED if task.is_completed else TaskStatus.DONE
    apply_status(task, target)
    db.commit()
    db.refresh(task)
    return task


# =============================================================================
# CRUD
# =============================================================================

def get_task(db: Session, task_id: UUID) -> Task | None:
    return db.query(Task).filter(Task.id == task_id).first()


def _next_sort_order(db: Session, project_id: UUID, parent_id: UUID | None) -> int:
    query = db.query(func.max(Task.sort_order)).filter(Task.project_id == project_id)
    if parent_id is None:
        query = query.filter(Task.parent_id.is_(None))
    else:
        query = query.filter(Task.parent_id == parent_id)
    current = query.scalar()
    return 0 if current is None else current + 1


def _check_assignee(db: Session, employee_id: UUID | None) -> None:
    if employee_id is None:
        return
    exists = db.query(Employee.id).filter(
        Employee.id == employee_id, Employee.deleted_at.is_(None)
    ).first()
    if not exists:
        raise ValueError("担当者が見つかりません")


def create_task(db: Session, project: Project, data: TaskCreate) -> Task:
    """Create a task or subtask at the end of its sibling list."""
    if data.parent_id is not None:
        parent = get_task(db, data.parent_id)
        if not parent or parent.project_id != project.id:
            raise ValueError("親タスクが見つかりません")
        if parent.parent_id is not None:
            raise ValueError("サブタスクの下にはタスクを追加できません")
    _check_assignee(db, data.assigned_to)

    task = Task(
        project_id=project.id,
        parent_id=data.parent_id,
        title=data.title.strip(),
        description=data.description,
        due_date=data.due_date,
        assigned_to=data.assigned_to,
        estimated_minutes=data.estimated_minutes,
        sort_order=_next_sort_order(db, project.id, data.parent_id),
        status=TaskStatus.NOT_STARTED.value,
    )
    if data.status != TaskStatus.NOT_STARTED:
        apply_status(task, data.status)
    db.add(task)
    db.commit()
    db.refresh(task)
    return task


def update_task(db: Session, task: Task, data: TaskUpdate) -> Task:
    """
    Update task fields.

    Uses exclude_unset=True so only explicitly provided fields are updated.
    None values ARE applied to clear optional fields.
    """
    update_data = data.model_dump(exclude_unset=True)

    # Fields that can be cleared (set to None)
    clearable_fields = {"due_date", "description", "estimated_minutes", "assigned_to"}

    if "assigned_to" in update_data:
        _check_assignee(db, update_data["assigned_to"])

    status = update_data.pop("status", None)
    for field, value in update_data.items():
        if value is None and field not in clearable_fields:
            continue
        setattr(task, field, value)

    if status is not None and status.value != task.status:
        apply_status(task, status)

    db.commit()
    db.refresh(task)
    return task


def delete_task(db: Session, task: Task) -> None:
    """Delete a task; its subtasks go with it."""
    db.delete(task)
    db.commit()


def list_project_tasks(db: Session, project_id: UUID) -> list[Task]:
    """Top-level tasks in order; subtasks are reachable via task.children."""
    return db.query(Task).options(
        joinedload(Task.children),
        joinedload(Task.assignee),
    ).filter(
        Task.project_id == project_id,
        Task.parent_id.is_(None),
    ).order_by(Task.sort_order, Task.created_at).all()


def reorder_tasks(db: Session, project_id: UUID, items: list[TaskReorderItem]) -> None:
    """Apply new sort orders; every id must belong to the project."""
    ids = [item.id for item in items]
    tasks = {t.id: t for t in db.query(Task).filter(Task.id.in_(ids)).all()}
    for item in items:
        task = tasks.get(item.id)
        if not task or task.project_id != project_id:
            raise ValueError("並び替え対象のタスクが見つかりません")
        task.sort_order = item.sort_order
    db.commit()


# =============================================================================
# Dashboard
# =============================================================================

def list_incomplete_tasks(db: Session, assignee_id: UUID | None = None) -> list[Task]:
    """Open tasks of active projects, earliest due date first (no date last)."""
    query = db.query(Task).join(Project, Task.project_id == Project.id).options(
        joinedload(Task.project),
        joinedload(Task.assignee),
    ).filter(
        Task.status != TaskStatus.DONE.value,
        Project.deleted_at.is_(None),
        Project.status.in_([s.value for s in ACTIVE_PROJECT_STATUSES]),
    )
    if assignee_id:
        query = query.filter(Task.assigned_to == assignee_id)
    return query.order_by(
        Task.due_date.is_(None),
        Task.due_date,
        Project.code,
        Task.sort_order,
    ).all()


# =============================================================================
# Template sets
# =============================================================================

def list_template_sets(db: Session) -> list[TaskTemplateSet]:
    return db.query(TaskTemplateSet).options(
        joinedload(TaskTemplateSet.items)
    ).order_by(TaskTemplateSet.name).all()


def get_template_set(db: Session, template_set_id: UUID) -> TaskTemplateSet | None:
    return db.query(TaskTemplateSet).filter(TaskTemplateSet.id == template_set_id).first()


def create_template_set_from_project(
    db: Session,
    project: Project,
    name: str,
    created_by: UUID | None = None,
) -> TaskTemplateSet:
    """Save the project's top-level tasks (title, estimate, order) as a template."""
    tasks = db.query(Task).filter(
        Task.project_id == project.id,
        Task.parent_id.is_(None),
    ).order_by(Task.sort_order, Task.created_at).all()
    if not tasks:
        raise ValueError("保存するタスクがありません")

    template_set = TaskTemplateSet(name=name.strip(), created_by=created_by)
    for index, task in enumerate(tasks):
        template_set.items.append(
            TaskTemplateItem(
                title=task.title,
                estimated_minutes=task.estimated_minutes,
                sort_order=index,
            )
        )
    db.add(template_set)
    db.commit()
    db.refresh(template_set)
    return template_set


def delete_template_set(db: Session, template_set: TaskTemplateSet) -> None:
    db.delete(template_set)
    db.commit()


def apply_template_set(
    db: Session,
    project: Project,
    template_set: TaskTemplateSet,
    default_assignee_id: UUID | None = None,
) -> list[Task]:
    """Append the template's tasks after the project's existing top-level tasks."""
    if not template_set.items:
        raise ValueError("テンプレートにタスクがありません")
    _check_assignee(db, default_assignee_id)

    start = _next_sort_order(db, project.id, None)
    created: list[Task] = []
    for offset, item in enumerate(template_set.items):
        task = Task(
            project_id=project.id,
            title=item.title,
            estimated_minutes=item.estimated_minutes,
            assigned_to=default_assignee_id,
            sort_order=start + offset,
            status=TaskStatus.NOT_STARTED.value,
        )
        db.add(task)
        created.append(task)
    db.commit()
    for task in created:
        db.refresh(task)
    logger.info(
        "Template applied",
        extra={"project_id": str(project.id), "template_set_id": str(template_set.id), "count": len(created)},
    )
    return created
