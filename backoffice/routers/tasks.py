"""Tasks router - project tasks, dashboard and task template sets.

Mixed paths: /projects/{id}/tasks, /tasks/{id}, /dashboard/tasks, /task-templates.
"""

from uuid import UUID

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from backoffice.core.deps import get_current_session, get_db, require_csrf_header
from backoffice.db.models import Task
from backoffice.routers.projects import project_or_404
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.project import ProjectSummary
from backoffice.schemas.task import (
    DashboardTask,
    TaskCreate,
    TaskRead,
    TaskReorder,
    TaskUpdate,
    TemplateSetApply,
    TemplateSetCreate,
    TemplateSetRead,
)
from backoffice.services import task_service

router = APIRouter()


def task_read(task: Task, with_children: bool = True) -> TaskRead:
    return TaskRead(
        id=task.id,
        project_id=task.project_id,
        parent_id=task.parent_id,
        title=task.title,
        description=task.description,
        status=task.status,
        is_completed=task.is_completed,
        due_date=task.due_date,
        assigned_to=task.assigned_to,
        assignee_name=task.assignee.name if task.assignee else None,
        sort_order=task.sort_order,
        estimated_minutes=task.estimated_minutes,
        started_at=task.started_at,
        completed_at=task.completed_at,
        actual_minutes=task.actual_minutes,
        created_at=task.created_at,
        children=[task_read(c, with_children=False) for c in task.children] if with_children else [],
    )


def _task_or_404(db: Session, task_id: UUID) -> Task:
    task = task_service.get_task(db, task_id)
    if not task or task.project.deleted_at is not None:
        raise HTTPException(status_code=404, detail="タスクが見つかりません")
    return task


# =============================================================================
# Project tasks
# =============================================================================

@router.get("/projects/{project_id}/tasks", response_model=list[TaskRead])
def list_project_tasks(
    project_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Top-level tasks in order, each with its subtasks."""
    project = project_or_404(db, project_id)
    return [task_read(t) for t in task_service.list_project_tasks(db, project.id)]


@router.post(
    "/projects/{project_id}/tasks",
    response_model=TaskRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def create_task(
    project_id: UUID,
    data: TaskCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    try:
        task = task_service.create_task(db, project, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task_read(task)


@router.post(
    "/projects/{project_id}/tasks/reorder",
    status_code=204,
    dependencies=[Depends(require_csrf_header)],
)
def reorder_tasks(
    project_id: UUID,
    data: TaskReorder,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    try:
        task_service.reorder_tasks(db, project.id, data.items)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


@router.post(
    "/projects/{project_id}/tasks/apply-template",
    response_model=list[TaskRead],
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def apply_template(
    project_id: UUID,
    data: TemplateSetApply,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    project = project_or_404(db, project_id)
    template_set = task_service.get_template_set(db, data.template_set_id)
    if not template_set:
        raise HTTPException(status_code=404, detail="テンプレートが見つかりません")
    try:
        tasks = task_service.apply_template_set(db, project, template_set, data.default_assignee_id)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return [task_read(t) for t in tasks]


@router.post(
    "/projects/{project_id}/tasks/save-template",
    response_model=TemplateSetRead,
    status_code=201,
    dependencies=[Depends(require_csrf_header)],
)
def save_template(
    project_id: UUID,
    data: TemplateSetCreate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Save the project's top-level tasks as a reusable template set."""
    project = project_or_404(db, project_id)
    try:
        return task_service.create_template_set_from_project(
            db, project, data.name, created_by=session.employee_id
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


# =============================================================================
# Single task
# =============================================================================

@router.patch("/tasks/{task_id}", response_model=TaskRead, dependencies=[Depends(require_csrf_header)])
def update_task(
    task_id: UUID,
    data: TaskUpdate,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task = _task_or_404(db, task_id)
    try:
        task = task_service.update_task(db, task, data)
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return task_read(task)


@router.post("/tasks/{task_id}/cycle-status", response_model=TaskRead, dependencies=[Depends(require_csrf_header)])
def cycle_status(
    task_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """未着手 → 進行中 → 完了 → 未着手."""
    return task_read(task_service.cycle_status(db, _task_or_404(db, task_id)))


@router.post("/tasks/{task_id}/toggle-complete", response_model=TaskRead, dependencies=[Depends(require_csrf_header)])
def toggle_complete(
    task_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return task_read(task_service.toggle_complete(db, _task_or_404(db, task_id)))


@router.delete("/tasks/{task_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_task(
    task_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    task_service.delete_task(db, _task_or_404(db, task_id))


# =============================================================================
# Dashboard
# =============================================================================

@router.get("/dashboard/tasks", response_model=list[DashboardTask])
def dashboard_tasks(
    assignee_id: UUID | None = None,
    mine: bool = False,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    """Open tasks of active projects, earliest due date first."""
    if mine:
        assignee_id = session.employee_id
    tasks = task_service.list_incomplete_tasks(db, assignee_id=assignee_id)
    return [
        DashboardTask(
            id=t.id,
            title=t.title,
            status=t.status,
            due_date=t.due_date,
            assigned_to=t.assigned_to,
            assignee_name=t.assignee.name if t.assignee else None,
            parent_id=t.parent_id,
            project=ProjectSummary.model_validate(t.project),
        )
        for t in tasks
    ]


# =============================================================================
# Template sets
# =============================================================================

@router.get("/task-templates", response_model=list[TemplateSetRead])
def list_template_sets(
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    return task_service.list_template_sets(db)


@router.get("/task-templates/{template_set_id}", response_model=TemplateSetRead)
def get_template_set(
    template_set_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    template_set = task_service.get_template_set(db, template_set_id)
    if not template_set:
        raise HTTPException(status_code=404, detail="テンプレートが見つかりません")
    return template_set


@router.delete("/task-templates/{template_set_id}", status_code=204, dependencies=[Depends(require_csrf_header)])
def delete_template_set(
    template_set_id: UUID,
    session: EmployeeSession = Depends(get_current_session),
    db: Session = Depends(get_db),
):
    template_set = task_service.get_template_set(db, template_set_id)
    if not template_set:
        raise HTTPException(status_code=404, detail="テンプレートが見つかりません")
    task_service.delete_template_set(db, template_set)
