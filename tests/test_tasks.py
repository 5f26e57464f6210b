"""Tests for project tasks, the dashboard list and template sets."""
from datetime import date, timedelta

import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.db.enums import ProjectCategory, ProjectStatus, TaskStatus
from backoffice.db.models import Task
from backoffice.schemas.project import ProjectCreate
from backoffice.schemas.task import TaskCreate, TaskReorderItem, TaskUpdate
from backoffice.services import project_service, task_service
from backoffice.utils.datetime_utils import utcnow


def _project(db: Session, **overrides):
    values = {"category": ProjectCategory.SURVEY, "name": "測量業務"}
    values.update(overrides)
    return project_service.create_project(db, ProjectCreate(**values))


def _task(db: Session, project, title: str = "現地調査", **overrides) -> Task:
    return task_service.create_task(db, project, TaskCreate(title=title, **overrides))


# =============================================================================
# Status transitions
# =============================================================================

def test_apply_status_tracks_timing():
    task = Task(title="測量", status=TaskStatus.NOT_STARTED.value)

    task_service.apply_status(task, TaskStatus.IN_PROGRESS)
    assert task.started_at is not None

    started = utcnow() - timedelta(minutes=45)
    task.started_at = started
    task_service.apply_status(task, TaskStatus.DONE)
    assert task.status == TaskStatus.DONE.value
    assert task.completed_at is not None
    assert task.actual_minutes in (44, 45)

    task_service.apply_status(task, TaskStatus.IN_PROGRESS)
    assert task.completed_at is None
    assert task.actual_minutes is None
    # started_at survives a reopen
    assert task.started_at == started


def test_done_without_start_has_no_actual_minutes():
    task = Task(title="書類作成", status=TaskStatus.NOT_STARTED.value)
    task_service.apply_status(task, TaskStatus.DONE)
    assert task.completed_at is not None
    assert task.actual_minutes is None


def test_cycle_status_wraps_around(db: Session):
    task = _task(db, _project(db))
    seen = []
    for _ in range(3):
        task = task_service.cycle_status(db, task)
        seen.append(task.status)
    assert seen == ["進行中", "完了", "未着手"]
    assert task.completed_at is None


def test_toggle_complete(db: Session):
    task = _task(db, _project(db), status=TaskStatus.IN_PROGRESS)
    task = task_service.toggle_complete(db, task)
    assert task.is_completed
    task = task_service.toggle_complete(db, task)
    assert task.status == TaskStatus.NOT_STARTED.value


# =============================================================================
# CRUD
# =============================================================================

def test_subtasks_are_one_level_deep(db: Session):
    project = _project(db)
    parent = _task(db, project, "境界立会")
    child = _task(db, project, "立会日程調整", parent_id=parent.id)
    assert child.sort_order == 0

    with pytest.raises(ValueError):
        _task(db, project, "孫タスク", parent_id=child.id)

    other = _project(db)
    with pytest.raises(ValueError):
        _task(db, other, "別業務", parent_id=parent.id)

    tasks = task_service.list_project_tasks(db, project.id)
    assert [t.title for t in tasks] == ["境界立会"]
    assert [c.title for c in tasks[0].children] == ["立会日程調整"]


def test_deleting_parent_removes_subtasks(db: Session):
    project = _project(db)
    parent = _task(db, project)
    _task(db, project, "サブ", parent_id=parent.id)
    task_service.delete_task(db, parent)
    assert db.query(Task).count() == 0


def test_unknown_assignee_is_rejected(db: Session):
    import uuid

    with pytest.raises(ValueError):
        _task(db, _project(db), assigned_to=uuid.uuid4())


def test_update_clears_due_date_but_keeps_title(db: Session, staff):
    task = _task(db, _project(db), due_date=date(2025, 5, 1), assigned_to=staff.id)
    task = task_service.update_task(
        db, task, TaskUpdate(due_date=None, title=None, status=TaskStatus.IN_PROGRESS)
    )
    assert task.due_date is None
    assert task.title == "現地調査"
    assert task.assigned_to == staff.id
    assert task.started_at is not None


def test_reorder_rejects_foreign_tasks(db: Session):
    project = _project(db)
    first = _task(db, project, "一")
    second = _task(db, project, "二")
    assert (first.sort_order, second.sort_order) == (0, 1)

    task_service.reorder_tasks(
        db,
        project.id,
        [TaskReorderItem(id=first.id, sort_order=1), TaskReorderItem(id=second.id, sort_order=0)],
    )
    assert [t.title for t in task_service.list_project_tasks(db, project.id)] == ["二", "一"]

    foreign = _task(db, _project(db), "他")
    with pytest.raises(ValueError):
        task_service.reorder_tasks(db, project.id, [TaskReorderItem(id=foreign.id, sort_order=0)])


# =============================================================================
# Dashboard
# =============================================================================

def test_incomplete_tasks_order_and_filters(db: Session, staff):
    active = _project(db)
    finished = _project(db, status=ProjectStatus.COMPLETED)

    _task(db, active, "期限なし")
    _task(db, active, "後", due_date=date(2025, 6, 1), assigned_to=staff.id)
    _task(db, active, "先", due_date=date(2025, 5, 1))
    _task(db, active, "済", due_date=date(2025, 4, 1), status=TaskStatus.DONE)
    _task(db, finished, "完了業務", due_date=date(2025, 4, 1))

    tasks = task_service.list_incomplete_tasks(db)
    assert [t.title for t in tasks] == ["先", "後", "期限なし"]

    mine = task_service.list_incomplete_tasks(db, assignee_id=staff.id)
    assert [t.title for t in mine] == ["後"]


def test_deleted_project_tasks_leave_dashboard(db: Session):
    project = _project(db)
    _task(db, project)
    project_service.delete_project(db, project)
    assert task_service.list_incomplete_tasks(db) == []


# =============================================================================
# Template sets
# =============================================================================

def test_save_and_apply_template(db: Session, staff):
    source = _project(db)
    _task(db, source, "資料調査", estimated_minutes=60)
    parent = _task(db, source, "現地測量", estimated_minutes=240)
    _task(db, source, "サブは含めない", parent_id=parent.id)

    template_set = task_service.create_template_set_from_project(db, source, " 一般測量 ")
    assert template_set.name == "一般測量"
    assert [(i.title, i.estimated_minutes) for i in template_set.items] == [
        ("資料調査", 60),
        ("現地測量", 240),
    ]

    target = _project(db)
    _task(db, target, "既存")
    created = task_service.apply_template_set(db, target, template_set, staff.id)
    assert [t.sort_order for t in created] == [1, 2]
    assert all(t.assigned_to == staff.id for t in created)
    assert all(t.status == TaskStatus.NOT_STARTED.value for t in created)


def test_empty_project_cannot_be_saved_as_template(db: Session):
    with pytest.raises(ValueError):
        task_service.create_template_set_from_project(db, _project(db), "空")


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_task_api_flow(authed_client: AsyncClient, db: Session):
    project = (await authed_client.post("/projects", json={"category": "B_Boundary", "name": "境界"})).json()
    base = f"/projects/{project['id']}/tasks"

    response = await authed_client.post(base, json={"title": "立会", "due_date": "2025-05-01"})
    assert response.status_code == 201
    parent = response.json()
    assert parent["status"] == "未着手"

    response = await authed_client.post(base, json={"title": "案内送付", "parent_id": parent["id"]})
    assert response.status_code == 201
    child = response.json()

    response = await authed_client.post(base, json={"title": "孫", "parent_id": child["id"]})
    assert response.status_code == 400

    response = await authed_client.get(base)
    assert [c["title"] for c in response.json()[0]["children"]] == ["案内送付"]

    response = await authed_client.post(f"/tasks/{parent['id']}/cycle-status")
    assert response.json()["status"] == "進行中"
    assert response.json()["started_at"] is not None

    response = await authed_client.post(f"/tasks/{parent['id']}/toggle-complete")
    assert response.json()["is_completed"] is True

    response = await authed_client.patch(f"/tasks/{child['id']}", json={"title": "案内状送付"})
    assert response.json()["title"] == "案内状送付"

    response = await authed_client.get("/dashboard/tasks")
    assert [t["title"] for t in response.json()] == ["案内状送付"]
    assert response.json()[0]["project"]["code"] == project["code"]

    response = await authed_client.delete(f"/tasks/{parent['id']}")
    assert response.status_code == 204
    assert (await authed_client.get(base)).json() == []


@pytest.mark.asyncio
async def test_dashboard_mine_filter(authed_client: AsyncClient, test_auth, employee_factory):
    project = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "測量"})).json()
    other = employee_factory(name="他の社員")
    base = f"/projects/{project['id']}/tasks"
    await authed_client.post(base, json={"title": "自分", "assigned_to": str(test_auth.employee.id)})
    await authed_client.post(base, json={"title": "他人", "assigned_to": str(other.id)})

    response = await authed_client.get("/dashboard/tasks", params={"mine": True})
    assert [t["title"] for t in response.json()] == ["自分"]
    assert response.json()[0]["assignee_name"] == "管理者"


@pytest.mark.asyncio
async def test_template_api(authed_client: AsyncClient):
    source = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "元"})).json()
    target = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "先"})).json()
    await authed_client.post(f"/projects/{source['id']}/tasks", json={"title": "資料調査"})

    response = await authed_client.post(
        f"/projects/{target['id']}/tasks/save-template", json={"name": "空"}
    )
    assert response.status_code == 400

    response = await authed_client.post(
        f"/projects/{source['id']}/tasks/save-template", json={"name": "標準"}
    )
    assert response.status_code == 201
    template_id = response.json()["id"]

    response = await authed_client.get("/task-templates")
    assert [t["name"] for t in response.json()] == ["標準"]

    response = await authed_client.post(
        f"/projects/{target['id']}/tasks/apply-template", json={"template_set_id": template_id}
    )
    assert response.status_code == 201
    assert [t["title"] for t in response.json()] == ["資料調査"]

    response = await authed_client.delete(f"/task-templates/{template_id}")
    assert response.status_code == 204
    response = await authed_client.get(f"/task-templates/{template_id}")
    assert response.status_code == 404


@pytest.mark.asyncio
async def test_reorder_api_validates_ids(authed_client: AsyncClient):
    import uuid

    project = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "測量"})).json()
    response = await authed_client.post(
        f"/projects/{project['id']}/tasks/reorder",
        json={"items": [{"id": str(uuid.uuid4()), "sort_order": 0}]},
    )
    assert response.status_code == 400
