"""Tests for stakeholder tags, project stakeholders and comments."""
import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.core.exceptions import ConflictError
from backoffice.db.enums import EmployeeRole, ProjectCategory
from backoffice.schemas.auth import EmployeeSession
from backoffice.schemas.customer import AccountCreate, BranchInput, ContactInput
from backoffice.schemas.project import ProjectCreate
from backoffice.schemas.stakeholder import (
    StakeholderCreate,
    StakeholderTagCreate,
    StakeholderTagUpdate,
    StakeholderUpdate,
)
from backoffice.services import account_service, comment_service, project_service, stakeholder_service


def _project(db: Session):
    return project_service.create_project(
        db, ProjectCreate(category=ProjectCategory.BOUNDARY, name="境界確定")
    )


def _contact(db: Session, **contact_fields):
    _, contact = account_service.create_account(
        db,
        AccountCreate(
            company_name="株式会社隣地",
            main_phone="03-0000-0000",
            branches=[BranchInput(key="b", name="横浜支店", phone="045-000-0000")],
            contacts=[ContactInput(last_name="隣地", branch_key="b", **contact_fields)],
        ),
    )
    return contact


def _session(employee) -> EmployeeSession:
    return EmployeeSession(
        employee_id=employee.id,
        role=EmployeeRole(employee.role),
        email=employee.email,
        name=employee.name,
    )


# =============================================================================
# Tags
# =============================================================================

def test_tag_names_are_unique(db: Session):
    first = stakeholder_service.create_tag(db, StakeholderTagCreate(name="隣地所有者"))
    second = stakeholder_service.create_tag(db, StakeholderTagCreate(name="代理人", color="#ff0000"))
    assert (first.sort_order, second.sort_order) == (0, 1)

    with pytest.raises(ConflictError):
        stakeholder_service.create_tag(db, StakeholderTagCreate(name=" 隣地所有者 "))
    with pytest.raises(ConflictError):
        stakeholder_service.update_tag(db, second, StakeholderTagUpdate(name="隣地所有者"))

    # Renaming to its own name is allowed
    updated = stakeholder_service.update_tag(db, first, StakeholderTagUpdate(name="隣地所有者", sort_order=5))
    assert updated.sort_order == 5
    assert [t.name for t in stakeholder_service.list_tags(db)] == ["代理人", "隣地所有者"]


def test_tag_in_use_cannot_be_deleted(db: Session):
    project = _project(db)
    tag = stakeholder_service.create_tag(db, StakeholderTagCreate(name="隣地所有者"))
    stakeholder = stakeholder_service.add_stakeholder(
        db, project.id, StakeholderCreate(contact_id=_contact(db).id, tag_id=tag.id)
    )

    with pytest.raises(ConflictError):
        stakeholder_service.delete_tag(db, tag)

    stakeholder_service.remove_stakeholder(db, stakeholder)
    stakeholder_service.delete_tag(db, tag)
    assert stakeholder_service.list_tags(db) == []


# =============================================================================
# Stakeholders
# =============================================================================

def test_duplicate_stakeholder_conflicts(db: Session):
    project = _project(db)
    owner = stakeholder_service.create_tag(db, StakeholderTagCreate(name="隣地所有者"))
    agent = stakeholder_service.create_tag(db, StakeholderTagCreate(name="代理人"))
    contact = _contact(db)

    first = stakeholder_service.add_stakeholder(
        db, project.id, StakeholderCreate(contact_id=contact.id, tag_id=owner.id)
    )
    with pytest.raises(ConflictError):
        stakeholder_service.add_stakeholder(
            db, project.id, StakeholderCreate(contact_id=contact.id, tag_id=owner.id)
        )

    # Same contact with another tag is a separate role
    second = stakeholder_service.add_stakeholder(
        db, project.id, StakeholderCreate(contact_id=contact.id, tag_id=agent.id)
    )
    with pytest.raises(ConflictError):
        stakeholder_service.update_stakeholder(db, second, StakeholderUpdate(tag_id=owner.id))

    updated = stakeholder_service.update_stakeholder(db, first, StakeholderUpdate(note="立会済"))
    assert updated.note == "立会済"


def test_add_stakeholder_requires_contact_and_tag(db: Session):
    import uuid

    project = _project(db)
    tag = stakeholder_service.create_tag(db, StakeholderTagCreate(name="隣地所有者"))
    with pytest.raises(ValueError):
        stakeholder_service.add_stakeholder(
            db, project.id, StakeholderCreate(contact_id=uuid.uuid4(), tag_id=tag.id)
        )
    with pytest.raises(ValueError):
        stakeholder_service.add_stakeholder(
            db, project.id, StakeholderCreate(contact_id=_contact(db).id, tag_id=uuid.uuid4())
        )


def test_stakeholder_phone_falls_back_to_branch_then_account(db: Session):
    project = _project(db)
    tag = stakeholder_service.create_tag(db, StakeholderTagCreate(name="隣地所有者"))

    direct = _contact(db, phone="090-1111-2222")
    via_branch = _contact(db)
    for contact in (direct, via_branch):
        stakeholder_service.add_stakeholder(
            db, project.id, StakeholderCreate(contact_id=contact.id, tag_id=tag.id)
        )

    rows = {
        row["contact_id"]: row
        for row in map(stakeholder_service.to_read, stakeholder_service.list_stakeholders(db, project.id))
    }
    assert rows[direct.id]["phone"] == "090-1111-2222"
    assert rows[via_branch.id]["phone"] == "045-000-0000"
    assert rows[direct.id]["company_name"] == "株式会社隣地"


# =============================================================================
# Comments
# =============================================================================

def test_only_author_or_admin_deletes_comment(db: Session, admin, staff, employee_factory):
    project = _project(db)
    comment = comment_service.create_comment(db, project.id, staff.id, "測量日を調整済み")
    other = employee_factory(name="別の社員")

    with pytest.raises(PermissionError):
        comment_service.delete_comment(db, comment, _session(other))

    comment_service.delete_comment(db, comment, _session(admin))
    assert comment_service.list_comments(db, project.id) == []


def test_acknowledge_is_idempotent(db: Session, admin, staff):
    project = _project(db)
    comment = comment_service.create_comment(db, project.id, staff.id, "資料を共有しました")

    comment_service.acknowledge(db, comment, admin.id)
    comment_service.acknowledge(db, comment, admin.id)
    data = comment_service.to_read(comment_service.list_comments(db, project.id)[0])
    assert data["acknowledged_by"] == [{"id": admin.id, "name": "管理者"}]

    comment_service.unacknowledge(db, comment, admin.id)
    data = comment_service.to_read(comment_service.list_comments(db, project.id)[0])
    assert data["acknowledged_by"] == []


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_stakeholder_api(authed_client: AsyncClient):
    project = (await authed_client.post("/projects", json={"category": "B_Boundary", "name": "境界"})).json()
    account = (await authed_client.post(
        "/accounts", json={"company_name": "株式会社隣地", "contacts": [{"last_name": "隣地"}]}
    )).json()

    tag = (await authed_client.post("/stakeholder-tags", json={"name": "隣地所有者"})).json()
    response = await authed_client.post("/stakeholder-tags", json={"name": "隣地所有者"})
    assert response.status_code == 409

    base = f"/projects/{project['id']}/stakeholders"
    body = {"contact_id": account["primary_contact_id"], "tag_id": tag["id"]}
    response = await authed_client.post(base, json=body)
    assert response.status_code == 201
    assert response.json()["tag"]["name"] == "隣地所有者"

    response = await authed_client.post(base, json=body)
    assert response.status_code == 409

    response = await authed_client.delete(f"/stakeholder-tags/{tag['id']}")
    assert response.status_code == 409

    response = await authed_client.get(base)
    assert [s["contact_name"] for s in response.json()] == ["隣地"]


@pytest.mark.asyncio
async def test_staff_cannot_create_tags(staff_client: AsyncClient):
    response = await staff_client.post("/stakeholder-tags", json={"name": "代理人"})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_comment_api(authed_client: AsyncClient, staff_client: AsyncClient):
    project = (await authed_client.post("/projects", json={"category": "A_Survey", "name": "測量"})).json()
    base = f"/projects/{project['id']}/comments"

    response = await authed_client.post(base, json={"content": "   "})
    assert response.status_code == 422

    response = await authed_client.post(base, json={"content": "図面を確認してください"})
    assert response.status_code == 201
    comment = response.json()
    assert comment["author_name"] == "管理者"

    response = await staff_client.post(f"{base}/{comment['id']}/acknowledge")
    assert response.status_code == 204
    response = await staff_client.get(base)
    assert [a["name"] for a in response.json()[0]["acknowledged_by"]] == ["一般社員"]

    response = await staff_client.delete(f"{base}/{comment['id']}")
    assert response.status_code == 403

    response = await authed_client.delete(f"{base}/{comment['id']}")
    assert response.status_code == 204
