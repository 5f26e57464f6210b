"""Tests for login, session revocation and employee management."""
import pytest
from httpx import AsyncClient
from sqlalchemy.orm import Session

from backoffice.core.deps import COOKIE_NAME
from backoffice.core.exceptions import ConflictError
from backoffice.core.security import verify_password
from backoffice.db.enums import EmployeeRole
from backoffice.schemas.employee import EmployeeCreate, EmployeeUpdate
from backoffice.services import auth_service, employee_service

CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}
TEST_PASSWORD = "password123"


# =============================================================================
# Service
# =============================================================================

def test_authenticate_rejects_every_failure_alike(db: Session, staff, employee_factory):
    assert auth_service.authenticate(db, staff.email.upper(), TEST_PASSWORD).id == staff.id

    no_login = employee_factory(password=None)
    inactive = employee_factory()
    employee_service.update_employee(db, inactive, EmployeeUpdate(is_active=False))

    for email, password in [
        (staff.email, "wrong-password"),
        ("nobody@example.jp", TEST_PASSWORD),
        (no_login.email, TEST_PASSWORD),
        (inactive.email, TEST_PASSWORD),
    ]:
        with pytest.raises(auth_service.AuthenticationError) as exc_info:
            auth_service.authenticate(db, email, password)
        assert str(exc_info.value) == auth_service.INVALID_CREDENTIALS_MESSAGE


def test_login_records_last_login(db: Session, staff):
    employee, token = auth_service.login(db, staff.email, TEST_PASSWORD)
    assert token
    assert employee.last_login_at is not None


def test_create_employee_normalizes_and_rejects_duplicate_email(db: Session):
    employee = employee_service.create_employee(
        db, EmployeeCreate(name="新入社員", email=" New@Example.jp ", password="longenough")
    )
    assert employee.email == "new@example.jp"
    assert employee.role == EmployeeRole.STAFF.value
    assert verify_password("longenough", employee.password_hash)

    with pytest.raises(ConflictError):
        employee_service.create_employee(db, EmployeeCreate(name="重複", email="NEW@example.jp"))


def test_deleted_employee_email_is_not_reused(db: Session, admin, staff):
    employee_service.delete_employee(db, staff, actor_id=admin.id)
    assert employee_service.get_employee(db, staff.id) is None
    with pytest.raises(ConflictError):
        employee_service.create_employee(db, EmployeeCreate(name="再登録", email=staff.email))
    with pytest.raises(ValueError):
        employee_service.delete_employee(db, admin, actor_id=admin.id)


def test_password_reset_and_deactivation_bump_token_version(db: Session, staff):
    version = staff.token_version
    employee_service.reset_password(db, staff, "new-password")
    assert staff.token_version == version + 1

    employee_service.update_employee(db, staff, EmployeeUpdate(is_active=False))
    assert staff.token_version == version + 2

    no_login = employee_service.create_employee(db, EmployeeCreate(name="外注", email="out@example.jp"))
    with pytest.raises(ValueError):
        employee_service.reset_password(db, no_login, "new-password")
    employee_service.create_login(db, no_login, "new-password")
    with pytest.raises(ConflictError):
        employee_service.create_login(db, no_login, "other-password")


# =============================================================================
# API
# =============================================================================

@pytest.mark.asyncio
async def test_login_me_logout(client: AsyncClient, staff):
    response = await client.post(
        "/auth/login",
        json={"email": staff.email, "password": TEST_PASSWORD},
        headers=CSRF_HEADERS,
    )
    assert response.status_code == 200
    assert response.json()["role"] == "staff"
    set_cookie = response.headers["set-cookie"]
    assert set_cookie.startswith(f"{COOKIE_NAME}=")
    assert "httponly" in set_cookie.lower()
    token = set_cookie.split(";", 1)[0].split("=", 1)[1]

    client.cookies.set(COOKIE_NAME, token)
    response = await client.get("/auth/me")
    assert response.status_code == 200
    assert response.json()["name"] == "一般社員"

    response = await client.post("/auth/logout", headers=CSRF_HEADERS)
    assert response.status_code == 200
    assert "max-age=0" in response.headers["set-cookie"].lower()


@pytest.mark.asyncio
async def test_login_failures(client: AsyncClient, staff):
    response = await client.post(
        "/auth/login",
        json={"email": staff.email, "password": "wrong-password"},
        headers=CSRF_HEADERS,
    )
    assert response.status_code == 401

    response = await client.post("/auth/login", json={"email": staff.email, "password": TEST_PASSWORD})
    assert response.status_code == 403


@pytest.mark.asyncio
async def test_unauthenticated_requests_are_rejected(client: AsyncClient):
    assert (await client.get("/auth/me")).status_code == 401
    assert (await client.get("/projects")).status_code == 401

    client.cookies.set(COOKIE_NAME, "not-a-token")
    assert (await client.get("/auth/me")).status_code == 401


@pytest.mark.asyncio
async def test_password_reset_revokes_sessions(authed_client: AsyncClient, staff_client: AsyncClient, staff):
    assert (await staff_client.get("/auth/me")).status_code == 200

    response = await staff_client.post(
        f"/employees/{staff.id}/reset-password", json={"password": "new-password"}
    )
    assert response.status_code == 403

    response = await authed_client.post(
        f"/employees/{staff.id}/reset-password", json={"password": "new-password"}
    )
    assert response.status_code == 200

    response = await staff_client.get("/auth/me")
    assert response.status_code == 401
    assert response.json()["detail"] == "Session revoked"


@pytest.mark.asyncio
async def test_employee_management_api(authed_client: AsyncClient, test_auth):
    response = await authed_client.post(
        "/employees", json={"name": "測量士", "email": "surveyor@example.jp", "role": "manager"}
    )
    assert response.status_code == 201
    employee = response.json()
    assert employee["has_login"] is False

    response = await authed_client.post(
        "/employees", json={"name": "重複", "email": "SURVEYOR@example.jp"}
    )
    assert response.status_code == 409

    response = await authed_client.post(f"/employees/{employee['id']}/login", json={"password": "short"})
    assert response.status_code == 422
    response = await authed_client.post(
        f"/employees/{employee['id']}/login", json={"password": "long-enough"}
    )
    assert response.json()["has_login"] is True

    response = await authed_client.patch(
        f"/employees/{test_auth.employee.id}", json={"is_active": False}
    )
    assert response.status_code == 400

    response = await authed_client.patch(f"/employees/{employee['id']}", json={"is_active": False})
    assert response.json()["is_active"] is False

    response = await authed_client.get("/employees/options")
    assert [e["name"] for e in response.json()] == ["管理者"]
    response = await authed_client.get("/employees", params={"include_inactive": True})
    assert len(response.json()) == 2

    response = await authed_client.delete(f"/employees/{test_auth.employee.id}")
    assert response.status_code == 400
    response = await authed_client.delete(f"/employees/{employee['id']}")
    assert response.status_code == 204


@pytest.mark.asyncio
async def test_staff_cannot_manage_employees(staff_client: AsyncClient):
    response = await staff_client.post("/employees", json={"name": "新人", "email": "new@example.jp"})
    assert response.status_code == 403
    response = await staff_client.get("/employees")
    assert response.status_code == 403
    response = await staff_client.get("/employees/options")
    assert response.status_code == 200
