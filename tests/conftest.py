"""
Test configuration and fixtures.

Provides:
- In-memory SQLite database with a fresh schema per test
- Employees with minted session cookies for each role
- HTTPX AsyncClient with cookie and CSRF header
"""
import os
import uuid
from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import AsyncIterator, Generator

# Settings are read at import time
os.environ["DATABASE_URL"] = "sqlite://"
os.environ["TESTING"] = "1"
os.environ["ENV"] = "test"
os.environ["STORAGE_BACKEND"] = "local"
os.environ["AI_PROVIDER"] = ""
os.environ["SENTRY_DSN"] = ""

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.orm import Session

from backoffice.core.config import settings
from backoffice.core.deps import COOKIE_NAME, get_db
from backoffice.core.security import create_session_token, hash_password
from backoffice.db.base import Base
from backoffice.db.enums import EmployeeRole
from backoffice.db.models import Employee
from backoffice.db.session import SessionLocal, engine
from backoffice.main import app

CSRF_HEADERS = {"X-Requested-With": "XMLHttpRequest"}
TEST_PASSWORD = "password123"


# =============================================================================
# Database Fixtures
# =============================================================================

@pytest.fixture(scope="function")
def db() -> Generator[Session, None, None]:
    """Fresh schema per test; app code may commit freely."""
    Base.metadata.create_all(bind=engine)
    session = SessionLocal()
    try:
        yield session
    finally:
        session.close()
        Base.metadata.drop_all(bind=engine)


@pytest.fixture(autouse=True)
def local_storage(tmp_path, monkeypatch):
    """Point local file storage at a per-test directory."""
    monkeypatch.setattr(settings, "STORAGE_BACKEND", "local")
    monkeypatch.setattr(settings, "LOCAL_STORAGE_PATH", str(tmp_path / "files"))
    return tmp_path / "files"


# =============================================================================
# Employee Fixtures
# =============================================================================

def make_employee(
    db: Session,
    role: EmployeeRole = EmployeeRole.STAFF,
    name: str = "テスト社員",
    email: str | None = None,
    password: str | None = TEST_PASSWORD,
) -> Employee:
    employee = Employee(
        id=uuid.uuid4(),
        name=name,
        email=email or f"test-{uuid.uuid4().hex[:8]}@example.jp",
        role=role.value,
        password_hash=hash_password(password) if password else None,
    )
    db.add(employee)
    db.commit()
    db.refresh(employee)
    return employee


@pytest.fixture(scope="function")
def admin(db: Session) -> Employee:
    return make_employee(db, EmployeeRole.ADMIN, name="管理者")


@pytest.fixture(scope="function")
def staff(db: Session) -> Employee:
    return make_employee(db, EmployeeRole.STAFF, name="一般社員")


@pytest.fixture(scope="function")
def employee_factory(db: Session):
    """Create extra employees inside a test."""
    def _make(role: EmployeeRole = EmployeeRole.STAFF, **kwargs) -> Employee:
        return make_employee(db, role, **kwargs)
    return _make


# =============================================================================
# Auth and Client Fixtures
# =============================================================================

@dataclass
class SessionCookie:
    """A minted login for one employee."""
    employee: Employee
    token: str


def mint_session(employee: Employee) -> SessionCookie:
    token = create_session_token(employee.id, employee.role, employee.token_version)
    return SessionCookie(employee=employee, token=token)


@pytest.fixture(scope="function")
def test_auth(admin: Employee) -> SessionCookie:
    return mint_session(admin)


@asynccontextmanager
async def api_client(db: Session, login: SessionCookie | None = None) -> AsyncIterator[AsyncClient]:
    """Client bound to the test session; a login adds the cookie and the CSRF header."""
    def override_get_db():
        yield db

    app.dependency_overrides[get_db] = override_get_db
    kwargs = {}
    if login is not None:
        kwargs = {"cookies": {COOKIE_NAME: login.token}, "headers": CSRF_HEADERS}
    try:
        async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test", **kwargs) as c:
            yield c
    finally:
        app.dependency_overrides.clear()


@pytest.fixture(scope="function")
async def client(db: Session) -> AsyncIterator[AsyncClient]:
    """Anonymous client for login and public endpoints."""
    async with api_client(db) as c:
        yield c


@pytest.fixture(scope="function")
async def authed_client(db: Session, test_auth: SessionCookie) -> AsyncIterator[AsyncClient]:
    """Logged in as the admin."""
    async with api_client(db, test_auth) as c:
        yield c


@pytest.fixture(scope="function")
async def staff_client(db: Session, staff: Employee) -> AsyncIterator[AsyncClient]:
    async with api_client(db, mint_session(staff)) as c:
        yield c
