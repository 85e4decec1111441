"""Shared test fixtures — async DB, client, auth helpers, factories.

Reusable across all test modules (auth, core_hr, attendance, leave, etc.).
Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test JWT_SECRET before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")

import uuid
from datetime import date, datetime, timezone
from typing import AsyncGenerator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from hrms.auth.security import hash_password
from hrms.auth.service import issue_session
from hrms.common.constants import UserRole
from hrms.common.rate_limit import limiter
from hrms.config import settings
from hrms.database import Base, get_db
from hrms.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
# (e.g. Organisation → Employee, LeaveRequest → LeaveType)
import hrms.auth.models  # noqa: F401
import hrms.organisation.models  # noqa: F401
import hrms.core_hr.models  # noqa: F401
import hrms.attendance.models  # noqa: F401
import hrms.leave.models  # noqa: F401
import hrms.payroll.models  # noqa: F401
import hrms.common.audit  # noqa: F401

from hrms.auth.models import Admin
from hrms.core_hr.models import Department, Designation, Employee
from hrms.organisation.models import Organisation

# ── SQLite compat: compile PG-specific types to TEXT/BLOB ───────────

from sqlalchemy.dialects.postgresql import INET, JSONB, UUID as PG_UUID
from sqlalchemy.ext.compiler import compiles


@compiles(JSONB, "sqlite")
def _jsonb_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(INET, "sqlite")
def _inet_sqlite(element, compiler, **kw):
    return "TEXT"


@compiles(PG_UUID, "sqlite")
def _uuid_sqlite(element, compiler, **kw):
    return "CHAR(36)"


# ── Test database (SQLite in-memory) ────────────────────────────────

TEST_DATABASE_URL = "sqlite+aiosqlite://"

engine = create_async_engine(
    TEST_DATABASE_URL,
    echo=False,
    connect_args={"check_same_thread": False},
    poolclass=StaticPool,
)


# Register PG-compatible functions for SQLite
@event.listens_for(engine.sync_engine, "connect")
def _register_sqlite_functions(dbapi_conn, connection_record):
    """Register NOW() and uuid_generate_v4() as SQLite custom functions."""
    dbapi_conn.create_function(
        "NOW", 0, lambda: datetime.now(timezone.utc).isoformat(),
    )
    dbapi_conn.create_function(
        "uuid_generate_v4", 0, lambda: str(uuid.uuid4()),
    )

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)

ADMIN_PASSWORD = "admin-pass-123"
EMPLOYEE_PASSWORD = "employee-pass-123"


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _reset_rate_limiter():
    """Reset rate limiter storage between tests to prevent cross-test interference."""
    limiter.reset()
    yield


async def _override_get_db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
        finally:
            await session.close()


# ── FastAPI test client ─────────────────────────────────────────────

@pytest.fixture
async def app():
    """Create a fresh app instance with DB dependency overridden."""
    application = create_app()
    application.dependency_overrides[get_db] = _override_get_db
    yield application
    application.dependency_overrides.clear()


@pytest.fixture
async def client(app) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client wired to the test app."""
    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test",
    ) as ac:
        yield ac


# ── Database session (for direct DB operations in tests) ────────────

@pytest.fixture
async def db() -> AsyncGenerator[AsyncSession, None]:
    async with TestSessionFactory() as session:
        yield session
        await session.commit()


@pytest.fixture
def upload_dir(tmp_path, monkeypatch):
    """Point document storage at a per-test temporary directory."""
    monkeypatch.setattr(settings, "UPLOAD_DIR", str(tmp_path / "uploads"))
    return tmp_path / "uploads"


# ── Model factories ─────────────────────────────────────────────────

def _make_admin(
    *,
    email: str = "owner@acme.io",
    name: str = "Asha Owner",
    password: str = ADMIN_PASSWORD,
    is_verified: bool = True,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        name=name,
        email=email,
        password_hash=hash_password(password),
        is_verified=is_verified,
    )


def _make_organisation(admin_id: uuid.UUID, *, name: str = "Acme Corp", **extra) -> dict:
    return dict(
        id=uuid.uuid4(),
        admin_id=admin_id,
        name=name,
        created_by=admin_id,
        modified_by=admin_id,
        **extra,
    )


def _make_department(organisation_id: uuid.UUID, *, name: str = "Engineering") -> dict:
    return dict(
        id=uuid.uuid4(),
        organisation_id=organisation_id,
        name=name,
    )


def _make_designation(
    organisation_id: uuid.UUID,
    *,
    name: str = "Software Engineer",
    department_id: uuid.UUID | None = None,
) -> dict:
    return dict(
        id=uuid.uuid4(),
        organisation_id=organisation_id,
        name=name,
        positions=5,
        department_id=department_id,
    )


def _make_employee(
    organisation_id: uuid.UUID,
    *,
    email: str = "test.user@acme.io",
    name: str = "Test User",
    code: str | None = None,
    mobile: str | None = None,
    department_id: uuid.UUID | None = None,
    designation_id: uuid.UUID | None = None,
    password: str = EMPLOYEE_PASSWORD,
    **extra,
) -> dict:
    data = dict(
        id=uuid.uuid4(),
        organisation_id=organisation_id,
        name=name,
        code=code or f"EMP-{uuid.uuid4().hex[:6].upper()}",
        email=email,
        mobile=mobile,
        password_hash=hash_password(password),
        joining_date=date(2024, 1, 15),
        department_id=department_id,
        designation_id=designation_id,
    )
    data.update(extra)
    return data


async def insert(db: AsyncSession, model, data: dict):
    """Add one row built from a factory dict and commit it."""
    obj = model(**data)
    db.add(obj)
    await db.commit()
    return obj


# ── Seeded fixtures ─────────────────────────────────────────────────

@pytest.fixture
async def test_admin(db) -> dict:
    """Insert a verified admin and return its data dict."""
    data = _make_admin()
    await insert(db, Admin, data)
    return data


@pytest.fixture
async def test_org(db, test_admin) -> dict:
    """Insert an organisation owned by test_admin."""
    data = _make_organisation(test_admin["id"])
    await insert(db, Organisation, data)
    return data


@pytest.fixture
async def test_department(db, test_org) -> dict:
    data = _make_department(test_org["id"])
    await insert(db, Department, data)
    return data


@pytest.fixture
async def test_designation(db, test_org, test_department) -> dict:
    data = _make_designation(test_org["id"], department_id=test_department["id"])
    await insert(db, Designation, data)
    return data


@pytest.fixture
async def test_employee(db, test_org, test_department, test_designation) -> dict:
    """Insert an active employee with department + designation."""
    data = _make_employee(
        test_org["id"],
        mobile="9876500001",
        department_id=test_department["id"],
        designation_id=test_designation["id"],
    )
    await insert(db, Employee, data)
    return data


# ── Auth helpers ────────────────────────────────────────────────────

async def bearer_for(
    db: AsyncSession,
    model,
    account_id: uuid.UUID,
    role: UserRole,
    organisation_id: uuid.UUID | None,
) -> dict[str, str]:
    """Issue a real persisted session for an account and return auth headers."""
    account = await db.get(model, account_id)
    tokens = await issue_session(db, account, role, organisation_id)
    await db.commit()
    return {"Authorization": f"Bearer {tokens.access_token}"}


@pytest.fixture
async def admin_headers(db, test_admin, test_org) -> dict[str, str]:
    """Bearer headers for test_admin working in test_org."""
    return await bearer_for(db, Admin, test_admin["id"], UserRole.admin, test_org["id"])


@pytest.fixture
async def employee_headers(db, test_employee, test_org) -> dict[str, str]:
    """Bearer headers for test_employee."""
    return await bearer_for(db, Employee, test_employee["id"], UserRole.employee, test_org["id"])
