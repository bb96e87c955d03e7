"""Shared test fixtures: async DB, client, auth helpers, factories.

Uses SQLite + aiosqlite for fast isolated tests without PostgreSQL.
"""

from __future__ import annotations

import os

# Set test settings before any other import touches pydantic-settings
os.environ.setdefault("JWT_SECRET", "test-secret-for-ci-do-not-use-in-production")
os.environ.setdefault("COMPANY_TIMEZONE", "Asia/Kolkata")
os.environ["RATE_LIMIT_ENABLED"] = "false"
os.environ["SWEEPER_ENABLED"] = "false"
os.environ["AUTO_CREATE_TABLES"] = "false"

import hashlib
import uuid
from datetime import datetime, time, timedelta, timezone
from decimal import Decimal
from typing import AsyncGenerator
from zoneinfo import ZoneInfo

import pytest
from httpx import ASGITransport, AsyncClient
from jose import jwt
from sqlalchemy.ext.asyncio import (
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.pool import StaticPool

from backoffice.common.constants import UserRole
from backoffice.config import settings
from backoffice.database import Base, get_db
from backoffice.main import create_app

# Import ALL model modules so SQLAlchemy can resolve cross-module relationships
import backoffice.attendance.models  # noqa: F401
import backoffice.auth.models  # noqa: F401
import backoffice.common.audit  # noqa: F401
import backoffice.company.models  # noqa: F401
import backoffice.core_hr.models  # noqa: F401
import backoffice.leave.models  # noqa: F401
import backoffice.sales.models  # noqa: F401

# ── SQLite compat: compile PG-specific types ────────────────────────

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

TestSessionFactory = async_sessionmaker(
    engine, class_=AsyncSession, expire_on_commit=False,
)

COMPANY_TZ = ZoneInfo(settings.COMPANY_TIMEZONE)


def local_dt(year: int, month: int, day: int, hour: int = 0, minute: int = 0,
             second: int = 0, microsecond: int = 0) -> datetime:
    """UTC instant of a wall-clock time in the company timezone."""
    return datetime(
        year, month, day, hour, minute, second, microsecond, tzinfo=COMPANY_TZ,
    ).astimezone(timezone.utc)


def as_aware(ts: datetime) -> datetime:
    """SQLite hands back naive UTC datetimes."""
    return ts if ts.tzinfo else ts.replace(tzinfo=timezone.utc)


@pytest.fixture(autouse=True)
async def _setup_db():
    """Create all tables before each test, drop after."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)


@pytest.fixture(autouse=True)
def _restore_settings():
    """Undo per-test tweaks to the settings singleton."""
    saved = settings.model_dump()
    yield
    for key, value in saved.items():
        setattr(settings, key, value)


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
def session_factory() -> async_sessionmaker[AsyncSession]:
    return TestSessionFactory


# ── Model factories ─────────────────────────────────────────────────

def _make_employee(
    *,
    email: str | None = None,
    first_name: str = "Test",
    last_name: str = "User",
    salary: Decimal = Decimal("30000.00"),
) -> dict:
    code = uuid.uuid4().hex[:6].upper()
    return dict(
        id=uuid.uuid4(),
        employee_code=f"EMP-{code}",
        first_name=first_name,
        last_name=last_name,
        email=email or f"user.{code.lower()}@example.com",
        salary=salary,
        is_active=True,
        created_at=datetime.now(timezone.utc),
        updated_at=datetime.now(timezone.utc),
    )


async def create_employee(db: AsyncSession, **overrides) -> dict:
    from backoffice.core_hr.models import Employee

    data = _make_employee(**overrides)
    db.add(Employee(**data))
    await db.commit()
    return data


async def create_leave_type(db: AsyncSession, name: str, days_allowed: int,
                            *, active: bool = True):
    from backoffice.leave.models import LeaveType

    leave_type = LeaveType(name=name, days_allowed=days_allowed, active=active)
    db.add(leave_type)
    await db.commit()
    return leave_type


async def set_schedule(
    db: AsyncSession,
    *,
    work_days: list[str] | None = None,
    start: time = time(9, 0),
    end: time = time(17, 0),
    enable_overtime: bool = False,
):
    """Insert (or replace) the company settings row."""
    from sqlalchemy import delete

    from backoffice.company.models import CompanySettings

    await db.execute(delete(CompanySettings))
    row = CompanySettings(
        company_name="Test Co",
        work_days=work_days or ["Monday", "Tuesday", "Wednesday", "Thursday", "Friday"],
        work_start_time=start,
        work_end_time=end,
        enable_overtime=enable_overtime,
    )
    db.add(row)
    await db.commit()
    return row


@pytest.fixture
async def test_employee(db) -> dict:
    """Insert an active employee."""
    return await create_employee(db, email="test.user@example.com")


# ── Auth helpers ────────────────────────────────────────────────────

def create_access_token(
    employee_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    expired: bool = False,
    token_type: str = "access",
) -> str:
    """Generate a JWT access token for testing."""
    if expired:
        exp = datetime.now(timezone.utc) - timedelta(hours=1)
    else:
        exp = datetime.now(timezone.utc) + timedelta(hours=1)
    payload = {
        "sub": str(employee_id),
        "role": role.value,
        "type": token_type,
        "exp": exp,
    }
    return jwt.encode(payload, settings.JWT_SECRET, algorithm=settings.JWT_ALGORITHM)


async def make_auth_headers(
    db: AsyncSession,
    employee_id: uuid.UUID,
    role: UserRole = UserRole.employee,
    *,
    revoked: bool = False,
) -> dict[str, str]:
    """Bearer headers backed by a persisted UserSession."""
    from backoffice.auth.models import UserSession

    token = create_access_token(employee_id, role)
    db.add(UserSession(
        id=uuid.uuid4(),
        employee_id=employee_id,
        token_hash=hashlib.sha256(token.encode()).hexdigest(),
        expires_at=datetime.now(timezone.utc) + timedelta(hours=1),
        is_revoked=revoked,
        created_at=datetime.now(timezone.utc),
    ))
    await db.commit()
    return {"Authorization": f"Bearer {token}"}


@pytest.fixture
async def auth_headers(db, test_employee) -> dict[str, str]:
    return await make_auth_headers(db, test_employee["id"])


@pytest.fixture
async def manager_headers(db) -> dict[str, str]:
    manager = await create_employee(db, first_name="Mona", last_name="Manager")
    return await make_auth_headers(db, manager["id"], UserRole.manager)


@pytest.fixture
async def admin_headers(db) -> dict[str, str]:
    admin = await create_employee(db, first_name="Ada", last_name="Admin")
    return await make_auth_headers(db, admin["id"], UserRole.admin)
