import os
from collections.abc import AsyncGenerator, Awaitable, Callable
from datetime import datetime, timedelta
from decimal import Decimal
from typing import Any
from unittest.mock import MagicMock
from uuid import UUID, uuid4

# Settings are read at import time; tests never touch a real Postgres or Redis
os.environ["DATABASE_URL"] = "sqlite+aiosqlite://"
os.environ.setdefault("REDIS_HOST", "localhost")
os.environ.setdefault("REDIS_PORT", "6379")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")
os.environ.setdefault("LOG_FORMAT", "console")
os.environ["SLOT_DURATION_MINUTES"] = "30"
os.environ["BOOKING_LEAD_TIME_MINUTES"] = "120"
os.environ["CONFLICT_PREFILTER_MINUTES"] = "30"

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy import event, insert, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import NullPool

from telemed.core.permissions import Caller, UserRole
from telemed.core.redis_client import NotificationQueue, get_notification_queue
from telemed.core.security import create_access_token
from telemed.core.timewindow import utcnow
from telemed.database import get_db
from telemed.main import app
from telemed.models import (
    appointments,
    metadata,
    patients,
    professional_specialties,
    professionals,
    specialties,
    users,
)
from telemed.services.notification_service import NotificationService


@pytest_asyncio.fixture
async def test_engine(tmp_path):
    """
    File-backed SQLite engine, one database per test.

    Every transaction starts with BEGIN IMMEDIATE so concurrent sessions
    queue for the write lock the way row locks serialise them on Postgres.
    """
    engine = create_async_engine(
        f"sqlite+aiosqlite:///{tmp_path / 'telemed_test.db'}",
        poolclass=NullPool,
        connect_args={"timeout": 30},
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _disable_driver_begin(dbapi_connection, connection_record):
        dbapi_connection.isolation_level = None

    @event.listens_for(engine.sync_engine, "begin")
    def _begin_immediate(conn):
        conn.exec_driver_sql("BEGIN IMMEDIATE")

    async with engine.begin() as conn:
        await conn.run_sync(metadata.create_all)

    yield engine

    await engine.dispose()


@pytest.fixture
def session_factory(test_engine) -> async_sessionmaker[AsyncSession]:
    """Session factory bound to the per-test database."""
    return async_sessionmaker(test_engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Create a test database session."""
    async with session_factory() as session:
        yield session


@pytest.fixture
def redis_mock() -> MagicMock:
    """Stand-in Redis client recording queued notifications."""
    client = MagicMock()
    client.llen.return_value = 0
    return client


@pytest.fixture
def notification_queue(redis_mock) -> NotificationQueue:
    return NotificationQueue(redis_mock, key="test:notifications")


@pytest.fixture
def notifier(db_session, notification_queue) -> NotificationService:
    return NotificationService(db_session, notification_queue)


@pytest_asyncio.fixture
async def client(session_factory, notification_queue) -> AsyncGenerator[AsyncClient, None]:
    """Create a test HTTP client."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_notification_queue] = lambda: notification_queue

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as client:
        yield client

    app.dependency_overrides.clear()


async def _insert_user(session_factory, role: str, email: str, **values: Any) -> dict:
    user_id = uuid4()
    data = {
        "id": user_id,
        "email": email,
        "full_name": values.pop("full_name", "Test User"),
        "role": role,
        "is_active": values.pop("is_active", True),
    }
    async with session_factory() as session:
        await session.execute(insert(users).values(**data))
        await session.commit()
    return data


@pytest.fixture
def make_patient(session_factory) -> Callable[..., Awaitable[dict]]:
    """Factory inserting a patient user together with its profile."""

    async def _make(full_name: str = "Carla Mendes", with_profile: bool = True) -> dict:
        user = await _insert_user(
            session_factory, "PATIENT", f"patient-{uuid4().hex[:8]}@example.com", full_name=full_name
        )
        patient_id = None
        if with_profile:
            patient_id = uuid4()
            async with session_factory() as session:
                await session.execute(
                    insert(patients).values(
                        id=patient_id,
                        user_id=user["id"],
                        full_name=full_name,
                        phone="+5511999990000",
                    )
                )
                await session.commit()
        return {
            "user_id": user["id"],
            "patient_id": patient_id,
            "full_name": full_name,
            "caller": Caller(user["id"], UserRole.PATIENT),
        }

    return _make


@pytest.fixture
def make_professional(session_factory) -> Callable[..., Awaitable[dict]]:
    """Factory inserting a professional user, profile and specialties."""

    async def _make(
        full_name: str = "Dr. Ana Souza",
        price: Decimal = Decimal("150.00"),
        is_active: bool = True,
        specialty_names: tuple[str, ...] = ("General Practice",),
    ) -> dict:
        user = await _insert_user(
            session_factory,
            "PROFESSIONAL",
            f"pro-{uuid4().hex[:8]}@example.com",
            full_name=full_name,
            is_active=is_active,
        )
        professional_id = uuid4()
        async with session_factory() as session:
            await session.execute(
                insert(professionals).values(
                    id=professional_id,
                    user_id=user["id"],
                    full_name=full_name,
                    license_number=f"CRM-{uuid4().hex[:6]}",
                    price=price,
                )
            )
            for name in specialty_names:
                found = await session.execute(
                    select(specialties.c.id).where(specialties.c.name == name)
                )
                specialty_id = found.scalar()
                if specialty_id is None:
                    result = await session.execute(
                        insert(specialties).values(name=name).returning(specialties.c.id)
                    )
                    specialty_id = result.scalar_one()
                await session.execute(
                    insert(professional_specialties).values(
                        professional_id=professional_id,
                        specialty_id=specialty_id,
                    )
                )
            await session.commit()
        return {
            "user_id": user["id"],
            "professional_id": professional_id,
            "full_name": full_name,
            "price": price,
            "caller": Caller(user["id"], UserRole.PROFESSIONAL),
        }

    return _make


@pytest_asyncio.fixture
async def patient(make_patient) -> dict:
    return await make_patient()


@pytest_asyncio.fixture
async def professional(make_professional) -> dict:
    return await make_professional()


@pytest_asyncio.fixture
async def admin(session_factory) -> dict:
    user = await _insert_user(session_factory, "ADMIN", "admin@example.com", full_name="Admin")
    return {"user_id": user["id"], "caller": Caller(user["id"], UserRole.ADMIN)}


@pytest.fixture
def auth_headers() -> Callable[[UUID], dict]:
    """Create authentication headers for testing protected endpoints."""

    def _headers(user_id: UUID) -> dict:
        token = create_access_token(user_id, expires_delta=timedelta(minutes=30))
        return {"Authorization": f"Bearer {token}"}

    return _headers


@pytest.fixture
def make_appointment(session_factory) -> Callable[..., Awaitable[UUID]]:
    """Factory inserting an appointment row directly, bypassing booking rules."""

    async def _make(
        patient: dict,
        professional: dict,
        scheduled_at: datetime,
        status: str = "PENDING_PAYMENT",
    ) -> UUID:
        appointment_id = uuid4()
        async with session_factory() as session:
            await session.execute(
                insert(appointments).values(
                    id=appointment_id,
                    patient_id=patient["patient_id"],
                    professional_id=professional["professional_id"],
                    scheduled_at=scheduled_at,
                    status=status,
                    price=professional["price"],
                    created_at=utcnow(),
                    updated_at=utcnow(),
                )
            )
            await session.commit()
        return appointment_id

    return _make
