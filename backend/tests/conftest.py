"""
Pytest configuration and fixtures for EventSphere tests.

This module provides shared fixtures for the database, session factories,
the HTTP test client, and common users and events.
"""

import os
import sys
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import AsyncGenerator

# Tests run against in-memory SQLite; set before the engine module is imported
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("SCHEDULER_ENABLED", "false")

import pytest
import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import create_async_engine, AsyncSession, async_sessionmaker
from sqlalchemy.pool import StaticPool

# Add parent directory to path to import eventsphere modules
sys.path.insert(0, str(Path(__file__).parent.parent))

from eventsphere.main import app
from eventsphere.database import Base, get_db
from eventsphere.dependencies import get_current_user
from eventsphere.api.utils.dependencies import get_transaction_coordinator, get_lifecycle_scheduler
from eventsphere.models.event import Event, EventMember, EventStatus
from eventsphere.models.user import User, UserEventRole
from eventsphere.services.transaction_service import TransactionCoordinator
from eventsphere.tasks.scheduler import LifecycleScheduler


TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


# ============================================================================
# Database Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def async_engine():
    """
    Create async database engine for tests.

    Uses in-memory SQLite with StaticPool to ensure all connections
    share the same in-memory database.
    """
    engine = create_async_engine(
        TEST_DATABASE_URL,
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
        echo=False,
    )

    # Create all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    yield engine

    # Drop all tables
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)

    await engine.dispose()


@pytest.fixture
def session_factory(async_engine) -> async_sessionmaker:
    """Session factory bound to the test engine, for code that opens its own sessions."""
    return async_sessionmaker(
        async_engine,
        class_=AsyncSession,
        expire_on_commit=False,
    )


@pytest_asyncio.fixture(scope="function")
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """
    Provide database session for tests.

    Creates a new session for each test and rolls back after the test.
    """
    async with session_factory() as session:
        yield session
        await session.rollback()


@pytest.fixture
def coordinator(session_factory) -> TransactionCoordinator:
    """Transaction coordinator running real transactions against the test database."""
    return TransactionCoordinator(session_factory, transactional=True)


@pytest.fixture
def best_effort_coordinator(session_factory) -> TransactionCoordinator:
    """Transaction coordinator that behaves as if the store had no transactions."""
    return TransactionCoordinator(session_factory, transactional=False)


# ============================================================================
# Data Helpers
# ============================================================================

def utc_in(**delta) -> datetime:
    """Current UTC time shifted by the given timedelta arguments."""
    return datetime.now(timezone.utc) + timedelta(**delta)


async def add_member(session: AsyncSession, user: User, event: Event, role: str) -> None:
    """Write both sides of a membership directly."""
    session.add(EventMember(event_id=event.id, user_id=user.id, role=role))
    session.add(UserEventRole(user_id=user.id, event_id=event.id, role=role))
    await session.commit()
    await session.refresh(user, ["events"])
    await session.refresh(event, ["users"])


async def make_user(session: AsyncSession, email: str, name: str = "Test User", **kwargs) -> User:
    user = User(name=name, email=email, **kwargs)
    session.add(user)
    await session.commit()
    await session.refresh(user)
    return user


async def make_event(session: AsyncSession, title: str = "Test Event", **kwargs) -> Event:
    values = {
        "description": "An event used in tests",
        "start_date": utc_in(days=30),
        "end_date": utc_in(days=31),
        "status": EventStatus.DRAFT.value,
    }
    values.update(kwargs)
    event = Event(title=title, **values)
    session.add(event)
    await session.commit()
    await session.refresh(event)
    return event


# ============================================================================
# User and Event Fixtures
# ============================================================================

@pytest_asyncio.fixture
async def upcoming_event(db_session: AsyncSession) -> Event:
    """
    Create and return a draft event starting in 30 days.
    """
    return await make_event(db_session, title="Upcoming Summit")


@pytest_asyncio.fixture
async def admin_user(db_session: AsyncSession, upcoming_event: Event) -> User:
    """
    Create and return a user holding the admin role.
    """
    user = await make_user(db_session, "admin@test.com", name="Admin User")
    await add_member(db_session, user, upcoming_event, "admin")
    return user


@pytest_asyncio.fixture
async def volunteer_user(db_session: AsyncSession, upcoming_event: Event) -> User:
    """
    Create and return a user holding only the volunteer role.
    """
    user = await make_user(db_session, "volunteer@test.com", name="Volunteer User")
    await add_member(db_session, user, upcoming_event, "volunteer")
    return user


# ============================================================================
# HTTP Client Fixtures
# ============================================================================

@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession, session_factory) -> AsyncGenerator[AsyncClient, None]:
    """
    Provide HTTP test client.

    Overrides the database session dependency to use the test database and
    gives the coordinator the test session factory. The caller is chosen by
    setting ``client.acting_user``.
    """
    scheduler = LifecycleScheduler()

    async def override_get_db():
        try:
            yield db_session
        except Exception:
            await db_session.rollback()
            raise

    async def override_get_current_user() -> User:
        if client.acting_user is None:
            from fastapi import HTTPException
            raise HTTPException(status_code=401, detail="Not authenticated")
        return client.acting_user

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_current_user] = override_get_current_user
    app.dependency_overrides[get_transaction_coordinator] = (
        lambda: TransactionCoordinator(session_factory, transactional=True)
    )
    app.dependency_overrides[get_lifecycle_scheduler] = lambda: scheduler

    async with AsyncClient(
        transport=ASGITransport(app=app),
        base_url="http://test"
    ) as client:
        client.acting_user = None
        client.scheduler = scheduler
        yield client

    await scheduler.stop()

    # Clear overrides
    app.dependency_overrides.clear()


# ============================================================================
# Markers
# ============================================================================

def pytest_configure(config):
    """
    Configure pytest markers.
    """
    config.addinivalue_line(
        "markers", "unit: mark test as a unit test"
    )
    config.addinivalue_line(
        "markers", "integration: mark test as an integration test"
    )
