"""
Pytest fixtures for test database, client, and seed data.

Each test gets a fresh in-memory SQLite database (aiosqlite + StaticPool so
every session shares the one connection). The HTTP client talks to the app
over ASGITransport with the DB dependency pointed at the test session.
Redis is switched off so listings always hit the database.
"""

import os

os.environ.setdefault("REDIS_ENABLED", "false")
os.environ.setdefault("ENVIRONMENT", "test")

from typing import AsyncGenerator

import pytest_asyncio
from httpx import AsyncClient, ASGITransport
from sqlalchemy.ext.asyncio import AsyncSession, create_async_engine, async_sessionmaker
from sqlalchemy.pool import StaticPool

from volunteer_api.main import app
from volunteer_api.db.base import Base
from volunteer_api.db.session import get_db
from volunteer_api.models import Counter, Event, User, Volunteer

TEST_DATABASE_URL = "sqlite+aiosqlite:///:memory:"


@pytest_asyncio.fixture(scope="function")
async def db_session() -> AsyncGenerator[AsyncSession, None]:
    """Create tables, yield session, then drop tables for isolation."""
    engine = create_async_engine(
        TEST_DATABASE_URL,
        echo=False,
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    session_factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with session_factory() as session:
        # Same seed rows as the initial migration
        session.add_all([Counter(name="users", value=0), Counter(name="events", value=0)])
        await session.commit()
        yield session

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.drop_all)
    await engine.dispose()


@pytest_asyncio.fixture(scope="function")
async def client(db_session: AsyncSession) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client that overrides the DB dependency with the test session."""

    async def override_get_db():
        yield db_session

    app.dependency_overrides[get_db] = override_get_db

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()


async def add_user(db: AsyncSession, uid: str, email: str, name: str = "", **fields) -> User:
    user = User(
        user_id=fields.pop("user_id", f"USR9{uid[-2:]}"),
        uid=uid,
        email=email,
        display_name=name,
        photo_url="",
        auth_provider="google",
        phone="",
        location="",
        my_events=fields.pop("my_events", []),
        joined_events=fields.pop("joined_events", []),
        total_events_created=fields.pop("total_events_created", 0),
        total_events_joined=fields.pop("total_events_joined", 0),
        total_points=fields.pop("total_points", 0),
        **fields,
    )
    db.add(user)
    await db.commit()
    await db.refresh(user)
    return user


async def add_event(db: AsyncSession, event_code: str, owner: User, **fields) -> Event:
    event = Event(
        event_id=event_code,
        title=fields.pop("title", "River Cleanup"),
        date=fields.pop("date", "2026-11-02"),
        location=fields.pop("location", "Buriganga Riverbank"),
        owner_id=owner.uid,
        owner_email=owner.email,
        owner_name=owner.display_name,
        **fields,
    )
    db.add(event)
    owner.my_events = [*owner.my_events, event_code]
    owner.total_events_created += 1
    await db.commit()
    await db.refresh(event)
    return event


@pytest_asyncio.fixture
async def owner(db_session: AsyncSession) -> User:
    """A registered user who owns the seeded events."""
    return await add_user(db_session, "owner-uid-01", "owner@example.com", "Nusrat Jahan")


@pytest_asyncio.fixture
async def volunteer(db_session: AsyncSession) -> User:
    """A registered user with no memberships yet."""
    return await add_user(db_session, "vol-uid-02", "volunteer@example.com", "Arif Hossain")


@pytest_asyncio.fixture
async def open_event(db_session: AsyncSession, owner: User) -> Event:
    """An event with 20 slots and no explicit points (joins earn the default)."""
    return await add_event(db_session, "EVT100", owner, max_volunteers=20)


@pytest_asyncio.fixture
async def full_event(db_session: AsyncSession, owner: User) -> Event:
    """An event with one slot, already taken."""
    other = await add_user(db_session, "vol-uid-03", "taken@example.com", "Mim Akter")
    event = await add_event(
        db_session, "EVT200", owner,
        title="Tree Planting", max_volunteers=1, volunteers=1, live_attendance=1, points=15,
    )
    event.volunteer_list.append(Volunteer(user_id=other.uid, user_email=other.email,
                                          user_name=other.display_name, points_awarded=15))
    other.joined_events = ["EVT200"]
    other.total_events_joined = 1
    other.total_points = 15
    await db_session.commit()
    return event
