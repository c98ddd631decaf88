"""
Shared fixtures for Teamsheet backend tests.

Service and store tests run against an in-memory SQLite database with
foreign keys enforced, so store constraints behave as they do in production.
"""

import uuid
from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import event
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool

from app.models import Base, Card, User
from app.services.team_service import TeamRules, TeamService
from app.services.team_store import TeamStore


@pytest_asyncio.fixture
async def engine():
    """In-memory SQLite engine with all tables created."""
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
    )

    @event.listens_for(engine.sync_engine, "connect")
    def _enable_foreign_keys(dbapi_connection, connection_record):
        cursor = dbapi_connection.cursor()
        cursor.execute("PRAGMA foreign_keys=ON")
        cursor.close()

    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session(engine):
    """Database session bound to the in-memory engine."""
    factory = async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)
    async with factory() as session:
        yield session


@pytest.fixture
def store(session):
    return TeamStore(session)


@pytest.fixture
def service(store):
    """Team service with the standard roster rules."""
    return TeamService(store, TeamRules())


@pytest_asyncio.fixture
async def users(session):
    """Twenty registered users, user-00 .. user-19."""
    base = datetime(2024, 1, 1, tzinfo=timezone.utc)
    rows = [
        User(
            id=uuid.uuid4(),
            username=f"user-{i:02d}",
            reputation_score=100 + i,
            created_at=base + timedelta(minutes=i),
        )
        for i in range(20)
    ]
    session.add_all(rows)
    await session.commit()
    return [row.id for row in rows]


@pytest.fixture
def mint_card(session):
    """Factory that writes a card straight into the store."""

    async def _mint(
        owner_id: uuid.UUID,
        subject_id: uuid.UUID | None = None,
        created_at: datetime | None = None,
        **fields,
    ) -> Card:
        card = Card(
            id=uuid.uuid4(),
            owner_id=owner_id,
            subject_id=subject_id or owner_id,
            created_at=created_at or datetime.now(timezone.utc),
            **fields,
        )
        session.add(card)
        await session.commit()
        return card

    return _mint
