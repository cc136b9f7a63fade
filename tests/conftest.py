"""Shared test fixtures.

Tests run against a throwaway SQLite file per test (aiosqlite); the ORM
types are chosen so the same models work there and on PostgreSQL.
"""

from __future__ import annotations

from collections.abc import AsyncGenerator

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine

from pruuf.clock import fixed_clock, get_clock
from pruuf.database import close_db, get_engine, get_session_factory, init_db
from pruuf.db.base import Base
from pruuf.dependencies import get_dispatcher
from pruuf.main import create_app
from support import NOW, RecordingDispatcher, Seeder


@pytest_asyncio.fixture
async def engine(tmp_path) -> AsyncGenerator[AsyncEngine, None]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'pruuf.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return async_sessionmaker(engine, class_=AsyncSession, expire_on_commit=False)


@pytest_asyncio.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncGenerator[AsyncSession, None]:
    async with session_factory() as session:
        yield session


@pytest.fixture
def seed(db: AsyncSession) -> Seeder:
    return Seeder(db)


@pytest.fixture
def dispatcher() -> RecordingDispatcher:
    return RecordingDispatcher()


@pytest_asyncio.fixture
async def client(tmp_path, dispatcher: RecordingDispatcher) -> AsyncGenerator[AsyncClient, None]:
    """HTTP client against the app with a fixed clock and recording dispatcher."""
    await init_db(f"sqlite+aiosqlite:///{tmp_path / 'api.db'}")
    async with get_engine().begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    app = create_app()
    app.dependency_overrides[get_clock] = lambda: fixed_clock(NOW)
    app.dependency_overrides[get_dispatcher] = lambda: dispatcher

    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac

    await close_db()


@pytest_asyncio.fixture
async def api_seed(client: AsyncClient) -> AsyncGenerator[Seeder, None]:
    """Seeder bound to the database behind ``client``."""
    async with get_session_factory()() as session:
        yield Seeder(session)
