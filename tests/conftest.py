from __future__ import annotations

from datetime import datetime, timezone

import pytest
import pytest_asyncio
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine
from sqlalchemy.pool import StaticPool
from sqlmodel import SQLModel

from seed_data import FakeClock, seed
from ticketdesk.core.config import Settings
from ticketdesk.tickets.repository import TicketUnitOfWork
from ticketdesk.tickets.service import TicketService


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock(datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc))


@pytest.fixture
def settings() -> Settings:
    return Settings(_env_file=None)


@pytest_asyncio.fixture
async def engine() -> AsyncEngine:
    engine = create_async_engine(
        "sqlite+aiosqlite:///:memory:",
        poolclass=StaticPool,
        connect_args={"check_same_thread": False},
    )
    try:
        async with engine.begin() as conn:
            await conn.run_sync(SQLModel.metadata.create_all)
        yield engine
    finally:
        await engine.dispose()


@pytest_asyncio.fixture
async def session_factory(engine: AsyncEngine) -> async_sessionmaker:
    return async_sessionmaker(engine, expire_on_commit=False)


@pytest_asyncio.fixture
async def unit_of_work(engine: AsyncEngine, session_factory: async_sessionmaker) -> TicketUnitOfWork:
    return TicketUnitOfWork(session_factory, engine=engine)


@pytest_asyncio.fixture
async def service(
    session_factory: async_sessionmaker,
    unit_of_work: TicketUnitOfWork,
    settings: Settings,
    clock: FakeClock,
) -> TicketService:
    await seed(session_factory)
    return TicketService(unit_of_work, settings=settings, clock=clock)
