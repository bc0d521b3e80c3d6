from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest
import pytest_asyncio
from sqlalchemy import inspect as sa_inspect
from sqlalchemy.ext.asyncio import AsyncEngine, async_sessionmaker, create_async_engine

from seed_data import AGENT_ID, CUSTOMER_ID, seed
from ticketdesk.tickets.errors import TicketConflictError
from ticketdesk.tickets.models import MessageKind, PageRequest, SenderKind, Ticket, TicketMessage
from ticketdesk.tickets.repository import TicketUnitOfWork

NOW = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ticket(*, created_at: datetime = NOW, agent_id: int | None = None) -> Ticket:
    return Ticket(
        id=None,
        customer_id=CUSTOMER_ID,
        agent_id=agent_id,
        title="Cannot log in",
        description="The portal rejects my password since Monday.",
        status_id=1,
        priority_id=2,
        created_at=created_at,
        updated_at=created_at,
    )


@pytest_asyncio.fixture
async def seeded_uow(session_factory: async_sessionmaker, unit_of_work: TicketUnitOfWork) -> TicketUnitOfWork:
    await seed(session_factory)
    return unit_of_work


@pytest.mark.asyncio
async def test_ensure_schema_creates_ticket_tables():
    engine: AsyncEngine = create_async_engine("sqlite+aiosqlite:///:memory:")
    try:
        uow = TicketUnitOfWork(async_sessionmaker(engine, expire_on_commit=False), engine=engine)
        await uow.ensure_schema()

        async with engine.begin() as conn:
            tables = await conn.run_sync(lambda sync_conn: set(sa_inspect(sync_conn).get_table_names()))
    finally:
        await engine.dispose()

    assert {"tickets", "ticket_messages", "ticket_statuses", "ticket_priorities", "customers", "agents"} <= tables


@pytest.mark.asyncio
async def test_ensure_schema_requires_engine(session_factory):
    with pytest.raises(RuntimeError):
        await TicketUnitOfWork(session_factory).ensure_schema()


@pytest.mark.asyncio
async def test_save_ticket_assigns_id_and_bumps_version(seeded_uow):
    async with seeded_uow.begin() as stores:
        created = await stores.tickets.save_ticket(_ticket())

    assert created.id is not None
    assert created.version == 0

    async with seeded_uow.begin() as stores:
        ticket = await stores.tickets.get_ticket(created.id)
        ticket.agent_id = AGENT_ID
        updated = await stores.tickets.save_ticket(ticket)

    assert updated.version == 1
    assert updated.agent_id == AGENT_ID
    assert updated.created_at == NOW


@pytest.mark.asyncio
async def test_stale_version_raises_conflict_and_keeps_winner(seeded_uow):
    async with seeded_uow.begin() as stores:
        created = await stores.tickets.save_ticket(_ticket())

    async with seeded_uow.begin() as stores:
        stale = await stores.tickets.get_ticket(created.id)

    async with seeded_uow.begin() as stores:
        winner = await stores.tickets.get_ticket(created.id)
        winner.status_id = 3
        await stores.tickets.save_ticket(winner)

    stale.status_id = 4
    with pytest.raises(TicketConflictError) as excinfo:
        async with seeded_uow.begin() as stores:
            await stores.tickets.save_ticket(stale)

    assert excinfo.value.expected_version == 0
    async with seeded_uow.begin() as stores:
        current = await stores.tickets.get_ticket(created.id)
    assert current.status_id == 3
    assert current.version == 1


@pytest.mark.asyncio
async def test_messages_are_listed_oldest_first(seeded_uow):
    async with seeded_uow.begin() as stores:
        ticket = await stores.tickets.save_ticket(_ticket())
        for offset, body in ((5, "third"), (0, "first"), (0, "second")):
            await stores.messages.append_message(
                TicketMessage(
                    id=None,
                    ticket_id=ticket.id,
                    sender_id=CUSTOMER_ID,
                    sender_kind=SenderKind.CUSTOMER,
                    body=body,
                    kind=MessageKind.NORMAL,
                    created_at=NOW + timedelta(minutes=offset),
                )
            )

    async with seeded_uow.begin() as stores:
        messages = await stores.messages.list_messages(ticket.id)

    assert [message.body for message in messages] == ["first", "second", "third"]
    assert messages[0].sender_kind is SenderKind.CUSTOMER
    assert messages[0].kind is MessageKind.NORMAL


@pytest.mark.asyncio
async def test_pagination_reports_total(seeded_uow):
    async with seeded_uow.begin() as stores:
        for hour in range(5):
            await stores.tickets.save_ticket(_ticket(created_at=NOW + timedelta(hours=hour)))

    async with seeded_uow.begin() as stores:
        page = await stores.tickets.list_tickets(PageRequest(page=1, size=2))

    assert page.total == 5
    assert page.page == 1
    assert page.size == 2
    assert [item.created_at for item in page.items] == [NOW + timedelta(hours=2), NOW + timedelta(hours=1)]


@pytest.mark.asyncio
async def test_catalog_lookups(seeded_uow):
    async with seeded_uow.begin() as stores:
        by_name = await stores.tickets.get_status_by_name("InProgress")
        lowercase = await stores.tickets.get_status_by_name("inprogress")
        first = await stores.tickets.first_status()
        statuses = await stores.tickets.list_statuses()
        priority = await stores.tickets.get_priority(4)

    assert by_name.id == 3
    assert first.name == "Open"
    assert [status.id for status in statuses] == [1, 2, 3, 4, 5, 6]
    assert priority.name == "Urgent"
    assert priority.level == 4
    # sqlite compares case-sensitively for '=' on TEXT
    assert lowercase is None
