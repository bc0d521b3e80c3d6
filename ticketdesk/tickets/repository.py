from __future__ import annotations

from contextlib import AbstractAsyncContextManager, asynccontextmanager
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import AsyncIterator, Protocol

from sqlalchemy import func, update
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker
from sqlmodel import SQLModel, select

from ticketdesk.db.models import (
    AgentTable,
    CustomerTable,
    TicketMessageTable,
    TicketPriorityTable,
    TicketStatusTable,
    TicketTable,
)

from .errors import TicketConflictError
from .models import (
    Agent,
    Customer,
    MessageKind,
    Page,
    PageRequest,
    SenderKind,
    Ticket,
    TicketMessage,
    TicketPriority,
    TicketStatus,
)


class TicketStore(Protocol):
    """Tickets plus the read-only parties and catalogs they reference."""

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        ...

    async def save_ticket(self, ticket: Ticket) -> Ticket:
        """Insert a new ticket or update an existing one, failing on a version mismatch."""
        ...

    async def get_customer(self, customer_id: int) -> Customer | None:
        ...

    async def get_agent(self, agent_id: int) -> Agent | None:
        ...

    async def get_status(self, status_id: int) -> TicketStatus | None:
        ...

    async def get_status_by_name(self, name: str) -> TicketStatus | None:
        ...

    async def first_status(self) -> TicketStatus | None:
        ...

    async def list_statuses(self) -> list[TicketStatus]:
        ...

    async def get_priority(self, priority_id: int) -> TicketPriority | None:
        ...

    async def first_priority(self) -> TicketPriority | None:
        ...

    async def list_tickets(self, page: PageRequest) -> Page:
        ...

    async def list_agent_tickets(self, agent_id: int, page: PageRequest) -> Page:
        ...

    async def list_unassigned_tickets(self, page: PageRequest) -> Page:
        ...


class MessageStore(Protocol):
    """Append-only per-ticket message log."""

    async def append_message(self, message: TicketMessage) -> TicketMessage:
        ...

    async def list_messages(self, ticket_id: int) -> list[TicketMessage]:
        """Return the thread ordered by creation time, oldest first."""
        ...


class SqlTicketStore:
    """Ticket store bound to a single SQLAlchemy async session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def get_ticket(self, ticket_id: int) -> Ticket | None:
        result = await self._session.execute(
            select(TicketTable)
            .where(TicketTable.id == ticket_id)
            .execution_options(populate_existing=True)
        )
        row = result.scalars().first()
        if row is None:
            return None
        return _table_to_ticket(row)

    async def save_ticket(self, ticket: Ticket) -> Ticket:
        if ticket.id is None:
            row = TicketTable(
                customer_id=ticket.customer_id,
                agent_id=ticket.agent_id,
                title=ticket.title,
                description=ticket.description,
                status_id=ticket.status_id,
                priority_id=ticket.priority_id,
                created_at=ticket.created_at,
                updated_at=ticket.updated_at,
                closed_at=ticket.closed_at,
                version=0,
            )
            self._session.add(row)
            await self._session.flush()
            return _table_to_ticket(row)

        result = await self._session.execute(
            update(TicketTable)
            .where(TicketTable.id == ticket.id, TicketTable.version == ticket.version)
            .values(
                agent_id=ticket.agent_id,
                title=ticket.title,
                description=ticket.description,
                status_id=ticket.status_id,
                priority_id=ticket.priority_id,
                updated_at=ticket.updated_at,
                closed_at=ticket.closed_at,
                version=ticket.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        if result.rowcount != 1:
            raise TicketConflictError(ticket.id, ticket.version)
        saved = await self.get_ticket(ticket.id)
        if saved is None:
            raise TicketConflictError(ticket.id, ticket.version)
        return saved

    async def get_customer(self, customer_id: int) -> Customer | None:
        row = await self._session.get(CustomerTable, customer_id)
        if row is None:
            return None
        return Customer(id=row.id, name=row.name, email=row.email, phone=row.phone)

    async def get_agent(self, agent_id: int) -> Agent | None:
        row = await self._session.get(AgentTable, agent_id)
        if row is None:
            return None
        return Agent(id=row.id, name=row.name, email=row.email, phone=row.phone)

    async def get_status(self, status_id: int) -> TicketStatus | None:
        row = await self._session.get(TicketStatusTable, status_id)
        return _table_to_status(row) if row is not None else None

    async def get_status_by_name(self, name: str) -> TicketStatus | None:
        result = await self._session.execute(select(TicketStatusTable).where(TicketStatusTable.name == name))
        row = result.scalars().first()
        return _table_to_status(row) if row is not None else None

    async def first_status(self) -> TicketStatus | None:
        result = await self._session.execute(
            select(TicketStatusTable).order_by(TicketStatusTable.id.asc()).limit(1)
        )
        row = result.scalars().first()
        return _table_to_status(row) if row is not None else None

    async def list_statuses(self) -> list[TicketStatus]:
        result = await self._session.execute(select(TicketStatusTable).order_by(TicketStatusTable.id.asc()))
        return [_table_to_status(row) for row in result.scalars().all()]

    async def get_priority(self, priority_id: int) -> TicketPriority | None:
        row = await self._session.get(TicketPriorityTable, priority_id)
        return _table_to_priority(row) if row is not None else None

    async def first_priority(self) -> TicketPriority | None:
        result = await self._session.execute(
            select(TicketPriorityTable).order_by(TicketPriorityTable.id.asc()).limit(1)
        )
        row = result.scalars().first()
        return _table_to_priority(row) if row is not None else None

    async def list_tickets(self, page: PageRequest) -> Page:
        return await self._paginate(
            select(TicketTable).order_by(TicketTable.created_at.desc(), TicketTable.id.desc()),
            select(func.count()).select_from(TicketTable),
            page,
        )

    async def list_agent_tickets(self, agent_id: int, page: PageRequest) -> Page:
        return await self._paginate(
            select(TicketTable)
            .where(TicketTable.agent_id == agent_id)
            .order_by(TicketTable.updated_at.desc(), TicketTable.id.desc()),
            select(func.count()).select_from(TicketTable).where(TicketTable.agent_id == agent_id),
            page,
        )

    async def list_unassigned_tickets(self, page: PageRequest) -> Page:
        return await self._paginate(
            select(TicketTable)
            .where(TicketTable.agent_id.is_(None))
            .order_by(TicketTable.created_at.asc(), TicketTable.id.asc()),
            select(func.count()).select_from(TicketTable).where(TicketTable.agent_id.is_(None)),
            page,
        )

    async def _paginate(self, query, count_query, page: PageRequest) -> Page:
        total = (await self._session.execute(count_query)).scalar_one()
        result = await self._session.execute(
            query.offset(page.offset).limit(page.limit).execution_options(populate_existing=True)
        )
        items = [_table_to_ticket(row) for row in result.scalars().all()]
        return Page(items=items, total=int(total), page=page.page, size=page.limit)


class SqlMessageStore:
    """Message store bound to a single SQLAlchemy async session."""

    def __init__(self, session: AsyncSession) -> None:
        self._session = session

    async def append_message(self, message: TicketMessage) -> TicketMessage:
        row = TicketMessageTable(
            ticket_id=message.ticket_id,
            sender_id=message.sender_id,
            sender_kind=message.sender_kind.value,
            body=message.body,
            kind=message.kind.value,
            created_at=message.created_at,
        )
        self._session.add(row)
        await self._session.flush()
        return _table_to_message(row)

    async def list_messages(self, ticket_id: int) -> list[TicketMessage]:
        result = await self._session.execute(
            select(TicketMessageTable)
            .where(TicketMessageTable.ticket_id == ticket_id)
            .order_by(TicketMessageTable.created_at.asc(), TicketMessageTable.id.asc())
        )
        return [_table_to_message(row) for row in result.scalars().all()]


@dataclass(slots=True)
class StoreSession:
    """Stores sharing one transaction."""

    tickets: TicketStore
    messages: MessageStore


class UnitOfWork(Protocol):
    def begin(self) -> AbstractAsyncContextManager[StoreSession]:
        ...


class TicketUnitOfWork:
    """Opens one session and transaction per ticket operation.

    The transaction commits when the block exits normally and rolls back on
    any exception, so a transition and its message appends land together or
    not at all.
    """

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        *,
        engine: AsyncEngine | None = None,
    ) -> None:
        self._session_factory = session_factory
        self._engine: AsyncEngine | None = engine

    async def ensure_schema(self) -> None:
        if self._engine is None:
            raise RuntimeError("Session factory is not bound to an async engine")
        async with self._engine.begin() as connection:
            await connection.run_sync(SQLModel.metadata.create_all)

    @asynccontextmanager
    async def begin(self) -> AsyncIterator[StoreSession]:
        async with self._session_factory() as session:
            async with session.begin():
                yield StoreSession(tickets=SqlTicketStore(session), messages=SqlMessageStore(session))


def _table_to_ticket(row: TicketTable) -> Ticket:
    return Ticket(
        id=row.id,
        customer_id=row.customer_id,
        agent_id=row.agent_id,
        title=row.title,
        description=row.description,
        status_id=row.status_id,
        priority_id=row.priority_id,
        created_at=_ensure_datetime(row.created_at),
        updated_at=_ensure_datetime(row.updated_at),
        closed_at=_ensure_datetime(row.closed_at) if row.closed_at is not None else None,
        version=row.version or 0,
    )


def _table_to_message(row: TicketMessageTable) -> TicketMessage:
    return TicketMessage(
        id=row.id,
        ticket_id=row.ticket_id,
        sender_id=row.sender_id,
        sender_kind=SenderKind(row.sender_kind),
        body=row.body,
        kind=MessageKind(row.kind),
        created_at=_ensure_datetime(row.created_at),
    )


def _table_to_status(row: TicketStatusTable) -> TicketStatus:
    return TicketStatus(id=row.id, name=row.name, description=row.description)


def _table_to_priority(row: TicketPriorityTable) -> TicketPriority:
    return TicketPriority(id=row.id, name=row.name, level=row.level)


def _ensure_datetime(value: datetime | None) -> datetime:
    if isinstance(value, datetime):
        if value.tzinfo is None:
            return value.replace(tzinfo=timezone.utc)
        return value
    raise TypeError("Expected datetime value from database")
