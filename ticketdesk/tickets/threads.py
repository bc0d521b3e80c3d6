from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Callable

from .models import SenderKind, Ticket, TicketMessage, TicketPriority
from .repository import MessageStore, TicketStore

UNKNOWN_LABEL = "Unknown"
SYSTEM_SENDER_NAME = "System"
MESSAGE_DATE_FORMAT = "%Y-%m-%d %H:%M"

# hours a ticket may stay open per priority level before it counts as overdue
_OVERDUE_HOURS_BY_LEVEL = {1: 168, 2: 72, 3: 24, 4: 4, 5: 4}
_DEFAULT_OVERDUE_HOURS = 72
_DEFAULT_PRIORITY_LEVEL = 2


class TicketUrgency(str, Enum):
    CRITICAL = "critical"
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


@dataclass(slots=True)
class MessageMetadata:
    length: int
    formatted_date: str | None


@dataclass(slots=True)
class MessageView:
    """Thread message annotated with the sender as resolved at read time."""

    id: int
    sender_id: int
    sender_kind: SenderKind
    sender_name: str
    sender_email: str | None
    body: str
    kind: str
    created_at: datetime
    metadata: MessageMetadata


@dataclass(slots=True)
class TicketMetrics:
    age: timedelta
    resolution_time: timedelta | None
    message_count: int
    is_overdue: bool
    urgency: TicketUrgency


@dataclass(slots=True)
class TicketSnapshot:
    """Outward-facing ticket view.

    Basic snapshots (list views) leave ``messages`` and ``metrics`` unset.
    """

    id: int
    title: str
    description: str
    status: str
    priority: str
    customer_id: int
    agent_id: int | None
    customer_name: str | None
    customer_email: str | None
    agent_name: str | None
    agent_email: str | None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None
    messages: list[MessageView] | None = None
    metrics: TicketMetrics | None = None


def is_overdue(ticket: Ticket, priority: TicketPriority | None, now: datetime) -> bool:
    if ticket.is_closed:
        return False
    hours = _DEFAULT_OVERDUE_HOURS
    if priority is not None:
        hours = _OVERDUE_HOURS_BY_LEVEL.get(priority.level, _DEFAULT_OVERDUE_HOURS)
    return now - ticket.created_at > timedelta(hours=hours)


def urgency_for(ticket: Ticket, priority: TicketPriority | None, now: datetime) -> TicketUrgency:
    level = priority.level if priority is not None else _DEFAULT_PRIORITY_LEVEL
    if level >= 4 and now - ticket.created_at > timedelta(hours=2):
        return TicketUrgency.CRITICAL
    if level >= 3 or is_overdue(ticket, priority, now):
        return TicketUrgency.HIGH
    if level == 2:
        return TicketUrgency.MEDIUM
    return TicketUrgency.LOW


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class ThreadBuilder:
    """Assemble ticket snapshots from the ticket and message stores.

    Names, emails and metrics are looked up or computed on every call and are
    never stored alongside the ticket, so a snapshot always reflects the
    current clock and the current party records.
    """

    def __init__(
        self,
        tickets: TicketStore,
        messages: MessageStore,
        *,
        clock: Callable[[], datetime] = _utcnow,
    ) -> None:
        self._tickets = tickets
        self._messages = messages
        self._clock = clock

    async def build_snapshot(self, ticket: Ticket) -> TicketSnapshot:
        snapshot, priority = await self._core_snapshot(ticket)
        messages = await self.build_messages(ticket.id)
        now = self._clock()
        snapshot.messages = messages
        snapshot.metrics = TicketMetrics(
            age=now - ticket.created_at,
            resolution_time=(ticket.closed_at - ticket.created_at) if ticket.is_closed else None,
            message_count=len(messages),
            is_overdue=is_overdue(ticket, priority, now),
            urgency=urgency_for(ticket, priority, now),
        )
        return snapshot

    async def build_basic_snapshot(self, ticket: Ticket) -> TicketSnapshot:
        snapshot, _ = await self._core_snapshot(ticket)
        return snapshot

    async def build_messages(self, ticket_id: int) -> list[MessageView]:
        return [await self._message_view(message) for message in await self._messages.list_messages(ticket_id)]

    async def _core_snapshot(self, ticket: Ticket) -> tuple[TicketSnapshot, TicketPriority | None]:
        status = await self._tickets.get_status(ticket.status_id)
        priority = await self._tickets.get_priority(ticket.priority_id)
        customer = await self._tickets.get_customer(ticket.customer_id)
        agent = await self._tickets.get_agent(ticket.agent_id) if ticket.agent_id is not None else None
        snapshot = TicketSnapshot(
            id=ticket.id,
            title=ticket.title,
            description=ticket.description,
            status=status.name if status is not None else UNKNOWN_LABEL,
            priority=priority.name if priority is not None else UNKNOWN_LABEL,
            customer_id=ticket.customer_id,
            agent_id=ticket.agent_id,
            customer_name=customer.name if customer is not None else None,
            customer_email=customer.email if customer is not None else None,
            agent_name=agent.name if agent is not None else None,
            agent_email=agent.email if agent is not None else None,
            created_at=ticket.created_at,
            updated_at=ticket.updated_at,
            closed_at=ticket.closed_at,
        )
        return snapshot, priority

    async def _message_view(self, message: TicketMessage) -> MessageView:
        name, email = UNKNOWN_LABEL, None
        if message.sender_kind is SenderKind.SYSTEM:
            name = SYSTEM_SENDER_NAME
        elif message.sender_kind is SenderKind.REPRESENTATIVE:
            agent = await self._tickets.get_agent(message.sender_id)
            if agent is not None:
                name, email = agent.name, agent.email
        elif message.sender_kind is SenderKind.CUSTOMER:
            customer = await self._tickets.get_customer(message.sender_id)
            if customer is not None:
                name, email = customer.name, customer.email

        return MessageView(
            id=message.id,
            sender_id=message.sender_id,
            sender_kind=message.sender_kind,
            sender_name=name,
            sender_email=email,
            body=message.body,
            kind=message.kind.value,
            created_at=message.created_at,
            metadata=MessageMetadata(
                length=len(message.body),
                formatted_date=message.created_at.strftime(MESSAGE_DATE_FORMAT),
            ),
        )
