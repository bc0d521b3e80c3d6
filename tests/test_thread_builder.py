from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from ticketdesk.tickets.models import (
    Agent,
    Customer,
    MessageKind,
    SenderKind,
    Ticket,
    TicketMessage,
    TicketPriority,
    TicketStatus,
)
from ticketdesk.tickets.threads import ThreadBuilder, TicketUrgency, is_overdue, urgency_for

CREATED = datetime(2024, 3, 1, 9, 0, tzinfo=timezone.utc)


def _ticket(**overrides) -> Ticket:
    values = dict(
        id=1,
        customer_id=1,
        agent_id=10,
        title="Broken laptop",
        description="Screen flickers after the update.",
        status_id=1,
        priority_id=2,
        created_at=CREATED,
        updated_at=CREATED,
    )
    values.update(overrides)
    return Ticket(**values)


def _priority(level: int) -> TicketPriority:
    return TicketPriority(id=level, name=f"P{level}", level=level)


class FakeStores:
    def __init__(self) -> None:
        self.statuses = {1: TicketStatus(id=1, name="Open")}
        self.priorities = {2: _priority(2)}
        self.customers = {1: Customer(id=1, name="Ayşe Yılmaz", email="ayse@example.com")}
        self.agents = {10: Agent(id=10, name="Mehmet Demir", email="mehmet@support.example.com")}
        self.messages: list[TicketMessage] = []

    async def get_status(self, status_id):
        return self.statuses.get(status_id)

    async def get_priority(self, priority_id):
        return self.priorities.get(priority_id)

    async def get_customer(self, customer_id):
        return self.customers.get(customer_id)

    async def get_agent(self, agent_id):
        return self.agents.get(agent_id)

    async def list_messages(self, ticket_id):
        return [message for message in self.messages if message.ticket_id == ticket_id]


def _message(message_id: int, sender_id: int, sender_kind: SenderKind, body: str) -> TicketMessage:
    return TicketMessage(
        id=message_id,
        ticket_id=1,
        sender_id=sender_id,
        sender_kind=sender_kind,
        body=body,
        kind=MessageKind.NORMAL,
        created_at=CREATED + timedelta(minutes=message_id),
    )


@pytest.mark.parametrize(
    ("level", "hours", "expected"),
    [
        (1, 167, False),
        (1, 169, True),
        (2, 73, True),
        (3, 23, False),
        (3, 25, True),
        (4, 5, True),
        (9, 71, False),
    ],
)
def test_is_overdue_thresholds(level, hours, expected):
    now = CREATED + timedelta(hours=hours)

    assert is_overdue(_ticket(), _priority(level), now) is expected


def test_closed_ticket_is_never_overdue():
    now = CREATED + timedelta(days=30)

    assert is_overdue(_ticket(closed_at=CREATED + timedelta(hours=1)), _priority(4), now) is False


@pytest.mark.parametrize(
    ("level", "hours", "expected"),
    [
        (4, 3, TicketUrgency.CRITICAL),
        (4, 1, TicketUrgency.HIGH),
        (3, 1, TicketUrgency.HIGH),
        (2, 1, TicketUrgency.MEDIUM),
        (2, 80, TicketUrgency.HIGH),
        (1, 1, TicketUrgency.LOW),
    ],
)
def test_urgency(level, hours, expected):
    now = CREATED + timedelta(hours=hours)

    assert urgency_for(_ticket(), _priority(level), now) is expected


@pytest.mark.asyncio
async def test_snapshot_resolves_names_and_metrics():
    stores = FakeStores()
    stores.messages = [
        _message(1, 1, SenderKind.CUSTOMER, "Hello"),
        _message(2, 10, SenderKind.REPRESENTATIVE, "Hi there"),
        _message(3, 0, SenderKind.SYSTEM, "Atama Notu: VIP"),
    ]
    now = CREATED + timedelta(hours=2)
    builder = ThreadBuilder(stores, stores, clock=lambda: now)

    snapshot = await builder.build_snapshot(_ticket())

    assert snapshot.status == "Open"
    assert snapshot.priority == "P2"
    assert snapshot.customer_email == "ayse@example.com"
    assert snapshot.agent_name == "Mehmet Demir"
    assert [view.sender_name for view in snapshot.messages] == ["Ayşe Yılmaz", "Mehmet Demir", "System"]
    assert snapshot.messages[1].sender_email == "mehmet@support.example.com"
    assert snapshot.messages[2].sender_email is None
    assert snapshot.messages[0].metadata.length == 5
    assert snapshot.messages[0].metadata.formatted_date == "2024-03-01 09:01"
    assert snapshot.metrics.age == timedelta(hours=2)
    assert snapshot.metrics.message_count == 3
    assert snapshot.metrics.urgency is TicketUrgency.MEDIUM


@pytest.mark.asyncio
async def test_missing_references_degrade_to_unknown():
    stores = FakeStores()
    stores.messages = [_message(1, 77, SenderKind.CUSTOMER, "Orphaned")]
    builder = ThreadBuilder(stores, stores, clock=lambda: CREATED)

    snapshot = await builder.build_snapshot(_ticket(status_id=99, priority_id=99, agent_id=404))

    assert snapshot.status == "Unknown"
    assert snapshot.priority == "Unknown"
    assert snapshot.agent_name is None
    assert snapshot.messages[0].sender_name == "Unknown"


@pytest.mark.asyncio
async def test_resolution_time_for_closed_ticket():
    stores = FakeStores()
    builder = ThreadBuilder(stores, stores, clock=lambda: CREATED + timedelta(days=2))

    snapshot = await builder.build_snapshot(_ticket(closed_at=CREATED + timedelta(hours=6)))

    assert snapshot.metrics.resolution_time == timedelta(hours=6)
    assert snapshot.metrics.is_overdue is False


@pytest.mark.asyncio
async def test_basic_snapshot_omits_thread_and_metrics():
    stores = FakeStores()
    stores.messages = [_message(1, 1, SenderKind.CUSTOMER, "Hello")]
    builder = ThreadBuilder(stores, stores, clock=lambda: CREATED)

    snapshot = await builder.build_basic_snapshot(_ticket())

    assert snapshot.messages is None
    assert snapshot.metrics is None
    assert snapshot.customer_name == "Ayşe Yılmaz"
