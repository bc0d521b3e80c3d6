from __future__ import annotations

import pytest

from ticketdesk.tickets.models import Agent, Customer, SenderKind
from ticketdesk.tickets.senders import StoreSenderResolver


class PartyStore:
    def __init__(self) -> None:
        self.agents: dict[int, Agent] = {}
        self.customers: dict[int, Customer] = {}
        self.agent_lookups = 0

    async def get_agent(self, agent_id: int) -> Agent | None:
        self.agent_lookups += 1
        return self.agents.get(agent_id)

    async def get_customer(self, customer_id: int) -> Customer | None:
        return self.customers.get(customer_id)


@pytest.fixture
def store() -> PartyStore:
    store = PartyStore()
    store.agents[10] = Agent(id=10, name="Mehmet Demir")
    store.customers[1] = Customer(id=1, name="Ayşe Yılmaz")
    return store


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("sender_id", "expected"),
    [
        (None, SenderKind.SYSTEM),
        (0, SenderKind.SYSTEM),
        (10, SenderKind.REPRESENTATIVE),
        (1, SenderKind.CUSTOMER),
        (999, SenderKind.SYSTEM),
    ],
)
async def test_resolve(store, sender_id, expected):
    assert await StoreSenderResolver(store).resolve(sender_id) is expected


@pytest.mark.asyncio
async def test_agent_wins_over_customer_with_same_id(store):
    store.customers[10] = Customer(id=10, name="Also a customer")

    assert await StoreSenderResolver(store).resolve(10) is SenderKind.REPRESENTATIVE


@pytest.mark.asyncio
async def test_system_sender_skips_store(store):
    await StoreSenderResolver(store).resolve(0)

    assert store.agent_lookups == 0


@pytest.mark.asyncio
async def test_results_follow_store_changes(store):
    resolver = StoreSenderResolver(store)
    assert await resolver.resolve(1) is SenderKind.CUSTOMER

    store.agents[1] = Agent(id=1, name="Promoted")

    assert await resolver.resolve(1) is SenderKind.REPRESENTATIVE
