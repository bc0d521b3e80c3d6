from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from enum import Enum


class SenderKind(str, Enum):
    """Who authored a thread message."""

    CUSTOMER = "customer"
    REPRESENTATIVE = "representative"
    SYSTEM = "system"


class MessageKind(str, Enum):
    """Classification of a thread message."""

    NORMAL = "normal"
    INTERNAL = "internal"
    ASSIGNMENT = "assignment"


SYSTEM_SENDER_ID = 0


@dataclass(slots=True)
class Customer:
    id: int
    name: str
    email: str | None = None
    phone: str | None = None


@dataclass(slots=True)
class Agent:
    id: int
    name: str
    email: str | None = None
    phone: str | None = None


@dataclass(slots=True, frozen=True)
class TicketStatus:
    """Catalog entry for a lifecycle state, seeded outside the core."""

    id: int
    name: str
    description: str | None = None


@dataclass(slots=True, frozen=True)
class TicketPriority:
    """Catalog entry for urgency; ``level`` runs from 1 (lowest) upwards."""

    id: int
    name: str
    level: int


@dataclass(slots=True)
class Ticket:
    """Primary ticket record.

    ``id`` is ``None`` until the ticket store assigns one. ``version`` is the
    optimistic concurrency token read together with the row.
    """

    id: int | None
    customer_id: int
    agent_id: int | None
    title: str
    description: str
    status_id: int
    priority_id: int
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    version: int = 0

    @property
    def is_closed(self) -> bool:
        return self.closed_at is not None


@dataclass(slots=True)
class TicketMessage:
    """Append-only thread entry belonging to a ticket."""

    id: int | None
    ticket_id: int
    sender_id: int
    sender_kind: SenderKind
    body: str
    kind: MessageKind
    created_at: datetime


@dataclass(slots=True)
class PageRequest:
    page: int = 0
    size: int = 20

    @property
    def offset(self) -> int:
        return max(self.page, 0) * max(self.size, 1)

    @property
    def limit(self) -> int:
        return max(self.size, 1)


@dataclass(slots=True)
class Page:
    items: list
    total: int
    page: int
    size: int
