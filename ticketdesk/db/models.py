"""SQLModel table definitions for the Ticketdesk data layer."""

from __future__ import annotations

from datetime import datetime, timezone

from sqlalchemy import Column, DateTime, ForeignKey, Integer, String, Text
from sqlmodel import Field, SQLModel


def _utcnow() -> datetime:
    """Return a timezone aware UTC timestamp."""

    return datetime.now(timezone.utc)


class CustomerTable(SQLModel, table=True):
    """People who open tickets."""

    __tablename__ = "customers"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(100), nullable=True, unique=True))
    phone: str | None = Field(default=None, sa_column=Column(String(20), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class AgentTable(SQLModel, table=True):
    """Support representatives tickets get assigned to."""

    __tablename__ = "agents"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(100), nullable=False))
    email: str | None = Field(default=None, sa_column=Column(String(100), nullable=True, unique=True))
    phone: str | None = Field(default=None, sa_column=Column(String(20), nullable=True))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))


class TicketStatusTable(SQLModel, table=True):
    """Seeded lifecycle status catalog."""

    __tablename__ = "ticket_statuses"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(50), nullable=False, unique=True, index=True))
    description: str | None = Field(default=None, sa_column=Column(String(200), nullable=True))


class TicketPriorityTable(SQLModel, table=True):
    """Seeded priority catalog; ``level`` drives overdue and urgency."""

    __tablename__ = "ticket_priorities"

    id: int | None = Field(default=None, primary_key=True)
    name: str = Field(sa_column=Column(String(50), nullable=False, unique=True))
    level: int = Field(sa_column=Column(Integer, nullable=False, unique=True, index=True))


class TicketTable(SQLModel, table=True):
    """Ticket rows; ``version`` guards read-modify-write races."""

    __tablename__ = "tickets"

    id: int | None = Field(default=None, primary_key=True)
    customer_id: int = Field(sa_column=Column(Integer, ForeignKey("customers.id"), nullable=False, index=True))
    agent_id: int | None = Field(
        default=None, sa_column=Column(Integer, ForeignKey("agents.id"), nullable=True, index=True)
    )
    title: str = Field(sa_column=Column(String(200), nullable=False))
    description: str = Field(sa_column=Column(Text, nullable=False))
    status_id: int = Field(sa_column=Column(Integer, ForeignKey("ticket_statuses.id"), nullable=False, index=True))
    priority_id: int = Field(sa_column=Column(Integer, ForeignKey("ticket_priorities.id"), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    updated_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
    closed_at: datetime | None = Field(default=None, sa_column=Column(DateTime(timezone=True), nullable=True))
    version: int = Field(default=0, sa_column=Column(Integer, nullable=False, default=0))


class TicketMessageTable(SQLModel, table=True):
    """Append-only thread messages belonging to a ticket."""

    __tablename__ = "ticket_messages"

    id: int | None = Field(default=None, primary_key=True)
    ticket_id: int = Field(
        sa_column=Column(Integer, ForeignKey("tickets.id", ondelete="CASCADE"), nullable=False, index=True)
    )
    sender_id: int = Field(sa_column=Column(Integer, nullable=False))
    sender_kind: str = Field(sa_column=Column(String(20), nullable=False))
    body: str = Field(sa_column=Column(Text, nullable=False))
    kind: str = Field(default="normal", sa_column=Column(String(30), nullable=False))
    created_at: datetime = Field(default_factory=_utcnow, sa_column=Column(DateTime(timezone=True), nullable=False))
