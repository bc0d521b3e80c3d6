"""Database models and utilities."""

from .models import (
    AgentTable,
    CustomerTable,
    TicketMessageTable,
    TicketPriorityTable,
    TicketStatusTable,
    TicketTable,
)

__all__ = [
    "AgentTable",
    "CustomerTable",
    "TicketMessageTable",
    "TicketPriorityTable",
    "TicketStatusTable",
    "TicketTable",
]
