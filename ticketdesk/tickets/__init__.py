"""Ticket lifecycle domain: policy, transition engine, thread building."""

from .errors import (
    CatalogConfigurationError,
    ResourceNotFoundError,
    TicketConflictError,
    TicketServiceError,
    TicketValidationError,
)
from .models import MessageKind, SenderKind, Ticket, TicketMessage
from .service import TicketService
from .state import LifecyclePolicy, StatusCatalog, StatusRole

__all__ = [
    "CatalogConfigurationError",
    "LifecyclePolicy",
    "MessageKind",
    "ResourceNotFoundError",
    "SenderKind",
    "StatusCatalog",
    "StatusRole",
    "Ticket",
    "TicketConflictError",
    "TicketMessage",
    "TicketService",
    "TicketServiceError",
    "TicketValidationError",
]
