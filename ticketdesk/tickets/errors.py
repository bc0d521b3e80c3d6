from __future__ import annotations

from typing import Any


class TicketServiceError(RuntimeError):
    """Base error for ticket service issues."""


class ResourceNotFoundError(TicketServiceError):
    """Raised when a referenced ticket, customer, agent, status or priority is missing."""

    def __init__(self, resource: str, identifier: Any) -> None:
        super().__init__(f"{resource} not found: {identifier}")
        self.resource = resource
        self.identifier = identifier


class TicketValidationError(TicketServiceError):
    """Raised when a title, description or message body violates its bounds."""

    def __init__(self, field: str, message: str) -> None:
        super().__init__(message)
        self.field = field


class CatalogConfigurationError(TicketServiceError):
    """Raised when required seed data (a status or priority) is entirely absent."""


class TicketConflictError(TicketServiceError):
    """Raised when a concurrent write to the same ticket won the race.

    The operation had no effect and may be retried by the caller.
    """

    def __init__(self, ticket_id: Any, expected_version: int) -> None:
        super().__init__(f"Ticket {ticket_id} was modified concurrently (expected version {expected_version})")
        self.ticket_id = ticket_id
        self.expected_version = expected_version
