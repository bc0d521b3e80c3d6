from __future__ import annotations

from contextlib import contextmanager
from datetime import datetime
from typing import Iterator

from fastapi import HTTPException, status
from pydantic import BaseModel, Field

from ticketdesk.tickets.errors import (
    CatalogConfigurationError,
    ResourceNotFoundError,
    TicketConflictError,
    TicketValidationError,
)
from ticketdesk.tickets.models import Page, SenderKind
from ticketdesk.tickets.threads import MessageView, TicketSnapshot, TicketUrgency


class TicketCreateRequest(BaseModel):
    customer_id: int
    title: str
    description: str
    priority_id: int | None = None


class AssignTicketRequest(BaseModel):
    agent_id: int = Field(..., ge=1)
    note: str | None = None


class SendMessageRequest(BaseModel):
    sender_id: int | None = Field(default=None, ge=0)
    message: str


class AgentReplyRequest(BaseModel):
    message: str
    new_status_id: int | None = None
    is_internal: bool = False


class MessageMetadataModel(BaseModel):
    length: int
    formatted_date: str | None = None


class MessageModel(BaseModel):
    id: int
    sender_id: int
    sender_kind: SenderKind
    sender_name: str
    sender_email: str | None = None
    message: str
    kind: str
    created_at: datetime
    metadata: MessageMetadataModel

    @classmethod
    def from_view(cls, view: MessageView) -> "MessageModel":
        return cls(
            id=view.id,
            sender_id=view.sender_id,
            sender_kind=view.sender_kind,
            sender_name=view.sender_name,
            sender_email=view.sender_email,
            message=view.body,
            kind=view.kind,
            created_at=view.created_at,
            metadata=MessageMetadataModel(length=view.metadata.length, formatted_date=view.metadata.formatted_date),
        )


class TicketMetricsModel(BaseModel):
    age_seconds: float
    resolution_time_seconds: float | None = None
    message_count: int
    is_overdue: bool
    urgency: TicketUrgency


class TicketModel(BaseModel):
    id: int
    title: str
    description: str
    status: str
    priority: str
    customer_id: int
    agent_id: int | None = None
    customer_name: str | None = None
    customer_email: str | None = None
    agent_name: str | None = None
    agent_email: str | None = None
    created_at: datetime
    updated_at: datetime
    closed_at: datetime | None = None
    messages: list[MessageModel] | None = None
    metrics: TicketMetricsModel | None = None

    @classmethod
    def from_snapshot(cls, snapshot: TicketSnapshot) -> "TicketModel":
        metrics = None
        if snapshot.metrics is not None:
            resolution = snapshot.metrics.resolution_time
            metrics = TicketMetricsModel(
                age_seconds=snapshot.metrics.age.total_seconds(),
                resolution_time_seconds=resolution.total_seconds() if resolution is not None else None,
                message_count=snapshot.metrics.message_count,
                is_overdue=snapshot.metrics.is_overdue,
                urgency=snapshot.metrics.urgency,
            )
        messages = None
        if snapshot.messages is not None:
            messages = [MessageModel.from_view(view) for view in snapshot.messages]
        return cls(
            id=snapshot.id,
            title=snapshot.title,
            description=snapshot.description,
            status=snapshot.status,
            priority=snapshot.priority,
            customer_id=snapshot.customer_id,
            agent_id=snapshot.agent_id,
            customer_name=snapshot.customer_name,
            customer_email=snapshot.customer_email,
            agent_name=snapshot.agent_name,
            agent_email=snapshot.agent_email,
            created_at=snapshot.created_at,
            updated_at=snapshot.updated_at,
            closed_at=snapshot.closed_at,
            messages=messages,
            metrics=metrics,
        )


class TicketPageModel(BaseModel):
    items: list[TicketModel]
    total: int
    page: int
    size: int

    @classmethod
    def from_page(cls, page: Page) -> "TicketPageModel":
        return cls(
            items=[TicketModel.from_snapshot(item) for item in page.items],
            total=page.total,
            page=page.page,
            size=page.size,
        )


@contextmanager
def translate_service_errors() -> Iterator[None]:
    """Map ticket service failures onto HTTP status codes."""

    try:
        yield
    except ResourceNotFoundError as exc:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=str(exc)) from exc
    except TicketValidationError as exc:
        raise HTTPException(status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)) from exc
    except TicketConflictError as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except CatalogConfigurationError as exc:
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)) from exc
