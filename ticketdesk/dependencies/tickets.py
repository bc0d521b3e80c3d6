from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request

from ticketdesk.core.config import Settings, get_settings
from ticketdesk.tickets.models import PageRequest
from ticketdesk.tickets.service import TicketService


async def get_ticket_service(request: Request) -> TicketService:
    service = getattr(request.app.state, "ticket_service", None)
    if service is None:
        raise HTTPException(status_code=503, detail="Ticket service is not configured")
    return service


def get_page_request(page: int = 0, size: int | None = None) -> PageRequest:
    settings: Settings = get_settings()
    requested = size if size is not None else settings.default_page_size
    return PageRequest(page=max(page, 0), size=min(max(requested, 1), settings.max_page_size))


TicketServiceDep = Annotated[TicketService, Depends(get_ticket_service)]
PageDep = Annotated[PageRequest, Depends(get_page_request)]
