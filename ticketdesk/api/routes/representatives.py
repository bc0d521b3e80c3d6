from __future__ import annotations

from fastapi import APIRouter, status

from ticketdesk.api.schemas import (
    AgentReplyRequest,
    TicketModel,
    TicketPageModel,
    translate_service_errors,
)
from ticketdesk.dependencies.tickets import PageDep, TicketServiceDep

router = APIRouter(prefix="/representatives", tags=["representatives"])


@router.get("/tickets/unassigned", response_model=TicketPageModel, summary="Oldest unassigned tickets first")
async def list_unassigned_tickets(service: TicketServiceDep, page: PageDep) -> TicketPageModel:
    with translate_service_errors():
        result = await service.get_unassigned_tickets(page)
    return TicketPageModel.from_page(result)


@router.get("/{agent_id}/tickets", response_model=TicketPageModel)
async def list_agent_tickets(agent_id: int, service: TicketServiceDep, page: PageDep) -> TicketPageModel:
    with translate_service_errors():
        result = await service.get_agent_tickets(agent_id, page)
    return TicketPageModel.from_page(result)


@router.post(
    "/{agent_id}/tickets/{ticket_id}/reply",
    response_model=TicketModel,
    status_code=status.HTTP_201_CREATED,
)
async def reply_to_ticket(
    agent_id: int,
    ticket_id: int,
    payload: AgentReplyRequest,
    service: TicketServiceDep,
) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.agent_reply(
            ticket_id,
            agent_id=agent_id,
            body=payload.message,
            status_id=payload.new_status_id,
            internal=payload.is_internal,
        )
    return TicketModel.from_snapshot(snapshot)


@router.post("/{agent_id}/tickets/{ticket_id}/assign", response_model=TicketModel)
async def self_assign_ticket(agent_id: int, ticket_id: int, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.self_assign(agent_id, ticket_id)
    return TicketModel.from_snapshot(snapshot)


@router.patch("/{agent_id}/tickets/{ticket_id}/status", response_model=TicketModel)
async def update_status_as_representative(
    agent_id: int,
    ticket_id: int,
    status_id: int,
    service: TicketServiceDep,
    note: str | None = None,
) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.representative_update_status(agent_id, ticket_id, status_id=status_id, note=note)
    return TicketModel.from_snapshot(snapshot)


@router.post("/{agent_id}/tickets/{ticket_id}/close", response_model=TicketModel)
async def close_as_representative(
    agent_id: int,
    ticket_id: int,
    service: TicketServiceDep,
    close_note: str | None = None,
) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.representative_close(agent_id, ticket_id, note=close_note)
    return TicketModel.from_snapshot(snapshot)
