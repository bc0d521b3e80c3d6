from __future__ import annotations

from fastapi import APIRouter, status

from ticketdesk.api.schemas import (
    AssignTicketRequest,
    MessageModel,
    SendMessageRequest,
    TicketCreateRequest,
    TicketModel,
    TicketPageModel,
    translate_service_errors,
)
from ticketdesk.dependencies.tickets import PageDep, TicketServiceDep

router = APIRouter(prefix="/tickets", tags=["tickets"])


@router.post("", response_model=TicketModel, status_code=status.HTTP_201_CREATED)
async def create_ticket(payload: TicketCreateRequest, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.create_ticket(
            customer_id=payload.customer_id,
            title=payload.title,
            description=payload.description,
            priority_id=payload.priority_id,
        )
    return TicketModel.from_snapshot(snapshot)


@router.get("", response_model=TicketPageModel, summary="List tickets, newest first")
async def list_tickets(service: TicketServiceDep, page: PageDep) -> TicketPageModel:
    with translate_service_errors():
        result = await service.list_tickets(page)
    return TicketPageModel.from_page(result)


@router.get("/{ticket_id}", response_model=TicketModel)
async def get_ticket(ticket_id: int, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.get_ticket(ticket_id)
    return TicketModel.from_snapshot(snapshot)


@router.get("/{ticket_id}/messages", response_model=list[MessageModel])
async def get_ticket_messages(ticket_id: int, service: TicketServiceDep) -> list[MessageModel]:
    with translate_service_errors():
        views = await service.get_messages(ticket_id)
    return [MessageModel.from_view(view) for view in views]


@router.post("/{ticket_id}/assign", response_model=TicketModel)
async def assign_ticket(ticket_id: int, payload: AssignTicketRequest, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.assign_ticket(ticket_id, agent_id=payload.agent_id, note=payload.note)
    return TicketModel.from_snapshot(snapshot)


@router.patch("/{ticket_id}/status/{status_id}", response_model=TicketModel)
async def update_ticket_status(ticket_id: int, status_id: int, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.update_status(ticket_id, status_id=status_id)
    return TicketModel.from_snapshot(snapshot)


@router.post("/{ticket_id}/close", response_model=TicketModel)
async def close_ticket(ticket_id: int, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.close_ticket(ticket_id)
    return TicketModel.from_snapshot(snapshot)


@router.post("/{ticket_id}/messages", response_model=TicketModel, status_code=status.HTTP_201_CREATED)
async def send_ticket_message(ticket_id: int, payload: SendMessageRequest, service: TicketServiceDep) -> TicketModel:
    with translate_service_errors():
        snapshot = await service.send_message(ticket_id, sender_id=payload.sender_id, body=payload.message)
    return TicketModel.from_snapshot(snapshot)
