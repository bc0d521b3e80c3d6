from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from datetime import datetime, timezone
from typing import Any, AsyncIterator, Callable

from opentelemetry import trace

from ticketdesk.core.config import Settings, get_settings

from .errors import (
    CatalogConfigurationError,
    ResourceNotFoundError,
    TicketServiceError,
    TicketValidationError,
)
from .models import (
    SYSTEM_SENDER_ID,
    MessageKind,
    Page,
    PageRequest,
    SenderKind,
    Ticket,
    TicketMessage,
    TicketPriority,
)
from .repository import StoreSession, TicketStore, UnitOfWork
from .senders import IdentityResolver, StoreSenderResolver
from .state import ClosedAtEffect, LifecyclePolicy, StatusCatalog, TransitionOutcome
from .threads import MessageView, ThreadBuilder, TicketSnapshot

logger = logging.getLogger(__name__)
_tracer = trace.get_tracer(__name__)

TITLE_MIN_LENGTH, TITLE_MAX_LENGTH = 5, 200
DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH = 10, 5000
MESSAGE_MIN_LENGTH, MESSAGE_MAX_LENGTH = 1, 5000

SELF_ASSIGN_NOTE = "Ticket {name} tarafından kendisine atandı"
AUTO_ASSIGN_NOTE = "Durum güncellerken {name} tarafından otomatik atandı"
STATUS_NOTE_PREFIX = "Durum güncellendi: "
CLOSE_NOTE_PREFIX = "Ticket kapatıldı: "


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


def _bounded_text(field: str, label: str, value: str | None, minimum: int, maximum: int) -> str:
    text = (value or "").strip()
    if not minimum <= len(text) <= maximum:
        raise TicketValidationError(field, f"{label} must be between {minimum} and {maximum} characters")
    return text


def apply_outcome(ticket: Ticket, outcome: TransitionOutcome, now: datetime) -> Ticket:
    """Write a policy outcome onto the ticket and stamp ``updated_at``."""

    if outcome.assign_agent_id is not None:
        ticket.agent_id = outcome.assign_agent_id
    if outcome.next_status is not None:
        ticket.status_id = outcome.next_status.id
    if outcome.closed_at is ClosedAtEffect.OVERWRITE:
        ticket.closed_at = now
    elif outcome.closed_at is ClosedAtEffect.SET_IF_MISSING and ticket.closed_at is None:
        ticket.closed_at = now
    ticket.updated_at = now
    return ticket


class TicketService:
    """Transition engine for the ticket lifecycle.

    Every public mutation loads the ticket, asks the lifecycle policy for the
    next state, persists the ticket, appends any thread messages and returns a
    snapshot, all inside one unit of work. Failures propagate unchanged; the
    unit of work rolls back so no half-applied transition is visible.
    """

    def __init__(
        self,
        unit_of_work: UnitOfWork,
        *,
        settings: Settings | None = None,
        catalog: StatusCatalog | None = None,
        clock: Callable[[], datetime] = _utcnow,
        sender_resolver: Callable[[TicketStore], IdentityResolver] = StoreSenderResolver,
    ) -> None:
        self._uow = unit_of_work
        self._settings = settings or get_settings()
        self._catalog = catalog
        self._clock = clock
        self._sender_resolver = sender_resolver

    async def load_catalog(self) -> StatusCatalog:
        async with self._uow.begin() as stores:
            return await self._status_catalog(stores)

    # -- transitions -----------------------------------------------------

    async def create_ticket(
        self,
        *,
        customer_id: int,
        title: str,
        description: str,
        priority_id: int | None = None,
    ) -> TicketSnapshot:
        title = _bounded_text("title", "Title", title, TITLE_MIN_LENGTH, TITLE_MAX_LENGTH)
        description = _bounded_text(
            "description", "Description", description, DESCRIPTION_MIN_LENGTH, DESCRIPTION_MAX_LENGTH
        )

        async with self._operation("create", customer_id=customer_id) as stores:
            customer = await stores.tickets.get_customer(customer_id)
            if customer is None:
                raise ResourceNotFoundError("Customer", customer_id)
            priority = await self._resolve_priority(stores, priority_id)
            outcome = (await self._policy(stores)).on_create()

            now = self._clock()
            ticket = Ticket(
                id=None,
                customer_id=customer.id,
                agent_id=None,
                title=title,
                description=description,
                status_id=outcome.next_status.id,
                priority_id=priority.id,
                created_at=now,
                updated_at=now,
            )
            ticket = await stores.tickets.save_ticket(ticket)
            logger.debug("Ticket %s created for customer %s", ticket.id, customer_id)
            return await self._snapshot(stores, ticket)

    async def assign_ticket(self, ticket_id: int, *, agent_id: int, note: str | None = None) -> TicketSnapshot:
        async with self._operation("assign", ticket_id=ticket_id, agent_id=agent_id) as stores:
            ticket = await self._require_ticket(stores, ticket_id)
            agent = await stores.tickets.get_agent(agent_id)
            if agent is None:
                raise ResourceNotFoundError("Agent", agent_id)

            outcome = (await self._policy(stores)).on_assign(agent.id, note)
            now = self._clock()
            ticket = await stores.tickets.save_ticket(apply_outcome(ticket, outcome, now))
            if outcome.synthetic_message is not None:
                await self._append(
                    stores,
                    ticket,
                    sender_id=SYSTEM_SENDER_ID,
                    sender_kind=SenderKind.SYSTEM,
                    body=outcome.synthetic_message,
                    kind=MessageKind.ASSIGNMENT,
                    now=now,
                )
            logger.info("Ticket %s assigned to agent %s", ticket_id, agent_id)
            return await self._snapshot(stores, ticket)

    async def update_status(self, ticket_id: int, *, status_id: int) -> TicketSnapshot:
        async with self._operation("update_status", ticket_id=ticket_id, status_id=status_id) as stores:
            ticket = await self._require_ticket(stores, ticket_id)
            status = await stores.tickets.get_status(status_id)
            if status is None:
                raise ResourceNotFoundError("TicketStatus", status_id)

            outcome = (await self._policy(stores)).on_status_change(status)
            ticket = await stores.tickets.save_ticket(apply_outcome(ticket, outcome, self._clock()))
            logger.info("Ticket %s moved to status '%s'", ticket_id, status.name)
            return await self._snapshot(stores, ticket)

    async def close_ticket(self, ticket_id: int) -> TicketSnapshot:
        async with self._operation("close", ticket_id=ticket_id) as stores:
            ticket = await self._require_ticket(stores, ticket_id)
            outcome = (await self._policy(stores)).on_close()
            ticket = await stores.tickets.save_ticket(apply_outcome(ticket, outcome, self._clock()))
            logger.info("Ticket %s closed", ticket_id)
            return await self._snapshot(stores, ticket)

    async def send_message(self, ticket_id: int, *, sender_id: int | None, body: str) -> TicketSnapshot:
        async with self._operation("send_message", ticket_id=ticket_id, sender_id=sender_id) as stores:
            ticket = await self._require_ticket(stores, ticket_id)
            body = _bounded_text("message", "Message", body, MESSAGE_MIN_LENGTH, MESSAGE_MAX_LENGTH)

            sender_kind = await self._sender_resolver(stores.tickets).resolve(sender_id)
            outcome = (await self._policy(stores)).on_message_sent(sender_kind)
            now = self._clock()
            ticket = await stores.tickets.save_ticket(apply_outcome(ticket, outcome, now))
            await self._append(
                stores,
                ticket,
                sender_id=sender_id if sender_id is not None else SYSTEM_SENDER_ID,
                sender_kind=sender_kind,
                body=body,
                kind=MessageKind.NORMAL,
                now=now,
            )
            return await self._snapshot(stores, ticket)

    async def agent_reply(
        self,
        ticket_id: int,
        *,
        agent_id: int,
        body: str,
        status_id: int | None = None,
        internal: bool = False,
    ) -> TicketSnapshot:
        async with self._operation("agent_reply", ticket_id=ticket_id, agent_id=agent_id) as stores:
            ticket = await self._require_ticket(stores, ticket_id)
            agent = await stores.tickets.get_agent(agent_id)
            if agent is None:
                raise ResourceNotFoundError("Agent", agent_id)
            body = _bounded_text("message", "Message", body, MESSAGE_MIN_LENGTH, MESSAGE_MAX_LENGTH)

            explicit_status = None
            # ids of 0 or below mean "no explicit status"
            if status_id is not None and status_id > 0:
                explicit_status = await stores.tickets.get_status(status_id)
                if explicit_status is None:
                    raise ResourceNotFoundError("TicketStatus", status_id)

            outcome = (await self._policy(stores)).on_agent_reply(
                current_agent_id=ticket.agent_id,
                agent_id=agent.id,
                explicit_status=explicit_status,
            )
            if outcome.assign_agent_id is not None:
                logger.info("Auto-assigning ticket %s to agent %s", ticket_id, agent_id)

            now = self._clock()
            ticket = await stores.tickets.save_ticket(apply_outcome(ticket, outcome, now))
            await self._append(
                stores,
                ticket,
                sender_id=agent.id,
                sender_kind=SenderKind.REPRESENTATIVE,
                body=body,
                kind=MessageKind.INTERNAL if internal else MessageKind.NORMAL,
                now=now,
            )
            return await self._snapshot(stores, ticket)

    # -- representative workflows ----------------------------------------

    async def self_assign(self, agent_id: int, ticket_id: int) -> TicketSnapshot:
        agent_name = await self._agent_name(agent_id)
        return await self.assign_ticket(ticket_id, agent_id=agent_id, note=SELF_ASSIGN_NOTE.format(name=agent_name))

    async def representative_update_status(
        self,
        agent_id: int,
        ticket_id: int,
        *,
        status_id: int,
        note: str | None = None,
    ) -> TicketSnapshot:
        """Auto-assign an unassigned ticket, change its status and record an internal note."""

        agent_name = await self._agent_name(agent_id)
        async with self._uow.begin() as stores:
            if await stores.tickets.get_status(status_id) is None:
                raise ResourceNotFoundError("TicketStatus", status_id)
        current = await self.get_ticket(ticket_id)
        if current.agent_id is None:
            await self.assign_ticket(ticket_id, agent_id=agent_id, note=AUTO_ASSIGN_NOTE.format(name=agent_name))

        snapshot = await self.update_status(ticket_id, status_id=status_id)
        if note is not None and note.strip():
            snapshot = await self.agent_reply(
                ticket_id,
                agent_id=agent_id,
                body=f"{STATUS_NOTE_PREFIX}{note.strip()}",
                status_id=status_id,
                internal=True,
            )
        return snapshot

    async def representative_close(self, agent_id: int, ticket_id: int, *, note: str | None = None) -> TicketSnapshot:
        await self._agent_name(agent_id)
        if note is not None and note.strip():
            await self.agent_reply(ticket_id, agent_id=agent_id, body=f"{CLOSE_NOTE_PREFIX}{note.strip()}")
        return await self.close_ticket(ticket_id)

    # -- reads -------------------------------------------------------------

    async def get_ticket(self, ticket_id: int) -> TicketSnapshot:
        async with self._uow.begin() as stores:
            ticket = await self._require_ticket(stores, ticket_id)
            return await self._snapshot(stores, ticket)

    async def list_tickets(self, page: PageRequest | None = None) -> Page:
        async with self._uow.begin() as stores:
            result = await stores.tickets.list_tickets(page or PageRequest(size=self._settings.default_page_size))
            return await self._basic_page(stores, result)

    async def get_messages(self, ticket_id: int) -> list[MessageView]:
        async with self._uow.begin() as stores:
            await self._require_ticket(stores, ticket_id)
            return await self._builder(stores).build_messages(ticket_id)

    async def get_agent_tickets(self, agent_id: int, page: PageRequest | None = None) -> Page:
        async with self._uow.begin() as stores:
            if await stores.tickets.get_agent(agent_id) is None:
                raise ResourceNotFoundError("Agent", agent_id)
            result = await stores.tickets.list_agent_tickets(
                agent_id, page or PageRequest(size=self._settings.default_page_size)
            )
            return await self._basic_page(stores, result)

    async def get_unassigned_tickets(self, page: PageRequest | None = None) -> Page:
        async with self._uow.begin() as stores:
            result = await stores.tickets.list_unassigned_tickets(
                page or PageRequest(size=self._settings.default_page_size)
            )
            return await self._basic_page(stores, result)

    # -- helpers -----------------------------------------------------------

    @asynccontextmanager
    async def _operation(self, name: str, **attributes: Any) -> AsyncIterator[StoreSession]:
        span_attributes = {f"ticket.{key}": value for key, value in attributes.items() if value is not None}
        with _tracer.start_as_current_span(f"tickets.{name}", attributes=span_attributes):
            try:
                async with self._uow.begin() as stores:
                    yield stores
            except TicketServiceError as exc:
                logger.warning("Ticket operation '%s' failed: %s", name, exc)
                raise

    async def _status_catalog(self, stores: StoreSession) -> StatusCatalog:
        if self._catalog is None:
            self._catalog = await StatusCatalog.load(
                stores.tickets,
                StatusCatalog.bindings_from_settings(self._settings),
                terminal_aliases=tuple(self._settings.status_terminal_aliases),
            )
        return self._catalog

    async def _policy(self, stores: StoreSession) -> LifecyclePolicy:
        return LifecyclePolicy(
            await self._status_catalog(stores),
            assignment_note_prefix=self._settings.assignment_note_prefix,
        )

    async def _resolve_priority(self, stores: StoreSession, priority_id: int | None) -> TicketPriority:
        if priority_id is not None:
            priority = await stores.tickets.get_priority(priority_id)
            if priority is None:
                raise ResourceNotFoundError("TicketPriority", priority_id)
            return priority

        priority = await stores.tickets.get_priority(self._settings.default_priority_id)
        if priority is None:
            priority = await stores.tickets.first_priority()
        if priority is None:
            raise CatalogConfigurationError("No default ticket priority is configured")
        return priority

    async def _require_ticket(self, stores: StoreSession, ticket_id: int) -> Ticket:
        ticket = await stores.tickets.get_ticket(ticket_id)
        if ticket is None:
            raise ResourceNotFoundError("Ticket", ticket_id)
        return ticket

    async def _agent_name(self, agent_id: int) -> str:
        async with self._uow.begin() as stores:
            agent = await stores.tickets.get_agent(agent_id)
        if agent is None:
            raise ResourceNotFoundError("Agent", agent_id)
        return agent.name

    async def _append(
        self,
        stores: StoreSession,
        ticket: Ticket,
        *,
        sender_id: int,
        sender_kind: SenderKind,
        body: str,
        kind: MessageKind,
        now: datetime,
    ) -> TicketMessage:
        return await stores.messages.append_message(
            TicketMessage(
                id=None,
                ticket_id=ticket.id,
                sender_id=sender_id,
                sender_kind=sender_kind,
                body=body,
                kind=kind,
                created_at=now,
            )
        )

    def _builder(self, stores: StoreSession) -> ThreadBuilder:
        return ThreadBuilder(stores.tickets, stores.messages, clock=self._clock)

    async def _snapshot(self, stores: StoreSession, ticket: Ticket) -> TicketSnapshot:
        return await self._builder(stores).build_snapshot(ticket)

    async def _basic_page(self, stores: StoreSession, page: Page) -> Page:
        builder = self._builder(stores)
        items = [await builder.build_basic_snapshot(ticket) for ticket in page.items]
        return Page(items=items, total=page.total, page=page.page, size=page.size)
