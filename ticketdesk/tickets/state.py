from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import TYPE_CHECKING, Mapping

from .errors import CatalogConfigurationError
from .models import SenderKind, TicketStatus

if TYPE_CHECKING:
    from ticketdesk.core.config import Settings

    from .repository import TicketStore


class StatusRole(str, Enum):
    """Symbolic lifecycle roles the policy moves tickets through."""

    OPEN = "open"
    ASSIGNED = "assigned"
    IN_PROGRESS = "in_progress"
    CLOSED = "closed"


class ClosedAtEffect(str, Enum):
    """What a transition does to ``closed_at``."""

    KEEP = "keep"
    SET_IF_MISSING = "set_if_missing"
    OVERWRITE = "overwrite"


@dataclass(slots=True, frozen=True)
class StatusRoleBinding:
    """Canonical catalog name for a role plus the id tried when the name is absent."""

    name: str
    fallback_id: int | None = None


@dataclass(slots=True)
class StatusCatalog:
    """Role to catalog-status mapping resolved from the ticket store.

    Resolution per role is name first, then the configured fallback id; the
    open role finally falls back to the lowest-id status. Roles that cannot be
    resolved stay absent and :meth:`require` raises for them.
    """

    bindings: Mapping[StatusRole, StatusRoleBinding]
    resolved: dict[StatusRole, TicketStatus] = field(default_factory=dict)
    terminal_aliases: tuple[str, ...] = ()

    @classmethod
    def bindings_from_settings(cls, settings: Settings) -> dict[StatusRole, StatusRoleBinding]:
        return {
            StatusRole.OPEN: StatusRoleBinding(settings.status_open_name, settings.status_open_fallback_id),
            StatusRole.ASSIGNED: StatusRoleBinding(
                settings.status_assigned_name, settings.status_assigned_fallback_id
            ),
            StatusRole.IN_PROGRESS: StatusRoleBinding(
                settings.status_in_progress_name, settings.status_in_progress_fallback_id
            ),
            StatusRole.CLOSED: StatusRoleBinding(settings.status_closed_name, settings.status_closed_fallback_id),
        }

    @classmethod
    async def load(
        cls,
        store: TicketStore,
        bindings: Mapping[StatusRole, StatusRoleBinding],
        *,
        terminal_aliases: tuple[str, ...] = (),
    ) -> "StatusCatalog":
        resolved: dict[StatusRole, TicketStatus] = {}
        for role, binding in bindings.items():
            status = await store.get_status_by_name(binding.name)
            if status is None and binding.fallback_id is not None:
                status = await store.get_status(binding.fallback_id)
            if status is None and role is StatusRole.OPEN:
                status = await store.first_status()
            if status is not None:
                resolved[role] = status
        return cls(bindings=dict(bindings), resolved=resolved, terminal_aliases=tuple(terminal_aliases))

    def require(self, role: StatusRole) -> TicketStatus:
        status = self.resolved.get(role)
        if status is None:
            binding = self.bindings.get(role)
            name = binding.name if binding else role.value
            raise CatalogConfigurationError(f"No status configured for role '{role.value}' (name '{name}')")
        return status

    def is_terminal(self, status: TicketStatus) -> bool:
        closed = self.resolved.get(StatusRole.CLOSED)
        if closed is not None and closed.id == status.id:
            return True
        binding = self.bindings.get(StatusRole.CLOSED)
        names = {alias.casefold() for alias in self.terminal_aliases}
        if binding is not None:
            names.add(binding.name.casefold())
        return status.name.casefold() in names


@dataclass(slots=True, frozen=True)
class TransitionOutcome:
    """Next state of a ticket plus the effects the engine has to apply."""

    next_status: TicketStatus | None
    closed_at: ClosedAtEffect = ClosedAtEffect.KEEP
    assign_agent_id: int | None = None
    synthetic_message: str | None = None


class LifecyclePolicy:
    """Pure decision rules for ticket transitions. Performs no I/O."""

    def __init__(self, catalog: StatusCatalog, *, assignment_note_prefix: str = "Atama Notu: ") -> None:
        self._catalog = catalog
        self._assignment_note_prefix = assignment_note_prefix

    @property
    def catalog(self) -> StatusCatalog:
        return self._catalog

    def on_create(self) -> TransitionOutcome:
        return TransitionOutcome(next_status=self._catalog.require(StatusRole.OPEN))

    def on_assign(self, agent_id: int, note: str | None = None) -> TransitionOutcome:
        synthetic = None
        if note is not None and note.strip():
            synthetic = f"{self._assignment_note_prefix}{note.strip()}"
        return TransitionOutcome(
            next_status=self._catalog.require(StatusRole.ASSIGNED),
            assign_agent_id=agent_id,
            synthetic_message=synthetic,
        )

    def on_status_change(self, requested: TicketStatus) -> TransitionOutcome:
        effect = ClosedAtEffect.SET_IF_MISSING if self._catalog.is_terminal(requested) else ClosedAtEffect.KEEP
        return TransitionOutcome(next_status=requested, closed_at=effect)

    def on_close(self) -> TransitionOutcome:
        return TransitionOutcome(
            next_status=self._catalog.require(StatusRole.CLOSED),
            closed_at=ClosedAtEffect.OVERWRITE,
        )

    def on_message_sent(self, sender_kind: SenderKind) -> TransitionOutcome:
        """Representative messages move the ticket to in-progress; others leave it alone."""

        if sender_kind is SenderKind.REPRESENTATIVE:
            return TransitionOutcome(next_status=self._catalog.require(StatusRole.IN_PROGRESS))
        return TransitionOutcome(next_status=None)

    def on_agent_reply(
        self,
        *,
        current_agent_id: int | None,
        agent_id: int,
        explicit_status: TicketStatus | None = None,
    ) -> TransitionOutcome:
        """Compound reply rule.

        An unassigned ticket is assigned to the replying agent first (and would
        pass through Assigned). Afterwards an explicit status wins; without one
        the reply nudges the ticket to in-progress.
        """

        assign_agent_id = None
        if current_agent_id is None:
            assign_agent_id = agent_id
            # passes through Assigned, so the role must resolve even though it is overridden below
            self._catalog.require(StatusRole.ASSIGNED)

        if explicit_status is not None:
            outcome = self.on_status_change(explicit_status)
            return TransitionOutcome(
                next_status=outcome.next_status,
                closed_at=outcome.closed_at,
                assign_agent_id=assign_agent_id,
            )
        return TransitionOutcome(
            next_status=self._catalog.require(StatusRole.IN_PROGRESS),
            assign_agent_id=assign_agent_id,
        )
