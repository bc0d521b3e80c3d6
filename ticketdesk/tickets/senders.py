from __future__ import annotations

import logging
from typing import Protocol

from .models import SYSTEM_SENDER_ID, SenderKind
from .repository import TicketStore

logger = logging.getLogger(__name__)


class IdentityResolver(Protocol):
    """Classify a bare sender id as customer, representative or system."""

    async def resolve(self, sender_id: int | None) -> SenderKind:
        ...


class StoreSenderResolver:
    """Probe the agent and customer collaborators on every call.

    Nothing is cached. Agents win over customers when both match; unknown ids
    degrade to ``SYSTEM``.
    """

    def __init__(self, store: TicketStore) -> None:
        self._store = store

    async def resolve(self, sender_id: int | None) -> SenderKind:
        if sender_id is None or sender_id == SYSTEM_SENDER_ID:
            return SenderKind.SYSTEM
        if await self._store.get_agent(sender_id) is not None:
            return SenderKind.REPRESENTATIVE
        if await self._store.get_customer(sender_id) is not None:
            return SenderKind.CUSTOMER
        logger.debug("Sender %s matches neither an agent nor a customer; treating as system", sender_id)
        return SenderKind.SYSTEM
