from __future__ import annotations

from datetime import datetime
from typing import Protocol
from uuid import UUID

from clinic_chat.application.dto.conversation import NewConversationDTO
from clinic_chat.application.policies.permissions import ConversationPredicate
from clinic_chat.domain.entities.conversation import Conversation


class ConversationReader(Protocol):
    async def get_by_id(self, conversation_id: UUID) -> Conversation | None: ...

    async def list_visible(
        self,
        predicate: ConversationPredicate,
        *,
        status: str | None = None,
    ) -> list[Conversation]:
        """Conversations matching ``predicate``, newest ``updated_at`` first."""
        ...

    async def count(
        self,
        *,
        status: str | None = None,
        attendant_id: UUID | None = None,
        updated_since: datetime | None = None,
    ) -> int: ...


class ConversationWriter(Protocol):
    async def create(self, data: NewConversationDTO) -> Conversation: ...

    async def assign(self, conversation_id: UUID, attendant_id: UUID | None) -> Conversation | None: ...

    async def set_status(self, conversation_id: UUID, status: str) -> Conversation | None: ...

    async def touch(self, conversation_id: UUID) -> Conversation | None:
        """Bump ``updated_at`` to the store's current time."""
        ...
