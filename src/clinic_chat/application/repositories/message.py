from __future__ import annotations

from typing import Protocol
from uuid import UUID

from clinic_chat.application.dto.message import NewMessageDTO
from clinic_chat.domain.entities.message import Message


class MessageReader(Protocol):
    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        """Full history, ascending by (created_at, id)."""
        ...

    async def get_latest(self, conversation_id: UUID) -> Message | None: ...


class MessageWriter(Protocol):
    async def create(self, data: NewMessageDTO) -> Message:
        """Insert a message. The store assigns ``id`` and ``created_at``."""
        ...
