from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from clinic_chat.domain.value_objects.enums import MessageType


@dataclass(frozen=True, slots=True)
class NewMessageDTO:
    conversation_id: UUID
    sender_id: UUID
    content: str
    message_type: MessageType = MessageType.TEXT
