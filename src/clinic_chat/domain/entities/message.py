from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Message:
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    message_type: str
    created_at: datetime

    @property
    def sort_key(self) -> tuple[datetime, str]:
        """created_at ascending, ties broken by id."""
        return self.created_at, str(self.id)
