from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from uuid import UUID

from clinic_chat.domain.value_objects.enums import ConversationStatus


@dataclass(frozen=True, slots=True)
class Conversation:
    id: UUID
    title: str
    patient_id: UUID
    attendant_id: UUID | None
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime

    @property
    def is_assigned(self) -> bool:
        return self.attendant_id is not None

    @property
    def is_resolved(self) -> bool:
        return self.status == ConversationStatus.RESOLVED
