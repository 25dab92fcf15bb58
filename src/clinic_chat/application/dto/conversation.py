from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from uuid import UUID

from clinic_chat.domain.value_objects.enums import (
    Action,
    ConversationPriority,
    ConversationStatus,
)


@dataclass(frozen=True, slots=True)
class NewConversationDTO:
    title: str
    patient_id: UUID
    status: ConversationStatus = ConversationStatus.ACTIVE
    priority: ConversationPriority = ConversationPriority.NORMAL


@dataclass(frozen=True, slots=True)
class ConversationSummary:
    """Role-scoped view model for one row of the conversation list."""

    id: UUID
    title: str
    patient_id: UUID
    attendant_id: UUID | None
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime
    patient_name: str
    last_message: str
    last_message_at: datetime | None
    display_status: str
    display_priority: str
    needs_attention: bool
    unread_count: int = 0
    actions: frozenset[Action] = field(default_factory=frozenset)
