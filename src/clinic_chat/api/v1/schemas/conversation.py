from __future__ import annotations

from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, field_validator

from clinic_chat.domain.value_objects.enums import ConversationStatus


class CreateConversationRequest(BaseModel):
    title: str | None = None


class AssignRequest(BaseModel):
    attendant_id: UUID | None = None  # defaults to the caller


class UpdateConversationRequest(BaseModel):
    status: ConversationStatus


class ConversationResponse(BaseModel):
    id: UUID
    title: str
    patient_id: UUID
    attendant_id: UUID | None
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime

    model_config = {"from_attributes": True}


class ConversationSummaryResponse(ConversationResponse):
    patient_name: str
    last_message: str
    last_message_at: datetime | None
    display_status: str
    display_priority: str
    needs_attention: bool
    unread_count: int
    actions: list[str]

    @field_validator("actions", mode="before")
    @classmethod
    def _sorted_actions(cls, value: Any) -> list[str]:
        return sorted(str(a) for a in value)
