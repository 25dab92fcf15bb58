"""Change-feed row payloads.

Rows travel through the bus as plain JSON, so ids and timestamps arrive as
strings. These models coerce them back into entities.
"""
from __future__ import annotations

from dataclasses import asdict
from datetime import datetime
from typing import Any
from uuid import UUID

from pydantic import BaseModel, ConfigDict

from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.entities.message import Message


class ConversationRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    title: str
    patient_id: UUID
    attendant_id: UUID | None = None
    status: str
    priority: str
    created_at: datetime
    updated_at: datetime

    def to_entity(self) -> Conversation:
        return Conversation(**self.model_dump())


class MessageRow(BaseModel):
    model_config = ConfigDict(extra="ignore")

    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    message_type: str = "text"
    created_at: datetime

    def to_entity(self) -> Message:
        return Message(**self.model_dump())


def conversation_from_row(row: dict[str, Any]) -> Conversation:
    return ConversationRow.model_validate(row).to_entity()


def message_from_row(row: dict[str, Any]) -> Message:
    return MessageRow.model_validate(row).to_entity()


def entity_to_row(entity: Conversation | Message) -> dict[str, Any]:
    return asdict(entity)
