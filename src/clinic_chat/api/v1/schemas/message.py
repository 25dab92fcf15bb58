from __future__ import annotations

from datetime import datetime
from uuid import UUID

from pydantic import BaseModel


class SendMessageRequest(BaseModel):
    content: str


class MessageResponse(BaseModel):
    id: UUID
    conversation_id: UUID
    sender_id: UUID
    content: str
    message_type: str
    created_at: datetime

    model_config = {"from_attributes": True}
