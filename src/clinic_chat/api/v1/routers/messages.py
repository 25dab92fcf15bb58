from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter

from clinic_chat.api.deps import CurrentSession, StoreDep
from clinic_chat.api.v1.schemas.message import MessageResponse, SendMessageRequest
from clinic_chat.services import message_service

router = APIRouter(prefix="/api/v1/conversations", tags=["messages"])


@router.get("/{conversation_id}/messages", response_model=list[MessageResponse])
async def list_messages(
    conversation_id: UUID,
    session: CurrentSession,
    store: StoreDep,
) -> list[MessageResponse]:
    messages = await message_service.list_messages(conversation_id, session, store)
    return [MessageResponse.model_validate(m) for m in messages]


@router.post("/{conversation_id}/messages", response_model=MessageResponse, status_code=201)
async def send_message(
    conversation_id: UUID,
    body: SendMessageRequest,
    session: CurrentSession,
    store: StoreDep,
) -> MessageResponse:
    result = await message_service.send_message(conversation_id, body.content, session, store)
    return MessageResponse.model_validate(result.message)
