from __future__ import annotations

from uuid import UUID

from fastapi import APIRouter, Query

from clinic_chat.api.deps import CurrentSession, StoreDep
from clinic_chat.api.v1.schemas.conversation import (
    AssignRequest,
    ConversationResponse,
    ConversationSummaryResponse,
    CreateConversationRequest,
    UpdateConversationRequest,
)
from clinic_chat.domain.value_objects.enums import ConversationStatus
from clinic_chat.services import conversation_service
from clinic_chat.services.conversation_projector import priority_conversations

router = APIRouter(prefix="/api/v1/conversations", tags=["conversations"])


@router.post("", response_model=ConversationResponse, status_code=201)
async def create_conversation(
    body: CreateConversationRequest,
    session: CurrentSession,
    store: StoreDep,
) -> ConversationResponse:
    conv = await conversation_service.create_conversation(session, body.title, store)
    return ConversationResponse.model_validate(conv)


@router.get("", response_model=list[ConversationSummaryResponse])
async def list_conversations(
    session: CurrentSession,
    store: StoreDep,
    status: ConversationStatus | None = Query(None),
) -> list[ConversationSummaryResponse]:
    summaries = await conversation_service.list_conversations(session, store, status=status)
    return [ConversationSummaryResponse.model_validate(s) for s in summaries]


@router.get("/priority", response_model=list[ConversationSummaryResponse])
async def list_priority_conversations(
    session: CurrentSession,
    store: StoreDep,
    limit: int = Query(3, ge=1, le=20),
) -> list[ConversationSummaryResponse]:
    summaries = await conversation_service.list_conversations(session, store)
    return [
        ConversationSummaryResponse.model_validate(s)
        for s in priority_conversations(summaries, limit=limit)
    ]


@router.get("/{conversation_id}", response_model=ConversationResponse)
async def get_conversation(
    conversation_id: UUID,
    session: CurrentSession,
    store: StoreDep,
) -> ConversationResponse:
    conv = await conversation_service.get_conversation(conversation_id, session, store)
    return ConversationResponse.model_validate(conv)


@router.post("/{conversation_id}/assign", response_model=ConversationResponse)
async def assign_conversation(
    conversation_id: UUID,
    body: AssignRequest,
    session: CurrentSession,
    store: StoreDep,
) -> ConversationResponse:
    conv = await conversation_service.assign_conversation(
        conversation_id, body.attendant_id or session.user_id, session, store,
    )
    return ConversationResponse.model_validate(conv)


@router.patch("/{conversation_id}", response_model=ConversationResponse)
async def update_conversation(
    conversation_id: UUID,
    body: UpdateConversationRequest,
    session: CurrentSession,
    store: StoreDep,
) -> ConversationResponse:
    conv = await conversation_service.set_status(conversation_id, body.status, session, store)
    return ConversationResponse.model_validate(conv)
