from __future__ import annotations

import logging
import uuid

from clinic_chat.application.dto.conversation import ConversationSummary, NewConversationDTO
from clinic_chat.application.dto.message import NewMessageDTO
from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import (
    ConflictError,
    ForbiddenError,
    NotFoundError,
    ValidationError,
)
from clinic_chat.application.policies.permissions import assert_visible, require
from clinic_chat.application.store import RecordStore
from clinic_chat.config import settings
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.value_objects.enums import Action, ConversationStatus, Role
from clinic_chat.services.conversation_projector import project_conversations

logger = logging.getLogger(__name__)


async def create_conversation(
    session: SessionContext,
    title: str | None,
    store: RecordStore,
) -> Conversation:
    """Open a new conversation for the calling patient, with a greeting message."""
    if session.role != Role.PATIENT:
        raise ForbiddenError("Only patients can open conversations")

    conversation = await store.conversations_w.create(
        NewConversationDTO(
            title=(title or "").strip() or settings.DEFAULT_CONVERSATION_TITLE,
            patient_id=session.user_id,
        )
    )
    await store.messages_w.create(
        NewMessageDTO(
            conversation_id=conversation.id,
            sender_id=session.user_id,
            content=settings.GREETING_MESSAGE,
        )
    )
    logger.info("Patient %s opened conversation %s", session.user_id, conversation.id)
    return conversation


async def list_conversations(
    session: SessionContext,
    store: RecordStore,
    *,
    status: ConversationStatus | None = None,
) -> list[ConversationSummary]:
    """Role-scoped, enriched conversation list, newest activity first."""
    conversations = await store.conversations.list_visible(
        session.scope.predicate, status=status,
    )
    conversations.sort(key=lambda c: c.updated_at, reverse=True)
    return await project_conversations(conversations, store, session.scope)


async def get_conversation(
    conversation_id: uuid.UUID,
    session: SessionContext,
    store: RecordStore,
) -> Conversation:
    conversation = await store.conversations.get_by_id(conversation_id)
    if conversation is None:
        raise NotFoundError("Conversation not found")
    return assert_visible(session.scope, conversation)


async def assign_conversation(
    conversation_id: uuid.UUID,
    attendant_id: uuid.UUID,
    session: SessionContext,
    store: RecordStore,
) -> Conversation:
    """Set the conversation's attendant.

    Attendants may only claim unassigned conversations for themselves.
    Managers may assign or reassign any conversation. Two concurrent claims
    both pass the check; the store keeps whichever write lands last.
    """
    conversation = await get_conversation(conversation_id, session, store)

    if session.scope.can(Action.REASSIGN):
        if conversation.attendant_id != attendant_id:
            await _require_attendant(attendant_id, store)
    else:
        if conversation.is_assigned:
            raise ConflictError("Conversation is already assigned")
        if attendant_id != session.user_id:
            raise ForbiddenError("Attendants can only assign conversations to themselves")
        require(session.scope, Action.ASSIGN_TO_SELF, conversation)

    updated = await store.conversations_w.assign(conversation_id, attendant_id)
    if updated is None:
        raise NotFoundError("Conversation not found")
    logger.info("Conversation %s assigned to %s by %s", conversation_id, attendant_id, session.user_id)
    return updated


async def set_status(
    conversation_id: uuid.UUID,
    status: ConversationStatus,
    session: SessionContext,
    store: RecordStore,
) -> Conversation:
    conversation = await get_conversation(conversation_id, session, store)
    if status == ConversationStatus.RESOLVED and conversation.is_resolved:
        raise ConflictError("Conversation is already resolved")
    action = Action.RESOLVE if status == ConversationStatus.RESOLVED else Action.SET_STATUS
    require(session.scope, action, conversation)

    updated = await store.conversations_w.set_status(conversation_id, status)
    if updated is None:
        raise NotFoundError("Conversation not found")
    logger.info("Conversation %s marked %s by %s", conversation_id, status, session.user_id)
    return updated


async def _require_attendant(attendant_id: uuid.UUID, store: RecordStore) -> None:
    profile = await store.profiles.get_by_id(attendant_id)
    if profile is None or profile.role != Role.ATTENDANT:
        raise ValidationError("Assignee must be an attendant")
