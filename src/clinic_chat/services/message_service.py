from __future__ import annotations

import logging
import uuid
from dataclasses import dataclass

from clinic_chat.application.dto.message import NewMessageDTO
from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import StoreError, ValidationError
from clinic_chat.application.store import RecordStore
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.entities.message import Message
from clinic_chat.domain.value_objects.enums import MessageType, Role
from clinic_chat.services.conversation_service import get_conversation

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class SendResult:
    message: Message
    conversation: Conversation
    claimed: bool = False


async def send_message(
    conversation_id: uuid.UUID,
    content: str,
    session: SessionContext,
    store: RecordStore,
) -> SendResult:
    """Persist a text message from the session's user.

    An attendant replying to an unassigned conversation claims it first.
    The claim and the insert are separate writes: if the insert fails the
    claim stays in place.
    """
    content = content.strip()
    if not content:
        raise ValidationError("Message content must not be empty")

    conversation = await get_conversation(conversation_id, session, store)

    claimed = False
    if session.role == Role.ATTENDANT and conversation.attendant_id is None:
        updated = await store.conversations_w.assign(conversation_id, session.user_id)
        if updated is not None:
            conversation = updated
            claimed = True
            logger.info("Attendant %s claimed conversation %s", session.user_id, conversation_id)

    message = await store.messages_w.create(
        NewMessageDTO(
            conversation_id=conversation_id,
            sender_id=session.user_id,
            content=content,
            message_type=MessageType.TEXT,
        )
    )

    try:
        touched = await store.conversations_w.touch(conversation_id)
    except StoreError:
        # the message is stored; only list ordering lags until the next update
        logger.warning("Could not bump updated_at for conversation %s", conversation_id, exc_info=True)
        touched = None

    return SendResult(message=message, conversation=touched or conversation, claimed=claimed)


async def list_messages(
    conversation_id: uuid.UUID,
    session: SessionContext,
    store: RecordStore,
) -> list[Message]:
    await get_conversation(conversation_id, session, store)
    return await store.messages.list_messages(conversation_id)
