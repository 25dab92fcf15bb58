"""Conversation -> ConversationSummary projection.

Each conversation is enriched with its latest message and its patient's
name. Lookups run concurrently, and a failed lookup degrades to a
placeholder instead of failing the row or the batch.
"""
from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Iterable

from clinic_chat.application.dto.conversation import ConversationSummary
from clinic_chat.application.policies.permissions import RoleScope
from clinic_chat.application.store import RecordStore
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.entities.message import Message
from clinic_chat.domain.value_objects.enums import ConversationPriority, ConversationStatus

logger = logging.getLogger(__name__)

NO_MESSAGES_PLACEHOLDER = "No messages yet"
PATIENT_PLACEHOLDER = "Patient"

_STATUS_LABELS: dict[str, str] = {
    ConversationStatus.PENDING: "Waiting",
    ConversationStatus.ACTIVE: "In progress",
    ConversationStatus.RESOLVED: "Resolved",
}

_PRIORITY_LABELS: dict[str, str] = {
    ConversationPriority.LOW: "Low",
    ConversationPriority.NORMAL: "Normal",
    ConversationPriority.MEDIUM: "Normal",
    ConversationPriority.HIGH: "High",
    ConversationPriority.URGENT: "Urgent",
}

_URGENT_PRIORITIES = frozenset({ConversationPriority.HIGH, ConversationPriority.URGENT})


def display_status(status: str) -> str:
    return _STATUS_LABELS.get(status, status.capitalize())


def display_priority(priority: str) -> str:
    return _PRIORITY_LABELS.get(priority, priority.capitalize())


def needs_attention(conversation: Conversation) -> bool:
    if conversation.is_resolved:
        return False
    return (
        conversation.status == ConversationStatus.PENDING
        or conversation.priority in _URGENT_PRIORITIES
    )


async def _latest_message(conversation: Conversation, store: RecordStore) -> Message | None:
    try:
        return await store.messages.get_latest(conversation.id)
    except Exception:
        logger.warning("Last message lookup failed for conversation %s", conversation.id, exc_info=True)
        return None


async def _patient_name(conversation: Conversation, store: RecordStore) -> str:
    try:
        profile = await store.profiles.get_by_id(conversation.patient_id)
    except Exception:
        logger.warning("Profile lookup failed for patient %s", conversation.patient_id, exc_info=True)
        return PATIENT_PLACEHOLDER
    if profile is None or not profile.name:
        return PATIENT_PLACEHOLDER
    return profile.name


async def project_conversation(
    conversation: Conversation,
    store: RecordStore,
    scope: RoleScope,
) -> ConversationSummary:
    last, patient_name = await asyncio.gather(
        _latest_message(conversation, store),
        _patient_name(conversation, store),
    )
    last_message_at: datetime | None = last.created_at if last else None
    return ConversationSummary(
        id=conversation.id,
        title=conversation.title,
        patient_id=conversation.patient_id,
        attendant_id=conversation.attendant_id,
        status=conversation.status,
        priority=conversation.priority,
        created_at=conversation.created_at,
        updated_at=conversation.updated_at,
        patient_name=patient_name,
        last_message=last.content if last and last.content else NO_MESSAGES_PLACEHOLDER,
        last_message_at=last_message_at,
        display_status=display_status(conversation.status),
        display_priority=display_priority(conversation.priority),
        needs_attention=needs_attention(conversation),
        # TODO: replace once per-participant last-read tracking exists
        unread_count=0,
        actions=scope.actions_for(conversation),
    )


async def project_conversations(
    conversations: Iterable[Conversation],
    store: RecordStore,
    scope: RoleScope,
) -> list[ConversationSummary]:
    """Project a batch concurrently, preserving input order."""
    return list(
        await asyncio.gather(
            *(project_conversation(c, store, scope) for c in conversations)
        )
    )


def priority_conversations(
    summaries: Iterable[ConversationSummary],
    limit: int = 3,
) -> list[ConversationSummary]:
    return [s for s in summaries if s.needs_attention][:limit]
