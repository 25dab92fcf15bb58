"""Seed development data: demo profiles, a conversation and its messages."""
from __future__ import annotations

import asyncio
import logging
import uuid

import redis.asyncio as aioredis

from clinic_chat.application.dto.conversation import NewConversationDTO
from clinic_chat.application.dto.message import NewMessageDTO
from clinic_chat.config import settings
from clinic_chat.domain.entities.profile import Profile
from clinic_chat.domain.value_objects.enums import ConversationPriority, Role
from clinic_chat.infrastructure.bus.change_feed import ChangeFeedHub
from clinic_chat.infrastructure.bus.redis_pubsub import RedisChangePublisher
from clinic_chat.infrastructure.db import models  # noqa: F401  (registers tables)
from clinic_chat.infrastructure.db.base import Base
from clinic_chat.infrastructure.db.session import AsyncSessionLocal, engine
from clinic_chat.infrastructure.db.store import SqlAlchemyRecordStore

logger = logging.getLogger(__name__)

_DEMO_NS = uuid.UUID("6f1c2a52-93f4-4d1e-9a8e-4b0c3c7d5e10")


def _demo_profile(email: str, name: str, role: Role) -> Profile:
    return Profile(id=uuid.uuid5(_DEMO_NS, email), name=name, email=email, role=role)


DEMO_PROFILES = [
    _demo_profile("paciente@exemplo.com", "Maria Silva", Role.PATIENT),
    _demo_profile("atendente@clinica.com", "João Santos", Role.ATTENDANT),
    _demo_profile("gerente@clinica.com", "Ana Costa", Role.MANAGER),
]


async def seed() -> None:
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)

    redis = aioredis.from_url(settings.REDIS_URL, decode_responses=True)
    store = SqlAlchemyRecordStore(
        AsyncSessionLocal,
        RedisChangePublisher(redis, settings.CHANGE_FEED_CHANNEL),
        ChangeFeedHub(),
    )
    try:
        for profile in DEMO_PROFILES:
            await store.profiles_w.upsert(profile)
        patient, attendant, _manager = DEMO_PROFILES

        conv = await store.conversations_w.create(
            NewConversationDTO(
                title="Appointment reschedule",
                patient_id=patient.id,
                priority=ConversationPriority.HIGH,
            )
        )
        await store.conversations_w.assign(conv.id, attendant.id)

        messages_data = [
            (patient.id, "Hello! I need to move my appointment."),
            (attendant.id, "Good morning! Which day works best for you?"),
            (patient.id, "Thursday afternoon, if possible."),
            (attendant.id, "Let me check the schedule for you"),
        ]
        for sender_id, content in messages_data:
            await store.messages_w.create(
                NewMessageDTO(conversation_id=conv.id, sender_id=sender_id, content=content)
            )

        waiting = await store.conversations_w.create(
            NewConversationDTO(title="Test results", patient_id=patient.id)
        )
        await store.messages_w.create(
            NewMessageDTO(
                conversation_id=waiting.id,
                sender_id=patient.id,
                content=settings.GREETING_MESSAGE,
            )
        )
        logger.info(
            "Seeded %d profiles and conversations %s, %s",
            len(DEMO_PROFILES), conv.id, waiting.id,
        )
    finally:
        await redis.aclose()
        await engine.dispose()


def main() -> None:
    logging.basicConfig(level=logging.INFO)
    asyncio.run(seed())


if __name__ == "__main__":
    main()
