from __future__ import annotations

import logging
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import func, insert, select, update

from clinic_chat.application.dto.conversation import NewConversationDTO
from clinic_chat.application.dto.rows import entity_to_row
from clinic_chat.application.policies.permissions import ConversationPredicate
from clinic_chat.application.ports.bus import ChangePublisher
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.events.row_changed import RowChanged
from clinic_chat.domain.value_objects.enums import ChangeType, Table
from clinic_chat.infrastructure.db.mappers import conversation as mapper
from clinic_chat.infrastructure.db.models.conversation import ConversationModel
from clinic_chat.infrastructure.db.repositories._predicates import apply_predicate
from clinic_chat.infrastructure.db.session import SessionFactory, store_session

logger = logging.getLogger(__name__)


class ConversationReaderRepo:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        async with store_session(self._sessions) as session:
            result = await session.get(ConversationModel, conversation_id)
            return mapper.model_to_entity(result) if result else None

    async def list_visible(
        self,
        predicate: ConversationPredicate,
        *,
        status: str | None = None,
    ) -> list[Conversation]:
        stmt = apply_predicate(select(ConversationModel), predicate)
        if status:
            stmt = stmt.where(ConversationModel.status == status)
        stmt = stmt.order_by(ConversationModel.updated_at.desc(), ConversationModel.id)
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def count(
        self,
        *,
        status: str | None = None,
        attendant_id: UUID | None = None,
        updated_since: datetime | None = None,
    ) -> int:
        stmt = select(func.count()).select_from(ConversationModel)
        if status:
            stmt = stmt.where(ConversationModel.status == status)
        if attendant_id is not None:
            stmt = stmt.where(ConversationModel.attendant_id == attendant_id)
        if updated_since is not None:
            stmt = stmt.where(ConversationModel.updated_at >= updated_since)
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            return int(result.scalar_one())


class ConversationWriterRepo:
    def __init__(self, sessions: SessionFactory, publisher: ChangePublisher) -> None:
        self._sessions = sessions
        self._publisher = publisher

    async def create(self, data: NewConversationDTO) -> Conversation:
        stmt = (
            insert(ConversationModel)
            .values(
                title=data.title,
                patient_id=data.patient_id,
                status=data.status.value,
                priority=data.priority.value,
            )
            .returning(ConversationModel)
        )
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            conversation = mapper.model_to_entity(result.scalar_one())
            await session.commit()
        await self._emit(ChangeType.INSERT, conversation)
        return conversation

    async def assign(self, conversation_id: UUID, attendant_id: UUID | None) -> Conversation | None:
        return await self._update(conversation_id, attendant_id=attendant_id)

    async def set_status(self, conversation_id: UUID, status: str) -> Conversation | None:
        return await self._update(conversation_id, status=status)

    async def touch(self, conversation_id: UUID) -> Conversation | None:
        return await self._update(conversation_id)

    async def _update(self, conversation_id: UUID, **values: Any) -> Conversation | None:
        stmt = (
            update(ConversationModel)
            .where(ConversationModel.id == conversation_id)
            .values(**values, updated_at=func.now())
            .returning(ConversationModel)
        )
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            if model is None:
                return None
            conversation = mapper.model_to_entity(model)
            await session.commit()
        await self._emit(ChangeType.UPDATE, conversation)
        return conversation

    async def _emit(self, change: ChangeType, conversation: Conversation) -> None:
        event = RowChanged(table=Table.CONVERSATIONS, type=change, new=entity_to_row(conversation))
        try:
            await self._publisher.publish(event)
        except Exception:
            # the write is committed; subscribers catch up on their next change
            logger.exception("Could not publish %s for conversation %s", change, conversation.id)
