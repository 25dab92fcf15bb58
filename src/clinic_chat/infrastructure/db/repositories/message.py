from __future__ import annotations

import logging
from uuid import UUID

from sqlalchemy import insert, select

from clinic_chat.application.dto.message import NewMessageDTO
from clinic_chat.application.dto.rows import entity_to_row
from clinic_chat.application.ports.bus import ChangePublisher
from clinic_chat.domain.entities.message import Message
from clinic_chat.domain.events.row_changed import RowChanged
from clinic_chat.domain.value_objects.enums import ChangeType, Table
from clinic_chat.infrastructure.db.mappers import message as mapper
from clinic_chat.infrastructure.db.models.message import MessageModel
from clinic_chat.infrastructure.db.session import SessionFactory, store_session

logger = logging.getLogger(__name__)


class MessageReaderRepo:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.asc(), MessageModel.id.asc())
        )
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            return [mapper.model_to_entity(m) for m in result.scalars().all()]

    async def get_latest(self, conversation_id: UUID) -> Message | None:
        stmt = (
            select(MessageModel)
            .where(MessageModel.conversation_id == conversation_id)
            .order_by(MessageModel.created_at.desc(), MessageModel.id.desc())
            .limit(1)
        )
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            model = result.scalar_one_or_none()
            return mapper.model_to_entity(model) if model else None


class MessageWriterRepo:
    def __init__(self, sessions: SessionFactory, publisher: ChangePublisher) -> None:
        self._sessions = sessions
        self._publisher = publisher

    async def create(self, data: NewMessageDTO) -> Message:
        stmt = (
            insert(MessageModel)
            .values(
                conversation_id=data.conversation_id,
                sender_id=data.sender_id,
                content=data.content,
                message_type=data.message_type.value,
            )
            .returning(MessageModel)
        )
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            message = mapper.model_to_entity(result.scalar_one())
            await session.commit()

        event = RowChanged(table=Table.MESSAGES, type=ChangeType.INSERT, new=entity_to_row(message))
        try:
            await self._publisher.publish(event)
        except Exception:
            logger.exception("Could not publish insert of message %s", message.id)
        return message
