from __future__ import annotations

from uuid import UUID

from sqlalchemy import select
from sqlalchemy.dialects.postgresql import insert as pg_insert

from clinic_chat.domain.entities.profile import Profile
from clinic_chat.infrastructure.db.mappers import profile as mapper
from clinic_chat.infrastructure.db.models.profile import ProfileModel
from clinic_chat.infrastructure.db.session import SessionFactory, store_session


class ProfileReaderRepo:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def get_by_id(self, profile_id: UUID) -> Profile | None:
        async with store_session(self._sessions) as session:
            model = await session.get(ProfileModel, profile_id)
            return mapper.model_to_entity(model) if model else None

    async def list_by_role(self, role: str) -> list[Profile]:
        stmt = select(ProfileModel).where(ProfileModel.role == role).order_by(ProfileModel.name)
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            return [mapper.model_to_entity(m) for m in result.scalars().all()]


class ProfileWriterRepo:
    def __init__(self, sessions: SessionFactory) -> None:
        self._sessions = sessions

    async def upsert(self, profile: Profile) -> Profile:
        values = mapper.entity_to_values(profile)
        stmt = (
            pg_insert(ProfileModel)
            .values(**values)
            .on_conflict_do_update(
                index_elements=[ProfileModel.id],
                set_={k: v for k, v in values.items() if k != "id"},
            )
            .returning(ProfileModel)
        )
        async with store_session(self._sessions) as session:
            result = await session.execute(stmt)
            stored = mapper.model_to_entity(result.scalar_one())
            await session.commit()
            return stored
