from __future__ import annotations

from typing import Protocol
from uuid import UUID

from clinic_chat.domain.entities.profile import Profile


class ProfileReader(Protocol):
    async def get_by_id(self, profile_id: UUID) -> Profile | None: ...

    async def list_by_role(self, role: str) -> list[Profile]: ...


class ProfileWriter(Protocol):
    async def upsert(self, profile: Profile) -> Profile: ...
