from __future__ import annotations

import logging
from pathlib import Path
from uuid import UUID

from pydantic import BaseModel, ValidationError

from clinic_chat.application.dto.session import Identity
from clinic_chat.domain.value_objects.enums import Role

logger = logging.getLogger(__name__)


class IdentityRecord(BaseModel):
    id: UUID
    email: str
    name: str
    role: Role
    avatar: str | None = None


class FileIdentityCache:
    """Keeps the last signed-in identity in a JSON file between runs."""

    def __init__(self, path: str | Path) -> None:
        self._path = Path(path).expanduser()

    def load(self) -> Identity | None:
        if not self._path.exists():
            return None
        try:
            record = IdentityRecord.model_validate_json(self._path.read_text(encoding="utf-8"))
        except (OSError, ValidationError) as exc:
            logger.warning("Discarding unreadable identity cache %s: %s", self._path, exc)
            self.clear()
            return None
        return Identity(**record.model_dump())

    def save(self, identity: Identity) -> None:
        record = IdentityRecord(
            id=identity.id,
            email=identity.email,
            name=identity.name,
            role=identity.role,
            avatar=identity.avatar,
        )
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(record.model_dump_json(), encoding="utf-8")

    def clear(self) -> None:
        self._path.unlink(missing_ok=True)
