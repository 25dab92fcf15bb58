from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID


@dataclass(frozen=True, slots=True)
class Profile:
    id: UUID
    name: str
    email: str
    role: str
    avatar: str | None = None
