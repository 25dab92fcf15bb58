from __future__ import annotations

from typing import Protocol

from clinic_chat.application.dto.session import Identity


class TokenVerifier(Protocol):
    async def verify(self, token: str) -> Identity: ...
