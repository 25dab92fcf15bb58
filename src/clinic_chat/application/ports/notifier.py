from __future__ import annotations

from typing import Protocol

from clinic_chat.application.dto.events import Notice


class Notifier(Protocol):
    async def notify(self, notice: Notice) -> None: ...
