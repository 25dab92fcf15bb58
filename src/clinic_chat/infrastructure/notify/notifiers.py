from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

from clinic_chat.application.dto.events import Notice
from clinic_chat.domain.value_objects.enums import NoticeLevel

logger = logging.getLogger(__name__)


class LoggingNotifier:
    """Notifier for headless use: notices go to the log."""

    async def notify(self, notice: Notice) -> None:
        level = logging.ERROR if notice.level == NoticeLevel.ERROR else logging.INFO
        logger.log(level, "%s: %s", notice.title, notice.description)


class CallbackNotifier:
    """Forwards notices to an async sink, e.g. a WebSocket send."""

    def __init__(self, sink: Callable[[Notice], Coroutine[Any, Any, None]]) -> None:
        self._sink = sink

    async def notify(self, notice: Notice) -> None:
        await self._sink(notice)
