from __future__ import annotations

from typing import Any, Callable, Coroutine, Protocol

from clinic_chat.domain.events.row_changed import RowChanged

ChangeCallback = Callable[[RowChanged], Coroutine[Any, Any, None]]


class ChangePublisher(Protocol):
    async def publish(self, event: RowChanged) -> None: ...


class Subscription(Protocol):
    @property
    def active(self) -> bool: ...

    async def unsubscribe(self) -> None:
        """Stop delivery. Safe to call more than once."""
        ...


class ChangeFeed(Protocol):
    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        column: str | None = None,
        value: Any = None,
    ) -> Subscription:
        """Deliver row changes on ``table``, optionally only rows where ``column == value``."""
        ...
