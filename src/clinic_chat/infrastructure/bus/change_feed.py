"""In-process change-feed fan-out.

The hub holds every live subscription of this process and hands each
``RowChanged`` to the subscriptions whose table and equality filter match.
Events reach the hub from the Redis subscriber (writes from any process).
"""
from __future__ import annotations

import logging
from typing import Any

from clinic_chat.application.ports.bus import ChangeCallback
from clinic_chat.domain.events.row_changed import RowChanged

logger = logging.getLogger(__name__)

ROW_CHANGED_EVENT = "row_changed"


class HubSubscription:
    def __init__(
        self,
        hub: ChangeFeedHub,
        table: str,
        callback: ChangeCallback,
        column: str | None,
        value: Any,
    ) -> None:
        self._hub = hub
        self.table = table
        self.callback = callback
        self.column = column
        self.value = value
        self._active = True

    @property
    def active(self) -> bool:
        return self._active

    def matches(self, event: RowChanged) -> bool:
        if not self._active or event.table != self.table:
            return False
        if self.column is None:
            return True
        return str(event.row.get(self.column)) == str(self.value)

    async def unsubscribe(self) -> None:
        if not self._active:
            return
        self._active = False
        self._hub._remove(self)


class ChangeFeedHub:
    """Implements application.ports.bus.ChangeFeed."""

    def __init__(self) -> None:
        self._subscriptions: list[HubSubscription] = []

    @property
    def subscription_count(self) -> int:
        return len(self._subscriptions)

    async def subscribe(
        self,
        table: str,
        callback: ChangeCallback,
        *,
        column: str | None = None,
        value: Any = None,
    ) -> HubSubscription:
        subscription = HubSubscription(self, table, callback, column, value)
        self._subscriptions.append(subscription)
        logger.debug("Subscribed to %s (%s=%s)", table, column, value)
        return subscription

    async def dispatch(self, event: RowChanged) -> None:
        # snapshot: handlers may subscribe/unsubscribe while we iterate
        for subscription in list(self._subscriptions):
            if not subscription.matches(event):
                continue
            try:
                await subscription.callback(event)
            except Exception:
                logger.exception("Change handler failed for %s %s", event.type, event.table)

    async def dispatch_payload(self, event_type: str, data: dict[str, Any]) -> None:
        """Callback for the Redis subscriber."""
        if event_type != ROW_CHANGED_EVENT:
            logger.debug("Ignoring bus event %s", event_type)
            return
        await self.dispatch(RowChanged.from_payload(data))

    def _remove(self, subscription: HubSubscription) -> None:
        try:
            self._subscriptions.remove(subscription)
        except ValueError:
            pass
