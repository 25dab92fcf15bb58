"""Role-scoped conversation list kept in sync with the store.

Any insert, update or delete on the conversations or messages tables
triggers a full re-fetch and re-enrichment of the list. Refreshes are
coalesced: while one is running, further change events only mark the
list dirty, and a single follow-up refresh runs when the current one
finishes. The published list therefore converges to the store state
within one round trip of the last change.
"""
from __future__ import annotations

import asyncio
import logging
from enum import StrEnum
from typing import Any, Callable, Coroutine
from uuid import UUID

from clinic_chat.application.dto.conversation import ConversationSummary
from clinic_chat.application.dto.events import Notice
from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import AppError, StoreError
from clinic_chat.application.ports.bus import Subscription
from clinic_chat.application.ports.notifier import Notifier
from clinic_chat.application.store import RecordStore
from clinic_chat.domain.events.row_changed import RowChanged
from clinic_chat.domain.value_objects.enums import ConversationStatus, NoticeLevel, Table
from clinic_chat.services import conversation_service
from clinic_chat.services.conversation_projector import priority_conversations

logger = logging.getLogger(__name__)


class SyncState(StrEnum):
    IDLE = "idle"
    LOADING = "loading"
    READY = "ready"
    ERROR = "error"


OnListChange = Callable[[list[ConversationSummary]], Coroutine[Any, Any, None]]


class ConversationListSynchronizer:
    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        *,
        status: ConversationStatus | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._status = status
        self._session: SessionContext | None = None
        self._state = SyncState.IDLE
        self._summaries: list[ConversationSummary] = []
        self._subscriptions: list[Subscription] = []
        self._refresh_task: asyncio.Task[None] | None = None
        self._dirty = False
        self._generation = 0
        self._listeners: list[OnListChange] = []

    @property
    def state(self) -> SyncState:
        return self._state

    @property
    def session(self) -> SessionContext | None:
        return self._session

    @property
    def conversations(self) -> list[ConversationSummary]:
        return list(self._summaries)

    @property
    def priority(self) -> list[ConversationSummary]:
        return priority_conversations(self._summaries)

    def add_listener(self, callback: OnListChange) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def start(self, session: SessionContext) -> None:
        """Mount for ``session``: subscribe to both tables and load the list."""
        await self._teardown()
        self._generation += 1
        generation = self._generation
        self._session = session
        self._summaries = []

        for table in (Table.CONVERSATIONS, Table.MESSAGES):
            subscription = await self._store.changes.subscribe(table, self._on_change)
            if generation != self._generation:
                await subscription.unsubscribe()
                return
            self._subscriptions.append(subscription)

        await self.refresh()

    async def on_session_change(self, session: SessionContext | None) -> None:
        """Identity changed: restart for the new identity, or tear down on sign-out."""
        if session is None:
            await self.close()
        else:
            await self.start(session)

    async def set_status_filter(self, status: ConversationStatus | None) -> None:
        self._status = status
        await self.refresh()

    async def close(self) -> None:
        self._generation += 1
        await self._teardown()
        self._session = None
        self._state = SyncState.IDLE

    def schedule_refresh(self) -> None:
        if self._session is None:
            return
        if self._refresh_task is not None and not self._refresh_task.done():
            self._dirty = True
            return
        self._refresh_task = asyncio.create_task(
            self._refresh_loop(self._generation), name="conversation-list-refresh",
        )

    async def refresh(self) -> None:
        """Refresh now and wait until the list has caught up."""
        self.schedule_refresh()
        await self.wait_idle()

    async def wait_idle(self) -> None:
        task = self._refresh_task
        while task is not None and not task.done():
            await asyncio.wait({task})
            task = self._refresh_task

    async def assign(self, conversation_id: UUID, attendant_id: UUID) -> bool:
        if self._session is None:
            logger.info("assign skipped: no session")
            return False
        try:
            await conversation_service.assign_conversation(
                conversation_id, attendant_id, self._session, self._store,
            )
        except AppError as exc:
            await self._fail("Could not assign conversation", exc)
            return False
        await self._notifier.notify(Notice(NoticeLevel.INFO, "Conversation assigned"))
        await self.refresh()
        return True

    async def set_status(self, conversation_id: UUID, status: ConversationStatus) -> bool:
        if self._session is None:
            logger.info("set_status skipped: no session")
            return False
        try:
            await conversation_service.set_status(
                conversation_id, status, self._session, self._store,
            )
        except AppError as exc:
            await self._fail("Could not update status", exc)
            return False
        await self._notifier.notify(
            Notice(NoticeLevel.INFO, "Status updated", f"Conversation marked as {status}.")
        )
        await self.refresh()
        return True

    async def resolve(self, conversation_id: UUID) -> bool:
        return await self.set_status(conversation_id, ConversationStatus.RESOLVED)

    async def _on_change(self, event: RowChanged) -> None:
        logger.debug("%s on %s, refreshing conversation list", event.type, event.table)
        self.schedule_refresh()

    async def _refresh_loop(self, generation: int) -> None:
        while True:
            self._dirty = False
            try:
                await self._load(generation)
            except Exception:
                logger.exception("Conversation list refresh failed")
                if generation == self._generation:
                    self._state = SyncState.ERROR
            if not self._dirty or generation != self._generation:
                return

    async def _load(self, generation: int) -> None:
        session = self._session
        if session is None:
            return
        self._state = SyncState.LOADING
        try:
            summaries = await conversation_service.list_conversations(
                session, self._store, status=self._status,
            )
        except AppError as exc:
            if generation != self._generation:
                return
            self._state = SyncState.ERROR
            await self._fail("Could not load conversations", exc)
            return

        if generation != self._generation:
            return
        self._summaries = summaries
        self._state = SyncState.READY
        await self._publish()

    async def _fail(self, title: str, exc: AppError) -> None:
        logger.warning("%s: %s", title, exc.detail)
        if isinstance(exc, StoreError) or not exc.detail:
            description = "Try again in a moment."
        else:
            description = exc.detail
        await self._notifier.notify(Notice(NoticeLevel.ERROR, title, description))

    async def _teardown(self) -> None:
        task, self._refresh_task = self._refresh_task, None
        if task is not None and not task.done() and task is not asyncio.current_task():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.unsubscribe()

    async def _publish(self) -> None:
        snapshot = list(self._summaries)
        for callback in list(self._listeners):
            try:
                await callback(snapshot)
            except Exception:
                logger.exception("Conversation list listener failed")
