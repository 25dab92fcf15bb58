"""Message list for one open conversation.

The reconciler owns the ordered, deduplicated message sequence of the
conversation currently open in a chat view and keeps it in step with the
store's change feed.

Lifecycle::

    unloaded -> loading -> synced
                        -> not_found   (conversation row absent)
                        -> error       (store call failed)

Opening another conversation starts over from ``loading``. Subscriptions of
the previous conversation are released before new ones are taken, and
every handler is bound to the generation it was created for, so a late
event for an old conversation is dropped.
"""
from __future__ import annotations

import logging
from enum import StrEnum
from typing import Any, Callable, Coroutine
from uuid import UUID

from clinic_chat.application.dto.events import Notice
from clinic_chat.application.dto.rows import conversation_from_row, message_from_row
from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import AppError, StoreError
from clinic_chat.application.policies.permissions import assert_visible
from clinic_chat.application.ports.bus import Subscription
from clinic_chat.application.ports.notifier import Notifier
from clinic_chat.application.store import RecordStore
from clinic_chat.config import settings
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.entities.message import Message
from clinic_chat.domain.entities.timeline import MessageTimeline, TimelineEntry
from clinic_chat.domain.events.row_changed import RowChanged
from clinic_chat.domain.value_objects.enums import ChangeType, NoticeLevel, Table
from clinic_chat.services import message_service

logger = logging.getLogger(__name__)


class ReconcilerState(StrEnum):
    UNLOADED = "unloaded"
    LOADING = "loading"
    SYNCED = "synced"
    NOT_FOUND = "not_found"
    ERROR = "error"


OnChatChange = Callable[["MessageReconciler"], Coroutine[Any, Any, None]]


class MessageReconciler:
    def __init__(
        self,
        store: RecordStore,
        notifier: Notifier,
        session: SessionContext | None = None,
    ) -> None:
        self._store = store
        self._notifier = notifier
        self._session = session
        self._state = ReconcilerState.UNLOADED
        self._conversation_id: UUID | None = None
        self._conversation: Conversation | None = None
        self._timeline = MessageTimeline()
        self._subscriptions: list[Subscription] = []
        self._generation = 0
        self._listeners: list[OnChatChange] = []

    @property
    def state(self) -> ReconcilerState:
        return self._state

    @property
    def conversation_id(self) -> UUID | None:
        return self._conversation_id

    @property
    def conversation(self) -> Conversation | None:
        return self._conversation

    @property
    def entries(self) -> list[TimelineEntry]:
        return self._timeline.entries

    @property
    def messages(self) -> list[Message]:
        return self._timeline.messages

    @property
    def quick_replies(self) -> list[str]:
        return list(settings.QUICK_REPLIES)

    def set_session(self, session: SessionContext | None) -> None:
        self._session = session

    def add_listener(self, callback: OnChatChange) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def open(self, conversation_id: UUID) -> None:
        if conversation_id == self._conversation_id and self._state in (
            ReconcilerState.LOADING,
            ReconcilerState.SYNCED,
        ):
            return
        session = self._session
        if session is None:
            logger.info("open skipped: no session")
            return

        await self._release()
        self._generation += 1
        generation = self._generation
        self._conversation_id = conversation_id
        self._conversation = None
        self._timeline = MessageTimeline()
        self._state = ReconcilerState.LOADING

        try:
            # subscribe before fetching so nothing inserted during the load is missed
            await self._subscribe(conversation_id, generation)
            if not self._is_current(generation):
                return

            conversation = await self._store.conversations.get_by_id(conversation_id)
            if not self._is_current(generation):
                return
            if conversation is None:
                await self._release()
                self._state = ReconcilerState.NOT_FOUND
                logger.info("Conversation %s not found", conversation_id)
                await self._notifier.notify(
                    Notice(NoticeLevel.ERROR, "Conversation not found", "Check the link and try again.")
                )
                await self._publish()
                return
            assert_visible(session.scope, conversation)
            self._accept_conversation(conversation)

            history = await self._store.messages.list_messages(conversation_id)
            if not self._is_current(generation):
                return
            self._timeline.confirm_all(history)
        except AppError as exc:
            if not self._is_current(generation):
                return
            await self._release()
            self._state = ReconcilerState.ERROR
            logger.warning("Loading conversation %s failed: %s", conversation_id, exc.detail)
            await self._notifier.notify(
                Notice(NoticeLevel.ERROR, "Could not load chat", _describe(exc, "Try again in a moment."))
            )
            await self._publish()
            return

        self._state = ReconcilerState.SYNCED
        logger.debug("Conversation %s synced with %d messages", conversation_id, len(self._timeline))
        await self._publish()

    async def close(self) -> None:
        self._generation += 1
        await self._release()
        self._conversation_id = None
        self._conversation = None
        self._timeline = MessageTimeline()
        self._state = ReconcilerState.UNLOADED

    def apply(self, event: RowChanged) -> bool:
        """Merge one change-feed event. Idempotent; returns True if state changed."""
        if self._conversation_id is None or event.new is None:
            return False

        if event.table == Table.MESSAGES:
            if event.type != ChangeType.INSERT:
                return False
            message = message_from_row(event.new)
            if message.conversation_id != self._conversation_id:
                return False
            return self._timeline.confirm(message)

        if event.table == Table.CONVERSATIONS:
            if event.type == ChangeType.DELETE:
                return False
            conversation = conversation_from_row(event.new)
            if conversation.id != self._conversation_id:
                return False
            return self._accept_conversation(conversation)

        return False

    async def send_message(self, text: str) -> Message | None:
        if self._session is None or self._conversation_id is None or self._conversation is None:
            logger.info("send_message skipped: no session or no open conversation")
            return None

        generation = self._generation
        conversation_id = self._conversation_id
        try:
            result = await message_service.send_message(
                conversation_id, text, self._session, self._store,
            )
        except AppError as exc:
            logger.warning("Sending to conversation %s failed: %s", conversation_id, exc.detail)
            await self._notifier.notify(
                Notice(
                    NoticeLevel.ERROR,
                    "Could not send message",
                    _describe(exc, "Check your connection and try again."),
                )
            )
            return None

        if not self._is_current(generation):
            return result.message

        self._timeline.add_pending(result.message)
        self._accept_conversation(result.conversation)
        await self._publish()
        return result.message

    def _is_current(self, generation: int) -> bool:
        return generation == self._generation

    def _accept_conversation(self, conversation: Conversation) -> bool:
        current = self._conversation
        if current is not None and current.updated_at > conversation.updated_at:
            return False
        if current == conversation:
            return False
        self._conversation = conversation
        return True

    async def _subscribe(self, conversation_id: UUID, generation: int) -> None:
        async def on_change(event: RowChanged) -> None:
            if not self._is_current(generation):
                return
            if self.apply(event):
                await self._publish()

        targets = (
            (Table.MESSAGES, "conversation_id"),
            (Table.CONVERSATIONS, "id"),
        )
        for table, column in targets:
            subscription = await self._store.changes.subscribe(
                table, on_change, column=column, value=conversation_id,
            )
            if not self._is_current(generation):
                await subscription.unsubscribe()
                return
            self._subscriptions.append(subscription)

    async def _release(self) -> None:
        subscriptions, self._subscriptions = self._subscriptions, []
        for subscription in subscriptions:
            await subscription.unsubscribe()

    async def _publish(self) -> None:
        for callback in list(self._listeners):
            try:
                await callback(self)
            except Exception:
                logger.exception("Chat listener failed")


def _describe(exc: AppError, fallback: str) -> str:
    if isinstance(exc, StoreError) or not exc.detail:
        return fallback
    return exc.detail
