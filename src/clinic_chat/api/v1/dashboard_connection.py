"""One dashboard WebSocket connection.

Binds a socket to a conversation-list synchronizer and a message
reconciler that act for the connected user, and pushes their snapshots
and notices to the client as they change.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Any
from uuid import UUID

from fastapi import WebSocket

from clinic_chat.api.v1.schemas.conversation import (
    ConversationResponse,
    ConversationSummaryResponse,
)
from clinic_chat.api.v1.schemas.message import MessageResponse
from clinic_chat.application.dto.conversation import ConversationSummary
from clinic_chat.application.dto.events import Notice
from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.store import RecordStore
from clinic_chat.domain.value_objects.enums import ConversationStatus
from clinic_chat.infrastructure.notify.notifiers import CallbackNotifier
from clinic_chat.infrastructure.ws.protocol import WsInbound, WsOutbound
from clinic_chat.services.conversation_list import ConversationListSynchronizer
from clinic_chat.services.message_reconciler import MessageReconciler

logger = logging.getLogger(__name__)


def _uuid(raw: Any) -> UUID:
    """Parse an id from client JSON; malformed values raise ValueError."""
    return UUID(str(raw))


class DashboardConnection:
    def __init__(self, ws: WebSocket, session: SessionContext, store: RecordStore) -> None:
        self._ws = ws
        self._session = session
        self._send_lock = asyncio.Lock()
        notifier = CallbackNotifier(self._send_notice)
        self.conversations = ConversationListSynchronizer(store, notifier)
        self.chat = MessageReconciler(store, notifier, session)
        self.conversations.add_listener(self._send_conversations)
        self.chat.add_listener(self._send_chat)

    async def start(self) -> None:
        await self.conversations.start(self._session)

    async def close(self) -> None:
        await self.chat.close()
        await self.conversations.close()

    async def send(self, event_type: str, data: dict[str, Any] | None = None) -> None:
        raw = WsOutbound(type=event_type, data=data or {}).model_dump_json()
        async with self._send_lock:
            await self._ws.send_text(raw)

    async def handle(self, msg: WsInbound) -> None:
        if msg.type == "ping":
            await self.send("pong")

        elif msg.type == "open":
            await self.chat.open(_uuid(msg.data["conversation_id"]))

        elif msg.type == "close":
            await self.chat.close()
            await self._send_chat(self.chat)

        elif msg.type == "message.send":
            await self.chat.send_message(str(msg.data.get("content", "")))

        elif msg.type == "assign":
            attendant_raw = msg.data.get("attendant_id")
            attendant_id = _uuid(attendant_raw) if attendant_raw else self._session.user_id
            await self.conversations.assign(_uuid(msg.data["conversation_id"]), attendant_id)

        elif msg.type == "status":
            await self.conversations.set_status(
                _uuid(msg.data["conversation_id"]),
                ConversationStatus(msg.data["status"]),
            )

        else:
            await self.send("error", {"code": "unknown_type", "type": msg.type})

    async def _send_notice(self, notice: Notice) -> None:
        await self.send(
            "notice",
            {"level": notice.level, "title": notice.title, "description": notice.description},
        )

    async def _send_conversations(self, summaries: list[ConversationSummary]) -> None:
        await self.send(
            "conversations.snapshot",
            {
                "state": self.conversations.state,
                "items": [
                    ConversationSummaryResponse.model_validate(s).model_dump(mode="json")
                    for s in summaries
                ],
            },
        )

    async def _send_chat(self, chat: MessageReconciler) -> None:
        conversation = chat.conversation
        await self.send(
            "chat.snapshot",
            {
                "state": chat.state,
                "conversation_id": str(chat.conversation_id) if chat.conversation_id else None,
                "conversation": (
                    ConversationResponse.model_validate(conversation).model_dump(mode="json")
                    if conversation
                    else None
                ),
                "messages": [
                    {
                        **MessageResponse.model_validate(entry.message).model_dump(mode="json"),
                        "pending": entry.is_pending,
                    }
                    for entry in chat.entries
                ],
                "quick_replies": chat.quick_replies,
            },
        )
