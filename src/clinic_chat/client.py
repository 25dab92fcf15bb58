"""Headless dashboard client.

Wires one session manager to the two synchronized views, the way a UI
shell would: every identity change restarts the conversation list and
re-binds (or closes) the open chat.
"""
from __future__ import annotations

import logging
from uuid import UUID

from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.ports.notifier import Notifier
from clinic_chat.application.ports.session import IdentityCache, SessionProvider
from clinic_chat.application.store import RecordStore
from clinic_chat.config import settings
from clinic_chat.infrastructure.auth.http_session_provider import HttpSessionProvider
from clinic_chat.infrastructure.notify.notifiers import LoggingNotifier
from clinic_chat.infrastructure.session.identity_cache import FileIdentityCache
from clinic_chat.services.conversation_list import ConversationListSynchronizer
from clinic_chat.services.message_reconciler import MessageReconciler
from clinic_chat.services.session_service import SessionManager

logger = logging.getLogger(__name__)


class DashboardClient:
    def __init__(
        self,
        store: RecordStore,
        provider: SessionProvider,
        cache: IdentityCache,
        notifier: Notifier | None = None,
    ) -> None:
        notifier = notifier or LoggingNotifier()
        self._provider = provider
        self._user_id: UUID | None = None
        self.sessions = SessionManager(provider, cache)
        self.conversations = ConversationListSynchronizer(store, notifier)
        self.chat = MessageReconciler(store, notifier)
        self._remove_listener = self.sessions.add_listener(self._on_identity_change)

    async def start(self) -> SessionContext | None:
        return await self.sessions.restore()

    async def close(self) -> None:
        self._remove_listener()
        await self.chat.close()
        await self.conversations.close()
        await self.sessions.close()
        if isinstance(self._provider, HttpSessionProvider):
            await self._provider.aclose()

    async def _on_identity_change(self, session: SessionContext | None) -> None:
        user_id = session.user_id if session else None
        logger.info("Identity changed: %s", user_id or "signed out")
        if user_id != self._user_id:
            await self.chat.close()
        self._user_id = user_id
        self.chat.set_session(session)
        await self.conversations.on_session_change(session)


def build_client(store: RecordStore, notifier: Notifier | None = None) -> DashboardClient:
    provider = HttpSessionProvider(
        settings.AUTH_URL,
        settings.AUTH_API_KEY,
        timeout=settings.AUTH_TIMEOUT_SECONDS,
    )
    return DashboardClient(store, provider, FileIdentityCache(settings.IDENTITY_CACHE_PATH), notifier)
