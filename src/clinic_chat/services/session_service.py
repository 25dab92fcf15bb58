"""Client-side session lifecycle.

One ``SessionManager`` per client. It creates the ``SessionContext`` on
sign-in, restores it from the identity cache on start-up, drops it on
sign-out, and tells listeners whenever the identity changes so they can
re-derive their role-scoped state.
"""
from __future__ import annotations

import logging
from typing import Any, Callable, Coroutine

from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import AuthError, ValidationError
from clinic_chat.application.ports.session import AuthSession, IdentityCache, SessionProvider
from clinic_chat.domain.value_objects.enums import Role

logger = logging.getLogger(__name__)

OnIdentityChange = Callable[[SessionContext | None], Coroutine[Any, Any, None]]


class SessionManager:
    def __init__(self, provider: SessionProvider, cache: IdentityCache) -> None:
        self._provider = provider
        self._cache = cache
        self._current: SessionContext | None = None
        self._listeners: list[OnIdentityChange] = []
        self._unsubscribe_provider: Callable[[], None] | None = None

    @property
    def current(self) -> SessionContext | None:
        return self._current

    def add_listener(self, callback: OnIdentityChange) -> Callable[[], None]:
        self._listeners.append(callback)

        def remove() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return remove

    async def restore(self) -> SessionContext | None:
        """Rebuild the session from the provider, falling back to the cached identity."""
        if self._unsubscribe_provider is None:
            self._unsubscribe_provider = self._provider.on_session_change(self._on_provider_change)

        try:
            auth = await self._provider.get_session()
        except AuthError as exc:
            logger.warning("Could not fetch current session: %s", exc.detail)
            auth = None

        if auth is not None:
            await self._activate(auth)
            return self._current

        identity = self._cache.load()
        if identity is not None:
            logger.info("Restored cached identity %s (%s)", identity.id, identity.role)
            await self._set(SessionContext.for_identity(identity))
        return self._current

    async def sign_in(self, email: str, password: str) -> SessionContext:
        if not email or not password:
            raise ValidationError("Email and password are required")
        auth = await self._provider.sign_in(email, password)
        await self._activate(auth)
        assert self._current is not None
        return self._current

    async def sign_up(self, email: str, password: str, name: str, role: Role) -> SessionContext:
        if not email or not password or not name:
            raise ValidationError("Email, password and name are required")
        auth = await self._provider.sign_up(email, password, name, Role(role))
        await self._activate(auth)
        assert self._current is not None
        return self._current

    async def sign_out(self) -> None:
        try:
            await self._provider.sign_out()
        finally:
            self._cache.clear()
            await self._set(None)

    async def close(self) -> None:
        if self._unsubscribe_provider is not None:
            self._unsubscribe_provider()
            self._unsubscribe_provider = None

    async def _on_provider_change(self, auth: AuthSession | None) -> None:
        if auth is None:
            if self._current is not None:
                logger.info("Session ended by provider")
                self._cache.clear()
                await self._set(None)
            return
        await self._activate(auth)

    async def _activate(self, auth: AuthSession) -> None:
        self._cache.save(auth.identity)
        await self._set(SessionContext.for_identity(auth.identity, auth.access_token))

    async def _set(self, session: SessionContext | None) -> None:
        previous = self._current
        self._current = session
        if previous == session:
            return
        for callback in list(self._listeners):
            try:
                await callback(session)
            except Exception:
                logger.exception("Identity change listener failed")
