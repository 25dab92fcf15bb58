from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Any, Callable, Coroutine, Protocol

from clinic_chat.application.dto.session import Identity
from clinic_chat.domain.value_objects.enums import Role


@dataclass(frozen=True, slots=True)
class AuthSession:
    access_token: str
    identity: Identity
    refresh_token: str | None = None
    expires_at: datetime | None = None


OnSessionChange = Callable[[AuthSession | None], Coroutine[Any, Any, None]]


class SessionProvider(Protocol):
    async def sign_in(self, email: str, password: str) -> AuthSession: ...

    async def sign_up(self, email: str, password: str, name: str, role: Role) -> AuthSession: ...

    async def sign_out(self) -> None: ...

    async def get_session(self) -> AuthSession | None: ...

    def on_session_change(self, callback: OnSessionChange) -> Callable[[], None]:
        """Register for sign-in/sign-out events. Returns a function that unregisters."""
        ...


class IdentityCache(Protocol):
    def load(self) -> Identity | None: ...

    def save(self, identity: Identity) -> None: ...

    def clear(self) -> None: ...
