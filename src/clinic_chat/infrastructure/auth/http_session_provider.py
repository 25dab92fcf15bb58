"""Session provider backed by a GoTrue-compatible auth HTTP API."""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Any, Callable

import httpx

from clinic_chat.application.exceptions import AuthError
from clinic_chat.application.ports.session import AuthSession, OnSessionChange
from clinic_chat.domain.value_objects.enums import Role
from clinic_chat.infrastructure.auth.claims import identity_from_user

logger = logging.getLogger(__name__)


class HttpSessionProvider:
    """Implements application.ports.session.SessionProvider.

    Holds the current session in memory and tells registered callbacks
    whenever it changes.
    """

    def __init__(
        self,
        base_url: str,
        api_key: str = "",
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        headers = {"apikey": api_key} if api_key else {}
        self._client = client or httpx.AsyncClient(base_url=base_url, timeout=timeout, headers=headers)
        self._owns_client = client is None
        self._session: AuthSession | None = None
        self._callbacks: list[OnSessionChange] = []

    async def sign_in(self, email: str, password: str) -> AuthSession:
        data = await self._post(
            "/token",
            {"email": email, "password": password},
            params={"grant_type": "password"},
        )
        return await self._set_session(self._parse_session(data))

    async def sign_up(self, email: str, password: str, name: str, role: Role) -> AuthSession:
        data = await self._post(
            "/signup",
            {"email": email, "password": password, "data": {"name": name, "role": role.value}},
        )
        if "access_token" not in data:
            # email confirmation pending; no session yet
            raise AuthError("Sign-up succeeded but no session was issued; confirm the e-mail address")
        return await self._set_session(self._parse_session(data))

    async def sign_out(self) -> None:
        session = self._session
        if session is None:
            return
        try:
            await self._post("/logout", None, token=session.access_token)
        finally:
            await self._set_session(None)

    async def get_session(self) -> AuthSession | None:
        session = self._session
        if session and session.expires_at and session.expires_at <= datetime.now(timezone.utc):
            logger.info("Session for %s expired", session.identity.email)
            await self._set_session(None)
            return None
        return session

    def on_session_change(self, callback: OnSessionChange) -> Callable[[], None]:
        self._callbacks.append(callback)

        def remove() -> None:
            if callback in self._callbacks:
                self._callbacks.remove(callback)

        return remove

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def _post(
        self,
        path: str,
        body: dict[str, Any] | None,
        *,
        params: dict[str, str] | None = None,
        token: str | None = None,
    ) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {token}"} if token else None
        try:
            resp = await self._client.post(path, json=body, params=params, headers=headers)
        except httpx.HTTPError as exc:
            raise AuthError(f"Auth service unreachable: {exc}") from exc

        if resp.status_code >= 400:
            raise AuthError(_error_message(resp))
        if not resp.content:
            return {}
        return resp.json()

    def _parse_session(self, data: dict[str, Any]) -> AuthSession:
        user = data.get("user")
        if not isinstance(user, dict):
            raise AuthError("Auth response did not include a user")
        expires_at = None
        if data.get("expires_in"):
            expires_at = datetime.now(timezone.utc) + timedelta(seconds=int(data["expires_in"]))
        return AuthSession(
            access_token=data["access_token"],
            identity=identity_from_user(user),
            refresh_token=data.get("refresh_token"),
            expires_at=expires_at,
        )

    async def _set_session(self, session: AuthSession | None) -> AuthSession | None:
        self._session = session
        for callback in list(self._callbacks):
            try:
                await callback(session)
            except Exception:
                logger.exception("Session change callback failed")
        return session


def _error_message(resp: httpx.Response) -> str:
    try:
        body = resp.json()
    except ValueError:
        return f"Auth service returned {resp.status_code}"
    if isinstance(body, dict):
        for key in ("error_description", "msg", "message", "error"):
            if body.get(key):
                return str(body[key])
    return f"Auth service returned {resp.status_code}"
