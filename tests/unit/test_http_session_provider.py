from __future__ import annotations

import json

import httpx
import pytest

from clinic_chat.application.exceptions import AuthError
from clinic_chat.domain.value_objects.enums import Role
from clinic_chat.infrastructure.auth.http_session_provider import HttpSessionProvider
from tests.conftest import ATTENDANT_ID

USER = {
    "id": str(ATTENDANT_ID),
    "email": "atendente@clinica.com",
    "user_metadata": {"name": "João Santos", "role": "attendant"},
}


def _provider(handler) -> HttpSessionProvider:
    client = httpx.AsyncClient(base_url="http://auth.test", transport=httpx.MockTransport(handler))
    return HttpSessionProvider("http://auth.test", client=client)


@pytest.mark.asyncio
async def test_sign_in_posts_password_grant():
    requests = []

    def handler(request: httpx.Request) -> httpx.Response:
        requests.append(request)
        return httpx.Response(
            200,
            json={"access_token": "jwt", "refresh_token": "r", "expires_in": 3600, "user": USER},
        )

    provider = _provider(handler)
    changes = []

    async def on_change(session):
        changes.append(session)

    provider.on_session_change(on_change)
    session = await provider.sign_in("atendente@clinica.com", "123456")

    assert requests[0].url.path == "/token"
    assert requests[0].url.params["grant_type"] == "password"
    assert json.loads(requests[0].content) == {"email": "atendente@clinica.com", "password": "123456"}
    assert session.identity.id == ATTENDANT_ID
    assert session.identity.role == Role.ATTENDANT
    assert session.expires_at is not None
    assert changes == [session]
    assert await provider.get_session() == session


@pytest.mark.asyncio
async def test_sign_in_error_message_is_surfaced():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(400, json={"error_description": "Invalid login credentials"})

    provider = _provider(handler)

    with pytest.raises(AuthError, match="Invalid login credentials"):
        await provider.sign_in("x@y.z", "bad")
    assert await provider.get_session() is None


@pytest.mark.asyncio
async def test_unreachable_service_raises_auth_error():
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("refused", request=request)

    provider = _provider(handler)

    with pytest.raises(AuthError):
        await provider.sign_in("x@y.z", "pw")


@pytest.mark.asyncio
async def test_sign_up_sends_profile_metadata():
    bodies = []

    def handler(request: httpx.Request) -> httpx.Response:
        bodies.append(json.loads(request.content))
        return httpx.Response(200, json={"access_token": "jwt", "user": USER})

    provider = _provider(handler)
    await provider.sign_up("atendente@clinica.com", "123456", "João Santos", Role.ATTENDANT)

    assert bodies[0]["data"] == {"name": "João Santos", "role": "attendant"}


@pytest.mark.asyncio
async def test_sign_up_without_session_requires_confirmation():
    def handler(request: httpx.Request) -> httpx.Response:
        return httpx.Response(200, json=USER)

    provider = _provider(handler)

    with pytest.raises(AuthError):
        await provider.sign_up("atendente@clinica.com", "123456", "João", Role.ATTENDANT)


@pytest.mark.asyncio
async def test_sign_out_clears_session_even_if_logout_fails():
    def handler(request: httpx.Request) -> httpx.Response:
        if request.url.path == "/logout":
            return httpx.Response(500)
        return httpx.Response(200, json={"access_token": "jwt", "user": USER})

    provider = _provider(handler)
    changes = []

    async def on_change(session):
        changes.append(session)

    remove = provider.on_session_change(on_change)
    await provider.sign_in("atendente@clinica.com", "123456")

    with pytest.raises(AuthError):
        await provider.sign_out()

    assert await provider.get_session() is None
    assert changes[-1] is None
    remove()
