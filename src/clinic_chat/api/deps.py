"""FastAPI dependency injection helpers."""
from __future__ import annotations

from typing import Annotated

from fastapi import Depends, HTTPException, Request, status
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer

from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import AuthError
from clinic_chat.application.ports.auth import TokenVerifier
from clinic_chat.application.store import RecordStore
from clinic_chat.config import settings
from clinic_chat.infrastructure.auth.hs256_verifier import HS256Verifier
from clinic_chat.infrastructure.auth.jwks_verifier import JWKSVerifier

_bearer_scheme = HTTPBearer()


def build_verifier() -> TokenVerifier:
    if settings.JWT_VERIFY_MODE == "jwks":
        assert settings.JWKS_URL, "JWKS_URL must be set when JWT_VERIFY_MODE=jwks"
        return JWKSVerifier(settings.JWKS_URL, audience=settings.JWT_AUDIENCE)
    return HS256Verifier(settings.JWT_SECRET, settings.JWT_ALGORITHM, audience=settings.JWT_AUDIENCE)


def get_store(request: Request) -> RecordStore:
    return request.app.state.store


StoreDep = Annotated[RecordStore, Depends(get_store)]


def get_verifier(request: Request) -> TokenVerifier:
    return request.app.state.verifier


async def authenticate(verifier: TokenVerifier, token: str) -> SessionContext:
    identity = await verifier.verify(token)
    return SessionContext.for_identity(identity, token)


async def get_current_session(
    credentials: Annotated[HTTPAuthorizationCredentials, Depends(_bearer_scheme)],
    verifier: Annotated[TokenVerifier, Depends(get_verifier)],
) -> SessionContext:
    try:
        return await authenticate(verifier, credentials.credentials)
    except AuthError as exc:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail=exc.detail,
        ) from exc


CurrentSession = Annotated[SessionContext, Depends(get_current_session)]
