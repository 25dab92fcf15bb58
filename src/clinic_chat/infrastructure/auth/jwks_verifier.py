from __future__ import annotations

import logging

import jwt
from jwt import PyJWKClient

from clinic_chat.application.dto.session import Identity
from clinic_chat.application.exceptions import AuthError
from clinic_chat.infrastructure.auth.claims import identity_from_user

logger = logging.getLogger(__name__)


class JWKSVerifier:
    """Verify JWTs using a remote JWKS endpoint."""

    def __init__(self, jwks_url: str, audience: str | None = None) -> None:
        self._jwks_url = jwks_url
        self._audience = audience
        self._jwk_client = PyJWKClient(jwks_url)

    async def verify(self, token: str) -> Identity:
        try:
            signing_key = self._jwk_client.get_signing_key_from_jwt(token)
            payload = jwt.decode(
                token,
                signing_key.key,
                algorithms=["RS256", "ES256"],
                audience=self._audience,
                options={"verify_aud": self._audience is not None},
            )
        except jwt.PyJWTError as exc:
            logger.debug("JWKS verification failed against %s", self._jwks_url, exc_info=True)
            raise AuthError(f"Invalid token: {exc}") from exc
        return identity_from_user(payload)
