from __future__ import annotations

import jwt

from clinic_chat.application.dto.session import Identity
from clinic_chat.application.exceptions import AuthError
from clinic_chat.infrastructure.auth.claims import identity_from_user


class HS256Verifier:
    """Verify JWTs signed with a shared HS256 secret."""

    def __init__(self, secret: str, algorithm: str = "HS256", audience: str | None = None) -> None:
        self._secret = secret
        self._algorithm = algorithm
        self._audience = audience

    async def verify(self, token: str) -> Identity:
        try:
            payload = jwt.decode(
                token,
                self._secret,
                algorithms=[self._algorithm],
                audience=self._audience,
                options={"verify_aud": self._audience is not None},
            )
        except jwt.PyJWTError as exc:
            raise AuthError(f"Invalid token: {exc}") from exc
        return identity_from_user(payload)
