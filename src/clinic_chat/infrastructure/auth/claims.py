from __future__ import annotations

from typing import Any
from uuid import UUID

from clinic_chat.application.dto.session import Identity
from clinic_chat.application.exceptions import AuthError
from clinic_chat.domain.value_objects.enums import Role


def _role(raw: Any) -> Role:
    try:
        return Role(raw)
    except ValueError:
        return Role.PATIENT


def identity_from_user(user: dict[str, Any]) -> Identity:
    """Build an Identity from a user object (``id``/``sub``, ``email``, ``user_metadata``)."""
    raw_id = user.get("id") or user.get("sub")
    try:
        user_id = UUID(str(raw_id))
    except ValueError as exc:
        raise AuthError("Token subject is not a valid user id") from exc

    meta = user.get("user_metadata") or {}
    email = user.get("email") or ""
    return Identity(
        id=user_id,
        email=email,
        name=meta.get("name") or email.split("@")[0] or "User",
        role=_role(meta.get("role", user.get("role"))),
        avatar=meta.get("avatar"),
    )
