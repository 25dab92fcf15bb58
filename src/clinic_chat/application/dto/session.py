from __future__ import annotations

from dataclasses import dataclass
from uuid import UUID

from clinic_chat.application.policies.permissions import RoleScope, resolve_scope
from clinic_chat.domain.value_objects.enums import Role


@dataclass(frozen=True, slots=True)
class Identity:
    """Authenticated user as issued by the session provider."""

    id: UUID
    email: str
    name: str
    role: Role
    avatar: str | None = None


@dataclass(frozen=True, slots=True)
class SessionContext:
    """Identity plus everything derived from it once per sign-in.

    Passed explicitly to every component that acts on behalf of the user.
    """

    identity: Identity
    scope: RoleScope
    access_token: str | None = None

    @classmethod
    def for_identity(cls, identity: Identity, access_token: str | None = None) -> SessionContext:
        return cls(
            identity=identity,
            scope=resolve_scope(identity.role, identity.id),
            access_token=access_token,
        )

    @property
    def user_id(self) -> UUID:
        return self.identity.id

    @property
    def role(self) -> Role:
        return self.identity.role
