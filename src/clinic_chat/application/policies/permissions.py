"""Role-scoped access filter.

Maps (role, user id) to the query predicate that bounds which conversations
are visible, and to the set of actions the role may perform. Both are
resolved once per identity and carried on the session context.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import Callable
from uuid import UUID

from clinic_chat.application.exceptions import ForbiddenError
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.value_objects.enums import Action, Role


@dataclass(frozen=True, slots=True)
class ConversationPredicate:
    """Filter over the conversations table.

    ``patient_id`` restricts to one owner. ``attendant_id`` restricts to one
    attendant, widened to the unassigned pool when ``include_unassigned`` is
    set. An empty predicate matches everything.
    """

    patient_id: UUID | None = None
    attendant_id: UUID | None = None
    include_unassigned: bool = False

    @property
    def is_unrestricted(self) -> bool:
        return self.patient_id is None and self.attendant_id is None

    def matches(self, conversation: Conversation) -> bool:
        if self.patient_id is not None and conversation.patient_id != self.patient_id:
            return False
        if self.attendant_id is not None:
            if conversation.attendant_id == self.attendant_id:
                return True
            return self.include_unassigned and conversation.attendant_id is None
        return True


@dataclass(frozen=True, slots=True)
class RoleScope:
    role: Role
    user_id: UUID
    predicate: ConversationPredicate
    actions: frozenset[Action]

    def can(self, action: Action, conversation: Conversation | None = None) -> bool:
        if conversation is None:
            return action in self.actions
        return action in self.actions_for(conversation)

    def actions_for(self, conversation: Conversation) -> frozenset[Action]:
        """Affordances available on one conversation row."""
        if not self.predicate.matches(conversation):
            return frozenset()
        allowed = set(self.actions)
        if conversation.is_assigned:
            allowed.discard(Action.ASSIGN_TO_SELF)
        if conversation.is_resolved:
            allowed.discard(Action.RESOLVE)
        return frozenset(allowed)


def _patient(user_id: UUID) -> ConversationPredicate:
    return ConversationPredicate(patient_id=user_id)


def _attendant(user_id: UUID) -> ConversationPredicate:
    return ConversationPredicate(attendant_id=user_id, include_unassigned=True)


def _manager(_user_id: UUID) -> ConversationPredicate:
    return ConversationPredicate()


_CAPABILITIES: dict[Role, tuple[Callable[[UUID], ConversationPredicate], frozenset[Action]]] = {
    Role.PATIENT: (_patient, frozenset()),
    Role.ATTENDANT: (
        _attendant,
        frozenset({Action.ASSIGN_TO_SELF, Action.RESOLVE, Action.SET_STATUS}),
    ),
    Role.MANAGER: (
        _manager,
        frozenset({Action.REASSIGN, Action.RESOLVE, Action.SET_STATUS, Action.VIEW_METRICS}),
    ),
}


def resolve_scope(role: Role | str, user_id: UUID) -> RoleScope:
    role = Role(role)
    build_predicate, actions = _CAPABILITIES[role]
    return RoleScope(
        role=role,
        user_id=user_id,
        predicate=build_predicate(user_id),
        actions=actions,
    )


def assert_visible(scope: RoleScope, conversation: Conversation) -> Conversation:
    if not scope.predicate.matches(conversation):
        raise ForbiddenError("Conversation is outside your scope")
    return conversation


def require(
    scope: RoleScope,
    action: Action,
    conversation: Conversation | None = None,
) -> None:
    """Raise unless ``scope`` may perform ``action`` (on ``conversation`` if given)."""
    if conversation is not None:
        assert_visible(scope, conversation)
    if not scope.can(action, conversation):
        raise ForbiddenError(f"Action '{action}' not allowed for role '{scope.role}'")
