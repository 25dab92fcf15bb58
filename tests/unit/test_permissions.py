from __future__ import annotations

import pytest

from clinic_chat.application.exceptions import ForbiddenError
from clinic_chat.application.policies.permissions import assert_visible, require, resolve_scope
from clinic_chat.domain.value_objects.enums import Action, ConversationStatus, Role
from tests.conftest import (
    ATTENDANT_ID,
    MANAGER_ID,
    OTHER_ATTENDANT_ID,
    PATIENT_ID,
    make_conversation,
)


def test_patient_sees_only_own_conversations():
    scope = resolve_scope(Role.PATIENT, PATIENT_ID)
    own = make_conversation()
    foreign = make_conversation(patient_id=ATTENDANT_ID)

    assert scope.predicate.matches(own)
    assert not scope.predicate.matches(foreign)
    assert scope.actions == frozenset()


def test_attendant_sees_own_and_unassigned():
    scope = resolve_scope(Role.ATTENDANT, ATTENDANT_ID)

    assert scope.predicate.matches(make_conversation(attendant_id=ATTENDANT_ID))
    assert scope.predicate.matches(make_conversation(attendant_id=None))
    assert not scope.predicate.matches(make_conversation(attendant_id=OTHER_ATTENDANT_ID))


def test_manager_scope_is_unrestricted():
    scope = resolve_scope("manager", MANAGER_ID)

    assert scope.predicate.is_unrestricted
    assert scope.predicate.matches(make_conversation(attendant_id=OTHER_ATTENDANT_ID))
    assert scope.can(Action.VIEW_METRICS)
    assert scope.can(Action.REASSIGN)


def test_actions_depend_on_row_state():
    scope = resolve_scope(Role.ATTENDANT, ATTENDANT_ID)

    unassigned = make_conversation()
    assert scope.actions_for(unassigned) == {Action.ASSIGN_TO_SELF, Action.RESOLVE, Action.SET_STATUS}

    mine_resolved = make_conversation(attendant_id=ATTENDANT_ID, status=ConversationStatus.RESOLVED)
    assert scope.actions_for(mine_resolved) == {Action.SET_STATUS}

    foreign = make_conversation(attendant_id=OTHER_ATTENDANT_ID)
    assert scope.actions_for(foreign) == frozenset()


def test_unknown_role_is_rejected():
    with pytest.raises(ValueError):
        resolve_scope("admin", MANAGER_ID)


def test_require_checks_visibility_and_action():
    scope = resolve_scope(Role.ATTENDANT, ATTENDANT_ID)

    with pytest.raises(ForbiddenError):
        require(scope, Action.RESOLVE, make_conversation(attendant_id=OTHER_ATTENDANT_ID))
    with pytest.raises(ForbiddenError):
        require(scope, Action.REASSIGN)

    require(scope, Action.RESOLVE, make_conversation(attendant_id=ATTENDANT_ID))


def test_assert_visible_returns_conversation():
    scope = resolve_scope(Role.PATIENT, PATIENT_ID)
    conv = make_conversation()

    assert assert_visible(scope, conv) is conv
