from __future__ import annotations

from datetime import datetime, timedelta, timezone

import pytest

from clinic_chat.application.exceptions import ForbiddenError
from clinic_chat.domain.value_objects.enums import ConversationStatus
from clinic_chat.services.metrics_service import collect_metrics, start_of_day
from tests.conftest import ATTENDANT_ID, BASE_TIME, OTHER_ATTENDANT_ID, make_conversation


class FixedClock:
    def __init__(self, now: datetime) -> None:
        self._now = now

    def now(self) -> datetime:
        return self._now


@pytest.fixture
def clock():
    return FixedClock(BASE_TIME + timedelta(hours=3))


@pytest.fixture
def populated(store):
    store.add_conversation(make_conversation(attendant_id=ATTENDANT_ID))
    store.add_conversation(make_conversation(status=ConversationStatus.PENDING))
    store.add_conversation(
        make_conversation(attendant_id=ATTENDANT_ID, status=ConversationStatus.RESOLVED, updated_at=BASE_TIME)
    )
    store.add_conversation(
        make_conversation(
            attendant_id=OTHER_ATTENDANT_ID,
            status=ConversationStatus.RESOLVED,
            updated_at=BASE_TIME - timedelta(days=1),
        )
    )
    return store


def test_start_of_day():
    now = datetime(2024, 5, 6, 15, 30, tzinfo=timezone.utc)
    assert start_of_day(now) == datetime(2024, 5, 6, tzinfo=timezone.utc)


@pytest.mark.asyncio
async def test_manager_gets_team_breakdown(populated, manager, clock):
    metrics = await collect_metrics(manager, populated, clock)

    assert metrics.total_conversations == 4
    assert metrics.active_conversations == 1
    assert metrics.pending_conversations == 1
    assert metrics.resolved_today == 1
    by_id = {a.id: a for a in metrics.attendants}
    assert by_id[ATTENDANT_ID].conversations == 2
    assert by_id[ATTENDANT_ID].resolved_today == 1
    assert by_id[OTHER_ATTENDANT_ID].resolved_today == 0


@pytest.mark.asyncio
async def test_attendant_gets_counters_only(populated, attendant, clock):
    metrics = await collect_metrics(attendant, populated, clock)

    assert metrics.total_conversations == 4
    assert metrics.attendants == []


@pytest.mark.asyncio
async def test_patient_is_forbidden(populated, patient, clock):
    with pytest.raises(ForbiddenError):
        await collect_metrics(patient, populated, clock)


@pytest.mark.asyncio
async def test_reply_to_old_resolved_conversation_counts_as_resolved_today(populated, manager, clock):
    old = next(c for c in populated.conversation_rows.values() if c.attendant_id == OTHER_ATTENDANT_ID)
    await populated.conversations_w.touch(old.id)

    metrics = await collect_metrics(manager, populated, clock)

    assert metrics.resolved_today == 2
    by_id = {a.id: a for a in metrics.attendants}
    assert by_id[OTHER_ATTENDANT_ID].resolved_today == 1
