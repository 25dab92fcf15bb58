from __future__ import annotations

import asyncio
from dataclasses import dataclass, field
from datetime import datetime, time
from uuid import UUID

from clinic_chat.application.dto.session import SessionContext
from clinic_chat.application.exceptions import ForbiddenError
from clinic_chat.application.ports.clock import Clock, SystemClock
from clinic_chat.application.store import RecordStore
from clinic_chat.domain.value_objects.enums import Action, ConversationStatus, Role


@dataclass(frozen=True, slots=True)
class AttendantStats:
    id: UUID
    name: str
    conversations: int
    resolved_today: int


@dataclass(frozen=True, slots=True)
class DashboardMetrics:
    total_conversations: int
    active_conversations: int
    pending_conversations: int
    resolved_today: int
    attendants: list[AttendantStats] = field(default_factory=list)


def start_of_day(now: datetime) -> datetime:
    return datetime.combine(now.date(), time.min, tzinfo=now.tzinfo)


async def collect_metrics(
    session: SessionContext,
    store: RecordStore,
    clock: Clock | None = None,
) -> DashboardMetrics:
    """Read-only counters for the dashboard; team breakdown needs ``view_metrics``.

    There is no resolution timestamp, so "resolved today" means resolved
    conversations whose ``updated_at`` falls after local midnight. A reply
    to an old resolved conversation touches ``updated_at`` and counts it
    again.
    """
    if session.role == Role.PATIENT:
        raise ForbiddenError("Metrics are only available to clinic staff")

    today = start_of_day((clock or SystemClock()).now())
    counts = store.conversations.count
    total, active, pending, resolved_today = await asyncio.gather(
        counts(),
        counts(status=ConversationStatus.ACTIVE),
        counts(status=ConversationStatus.PENDING),
        counts(status=ConversationStatus.RESOLVED, updated_since=today),
    )

    attendants: list[AttendantStats] = []
    if session.scope.can(Action.VIEW_METRICS):
        attendants = await _attendant_stats(store, today)

    return DashboardMetrics(
        total_conversations=total,
        active_conversations=active,
        pending_conversations=pending,
        resolved_today=resolved_today,
        attendants=attendants,
    )


async def _attendant_stats(store: RecordStore, today: datetime) -> list[AttendantStats]:
    profiles = await store.profiles.list_by_role(Role.ATTENDANT)

    async def one(profile_id: UUID, name: str) -> AttendantStats:
        assigned, resolved = await asyncio.gather(
            store.conversations.count(attendant_id=profile_id),
            store.conversations.count(
                attendant_id=profile_id,
                status=ConversationStatus.RESOLVED,
                updated_since=today,
            ),
        )
        return AttendantStats(id=profile_id, name=name, conversations=assigned, resolved_today=resolved)

    return list(await asyncio.gather(*(one(p.id, p.name) for p in profiles)))
