"""Ordered, deduplicated message sequence for one open conversation.

Messages arrive from three places: the initial history fetch, the local
send path (optimistic) and the change feed. Every arrival is keyed by
message id, so whichever path delivers a message first wins and later
arrivals of the same id are no-ops, except that a confirmed arrival
upgrades a pending entry in place.
"""
from __future__ import annotations

import bisect
from dataclasses import dataclass
from datetime import datetime
from typing import Iterator
from uuid import UUID

from clinic_chat.domain.entities.message import Message
from clinic_chat.domain.value_objects.enums import DeliveryState


@dataclass(frozen=True, slots=True)
class TimelineEntry:
    message: Message
    state: DeliveryState

    @property
    def is_pending(self) -> bool:
        return self.state == DeliveryState.PENDING


def _entry_key(entry: TimelineEntry) -> tuple[datetime, str]:
    return entry.message.sort_key


class MessageTimeline:
    def __init__(self) -> None:
        self._entries: list[TimelineEntry] = []
        self._by_id: dict[UUID, TimelineEntry] = {}

    def __len__(self) -> int:
        return len(self._entries)

    def __iter__(self) -> Iterator[TimelineEntry]:
        return iter(self._entries)

    def __contains__(self, message_id: object) -> bool:
        return message_id in self._by_id

    @property
    def entries(self) -> list[TimelineEntry]:
        return list(self._entries)

    @property
    def messages(self) -> list[Message]:
        return [e.message for e in self._entries]

    def get(self, message_id: UUID) -> TimelineEntry | None:
        return self._by_id.get(message_id)

    def add_pending(self, message: Message) -> bool:
        """Add a locally sent message. Returns False if the id is already known."""
        if message.id in self._by_id:
            return False
        self._insert(TimelineEntry(message, DeliveryState.PENDING))
        return True

    def confirm(self, message: Message) -> bool:
        """Merge a message known to be in the store. Returns True if anything changed."""
        existing = self._by_id.get(message.id)
        if existing is None:
            self._insert(TimelineEntry(message, DeliveryState.CONFIRMED))
            return True
        if not existing.is_pending:
            return False
        idx = self._index_of(existing)
        confirmed = TimelineEntry(existing.message, DeliveryState.CONFIRMED)
        self._entries[idx] = confirmed
        self._by_id[message.id] = confirmed
        return True

    def confirm_all(self, messages: list[Message]) -> int:
        return sum(1 for m in messages if self.confirm(m))

    def _insert(self, entry: TimelineEntry) -> None:
        bisect.insort(self._entries, entry, key=_entry_key)
        self._by_id[entry.message.id] = entry

    def _index_of(self, entry: TimelineEntry) -> int:
        # sort keys are unique because the id is part of the key
        return bisect.bisect_left(self._entries, _entry_key(entry), key=_entry_key)
