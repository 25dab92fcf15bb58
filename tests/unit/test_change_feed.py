from __future__ import annotations

import json
import uuid
from datetime import datetime, timezone

import pytest

from clinic_chat.domain.events.row_changed import RowChanged
from clinic_chat.domain.value_objects.enums import ChangeType, Table
from clinic_chat.infrastructure.bus.change_feed import ROW_CHANGED_EVENT, ChangeFeedHub
from clinic_chat.infrastructure.bus.redis_pubsub import RedisChangePublisher
from clinic_chat.infrastructure.bus.serializer import deserialize_event, serialize_event


def _message_event(conversation_id) -> RowChanged:
    return RowChanged(
        Table.MESSAGES,
        ChangeType.INSERT,
        new={
            "id": uuid.uuid4(),
            "conversation_id": conversation_id,
            "content": "hi",
            "created_at": datetime(2024, 5, 6, tzinfo=timezone.utc),
        },
    )


class Recorder:
    def __init__(self) -> None:
        self.events: list[RowChanged] = []

    async def __call__(self, event: RowChanged) -> None:
        self.events.append(event)


@pytest.mark.asyncio
async def test_filtered_subscription_matches_column_value():
    hub = ChangeFeedHub()
    target = uuid.uuid4()
    filtered, everything = Recorder(), Recorder()
    await hub.subscribe(Table.MESSAGES, filtered, column="conversation_id", value=target)
    await hub.subscribe(Table.MESSAGES, everything)

    await hub.dispatch(_message_event(target))
    await hub.dispatch(_message_event(uuid.uuid4()))

    assert len(filtered.events) == 1
    assert len(everything.events) == 2


@pytest.mark.asyncio
async def test_filter_matches_serialized_ids():
    hub = ChangeFeedHub()
    target = uuid.uuid4()
    rec = Recorder()
    await hub.subscribe(Table.MESSAGES, rec, column="conversation_id", value=target)

    event_type, data = deserialize_event(serialize_event(ROW_CHANGED_EVENT, _message_event(target).to_payload()))
    await hub.dispatch_payload(event_type, data)

    assert len(rec.events) == 1
    assert rec.events[0].new["conversation_id"] == str(target)


@pytest.mark.asyncio
async def test_unsubscribe_is_idempotent():
    hub = ChangeFeedHub()
    rec = Recorder()
    sub = await hub.subscribe(Table.CONVERSATIONS, rec)

    await sub.unsubscribe()
    await sub.unsubscribe()
    await hub.dispatch(RowChanged(Table.CONVERSATIONS, ChangeType.DELETE, old={"id": "x"}))

    assert not sub.active
    assert hub.subscription_count == 0
    assert rec.events == []


@pytest.mark.asyncio
async def test_failing_handler_does_not_block_others():
    hub = ChangeFeedHub()
    rec = Recorder()

    async def boom(event):
        raise RuntimeError("handler bug")

    await hub.subscribe(Table.MESSAGES, boom)
    await hub.subscribe(Table.MESSAGES, rec)

    await hub.dispatch(_message_event(uuid.uuid4()))

    assert len(rec.events) == 1


@pytest.mark.asyncio
async def test_unknown_bus_events_are_ignored():
    hub = ChangeFeedHub()
    rec = Recorder()
    await hub.subscribe(Table.MESSAGES, rec)

    await hub.dispatch_payload("something_else", {"table": "messages"})

    assert rec.events == []


def test_malformed_envelope_is_rejected():
    with pytest.raises(ValueError):
        deserialize_event(json.dumps(["not", "an", "envelope"]))


class FakeRedis:
    def __init__(self) -> None:
        self.published: list[tuple[str, str]] = []

    async def publish(self, channel: str, raw: str) -> None:
        self.published.append((channel, raw))


@pytest.mark.asyncio
async def test_publisher_writes_envelope_to_channel():
    redis = FakeRedis()
    event = _message_event(uuid.uuid4())

    await RedisChangePublisher(redis, "clinic.changes").publish(event)

    channel, raw = redis.published[0]
    event_type, data = deserialize_event(raw)
    assert channel == "clinic.changes"
    assert event_type == ROW_CHANGED_EVENT
    assert RowChanged.from_payload(data).type == ChangeType.INSERT
