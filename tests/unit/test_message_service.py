from __future__ import annotations

import pytest

from clinic_chat.application.exceptions import ForbiddenError, StoreError, ValidationError
from clinic_chat.services import message_service
from tests.conftest import ATTENDANT_ID, OTHER_ATTENDANT_ID, make_conversation, make_message


@pytest.mark.asyncio
async def test_send_message_persists_and_touches(store, patient):
    conv = store.add_conversation(make_conversation())

    result = await message_service.send_message(conv.id, "  Hello  ", patient, store)

    assert result.message.content == "Hello"
    assert result.message.sender_id == patient.user_id
    assert result.conversation.updated_at > conv.updated_at
    assert result.claimed is False
    assert store.calls[-1] == "conversations.touch"


@pytest.mark.asyncio
async def test_blank_message_is_rejected(store, patient):
    conv = store.add_conversation(make_conversation())

    with pytest.raises(ValidationError):
        await message_service.send_message(conv.id, "   ", patient, store)
    assert store.message_rows == []


@pytest.mark.asyncio
async def test_attendant_reply_claims_unassigned(store, attendant):
    conv = store.add_conversation(make_conversation())

    result = await message_service.send_message(conv.id, "On it", attendant, store)

    assert result.claimed is True
    assert result.conversation.attendant_id == ATTENDANT_ID
    assert store.calls.index("conversations.assign") < store.calls.index("messages.create")


@pytest.mark.asyncio
async def test_attendant_reply_to_own_conversation_does_not_claim(store, attendant):
    conv = store.add_conversation(make_conversation(attendant_id=ATTENDANT_ID))

    result = await message_service.send_message(conv.id, "Hi", attendant, store)

    assert result.claimed is False
    assert "conversations.assign" not in store.calls


@pytest.mark.asyncio
async def test_claim_persists_when_insert_fails(store, attendant):
    conv = store.add_conversation(make_conversation())
    store.fail_on = {"messages.create"}

    with pytest.raises(StoreError):
        await message_service.send_message(conv.id, "On it", attendant, store)

    stored = await store.conversations.get_by_id(conv.id)
    assert stored.attendant_id == ATTENDANT_ID


@pytest.mark.asyncio
async def test_touch_failure_does_not_fail_send(store, patient):
    conv = store.add_conversation(make_conversation())
    store.fail_on = {"conversations.touch"}

    result = await message_service.send_message(conv.id, "Hello", patient, store)

    assert result.message in store.message_rows
    assert result.conversation == conv


@pytest.mark.asyncio
async def test_cannot_send_outside_scope(store, attendant):
    conv = store.add_conversation(make_conversation(attendant_id=OTHER_ATTENDANT_ID))

    with pytest.raises(ForbiddenError):
        await message_service.send_message(conv.id, "Hi", attendant, store)


@pytest.mark.asyncio
async def test_list_messages_in_order(store, patient):
    conv = store.add_conversation(make_conversation())
    for text in ("a", "b"):
        await message_service.send_message(conv.id, text, patient, store)
    store.add_message(make_message(conversation_id=make_conversation().id, content="other"))

    messages = await message_service.list_messages(conv.id, patient, store)

    assert [m.content for m in messages] == ["a", "b"]
