"""Shared test fixtures."""
from __future__ import annotations

import asyncio
import uuid
from datetime import datetime, timedelta, timezone
from uuid import UUID

import pytest

from clinic_chat.application.dto.conversation import NewConversationDTO
from clinic_chat.application.dto.events import Notice
from clinic_chat.application.dto.message import NewMessageDTO
from clinic_chat.application.dto.rows import entity_to_row
from clinic_chat.application.dto.session import Identity, SessionContext
from clinic_chat.application.exceptions import AuthError, StoreError
from clinic_chat.application.policies.permissions import ConversationPredicate
from clinic_chat.application.ports.session import AuthSession
from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.domain.entities.message import Message
from clinic_chat.domain.entities.profile import Profile
from clinic_chat.domain.events.row_changed import RowChanged
from clinic_chat.domain.value_objects.enums import (
    ChangeType,
    ConversationPriority,
    ConversationStatus,
    MessageType,
    Role,
    Table,
)
from clinic_chat.infrastructure.bus.change_feed import ChangeFeedHub

PATIENT_ID = UUID("00000000-0000-0000-0000-0000000000a1")
ATTENDANT_ID = UUID("00000000-0000-0000-0000-0000000000b1")
OTHER_ATTENDANT_ID = UUID("00000000-0000-0000-0000-0000000000b2")
MANAGER_ID = UUID("00000000-0000-0000-0000-0000000000c1")

BASE_TIME = datetime(2024, 5, 6, 9, 0, tzinfo=timezone.utc)


def make_identity(user_id: UUID, role: Role, name: str | None = None) -> Identity:
    return Identity(
        id=user_id,
        email=f"{role.value}@clinic.test",
        name=name or role.value.title(),
        role=role,
    )


@pytest.fixture
def patient() -> SessionContext:
    return SessionContext.for_identity(make_identity(PATIENT_ID, Role.PATIENT, "Maria Silva"))


@pytest.fixture
def attendant() -> SessionContext:
    return SessionContext.for_identity(make_identity(ATTENDANT_ID, Role.ATTENDANT, "João Santos"))


@pytest.fixture
def other_attendant() -> SessionContext:
    return SessionContext.for_identity(make_identity(OTHER_ATTENDANT_ID, Role.ATTENDANT, "Rita Souza"))


@pytest.fixture
def manager() -> SessionContext:
    return SessionContext.for_identity(make_identity(MANAGER_ID, Role.MANAGER, "Ana Costa"))


def make_conversation(
    *,
    conversation_id: UUID | None = None,
    patient_id: UUID = PATIENT_ID,
    attendant_id: UUID | None = None,
    status: str = ConversationStatus.ACTIVE,
    priority: str = ConversationPriority.NORMAL,
    updated_at: datetime = BASE_TIME,
    title: str = "Appointment",
) -> Conversation:
    return Conversation(
        id=conversation_id or uuid.uuid4(),
        title=title,
        patient_id=patient_id,
        attendant_id=attendant_id,
        status=status,
        priority=priority,
        created_at=BASE_TIME,
        updated_at=updated_at,
    )


def make_message(
    *,
    conversation_id: UUID,
    sender_id: UUID = PATIENT_ID,
    content: str = "hello",
    created_at: datetime = BASE_TIME,
    message_id: UUID | None = None,
) -> Message:
    return Message(
        id=message_id or uuid.uuid4(),
        conversation_id=conversation_id,
        sender_id=sender_id,
        content=content,
        message_type=MessageType.TEXT,
        created_at=created_at,
    )


class RecordingNotifier:
    def __init__(self) -> None:
        self.notices: list[Notice] = []

    async def notify(self, notice: Notice) -> None:
        self.notices.append(notice)

    @property
    def titles(self) -> list[str]:
        return [n.title for n in self.notices]


class FakeSessionProvider:
    def __init__(self) -> None:
        self.session: AuthSession | None = None
        self.callbacks = []
        self.fail_get = False

    async def sign_in(self, email, password):
        if password != "123456":
            raise AuthError("Invalid login credentials")
        self.session = AuthSession("token-a", make_identity(ATTENDANT_ID, Role.ATTENDANT))
        return self.session

    async def sign_up(self, email, password, name, role):
        self.session = AuthSession("token-m", make_identity(MANAGER_ID, role, name))
        return self.session

    async def sign_out(self):
        self.session = None

    async def get_session(self):
        if self.fail_get:
            raise AuthError("unreachable")
        return self.session

    def on_session_change(self, callback):
        self.callbacks.append(callback)
        return lambda: self.callbacks.remove(callback)

    async def push(self, session):
        self.session = session
        for cb in list(self.callbacks):
            await cb(session)


class FakeConversationReader:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, conversation_id: UUID) -> Conversation | None:
        await self._store.call("conversations.get_by_id")
        return self._store.conversation_rows.get(conversation_id)

    async def list_visible(
        self,
        predicate: ConversationPredicate,
        *,
        status: str | None = None,
    ) -> list[Conversation]:
        await self._store.call("conversations.list_visible")
        rows = [
            c for c in self._store.conversation_rows.values()
            if predicate.matches(c) and (not status or c.status == status)
        ]
        return sorted(rows, key=lambda c: c.updated_at, reverse=True)

    async def count(
        self,
        *,
        status: str | None = None,
        attendant_id: UUID | None = None,
        updated_since: datetime | None = None,
    ) -> int:
        await self._store.call("conversations.count")
        return sum(
            1 for c in self._store.conversation_rows.values()
            if (not status or c.status == status)
            and (attendant_id is None or c.attendant_id == attendant_id)
            and (updated_since is None or c.updated_at >= updated_since)
        )


class FakeConversationWriter:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def create(self, data: NewConversationDTO) -> Conversation:
        await self._store.call("conversations.create")
        now = self._store.tick()
        conv = Conversation(
            id=uuid.uuid4(),
            title=data.title,
            patient_id=data.patient_id,
            attendant_id=None,
            status=data.status,
            priority=data.priority,
            created_at=now,
            updated_at=now,
        )
        self._store.conversation_rows[conv.id] = conv
        await self._store.emit(RowChanged(Table.CONVERSATIONS, ChangeType.INSERT, new=entity_to_row(conv)))
        return conv

    async def assign(self, conversation_id: UUID, attendant_id: UUID | None) -> Conversation | None:
        return await self._update("conversations.assign", conversation_id, attendant_id=attendant_id)

    async def set_status(self, conversation_id: UUID, status: str) -> Conversation | None:
        return await self._update("conversations.set_status", conversation_id, status=status)

    async def touch(self, conversation_id: UUID) -> Conversation | None:
        return await self._update("conversations.touch", conversation_id)

    async def _update(self, op: str, conversation_id: UUID, **values) -> Conversation | None:
        await self._store.call(op)
        current = self._store.conversation_rows.get(conversation_id)
        if current is None:
            return None
        fields = {**entity_to_row(current), **values, "updated_at": self._store.tick()}
        updated = Conversation(**fields)
        self._store.conversation_rows[conversation_id] = updated
        await self._store.emit(RowChanged(Table.CONVERSATIONS, ChangeType.UPDATE, new=entity_to_row(updated)))
        return updated


class FakeMessageReader:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def list_messages(self, conversation_id: UUID) -> list[Message]:
        await self._store.call("messages.list_messages")
        rows = [m for m in self._store.message_rows if m.conversation_id == conversation_id]
        return sorted(rows, key=lambda m: m.sort_key)

    async def get_latest(self, conversation_id: UUID) -> Message | None:
        await self._store.call("messages.get_latest")
        rows = [m for m in self._store.message_rows if m.conversation_id == conversation_id]
        return max(rows, key=lambda m: m.sort_key, default=None)


class FakeMessageWriter:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def create(self, data: NewMessageDTO) -> Message:
        await self._store.call("messages.create")
        message = Message(
            id=uuid.uuid4(),
            conversation_id=data.conversation_id,
            sender_id=data.sender_id,
            content=data.content,
            message_type=data.message_type,
            created_at=self._store.tick(),
        )
        self._store.message_rows.append(message)
        await self._store.emit(RowChanged(Table.MESSAGES, ChangeType.INSERT, new=entity_to_row(message)))
        return message


class FakeProfileReader:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def get_by_id(self, profile_id: UUID) -> Profile | None:
        await self._store.call("profiles.get_by_id")
        return self._store.profile_rows.get(profile_id)

    async def list_by_role(self, role: str) -> list[Profile]:
        await self._store.call("profiles.list_by_role")
        return sorted(
            (p for p in self._store.profile_rows.values() if p.role == role),
            key=lambda p: p.name,
        )


class FakeProfileWriter:
    def __init__(self, store: FakeStore) -> None:
        self._store = store

    async def upsert(self, profile: Profile) -> Profile:
        await self._store.call("profiles.upsert")
        self._store.profile_rows[profile.id] = profile
        return profile


class FakeStore:
    """In-memory RecordStore.

    Writes emit change events on a real ChangeFeedHub. With
    ``auto_publish`` off the events queue up until ``flush_events``, which
    lets tests interleave feed delivery with local state. Operation names in
    ``fail_on`` raise StoreError.
    """

    def __init__(self) -> None:
        self.conversation_rows: dict[UUID, Conversation] = {}
        self.message_rows: list[Message] = []
        self.profile_rows: dict[UUID, Profile] = {}
        self.changes = ChangeFeedHub()
        self.conversations = FakeConversationReader(self)
        self.conversations_w = FakeConversationWriter(self)
        self.messages = FakeMessageReader(self)
        self.messages_w = FakeMessageWriter(self)
        self.profiles = FakeProfileReader(self)
        self.profiles_w = FakeProfileWriter(self)
        self.auto_publish = True
        self.queued: list[RowChanged] = []
        self.fail_on: set[str] = set()
        self.calls: list[str] = []
        self._now = BASE_TIME + timedelta(hours=1)

    def tick(self) -> datetime:
        self._now += timedelta(seconds=1)
        return self._now

    async def call(self, op: str) -> None:
        self.calls.append(op)
        await asyncio.sleep(0)
        if op in self.fail_on:
            raise StoreError(f"{op} failed")

    async def emit(self, event: RowChanged) -> None:
        if self.auto_publish:
            await self.changes.dispatch(event)
        else:
            self.queued.append(event)

    async def flush_events(self) -> None:
        events, self.queued = self.queued, []
        for event in events:
            await self.changes.dispatch(event)

    def add_conversation(self, conversation: Conversation) -> Conversation:
        self.conversation_rows[conversation.id] = conversation
        return conversation

    def add_message(self, message: Message) -> Message:
        self.message_rows.append(message)
        return message

    def add_profile(self, profile: Profile) -> Profile:
        self.profile_rows[profile.id] = profile
        return profile


@pytest.fixture
def store() -> FakeStore:
    s = FakeStore()
    s.add_profile(Profile(id=PATIENT_ID, name="Maria Silva", email="paciente@clinic.test", role=Role.PATIENT))
    s.add_profile(Profile(id=ATTENDANT_ID, name="João Santos", email="atendente@clinic.test", role=Role.ATTENDANT))
    s.add_profile(Profile(id=OTHER_ATTENDANT_ID, name="Rita Souza", email="rita@clinic.test", role=Role.ATTENDANT))
    s.add_profile(Profile(id=MANAGER_ID, name="Ana Costa", email="gerente@clinic.test", role=Role.MANAGER))
    return s


@pytest.fixture
def notifier() -> RecordingNotifier:
    return RecordingNotifier()
