from __future__ import annotations

from clinic_chat.application.ports.bus import ChangeFeed, ChangePublisher
from clinic_chat.infrastructure.db.repositories.conversation import (
    ConversationReaderRepo,
    ConversationWriterRepo,
)
from clinic_chat.infrastructure.db.repositories.message import (
    MessageReaderRepo,
    MessageWriterRepo,
)
from clinic_chat.infrastructure.db.repositories.profile import (
    ProfileReaderRepo,
    ProfileWriterRepo,
)
from clinic_chat.infrastructure.db.session import SessionFactory


class SqlAlchemyRecordStore:
    """Postgres-backed RecordStore.

    Writes publish a RowChanged after commit; ``changes`` is where those
    notifications come back in (via the Redis subscriber).
    """

    def __init__(
        self,
        sessions: SessionFactory,
        publisher: ChangePublisher,
        changes: ChangeFeed,
    ) -> None:
        self.conversations = ConversationReaderRepo(sessions)
        self.conversations_w = ConversationWriterRepo(sessions, publisher)
        self.messages = MessageReaderRepo(sessions)
        self.messages_w = MessageWriterRepo(sessions, publisher)
        self.profiles = ProfileReaderRepo(sessions)
        self.profiles_w = ProfileWriterRepo(sessions)
        self.changes = changes
