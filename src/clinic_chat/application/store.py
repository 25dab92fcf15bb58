from __future__ import annotations

from typing import Protocol

from clinic_chat.application.ports.bus import ChangeFeed
from clinic_chat.application.repositories.conversation import (
    ConversationReader,
    ConversationWriter,
)
from clinic_chat.application.repositories.message import MessageReader, MessageWriter
from clinic_chat.application.repositories.profile import ProfileReader, ProfileWriter


class RecordStore(Protocol):
    """Tables plus the change feed.

    Every write is an independent call; there is no transaction spanning
    several writes.
    """

    conversations: ConversationReader
    conversations_w: ConversationWriter
    messages: MessageReader
    messages_w: MessageWriter
    profiles: ProfileReader
    profiles_w: ProfileWriter
    changes: ChangeFeed
