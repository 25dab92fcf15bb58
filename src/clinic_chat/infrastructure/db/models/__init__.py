"""Import all models so Alembic can discover them via Base.metadata."""
from clinic_chat.infrastructure.db.models.conversation import ConversationModel
from clinic_chat.infrastructure.db.models.message import MessageModel
from clinic_chat.infrastructure.db.models.profile import ProfileModel

__all__ = [
    "ConversationModel",
    "MessageModel",
    "ProfileModel",
]
