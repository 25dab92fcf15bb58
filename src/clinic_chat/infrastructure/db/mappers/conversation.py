from __future__ import annotations

from clinic_chat.domain.entities.conversation import Conversation
from clinic_chat.infrastructure.db.models.conversation import ConversationModel


def model_to_entity(model: ConversationModel) -> Conversation:
    return Conversation(
        id=model.id,
        title=model.title,
        patient_id=model.patient_id,
        attendant_id=model.attendant_id,
        status=model.status,
        priority=model.priority,
        created_at=model.created_at,
        updated_at=model.updated_at,
    )
