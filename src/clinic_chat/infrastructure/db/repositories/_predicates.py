from __future__ import annotations

from sqlalchemy import Select, or_

from clinic_chat.application.policies.permissions import ConversationPredicate
from clinic_chat.infrastructure.db.models.conversation import ConversationModel


def apply_predicate(stmt: Select, predicate: ConversationPredicate) -> Select:
    """Translate a role predicate into WHERE clauses on the conversations table."""
    if predicate.patient_id is not None:
        stmt = stmt.where(ConversationModel.patient_id == predicate.patient_id)
    if predicate.attendant_id is not None:
        if predicate.include_unassigned:
            stmt = stmt.where(
                or_(
                    ConversationModel.attendant_id == predicate.attendant_id,
                    ConversationModel.attendant_id.is_(None),
                )
            )
        else:
            stmt = stmt.where(ConversationModel.attendant_id == predicate.attendant_id)
    return stmt
