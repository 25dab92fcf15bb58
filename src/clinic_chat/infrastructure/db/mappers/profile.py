from __future__ import annotations

from clinic_chat.domain.entities.profile import Profile
from clinic_chat.infrastructure.db.models.profile import ProfileModel


def model_to_entity(model: ProfileModel) -> Profile:
    return Profile(
        id=model.id,
        name=model.name,
        email=model.email,
        role=model.role,
        avatar=model.avatar,
    )


def entity_to_values(entity: Profile) -> dict[str, object]:
    return {
        "id": entity.id,
        "name": entity.name,
        "email": entity.email,
        "role": entity.role,
        "avatar": entity.avatar,
    }
