from __future__ import annotations

from uuid import UUID

from pydantic import BaseModel


class AttendantStatsResponse(BaseModel):
    id: UUID
    name: str
    conversations: int
    resolved_today: int

    model_config = {"from_attributes": True}


class MetricsResponse(BaseModel):
    total_conversations: int
    active_conversations: int
    pending_conversations: int
    resolved_today: int
    attendants: list[AttendantStatsResponse]

    model_config = {"from_attributes": True}
