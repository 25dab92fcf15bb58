from __future__ import annotations

import uuid

from sqlalchemy import Index, String
from sqlalchemy.dialects.postgresql import UUID
from sqlalchemy.orm import Mapped, mapped_column

from clinic_chat.infrastructure.db.base import Base


class ProfileModel(Base):
    """One row per auth user; ``id`` is the identity provider's user id."""

    __tablename__ = "profiles"

    id: Mapped[uuid.UUID] = mapped_column(UUID(as_uuid=True), primary_key=True)
    name: Mapped[str] = mapped_column(String(200), nullable=False)
    email: Mapped[str] = mapped_column(String(320), nullable=False, unique=True)
    role: Mapped[str] = mapped_column(String(20), nullable=False, default="patient")
    avatar: Mapped[str | None] = mapped_column(String(500), nullable=True)

    __table_args__ = (Index("ix_profiles_role", "role"),)
