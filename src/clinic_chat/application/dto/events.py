from __future__ import annotations

from dataclasses import dataclass

from clinic_chat.domain.value_objects.enums import NoticeLevel


@dataclass(frozen=True, slots=True)
class Notice:
    """User-visible notification (toast) raised at an operation boundary."""

    level: NoticeLevel
    title: str
    description: str = ""
