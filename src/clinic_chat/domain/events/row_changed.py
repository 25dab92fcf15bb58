from __future__ import annotations

from dataclasses import dataclass
from typing import Any

from clinic_chat.domain.value_objects.enums import ChangeType


@dataclass(frozen=True, slots=True)
class RowChanged:
    """Row-level change notification emitted by the record store."""

    table: str
    type: ChangeType
    new: dict[str, Any] | None = None
    old: dict[str, Any] | None = None

    @property
    def row(self) -> dict[str, Any]:
        """The row the event is about: ``new`` for inserts/updates, ``old`` for deletes."""
        return self.new or self.old or {}

    def to_payload(self) -> dict[str, Any]:
        return {
            "table": self.table,
            "type": self.type.value,
            "new": self.new,
            "old": self.old,
        }

    @classmethod
    def from_payload(cls, data: dict[str, Any]) -> RowChanged:
        return cls(
            table=data["table"],
            type=ChangeType(data["type"]),
            new=data.get("new"),
            old=data.get("old"),
        )
