from __future__ import annotations

import json
from dataclasses import asdict, is_dataclass
from datetime import datetime
from typing import Any
from uuid import UUID


class _Encoder(json.JSONEncoder):
    def default(self, o: object) -> Any:
        if isinstance(o, UUID):
            return str(o)
        if isinstance(o, datetime):
            return o.isoformat()
        if is_dataclass(o) and not isinstance(o, type):
            return asdict(o)
        if isinstance(o, (set, frozenset)):
            return sorted(o)
        return super().default(o)


def serialize_event(event_type: str, payload: dict[str, Any]) -> str:
    """Wrap ``payload`` in the bus envelope: ``{"event": ..., "data": ...}``."""
    envelope = {"event": event_type, "data": payload}
    return json.dumps(envelope, cls=_Encoder)


def deserialize_event(raw: str | bytes) -> tuple[str, dict[str, Any]]:
    data = json.loads(raw)
    if not isinstance(data, dict) or "event" not in data:
        raise ValueError("Malformed bus envelope")
    return data["event"], data.get("data") or {}
