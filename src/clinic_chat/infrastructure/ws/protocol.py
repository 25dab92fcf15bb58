"""WebSocket message envelope models."""
from __future__ import annotations

from typing import Any

from pydantic import BaseModel


class WsInbound(BaseModel):
    """Client → Server."""

    type: str  # ping | open | close | message.send | assign | status
    data: dict[str, Any] = {}


class WsOutbound(BaseModel):
    """Server → Client."""

    type: str  # conversations.snapshot | chat.snapshot | notice | error | pong
    data: dict[str, Any] = {}
