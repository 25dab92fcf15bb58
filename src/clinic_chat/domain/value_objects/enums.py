from __future__ import annotations

from enum import StrEnum


class ConversationStatus(StrEnum):
    ACTIVE = "active"
    PENDING = "pending"
    RESOLVED = "resolved"


class ConversationPriority(StrEnum):
    LOW = "low"
    NORMAL = "normal"
    MEDIUM = "medium"
    HIGH = "high"
    URGENT = "urgent"


class MessageType(StrEnum):
    TEXT = "text"


class Role(StrEnum):
    PATIENT = "patient"
    ATTENDANT = "attendant"
    MANAGER = "manager"


class Action(StrEnum):
    ASSIGN_TO_SELF = "assign_to_self"
    REASSIGN = "reassign"
    RESOLVE = "resolve"
    SET_STATUS = "set_status"
    VIEW_METRICS = "view_metrics"


class ChangeType(StrEnum):
    INSERT = "INSERT"
    UPDATE = "UPDATE"
    DELETE = "DELETE"


class DeliveryState(StrEnum):
    PENDING = "pending"
    CONFIRMED = "confirmed"


class NoticeLevel(StrEnum):
    INFO = "info"
    ERROR = "error"


class Table(StrEnum):
    CONVERSATIONS = "conversations"
    MESSAGES = "messages"
    PROFILES = "profiles"
