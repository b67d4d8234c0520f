from .models import BaseEvent, JoinEvent, LeaveEvent, MessageEvent
from .types import EventType

__all__ = [
    "EventType",
    "BaseEvent",
    "JoinEvent",
    "LeaveEvent",
    "MessageEvent",
]
