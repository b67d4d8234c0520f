from enum import Enum


class EventType(str, Enum):
    MESSAGE = "message"
    JOIN = "join"
    LEAVE = "leave"
