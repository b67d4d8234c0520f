from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from .types import EventType


def _format_timestamp(value: datetime) -> str:
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).isoformat().replace("+00:00", "Z")


class BaseEvent(BaseModel):
    model_config = ConfigDict(extra="allow")
    type: EventType
    timestamp: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    nick: str

    def to_payload(self) -> Dict[str, Any]:
        """JSON-ready dict, timestamps in UTC with a trailing Z."""
        data = self.model_dump(mode="json")
        data["timestamp"] = _format_timestamp(self.timestamp)
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_payload(), ensure_ascii=False)


class MessageEvent(BaseEvent):
    type: EventType = EventType.MESSAGE
    text: str

    @field_validator("text")
    @classmethod
    def validate_text(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("text must not be blank")
        return value


class JoinEvent(BaseEvent):
    type: EventType = EventType.JOIN


class LeaveEvent(BaseEvent):
    type: EventType = EventType.LEAVE
    reason: Optional[str] = None
