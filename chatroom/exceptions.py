from __future__ import annotations

from uuid import uuid4


def new_trace_id() -> str:
    return uuid4().hex


class TrackedError(Exception):
    def __init__(self, message: str, *, error_type: str, trace_id: str | None = None) -> None:
        self.error_type = error_type
        self.trace_id = trace_id or new_trace_id()
        super().__init__(message)

    def with_trace(self) -> str:
        return f"{self.args[0]} (trace_id={self.trace_id})"


class ConflictingWaiterError(TrackedError):
    def __init__(self, message: str, *, trace_id: str | None = None) -> None:
        super().__init__(message, error_type="conflicting_waiter", trace_id=trace_id)


class UnknownParticipantError(TrackedError):
    def __init__(self, nick: str, *, trace_id: str | None = None) -> None:
        self.nick = nick
        super().__init__(f"Unknown participant: {nick}", error_type="not_found", trace_id=trace_id)


class NickTakenError(TrackedError):
    def __init__(self, nick: str, *, trace_id: str | None = None) -> None:
        self.nick = nick
        super().__init__(f"Nick already in use: {nick}", error_type="nick_taken", trace_id=trace_id)


__all__ = [
    "new_trace_id",
    "TrackedError",
    "ConflictingWaiterError",
    "UnknownParticipantError",
    "NickTakenError",
]
