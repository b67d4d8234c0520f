"""Chat semantics on top of the participant registry."""

from __future__ import annotations

import asyncio
import contextlib
import logging
from typing import Any, Iterable, Optional

from ..events.models import BaseEvent, JoinEvent, LeaveEvent, MessageEvent
from ..exceptions import NickTakenError, UnknownParticipantError
from .participants import Participant, ParticipantRegistry

logger = logging.getLogger(__name__)


class ChatService:
    def __init__(self, registry: ParticipantRegistry, *, max_nick_length: int = 32) -> None:
        self.registry = registry
        self.max_nick_length = max_nick_length

    def validate_nick(self, nick: str) -> str:
        nick = (nick or "").strip()
        if not nick:
            raise ValueError("nick must not be empty")
        if len(nick) > self.max_nick_length:
            raise ValueError(f"nick must be at most {self.max_nick_length} characters")
        return nick

    def require(self, nick: str) -> Participant:
        participant = self.registry.get(nick)
        if participant is None:
            raise UnknownParticipantError(nick)
        return participant

    def join(self, nick: str) -> Participant:
        nick = self.validate_nick(nick)
        if self.registry.has_nick(nick):
            raise NickTakenError(nick)
        participant = self.registry.add(nick).get(nick)
        logger.info("%s joined", nick, extra={"data": {"nick": nick, "participants": len(self.registry)}})
        self.broadcast(JoinEvent(nick=nick), exclude=(nick,))
        return participant

    def leave(self, nick: str, *, reason: Optional[str] = None) -> None:
        participant = self.require(nick)
        participant.detach()
        # Complete a long-poll still held open for the leaving participant.
        participant.release_waiter()
        self.registry.remove(nick)
        logger.info("%s left", nick, extra={"data": {"nick": nick, "participants": len(self.registry)}})
        self.broadcast(LeaveEvent(nick=nick, reason=reason))

    def post(self, nick: str, text: str) -> MessageEvent:
        self.require(nick)
        event = MessageEvent(nick=nick, text=text)
        self.broadcast(event)
        return event

    def broadcast(self, event: BaseEvent, *, exclude: Iterable[str] = ()) -> int:
        skipped = set(exclude)
        delivered = 0
        for participant in self.registry.all():
            if participant.nick in skipped:
                continue
            self.deliver(participant, event)
            delivered += 1
        return delivered

    def deliver(self, participant: Participant, event: Any) -> None:
        """Push over the attached channel when there is one, otherwise emit."""
        push = getattr(participant.channel, "push", None)
        if push is None:
            participant.emit(event)
            return
        try:
            push(event)
        except Exception:
            logger.exception("Push to %s failed; falling back to long-poll", participant.nick)
            with contextlib.suppress(Exception):
                participant.detach()
            participant.emit(event)

    async def poll(self, nick: str) -> list[Any]:
        """Wait for the next batch of events for *nick*."""
        participant = self.require(nick)
        future: asyncio.Future[list[Any]] = asyncio.get_running_loop().create_future()

        def _resolve(events: list[Any]) -> None:
            if not future.done():
                future.set_result(events)

        participant.wait_for_events(_resolve)
        try:
            return await future
        except asyncio.CancelledError:
            participant.cancel_waiter(_resolve)
            raise


__all__ = ["ChatService"]
