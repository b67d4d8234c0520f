"""Participant registry and per-user event delivery.

Each participant buffers outbound events until a long-poll request asks for
them, or resolves the single outstanding long-poll waiter as soon as an event
arrives. A push channel (e.g. a WebSocket) can be attached alongside; the
registry only tracks its presence.

Everything here is meant to be driven from one asyncio event loop; deadline
timers are ``loop.call_later`` handles.
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Iterator, Optional, Protocol, Sequence

from ..exceptions import ConflictingWaiterError

logger = logging.getLogger(__name__)

EventsCallback = Callable[[list[Any]], None]


class PushChannel(Protocol):
    def close(self) -> Any: ...


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


Scheduler = Callable[[float, Callable[[], None]], TimerHandle]


class DeliveryState(str, Enum):
    IDLE = "idle"
    BUFFERING = "buffering"
    WAITING = "waiting"


class WaiterPolicy(str, Enum):
    """What to do when a long-poll arrives while another is still pending."""

    REPLACE = "replace"  # resolve the old waiter with [] and install the new one
    REJECT = "reject"  # raise ConflictingWaiterError


def _loop_scheduler(delay: float, callback: Callable[[], None]) -> TimerHandle:
    return asyncio.get_running_loop().call_later(delay, callback)


@dataclass
class _Waiter:
    timer: TimerHandle
    callback: EventsCallback


class Participant:
    """Server-side record for one chat user."""

    def __init__(
        self,
        nick: str,
        *,
        timeout: float,
        scheduler: Optional[Scheduler] = None,
        policy: WaiterPolicy = WaiterPolicy.REPLACE,
    ) -> None:
        self._nick = nick
        self.timeout = timeout
        self.policy = policy
        self._schedule = scheduler or _loop_scheduler
        self._events: list[Any] = []
        self._waiter: Optional[_Waiter] = None
        self.channel: Optional[PushChannel] = None

    def __repr__(self) -> str:
        return f"Participant(nick={self._nick!r}, state={self.state.value})"

    @property
    def nick(self) -> str:
        return self._nick

    @property
    def is_connected(self) -> bool:
        return self.channel is not None

    @property
    def is_waiting(self) -> bool:
        return self._waiter is not None

    @property
    def pending_events(self) -> list[Any]:
        return list(self._events)

    @property
    def state(self) -> DeliveryState:
        if self._waiter is not None:
            return DeliveryState.WAITING
        if self._events:
            return DeliveryState.BUFFERING
        return DeliveryState.IDLE

    def attach(self, channel: PushChannel) -> Participant:
        """Attach a push channel, dropping (not closing) any previous one."""
        self.channel = channel
        return self

    def detach(self) -> Participant:
        """Close and forget the attached push channel, if any."""
        if self.channel is not None:
            channel = self.channel
            self.channel = None
            channel.close()
        return self

    def emit(self, event: Any) -> Participant:
        """Hand *event* to the pending waiter, or buffer it."""
        waiter = self._waiter
        if waiter is not None:
            waiter.timer.cancel()
            self._waiter = None
            logger.debug("Resolving waiter for %s with one event", self._nick, extra={"data": {"nick": self._nick}})
            waiter.callback([event])
        else:
            self._events.append(event)
            logger.debug(
                "Buffered event for %s",
                self._nick,
                extra={"data": {"nick": self._nick, "pending": len(self._events)}},
            )
        return self

    def wait_for_events(self, callback: EventsCallback) -> None:
        """Deliver buffered events now, or register *callback* as the waiter.

        The callback is invoked exactly once: with the buffered events, with
        ``[event]`` when an event is emitted, or with ``[]`` when the timeout
        elapses (or when a newer poll supersedes this one under
        ``WaiterPolicy.REPLACE``).
        """
        if self._events:
            events = self._events
            self._events = []
            callback(events)
            return

        previous = self._waiter
        if previous is not None:
            if self.policy is WaiterPolicy.REJECT:
                raise ConflictingWaiterError(f"{self._nick} already has a pending long-poll")
            previous.timer.cancel()

        waiter: Optional[_Waiter] = None

        def _expire() -> None:
            if self._waiter is not waiter:
                return
            self._waiter = None
            logger.debug("Long-poll for %s timed out", self._nick)
            callback([])

        waiter = _Waiter(timer=self._schedule(self.timeout, _expire), callback=callback)
        self._waiter = waiter

        # The superseded callback runs last; if it polls again it meets the
        # new waiter and goes through the policy like any other poll.
        if previous is not None:
            logger.warning("Replacing pending long-poll for %s", self._nick, extra={"data": {"nick": self._nick}})
            previous.callback([])

    def drain(self) -> list[Any]:
        """Take every buffered event without touching the waiter."""
        events = self._events
        self._events = []
        return events

    def cancel_waiter(self, callback: Optional[EventsCallback] = None) -> bool:
        """Drop the pending waiter without invoking its callback.

        With *callback*, only a waiter registered with that callback is dropped.
        """
        waiter = self._waiter
        if waiter is None:
            return False
        if callback is not None and waiter.callback is not callback:
            return False
        waiter.timer.cancel()
        self._waiter = None
        return True

    def release_waiter(self) -> bool:
        """Resolve the pending waiter with no events right away."""
        waiter = self._waiter
        if waiter is None:
            return False
        waiter.timer.cancel()
        self._waiter = None
        waiter.callback([])
        return True

    def serialize(self) -> dict[str, str]:
        return {"nick": self._nick}


class ParticipantRegistry:
    """Mapping of nick to :class:`Participant`.

    ``timeout``, ``scheduler`` and ``policy`` are handed to every participant
    the registry creates.
    """

    def __init__(
        self,
        *,
        timeout: float,
        scheduler: Optional[Scheduler] = None,
        policy: WaiterPolicy = WaiterPolicy.REPLACE,
    ) -> None:
        self.timeout = timeout
        self.policy = policy
        self._scheduler = scheduler
        self._members: dict[str, Participant] = {}

    def __len__(self) -> int:
        return len(self._members)

    def __iter__(self) -> Iterator[Participant]:
        return iter(list(self._members.values()))

    def __contains__(self, nick: object) -> bool:
        return nick in self._members

    def has_nick(self, nick: str) -> bool:
        return nick in self._members

    def add(self, nick: str) -> ParticipantRegistry:
        """Register a fresh participant, replacing any existing one."""
        replaced = self._members.get(nick)
        self._members[nick] = Participant(
            nick,
            timeout=self.timeout,
            scheduler=self._scheduler,
            policy=self.policy,
        )
        if replaced is not None:
            logger.warning("Replacing existing participant %s", nick, extra={"data": {"nick": nick}})
            # The replaced participant's pending long-poll completes empty.
            replaced.release_waiter()
        return self

    def get(self, nick: str) -> Optional[Participant]:
        return self._members.get(nick)

    def all(self) -> list[Participant]:
        return list(self._members.values())

    def remove(self, nick: str) -> ParticipantRegistry:
        participant = self._members.pop(nick, None)
        if participant is not None:
            participant.cancel_waiter()
        return self

    def for_each(self, callback: Callable[[Participant], Any]) -> None:
        for participant in self.all():
            callback(participant)

    def present(self) -> list[Participant]:
        """Participants currently reachable through a push channel."""
        return [participant for participant in self._members.values() if participant.is_connected]

    def serialize(self, participants: Optional[Sequence[Participant]] = None) -> list[dict[str, str]]:
        if participants is None:
            participants = self.all()
        return [participant.serialize() for participant in participants]


__all__ = [
    "DeliveryState",
    "EventsCallback",
    "Participant",
    "ParticipantRegistry",
    "PushChannel",
    "Scheduler",
    "TimerHandle",
    "WaiterPolicy",
]
