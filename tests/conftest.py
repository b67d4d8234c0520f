from __future__ import annotations

from typing import Callable

import pytest


class FakeTimer:
    def __init__(self, delay: float, callback: Callable[[], None]) -> None:
        self.delay = delay
        self.callback = callback
        self.cancelled = False
        self.fired = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """Stands in for ``loop.call_later``; timers fire only when told to."""

    def __init__(self) -> None:
        self.timers: list[FakeTimer] = []

    def __call__(self, delay: float, callback: Callable[[], None]) -> FakeTimer:
        timer = FakeTimer(delay, callback)
        self.timers.append(timer)
        return timer

    @property
    def active(self) -> list[FakeTimer]:
        return [timer for timer in self.timers if not timer.cancelled and not timer.fired]

    def fire_all(self, *, include_cancelled: bool = False) -> None:
        for timer in list(self.timers):
            if timer.fired or (timer.cancelled and not include_cancelled):
                continue
            timer.fired = True
            timer.callback()


@pytest.fixture()
def scheduler() -> FakeScheduler:
    return FakeScheduler()


class Recorder:
    def __init__(self) -> None:
        self.calls: list[list] = []

    def __call__(self, events: list) -> None:
        self.calls.append(list(events))


@pytest.fixture()
def recorder_factory() -> Callable[[], Recorder]:
    return Recorder
