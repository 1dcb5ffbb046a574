"""Cancellable pending-timer handle shared by the map controllers."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

from storymap.interfaces.scheduler import Scheduler, TimerHandle


class PendingTimer:
    """A single cancellable pending callback.

    Scheduling again cancels whatever was pending, so a controller holding
    one ``PendingTimer`` per concern never has two stale timers racing.
    """

    def __init__(self, scheduler: Scheduler) -> None:
        self._scheduler = scheduler
        self._handle: TimerHandle | None = None

    @property
    def pending(self) -> bool:
        return self._handle is not None

    def schedule(self, delay_s: float, callback: Callable[[], Any]) -> None:
        self.cancel()

        def _fire() -> None:
            self._handle = None
            callback()

        self._handle = self._scheduler.call_later(delay_s, _fire)

    def cancel(self) -> None:
        if self._handle is not None:
            self._handle.cancel()
            self._handle = None
