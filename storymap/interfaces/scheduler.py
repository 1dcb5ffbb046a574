"""Timer and clock contracts for the map controllers.

The controllers run on one logical thread and only ever need "call this
later, maybe cancel it".  ``asyncio.AbstractEventLoop`` satisfies
:class:`Scheduler` as-is (``loop.call_later`` returns a cancellable
``TimerHandle``), and tests drive time by hand with a fake.
"""

from __future__ import annotations

from collections.abc import Callable
from typing import Any, Protocol


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Scheduler(Protocol):
    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> TimerHandle: ...


Clock = Callable[[], float]
