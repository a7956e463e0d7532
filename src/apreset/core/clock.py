"""Countdown clock — projects a device-reported countdown forward locally."""

from __future__ import annotations

import asyncio
import logging
from enum import Enum
from typing import Awaitable, Callable

logger = logging.getLogger(__name__)

TickCallback = Callable[[int], None]
SleepFunc = Callable[[float], Awaitable[None]]

_TICK_SECONDS = 1


class ClockState(Enum):
    """Possible states of the clock."""

    IDLE = "idle"
    RUNNING = "running"
    EXPIRED = "expired"
    CANCELLED = "cancelled"


class CountdownClock:
    """Decrements a whole-second countdown once per elapsed second.

    Ticks run in a single asyncio task on the caller's loop.  The *sleep*
    coroutine function is injectable so the clock can be driven by virtual
    time instead of the wall clock.
    """

    def __init__(self, sleep: SleepFunc = asyncio.sleep) -> None:
        self._sleep = sleep
        self._state: ClockState = ClockState.IDLE
        self._remaining: int = 0
        self._task: asyncio.Task | None = None
        self._generation: int = 0

    # -- public interface ----------------------------------------------------

    @property
    def state(self) -> ClockState:
        return self._state

    @property
    def remaining(self) -> int:
        return self._remaining

    def start(self, initial_seconds: int, on_tick: TickCallback) -> None:
        """Count down from *initial_seconds*, calling *on_tick* after each second.

        Any run already in progress is cancelled first.  Starting at 0 expires
        immediately without ticking.
        """
        if isinstance(initial_seconds, bool) or not isinstance(initial_seconds, int):
            raise TypeError(
                f"initial_seconds must be an integer, got {type(initial_seconds).__name__}"
            )
        if initial_seconds < 0:
            raise ValueError(f"initial_seconds must be >= 0, got {initial_seconds}")

        self.cancel()
        self._generation += 1
        self._remaining = initial_seconds
        if initial_seconds == 0:
            self._state = ClockState.EXPIRED
            return

        self._state = ClockState.RUNNING
        loop = asyncio.get_running_loop()
        self._task = loop.create_task(self._run(self._generation, on_tick))

    def cancel(self) -> None:
        """Stop ticking.  Safe to call repeatedly or after the clock expired."""
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None
        if self._state == ClockState.RUNNING:
            self._state = ClockState.CANCELLED

    # -- private helpers -----------------------------------------------------

    async def _run(self, generation: int, on_tick: TickCallback) -> None:
        while self._remaining > 0:
            await self._sleep(_TICK_SECONDS)
            # A superseded run must not touch the current one.
            if generation != self._generation or self._state != ClockState.RUNNING:
                return
            self._remaining -= 1
            if self._remaining == 0:
                self._state = ClockState.EXPIRED
            try:
                on_tick(self._remaining)
            except Exception:
                logger.exception("Tick callback failed at %d seconds", self._remaining)
