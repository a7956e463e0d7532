"""Test doubles: virtual time and a scriptable device gateway."""

from __future__ import annotations

import asyncio

from apreset.core.errors import GatewayError
from apreset.core.gateway import DeviceGateway


async def settle() -> None:
    """Let every ready task run until the loop goes quiet."""
    for _ in range(20):
        await asyncio.sleep(0)


class FakeTime:
    """Virtual clock: ``sleep`` only returns when ``advance`` passes its deadline."""

    def __init__(self) -> None:
        self.now = 0.0
        self._sleepers: list[tuple[float, asyncio.Future]] = []

    def monotonic(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + delay, future))
        await future

    @property
    def sleepers(self) -> int:
        return sum(1 for _, future in self._sleepers if not future.done())

    async def advance(self, seconds: float) -> None:
        await settle()
        target = self.now + seconds
        while True:
            self._sleepers = [s for s in self._sleepers if not s[1].done()]
            due = [s for s in self._sleepers if s[0] <= target]
            if not due:
                break
            entry = min(due, key=lambda s: s[0])
            self._sleepers.remove(entry)
            self.now = entry[0]
            entry[1].set_result(None)
            await settle()
        self.now = target
        await settle()


class FakeGateway(DeviceGateway):
    """Gateway double recording calls.

    ``reset_outcomes`` is consumed one per reset call: ``None`` succeeds, a
    string fails with that cause and an exception instance is raised as is.
    Setting ``fetch_gate`` / ``reset_gate`` holds the call until the event is
    set.
    """

    def __init__(
        self,
        countdown: int = 0,
        fetch_error: str | None = None,
        reset_outcomes: list[str | BaseException | None] | None = None,
    ) -> None:
        self.countdown = countdown
        self.fetch_error = fetch_error
        self.reset_outcomes = list(reset_outcomes or [])
        self.fetch_gate: asyncio.Event | None = None
        self.reset_gate: asyncio.Event | None = None
        self.fetch_calls = 0
        self.reset_calls = 0

    async def fetch_countdown(self) -> int:
        self.fetch_calls += 1
        if self.fetch_gate is not None:
            await self.fetch_gate.wait()
        if self.fetch_error is not None:
            raise GatewayError(self.fetch_error)
        return self.countdown

    async def trigger_reset(self) -> None:
        self.reset_calls += 1
        if self.reset_gate is not None:
            await self.reset_gate.wait()
        outcome = self.reset_outcomes.pop(0) if self.reset_outcomes else None
        if isinstance(outcome, BaseException):
            raise outcome
        if outcome is not None:
            raise GatewayError(outcome)
