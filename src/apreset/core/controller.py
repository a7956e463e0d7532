"""Reset controller — reconciles the device countdown with the reset action.

The controller owns the countdown value and the reset attempt.  Everything an
operator sees is :class:`DisplayState`, recomputed by :func:`derive_display`
after each event (fetch resolved, tick fired, reset resolved).  Each event is
applied synchronously on the event loop, so no tick can interleave with a
reset transition.
"""

from __future__ import annotations

import asyncio
import logging
import time
from dataclasses import dataclass
from enum import Enum
from typing import Callable

from apreset.core.clock import CountdownClock
from apreset.core.errors import (
    FetchError,
    GatewayError,
    InvalidStateError,
    ResetError,
)
from apreset.core.gateway import DeviceGateway

logger = logging.getLogger(__name__)


class Phase(Enum):
    """The single active display phase."""

    LOADING = "loading"
    COUNTING = "counting"
    EXPIRED = "expired"
    RESETTING = "resetting"
    SUCCESS = "success"
    ERROR = "error"


class ResetAttempt(Enum):
    """Lifecycle of the reset action.  FAILED may go back to IN_FLIGHT."""

    NOT_STARTED = "not_started"
    IN_FLIGHT = "in_flight"
    SUCCEEDED = "succeeded"
    FAILED = "failed"


@dataclass(frozen=True)
class DisplayState:
    """What a presentation layer renders.

    ``seconds_left`` is set for COUNTING and for a reset ERROR (the countdown
    keeps running underneath).  ``retryable`` tells whether the reset button
    should be offered again.
    """

    phase: Phase
    seconds_left: int | None = None
    message: str | None = None
    retryable: bool = False


Listener = Callable[[DisplayState], None]


def derive_display(
    countdown: int | None,
    attempt: ResetAttempt,
    fetch_error: FetchError | None = None,
    reset_error: ResetError | None = None,
) -> DisplayState:
    """Project controller state onto exactly one display phase.

    A reset in flight or succeeded overrides everything; a failed countdown
    read overrides a failed reset; ``countdown is None`` means not fetched yet.
    """
    if attempt == ResetAttempt.SUCCEEDED:
        return DisplayState(Phase.SUCCESS)
    if attempt == ResetAttempt.IN_FLIGHT:
        return DisplayState(Phase.RESETTING)
    if fetch_error is not None:
        return DisplayState(
            Phase.ERROR, message=fetch_error.cause, retryable=fetch_error.retryable
        )
    if reset_error is not None:
        return DisplayState(
            Phase.ERROR,
            seconds_left=countdown,
            message=reset_error.cause,
            retryable=reset_error.retryable,
        )
    if countdown is None:
        return DisplayState(Phase.LOADING)
    if countdown > 0:
        return DisplayState(Phase.COUNTING, seconds_left=countdown)
    return DisplayState(Phase.EXPIRED)


class ResetController:
    """Drives the countdown clock from the gateway and executes the reset."""

    def __init__(
        self,
        gateway: DeviceGateway,
        clock: CountdownClock | None = None,
        monotonic: Callable[[], float] = time.monotonic,
    ) -> None:
        self._gateway = gateway
        self._clock = clock if clock is not None else CountdownClock()
        self._monotonic = monotonic
        self._started = False
        self._countdown: int | None = None
        self._frozen_at: float | None = None
        self._attempt = ResetAttempt.NOT_STARTED
        self._fetch_error: FetchError | None = None
        self._reset_error: ResetError | None = None
        self._listeners: list[Listener] = []
        self._display = self._derive()

    # -- observation ---------------------------------------------------------

    @property
    def display(self) -> DisplayState:
        return self._display

    @property
    def countdown(self) -> int | None:
        return self._countdown

    @property
    def attempt(self) -> ResetAttempt:
        return self._attempt

    def subscribe(self, listener: Listener) -> Callable[[], None]:
        """Call *listener* with every new display state.  Returns an unsubscribe."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    # -- events --------------------------------------------------------------

    async def start(self) -> None:
        """Read the countdown once and start projecting it.

        A failed read is reported through the display and never retried.
        """
        if self._started:
            raise InvalidStateError("start() may only be called once per controller")
        self._started = True

        try:
            value = await self._gateway.fetch_countdown()
        except GatewayError as exc:
            logger.warning("Countdown fetch failed: %s", exc.cause)
            self._fetch_error = FetchError(exc.cause)
            self._publish()
            return

        self._countdown = max(value, 0)
        logger.debug("Countdown fetched: %d", self._countdown)
        if self._attempt in (ResetAttempt.IN_FLIGHT, ResetAttempt.SUCCEEDED):
            # Frozen until the reset fails; a succeeded reset never resumes it.
            self._frozen_at = self._monotonic()
        elif self._countdown > 0:
            self._clock.start(self._countdown, self._on_tick)
        self._publish()

    async def reset(self) -> bool:
        """Trigger the device reset.  Returns True only if it succeeded.

        Does nothing while an attempt is in flight or after one succeeded.
        """
        if self._attempt in (ResetAttempt.IN_FLIGHT, ResetAttempt.SUCCEEDED):
            logger.debug("Ignoring reset request while %s", self._attempt.value)
            return False

        self._attempt = ResetAttempt.IN_FLIGHT
        self._reset_error = None
        self._freeze_countdown()
        self._publish()

        try:
            await self._gateway.trigger_reset()
        except GatewayError as exc:
            logger.warning("Reset failed: %s", exc.cause)
            self._attempt = ResetAttempt.FAILED
            self._reset_error = ResetError(exc.cause)
            self._resume_countdown()
            self._publish()
            return False
        except BaseException as exc:
            # Cancelled or broken call: leave the controller retryable, then propagate.
            if isinstance(exc, asyncio.CancelledError):
                cause = "cancelled"
            else:
                cause = str(exc) or type(exc).__name__
            logger.warning("Reset interrupted: %s", cause)
            self._attempt = ResetAttempt.FAILED
            self._reset_error = ResetError(cause)
            self._resume_countdown()
            self._publish()
            raise

        logger.info("Reset succeeded")
        self._attempt = ResetAttempt.SUCCEEDED
        self._clock.cancel()
        self._publish()
        return True

    def close(self) -> None:
        self._clock.cancel()

    # -- private helpers -----------------------------------------------------

    def _on_tick(self, remaining: int) -> None:
        if self._attempt in (ResetAttempt.IN_FLIGHT, ResetAttempt.SUCCEEDED):
            return
        self._countdown = remaining
        self._publish()

    def _freeze_countdown(self) -> None:
        self._clock.cancel()
        if self._countdown is not None:
            self._frozen_at = self._monotonic()

    def _resume_countdown(self) -> None:
        if self._countdown is None or self._frozen_at is None:
            return
        elapsed = int(self._monotonic() - self._frozen_at)
        self._frozen_at = None
        self._countdown = max(self._countdown - elapsed, 0)
        if self._countdown > 0:
            self._clock.start(self._countdown, self._on_tick)

    def _derive(self) -> DisplayState:
        return derive_display(self._countdown, self._attempt, self._fetch_error, self._reset_error)

    def _publish(self) -> None:
        display = self._derive()
        if display == self._display:
            return
        logger.debug("Display %s -> %s", self._display.phase.value, display.phase.value)
        self._display = display
        for listener in list(self._listeners):
            try:
                listener(display)
            except Exception:
                logger.exception("Display listener failed")
