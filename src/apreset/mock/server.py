"""Mock device server for developing and testing without the access point.

Serves the same two endpoints as the device plus a ``/__mock`` endpoint that
injects faults (failing calls, latency, a custom countdown seed).  The
configuration lives in the process-wide :data:`MOCK_CONFIG`; it starts at the
defaults and only changes through ``/__mock`` (or the CLI seeding it before
the server starts).
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import asdict, dataclass, fields

from fastapi import FastAPI, Query
from fastapi.responses import JSONResponse, PlainTextResponse, Response

from apreset.core.gateway import RESET_PATH, TIMER_PATH

logger = logging.getLogger(__name__)

CONFIG_PATH = "/__mock"


@dataclass
class MockConfig:
    """Fault-injection knobs read on every simulated request."""

    fail_reset: bool = False
    fail_timer: bool = False
    timer_seed: int = 300
    delay_ms: int = 0

    def update(self, **changes) -> MockConfig:
        """Apply a partial update; fields not given are left unchanged."""
        known = {f.name for f in fields(self)}
        unknown = set(changes) - known
        if unknown:
            raise TypeError(f"Unknown mock settings: {', '.join(sorted(unknown))}")
        for name in ("timer_seed", "delay_ms"):
            value = changes.get(name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0, got {value}")
        for name, value in changes.items():
            if value is not None:
                setattr(self, name, value)
        return self

    def reset(self) -> None:
        """Restore the process-start defaults."""
        for f in fields(self):
            setattr(self, f.name, f.default)

    def to_payload(self) -> dict:
        data = asdict(self)
        return {
            "failReset": data["fail_reset"],
            "failTimer": data["fail_timer"],
            "timerValue": data["timer_seed"],
            "delayMs": data["delay_ms"],
        }


MOCK_CONFIG = MockConfig()


def _toggle(value: str | None) -> bool | None:
    """Only the literal "true" switches a fault on; any other given value switches it off."""
    return None if value is None else value == "true"


def create_app(config: MockConfig | None = None) -> FastAPI:
    """Build the mock app bound to *config* (the process-wide one by default)."""
    settings = config if config is not None else MOCK_CONFIG
    app = FastAPI(title="apreset mock device")

    async def _simulate_latency() -> None:
        if settings.delay_ms > 0:
            await asyncio.sleep(settings.delay_ms / 1000)

    @app.get(TIMER_PATH)
    async def get_timer() -> PlainTextResponse:
        await _simulate_latency()
        if settings.fail_timer:
            logger.info("[mock] GET %s -> 500 (fail mode)", TIMER_PATH)
            return PlainTextResponse("Internal Server Error", status_code=500)
        logger.info("[mock] GET %s -> %d", TIMER_PATH, settings.timer_seed)
        return PlainTextResponse(str(settings.timer_seed))

    @app.post(RESET_PATH)
    async def reset_dhcp() -> Response:
        await _simulate_latency()
        if settings.fail_reset:
            logger.info("[mock] POST %s -> 500 (fail mode)", RESET_PATH)
            return PlainTextResponse("Internal Server Error", status_code=500)
        logger.info("[mock] POST %s -> success", RESET_PATH)
        return JSONResponse({"success": True})

    @app.api_route(RESET_PATH, methods=["GET", "PUT", "PATCH", "DELETE"])
    async def reset_dhcp_wrong_method() -> PlainTextResponse:
        return PlainTextResponse("Method not allowed", status_code=405)

    @app.get(CONFIG_PATH)
    async def configure(
        failReset: str | None = None,
        failTimer: str | None = None,
        timer: int | None = Query(None, ge=0),
        delay: int | None = Query(None, ge=0),
    ) -> JSONResponse:
        settings.update(
            fail_reset=_toggle(failReset),
            fail_timer=_toggle(failTimer),
            timer_seed=timer,
            delay_ms=delay,
        )
        payload = settings.to_payload()
        logger.info("[mock] settings: %s", payload)
        return JSONResponse(payload)

    return app


app = create_app()
