"""CLI entry point for apreset.

Uses Click to expose the ``apreset`` command group: operator commands that
talk to the access point through :class:`HttpGateway`, and ``mock-server``
which serves the fault-injecting mock device.
"""

from __future__ import annotations

import asyncio
import sys

import click
import uvicorn

import apreset
from apreset.core.controller import DisplayState, Phase, ResetController
from apreset.core.errors import GatewayError
from apreset.core.gateway import DEFAULT_BASE_URL, DEFAULT_TIMEOUT, HttpGateway
from apreset.logger import setup_logging
from apreset.mock.server import MOCK_CONFIG, app

_url_option = click.option(
    "--url",
    envvar="APRESET_URL",
    default=DEFAULT_BASE_URL,
    show_default=True,
    help="Base URL of the access point's web server.",
)
_timeout_option = click.option(
    "--timeout",
    envvar="APRESET_TIMEOUT",
    type=float,
    default=DEFAULT_TIMEOUT,
    show_default=True,
    help="Per-request timeout in seconds.",
)


def countdown_notice(seconds: int) -> str:
    return f"This access point will shut down in {seconds} seconds."


def describe(display: DisplayState) -> str:
    """Render *display* as the one-line notice shown to the operator."""
    if display.phase == Phase.LOADING:
        return "Loading..."
    if display.phase == Phase.COUNTING:
        return countdown_notice(display.seconds_left)
    if display.phase == Phase.EXPIRED:
        return "Access point is shutting down now!"
    if display.phase in (Phase.RESETTING, Phase.SUCCESS):
        return "Applying changes..."
    if display.retryable:
        return f"Failed to reset DHCP. {display.message}"
    return str(display.message)


@click.group()
@click.version_option(version=apreset.__version__, prog_name="apreset")
@click.option(
    "--log-level",
    envvar="APRESET_LOG_LEVEL",
    default="INFO",
    show_default=True,
    type=click.Choice(["DEBUG", "INFO", "WARNING", "ERROR"], case_sensitive=False),
)
def cli(log_level: str) -> None:
    """apreset: reset an access point's network settings before it shuts down."""
    setup_logging(log_level)


@cli.command()
@_url_option
@_timeout_option
def status(url: str, timeout: float) -> None:
    """Show how long until the access point shuts down."""

    async def _fetch() -> int:
        async with HttpGateway(url, timeout=timeout) as gateway:
            return await gateway.fetch_countdown()

    try:
        seconds = asyncio.run(_fetch())
    except GatewayError as exc:
        click.echo(exc.cause, err=True)
        sys.exit(1)
    click.echo(countdown_notice(seconds) if seconds > 0 else "Access point is shutting down now!")


@cli.command()
@_url_option
@_timeout_option
def reset(url: str, timeout: float) -> None:
    """Reset the access point's network settings to DHCP."""

    async def _reset() -> None:
        async with HttpGateway(url, timeout=timeout) as gateway:
            await gateway.trigger_reset()

    try:
        asyncio.run(_reset())
    except GatewayError as exc:
        click.echo(f"Failed to reset DHCP. {exc.cause}", err=True)
        sys.exit(1)
    click.echo("Applying changes...")


@cli.command()
@_url_option
@_timeout_option
@click.option("--reset", "do_reset", is_flag=True, help="Trigger the reset once the countdown is loaded.")
def watch(url: str, timeout: float, do_reset: bool) -> None:
    """Follow the countdown until it expires or the reset succeeds."""
    display = asyncio.run(_watch(url, timeout, do_reset))
    sys.exit(0 if display.phase == Phase.SUCCESS else 1)


async def _watch(url: str, timeout: float, do_reset: bool) -> DisplayState:
    async with HttpGateway(url, timeout=timeout) as gateway:
        controller = ResetController(gateway)
        finished = asyncio.Event()

        def _render(display: DisplayState) -> None:
            click.echo(describe(display), err=display.phase == Phase.ERROR)
            if display.phase in (Phase.SUCCESS, Phase.EXPIRED, Phase.ERROR):
                finished.set()

        controller.subscribe(_render)
        try:
            await controller.start()
            if do_reset and controller.display.phase != Phase.ERROR:
                await controller.reset()
            else:
                await finished.wait()
        finally:
            controller.close()
        return controller.display


@cli.command("mock-server")
@click.option("--host", envvar="APRESET_MOCK_HOST", default="127.0.0.1", show_default=True)
@click.option("--port", envvar="APRESET_MOCK_PORT", type=int, default=3000, show_default=True)
@click.option("--fail-reset", is_flag=True, help="Answer /reset_dhcp with 500.")
@click.option("--fail-timer", is_flag=True, help="Answer /get_timer with 500.")
@click.option("--timer", type=click.IntRange(min=0), default=300, show_default=True, help="Countdown seed in seconds.")
@click.option("--delay", type=click.IntRange(min=0), default=0, show_default=True, help="Response delay in milliseconds.")
def mock_server(
    host: str, port: int, fail_reset: bool, fail_timer: bool, timer: int, delay: int
) -> None:
    """Serve the mock device; reconfigure it live through /__mock."""
    MOCK_CONFIG.update(
        fail_reset=fail_reset, fail_timer=fail_timer, timer_seed=timer, delay_ms=delay
    )
    uvicorn.run(app, host=host, port=port, log_level="info")
