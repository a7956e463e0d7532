"""Device gateway — the two remote calls the controller depends on."""

from __future__ import annotations

import logging
import re

import httpx

from apreset.core.errors import GatewayError, TransportError

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "http://192.168.42.1"
DEFAULT_TIMEOUT = 10.0

TIMER_PATH = "/get_timer"
RESET_PATH = "/reset_dhcp"

_COUNTDOWN_RE = re.compile(r"-?[0-9]+")


class DeviceGateway:
    """Abstract device capability.  Every failure raises :class:`GatewayError`."""

    async def fetch_countdown(self) -> int:
        """Return the device's countdown in whole seconds (never negative)."""
        raise NotImplementedError

    async def trigger_reset(self) -> None:
        """Ask the device to reset its network configuration."""
        raise NotImplementedError


def parse_countdown(body: str) -> int:
    """Parse a decimal countdown body, clamping negative values to 0."""
    text = body.strip(" \t\r\n")
    if not _COUNTDOWN_RE.fullmatch(text):
        raise GatewayError(f"Invalid countdown value: {text!r}")
    return max(int(text), 0)


class HttpGateway(DeviceGateway):
    """Talks to the device's captive-portal web server over HTTP.

    No retries: a failed call surfaces immediately as a :class:`TransportError`
    whose cause is the response status text or the transport failure.
    """

    def __init__(
        self,
        base_url: str = DEFAULT_BASE_URL,
        timeout: float = DEFAULT_TIMEOUT,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._owns_client = client is None
        self._client = client if client is not None else httpx.AsyncClient(base_url=base_url, timeout=timeout)

    async def __aenter__(self) -> HttpGateway:
        return self

    async def __aexit__(self, *exc_info: object) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_countdown(self) -> int:
        response = await self._request("GET", TIMER_PATH)
        return parse_countdown(response.text)

    async def trigger_reset(self) -> None:
        await self._request("POST", RESET_PATH, json={})

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            response = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as exc:
            cause = str(exc) or type(exc).__name__
            logger.warning("%s %s failed: %s", method, path, cause)
            raise TransportError(cause) from exc
        if response.status_code != 200:
            logger.warning("%s %s -> %d %s", method, path, response.status_code, response.reason_phrase)
            raise TransportError(response.reason_phrase or f"HTTP {response.status_code}")
        return response
