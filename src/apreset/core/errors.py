"""Error types shared by the gateway and the controller."""

from dataclasses import dataclass


class InvalidStateError(Exception):
    """Raised when an invalid state transition is attempted."""


class GatewayError(Exception):
    """A device call failed; ``cause`` is the human-readable reason."""

    def __init__(self, cause: str) -> None:
        super().__init__(cause)
        self.cause = cause


class TransportError(GatewayError):
    """Non-200 response or network failure talking to the device."""


# Controller-side records. These are stored as values and rendered to the
# operator; they are never raised.


@dataclass(frozen=True)
class FetchError:
    """The one-shot countdown read failed. Blocks the countdown for the session."""

    cause: str
    retryable = False


@dataclass(frozen=True)
class ResetError:
    """A reset attempt failed. The operator may retry."""

    cause: str
    retryable = True
