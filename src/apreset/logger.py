"""Logging setup shared by the CLI and the mock server."""

from __future__ import annotations

import logging
import os

_FORMAT = "[%(asctime)s] %(levelname)s %(name)s: %(message)s"


def setup_logging(level: str | None = None) -> None:
    """Install a single stream handler on the root logger.

    The level comes from *level*, else ``APRESET_LOG_LEVEL``, else INFO.
    """
    name = (level or os.environ.get("APRESET_LOG_LEVEL") or "INFO").upper()
    root = logging.getLogger()
    root.setLevel(getattr(logging, name, logging.INFO))
    handler = logging.StreamHandler()
    handler.setFormatter(logging.Formatter(_FORMAT))
    root.handlers = [handler]
