"""Shared fixtures: virtual time, clock and mock-config isolation."""

from __future__ import annotations

import pytest

from apreset.core.clock import CountdownClock
from apreset.mock.server import MOCK_CONFIG
from tests.helpers import FakeTime


@pytest.fixture()
def fake_time() -> FakeTime:
    return FakeTime()


@pytest.fixture()
def clock(fake_time: FakeTime) -> CountdownClock:
    return CountdownClock(sleep=fake_time.sleep)


@pytest.fixture(autouse=True)
def _restore_mock_config():
    """Keep the process-wide mock configuration isolated between tests."""
    MOCK_CONFIG.reset()
    yield
    MOCK_CONFIG.reset()
