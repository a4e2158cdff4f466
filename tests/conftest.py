"""Pytest configuration and fixtures shared across all test modules.

Environment defaults are set before any app import so that settings are
built from them instead of a developer's .env file.
"""

import os

os.environ.setdefault("APP_ENV", "testing")
os.environ.setdefault("APP_SERVICE_KEY_REQUIRED", "true")
os.environ.setdefault("APP_SERVICE_KEYS", "test-service-key-123,test-service-key-456")
os.environ.setdefault("LOG_FORMAT", "json")

import pytest  # noqa: E402

from app.core.rate_limit import reset_rate_limiters  # noqa: E402


class FakeClock:
    """Deterministic UNIX-seconds clock for expiry tests."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.current = start

    def __call__(self) -> float:
        return self.current

    def advance(self, seconds: float) -> None:
        self.current += seconds


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture(autouse=True)
def _fresh_rate_limiters():
    reset_rate_limiters()
    yield
    reset_rate_limiters()
