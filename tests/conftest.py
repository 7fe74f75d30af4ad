"""Root conftest — shared test configuration."""

import os

import pytest

from entityservice.config import get_settings

# Tests never read a developer's .env or a real API
os.environ.setdefault("ENTITYSERVICE_API_URL", "http://api.test")


class FakeClock:
    """Monotonic clock the tests move by hand (seconds)."""

    def __init__(self, now: float = 0.0):
        self.now = now

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture(autouse=True)
def _fresh_settings():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()
