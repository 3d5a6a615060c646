"""Pytest configuration and fixtures for Eight Sleep Thermostat tests."""

import asyncio
from datetime import UTC, datetime, timedelta
from unittest.mock import AsyncMock, Mock

import pytest


def create_session_payload(expires_in: timedelta = timedelta(days=30)) -> dict:
    """Create a session payload in the shape returned by the login endpoint.

    Args:
        expires_in: Time from now until the session expires.

    Returns:
        A dictionary with userId, token and expirationDate.

    """
    expiration = datetime.now(UTC) + expires_in
    return {
        "userId": "user-left",
        "token": "session-token",
        "expirationDate": expiration.isoformat().replace("+00:00", "Z"),
    }


class FakeClock:
    """Virtual monotonic clock with a matching sleep coroutine."""

    def __init__(self) -> None:
        self.now = 0.0
        self._sleepers: list[tuple[float, asyncio.Future]] = []

    def __call__(self) -> float:
        return self.now

    async def sleep(self, delay: float) -> None:
        future = asyncio.get_running_loop().create_future()
        self._sleepers.append((self.now + delay, future))
        await future

    async def advance(self, seconds: float) -> None:
        """Move time forward and let woken tasks run."""
        self.now += seconds
        due = [entry for entry in self._sleepers if entry[0] <= self.now]
        for entry in due:
            self._sleepers.remove(entry)
            if not entry[1].done():
                entry[1].set_result(None)
        for _ in range(20):
            await asyncio.sleep(0)


@pytest.fixture
def fake_clock() -> FakeClock:
    """Fixture providing a virtual clock."""
    return FakeClock()


@pytest.fixture
def sample_session_payload() -> dict:
    """Fixture providing a session valid for 30 days."""
    return create_session_payload()


@pytest.fixture
def sample_login_response(sample_session_payload: dict) -> dict:
    """Fixture providing a login API response."""
    return {"session": sample_session_payload}


@pytest.fixture
def sample_user_response() -> dict:
    """Fixture providing a ``/users/me`` API response."""
    return {
        "user": {
            "userId": "user-left",
            "currentDevice": {"id": "device-1", "side": "left"},
        },
    }


@pytest.fixture
def sample_user_settings_response() -> dict:
    """Fixture providing a ``/users/{id}/temperature`` API response."""
    return {"currentLevel": 20, "currentState": {"type": "smart:bedtime"}}


@pytest.fixture
def sample_device_response() -> dict:
    """Fixture providing a ``/devices/{id}`` API response."""
    return {
        "result": {
            "leftHeatingLevel": -10,
            "rightHeatingLevel": 30,
            "leftTargetHeatingLevel": 20,
            "rightTargetHeatingLevel": 35,
            "leftNowHeating": True,
            "rightNowHeating": False,
            "priming": False,
            "needsPriming": False,
            "hasWater": True,
            "leftUserId": "user-left",
            "rightUserId": "user-right",
        },
    }


@pytest.fixture
def mock_cache() -> Mock:
    """Create a mock disk cache that starts empty."""
    cache = Mock()
    cache.async_read = AsyncMock(return_value=None)
    cache.async_write = AsyncMock()
    cache.async_erase = AsyncMock()
    return cache
