"""Tests for the Eight Sleep API client."""

import json
from typing import Any
from unittest.mock import Mock, patch

import httpx
import pytest
from pytest_httpx import HTTPXMock

from custom_components.eight_sleep_thermostat import api
from custom_components.eight_sleep_thermostat.api import (
    EightSleepApiAuthError,
    EightSleepApiClientError,
)
from custom_components.eight_sleep_thermostat.const import (
    BASE_URL,
    REQUEST_TIMEOUT,
    USER_AGENT,
)
from custom_components.eight_sleep_thermostat.models import (
    DeviceMode,
    DeviceProfile,
    RequestContext,
    Session,
    Side,
)

CONTEXT = RequestContext(user_id="user-left", token="session-token")


class TestEightSleepApiErrors:
    """Tests for the API exception hierarchy."""

    def test_client_error_is_exception(self) -> None:
        """Test that EightSleepApiClientError is an Exception."""
        error_message = "Test error"
        with pytest.raises(EightSleepApiClientError, match=error_message):
            raise EightSleepApiClientError(error_message)

    def test_auth_error_is_client_error(self) -> None:
        """Test that EightSleepApiAuthError is an EightSleepApiClientError."""
        error = EightSleepApiAuthError("Auth error")
        assert isinstance(error, EightSleepApiClientError)

    def test_config_and_profile_errors_are_not_client_errors(self) -> None:
        """Test that setup errors are separate from request errors."""
        assert not isinstance(api.EightSleepConfigError(), EightSleepApiClientError)
        assert not isinstance(api.EightSleepProfileError(), EightSleepApiClientError)


class TestCreateHeaders:
    """Tests for create_headers function."""

    def test_create_headers_returns_base_headers(self) -> None:
        """Test that create_headers returns base headers without credentials."""
        headers = api.create_headers()
        assert headers["Host"] == "client-api.8slp.net"
        assert headers["Content-Type"] == "application/json"
        assert headers["User-Agent"] == USER_AGENT
        assert "session-token" not in headers
        assert "user-id" not in headers

    def test_create_headers_includes_context(self) -> None:
        """Test that create_headers adds the session credentials."""
        headers = api.create_headers(CONTEXT)
        assert headers["user-id"] == "user-left"
        assert headers["session-token"] == "session-token"


class TestStatusHelpers:
    """Tests for is_http_error and is_auth_error functions."""

    def test_is_http_error(self) -> None:
        """Test that 4xx and 5xx codes are errors."""
        assert api.is_http_error(200) is False
        assert api.is_http_error(299) is False
        assert api.is_http_error(400) is True
        assert api.is_http_error(500) is True

    def test_is_auth_error(self) -> None:
        """Test that 401 and 403 are authentication errors."""
        assert api.is_auth_error(401) is True
        assert api.is_auth_error(403) is True
        assert api.is_auth_error(400) is False
        assert api.is_auth_error(500) is False


class TestValidateResponse:
    """Tests for validate_response function."""

    def test_returns_json_on_success(self) -> None:
        """Test that a successful response returns its JSON object."""
        response = httpx.Response(200, json={"result": {}})
        assert api.validate_response(response) == {"result": {}}

    @pytest.mark.parametrize("status_code", [401, 403])
    def test_raises_auth_error(self, status_code: int) -> None:
        """Test that rejected credentials raise EightSleepApiAuthError."""
        response = httpx.Response(status_code)
        with pytest.raises(EightSleepApiAuthError, match=str(status_code)):
            api.validate_response(response)

    def test_raises_client_error_on_server_error(self) -> None:
        """Test that other failures raise EightSleepApiClientError."""
        response = httpx.Response(500)
        with pytest.raises(EightSleepApiClientError, match="Request failed: 500"):
            api.validate_response(response)

    def test_raises_client_error_on_invalid_json(self) -> None:
        """Test that a body that is not JSON raises EightSleepApiClientError."""
        response = httpx.Response(200, content=b"<html>")
        with pytest.raises(EightSleepApiClientError, match="Invalid JSON"):
            api.validate_response(response)

    def test_raises_client_error_on_non_object(self) -> None:
        """Test that a JSON body that is not an object is rejected."""
        response = httpx.Response(200, content=json.dumps([1, 2]).encode())
        with pytest.raises(EightSleepApiClientError, match="Unexpected response"):
            api.validate_response(response)


class TestExtractors:
    """Tests for the payload extraction helpers."""

    def test_extract_session(self, sample_login_response: dict[str, Any]) -> None:
        """Test that the session is read from a login response."""
        session = api.extract_session(sample_login_response)
        assert isinstance(session, Session)
        assert session.token == "session-token"

    def test_extract_session_raises_when_missing(self) -> None:
        """Test that a login response without a session is rejected."""
        with pytest.raises(EightSleepApiClientError, match="session"):
            api.extract_session({})

    def test_extract_profile(self, sample_user_response: dict[str, Any]) -> None:
        """Test that the current device is read from a user response."""
        assert api.extract_profile(sample_user_response) == DeviceProfile(
            "device-1", Side.LEFT
        )

    def test_extract_profile_raises_without_device(self) -> None:
        """Test that a user without a current device is rejected."""
        with pytest.raises(EightSleepApiClientError, match="no current device"):
            api.extract_profile({"user": {"userId": "user-left"}})

    def test_extract_device_settings_raises_without_result(self) -> None:
        """Test that a device response without a result is rejected."""
        with pytest.raises(EightSleepApiClientError, match="no result"):
            api.extract_device_settings({"device": {}})


class TestCreateSessionClient:
    """Tests for create_session_client function."""

    def test_wraps_transport_with_retries(self) -> None:
        """Test that the client gets a timeout and a retry transport."""
        mock_client = Mock()
        mock_client._transport = Mock()
        with (
            patch(
                "custom_components.eight_sleep_thermostat.api.create_async_httpx_client",
                return_value=mock_client,
            ) as mock_create,
            patch(
                "custom_components.eight_sleep_thermostat.api.RetryTransport"
            ) as mock_transport,
        ):
            hass = Mock()
            result = api.create_session_client(hass)

        mock_create.assert_called_once_with(hass, timeout=REQUEST_TIMEOUT)
        mock_transport.assert_called_once()
        assert result is mock_client
        assert result._transport is mock_transport.return_value


class TestAsyncLogin:
    """Tests for async_login function."""

    @pytest.mark.asyncio
    async def test_returns_session_on_success(
        self,
        httpx_mock: HTTPXMock,
        sample_login_response: dict[str, Any],
    ) -> None:
        """Test that async_login posts the credentials and returns a session."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/login",
            method="POST",
            json=sample_login_response,
        )
        async with httpx.AsyncClient() as session:
            result = await api.async_login(session, "test@example.com", "password123")

        assert result.user_id == "user-left"
        request = httpx_mock.get_request()
        assert json.loads(request.content) == {
            "email": "test@example.com",
            "password": "password123",
        }
        assert "session-token" not in request.headers

    @pytest.mark.asyncio
    async def test_raises_auth_error_on_http_401(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that async_login raises auth error on HTTP 401."""
        httpx_mock.add_response(url=f"{BASE_URL}/login", method="POST", status_code=401)
        async with httpx.AsyncClient() as session:
            with pytest.raises(EightSleepApiAuthError):
                await api.async_login(session, "test@example.com", "wrong")

    @pytest.mark.asyncio
    async def test_raises_client_error_on_missing_session(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that a login response without a session is an error."""
        httpx_mock.add_response(url=f"{BASE_URL}/login", method="POST", json={})
        async with httpx.AsyncClient() as session:
            with pytest.raises(EightSleepApiClientError):
                await api.async_login(session, "test@example.com", "password123")


class TestAsyncGetUserProfile:
    """Tests for async_get_user_profile function."""

    @pytest.mark.asyncio
    async def test_returns_profile_and_sends_context(
        self,
        httpx_mock: HTTPXMock,
        sample_user_response: dict[str, Any],
    ) -> None:
        """Test that the profile is fetched with the session headers."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/users/me",
            method="GET",
            json=sample_user_response,
        )
        async with httpx.AsyncClient() as session:
            profile = await api.async_get_user_profile(session, CONTEXT)

        assert profile == DeviceProfile("device-1", Side.LEFT)
        request = httpx_mock.get_request()
        assert request.headers["session-token"] == "session-token"
        assert request.headers["user-id"] == "user-left"


class TestUserSettingsCalls:
    """Tests for the user temperature endpoints."""

    @pytest.mark.asyncio
    async def test_async_get_user_settings(
        self,
        httpx_mock: HTTPXMock,
        sample_user_settings_response: dict[str, Any],
    ) -> None:
        """Test that user settings are fetched and parsed."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/users/user-left/temperature",
            method="GET",
            json=sample_user_settings_response,
        )
        async with httpx.AsyncClient() as session:
            settings = await api.async_get_user_settings(session, CONTEXT, "user-left")

        assert settings.current_level == 20
        assert settings.is_on is True

    @pytest.mark.asyncio
    async def test_async_set_user_level_puts_level(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that the level is sent and the acknowledged settings returned."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/users/user-right/temperature",
            method="PUT",
            json={"currentLevel": 48, "currentState": {"type": "smart"}},
        )
        async with httpx.AsyncClient() as session:
            settings = await api.async_set_user_level(
                session, CONTEXT, "user-right", 50
            )

        assert settings.current_level == 48
        request = httpx_mock.get_request()
        assert json.loads(request.content) == {"currentLevel": 50}

    @pytest.mark.asyncio
    async def test_async_set_user_state_puts_state(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that the on/off state is sent as the state type."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/users/user-left/temperature",
            method="PUT",
            json={"currentLevel": 0, "currentState": {"type": "off"}},
        )
        async with httpx.AsyncClient() as session:
            settings = await api.async_set_user_state(
                session, CONTEXT, "user-left", DeviceMode.OFF
            )

        assert settings.is_on is False
        request = httpx_mock.get_request()
        assert json.loads(request.content) == {"currentState": {"type": "off"}}

    @pytest.mark.asyncio
    async def test_put_raises_auth_error_on_http_401(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that an expired session raises EightSleepApiAuthError."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/users/user-left/temperature",
            method="PUT",
            status_code=401,
        )
        async with httpx.AsyncClient() as session:
            with pytest.raises(EightSleepApiAuthError):
                await api.async_set_user_level(session, CONTEXT, "user-left", 10)


class TestAsyncGetDeviceSettings:
    """Tests for async_get_device_settings function."""

    @pytest.mark.asyncio
    async def test_returns_device_settings(
        self,
        httpx_mock: HTTPXMock,
        sample_device_response: dict[str, Any],
    ) -> None:
        """Test that shared device settings are fetched and parsed."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/devices/device-1",
            method="GET",
            json=sample_device_response,
        )
        async with httpx.AsyncClient() as session:
            settings = await api.async_get_device_settings(session, CONTEXT, "device-1")

        assert settings.left_level == -10
        assert settings.right_user_id == "user-right"

    @pytest.mark.asyncio
    async def test_raises_client_error_on_server_error(
        self,
        httpx_mock: HTTPXMock,
    ) -> None:
        """Test that a server error raises EightSleepApiClientError."""
        httpx_mock.add_response(
            url=f"{BASE_URL}/devices/device-1",
            method="GET",
            status_code=503,
        )
        async with httpx.AsyncClient() as session:
            with pytest.raises(EightSleepApiClientError, match="503"):
                await api.async_get_device_settings(session, CONTEXT, "device-1")
