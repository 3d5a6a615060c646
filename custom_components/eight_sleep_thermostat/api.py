"""API client for the Eight Sleep cloud.

This module provides functions to interact with the Eight Sleep client API,
including login, user profile lookup and reading or updating bed settings.
Every authenticated call receives an explicit RequestContext instead of
relying on shared client headers.
"""

import logging
from typing import Any

import httpx
from homeassistant.core import HomeAssistant
from homeassistant.helpers.httpx_client import create_async_httpx_client
from httpx_retries import Retry, RetryTransport

from .const import API_HOST, BASE_URL, REQUEST_RETRIES, REQUEST_TIMEOUT, USER_AGENT
from .models import (
    DeviceMode,
    DeviceProfile,
    RequestContext,
    Session,
    SharedDeviceSettings,
    UserSettings,
)

_LOGGER = logging.getLogger(__name__)

# HTTP status codes
HTTP_BAD_REQUEST = 400
HTTP_UNAUTHORIZED = 401
HTTP_FORBIDDEN = 403


class EightSleepApiClientError(Exception):
    """Base exception for Eight Sleep API client errors."""


class EightSleepApiAuthError(EightSleepApiClientError):
    """Exception raised for authentication errors."""


class EightSleepConfigError(Exception):
    """Exception raised when the integration is missing credentials."""


class EightSleepProfileError(Exception):
    """Exception raised when the device profile cannot be resolved."""


def create_headers(context: RequestContext | None = None) -> dict[str, str]:
    """Create HTTP headers for Eight Sleep API requests.

    Args:
        context: Optional session credentials to include in headers.

    Returns:
        Dictionary containing HTTP headers for API requests.

    """
    headers = {
        "Host": API_HOST,
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
    }
    if context is not None:
        headers["user-id"] = context.user_id
        headers["session-token"] = context.token
    return headers


def is_http_error(status: int) -> bool:
    """Check if HTTP status code indicates an error."""
    return status >= HTTP_BAD_REQUEST


def is_auth_error(status: int) -> bool:
    """Check if HTTP status code indicates an authentication error."""
    return status in (HTTP_UNAUTHORIZED, HTTP_FORBIDDEN)


def validate_response(response: httpx.Response) -> dict[str, Any]:
    """Validate HTTP response and return parsed JSON data.

    Args:
        response: HTTP response object to validate.

    Returns:
        Parsed JSON data from response.

    Raises:
        EightSleepApiAuthError: If the session or credentials were rejected.
        EightSleepApiClientError: If the request failed or the body is not JSON.

    """
    if is_http_error(response.status_code):
        if is_auth_error(response.status_code):
            auth_error = f"Authentication error: {response.status_code}"
            raise EightSleepApiAuthError(auth_error)

        client_error = f"Request failed: {response.status_code}"
        raise EightSleepApiClientError(client_error)

    try:
        data = response.json()
    except ValueError as err:
        error_msg = f"Invalid JSON in response: {err}"
        raise EightSleepApiClientError(error_msg) from err

    if not isinstance(data, dict):
        error_msg = f"Unexpected response payload: {data!r}"
        raise EightSleepApiClientError(error_msg)

    return data


def extract_session(data: dict[str, Any]) -> Session:
    """Extract the session from a login response.

    Raises:
        EightSleepApiClientError: If the session is missing or incomplete.

    """
    session = Session.from_dict(data.get("session") or {})
    if session is None:
        error_msg = f"Unexpected session in login response: {data.get('session')!r}"
        raise EightSleepApiClientError(error_msg)
    return session


def extract_profile(data: dict[str, Any]) -> DeviceProfile:
    """Extract the current device from a user response.

    Raises:
        EightSleepApiClientError: If the user has no current device or side.

    """
    profile = DeviceProfile.from_user(data.get("user"))
    if profile is None:
        error_msg = "User profile has no current device or side"
        raise EightSleepApiClientError(error_msg)
    return profile


def extract_device_settings(data: dict[str, Any]) -> SharedDeviceSettings:
    """Extract shared device settings from a device response."""
    result = data.get("result")
    if not isinstance(result, dict):
        error_msg = "Device response has no result"
        raise EightSleepApiClientError(error_msg)
    return SharedDeviceSettings.from_dict(result)


def user_settings_url(user_id: str) -> str:
    return f"{BASE_URL}/users/{user_id}/temperature"


def device_url(device_id: str) -> str:
    return f"{BASE_URL}/devices/{device_id}"


def create_session_client(hass: HomeAssistant) -> httpx.AsyncClient:
    """Create HTTP client with retry logic for the Eight Sleep API.

    Args:
        hass: Home Assistant instance.

    Returns:
        Configured httpx AsyncClient with retry transport.

    """
    base_client = create_async_httpx_client(hass, timeout=REQUEST_TIMEOUT)
    retry = Retry(total=REQUEST_RETRIES, backoff_factor=0.5)
    base_client._transport = RetryTransport(  # noqa: SLF001
        transport=base_client._transport,  # noqa: SLF001
        retry=retry,
    )
    return base_client


async def async_login(
    session: httpx.AsyncClient,
    email: str,
    password: str,
) -> Session:
    """Log in with email and password.

    Args:
        session: HTTP client session.
        email: Account email address.
        password: Account password.

    Returns:
        The new Session.

    Raises:
        EightSleepApiAuthError: If the credentials are rejected.
        EightSleepApiClientError: If the request fails.

    """
    url = f"{BASE_URL}/login"
    payload = {"email": email, "password": password}

    _LOGGER.debug("Logging in to Eight Sleep API")
    response = await session.post(url, headers=create_headers(), json=payload)
    data = validate_response(response)
    result = extract_session(data)
    _LOGGER.debug(
        "Logged in as user %s, session expires at %s",
        result.user_id,
        result.expiration_date.isoformat(),
    )
    return result


async def async_get_user_profile(
    session: httpx.AsyncClient,
    context: RequestContext,
    user_id: str = "me",
) -> DeviceProfile:
    """Fetch a user's current device and side."""
    url = f"{BASE_URL}/users/{user_id}"

    _LOGGER.debug("Fetching user profile for %s", user_id)
    response = await session.get(url, headers=create_headers(context))
    data = validate_response(response)
    return extract_profile(data)


async def async_get_user_settings(
    session: httpx.AsyncClient,
    context: RequestContext,
    user_id: str,
) -> UserSettings:
    """Fetch the target level and on/off state of a user."""
    response = await session.get(
        user_settings_url(user_id), headers=create_headers(context)
    )
    data = validate_response(response)
    return UserSettings.from_dict(data)


async def async_put_user_settings(
    session: httpx.AsyncClient,
    context: RequestContext,
    user_id: str,
    body: dict[str, Any],
) -> UserSettings:
    """Update a user's settings and return the acknowledged settings.

    The API answers a PUT with the full settings object, so callers can use
    the response instead of issuing another GET.
    """
    _LOGGER.debug("Updating settings of user %s: %s", user_id, body)
    response = await session.put(
        user_settings_url(user_id),
        headers=create_headers(context),
        json=body,
    )
    data = validate_response(response)
    return UserSettings.from_dict(data)


async def async_set_user_level(
    session: httpx.AsyncClient,
    context: RequestContext,
    user_id: str,
    level: int,
) -> UserSettings:
    """Set the target level of a user."""
    return await async_put_user_settings(
        session, context, user_id, {"currentLevel": level}
    )


async def async_set_user_state(
    session: httpx.AsyncClient,
    context: RequestContext,
    user_id: str,
    mode: DeviceMode,
) -> UserSettings:
    """Switch a user's side on or off."""
    return await async_put_user_settings(
        session, context, user_id, {"currentState": {"type": str(mode)}}
    )


async def async_get_device_settings(
    session: httpx.AsyncClient,
    context: RequestContext,
    device_id: str,
) -> SharedDeviceSettings:
    """Fetch the settings shared by both sides of a device."""
    response = await session.get(device_url(device_id), headers=create_headers(context))
    data = validate_response(response)
    return extract_device_settings(data)
