"""Polled views of the remote Eight Sleep resources.

UserSettingsClient covers one user's target level and on/off state.
SharedDeviceClient covers the device settings shared by both sides of a
bed, fetched once for both sides. Each owns one AdaptivePollingCache.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, TypeVar

from . import api
from .models import DeviceMode, SharedDeviceSettings, Side, UserSettings
from .polling import AdaptivePollingCache

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    import httpx

    from .models import RequestContext
    from .session import SessionManager

_LOGGER = logging.getLogger(__name__)

_T = TypeVar("_T")


async def async_authenticated_call(
    session_manager: SessionManager,
    request: Callable[[RequestContext], Awaitable[_T]],
) -> _T:
    """Run an API request with the current session's credentials.

    A rejected session is dropped so the next request logs in again.
    """
    context = await session_manager.async_request_context()
    try:
        return await request(context)
    except api.EightSleepApiAuthError:
        _LOGGER.warning("Eight Sleep rejected the session, it will be renewed")
        await session_manager.async_invalidate()
        raise


class UserSettingsClient:
    """Target level and on/off state of one user."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        session_manager: SessionManager,
        user_id: str,
        **cache_options: Any,
    ) -> None:
        self._session = session
        self._session_manager = session_manager
        self.user_id = user_id
        self.cache: AdaptivePollingCache[UserSettings] = AdaptivePollingCache(
            f"user {user_id} settings", self._async_fetch_settings, **cache_options
        )

    def peek(self) -> UserSettings | None:
        return self.cache.peek()

    async def _async_fetch_settings(self) -> UserSettings:
        settings = await async_authenticated_call(
            self._session_manager,
            lambda context: api.async_get_user_settings(
                self._session, context, self.user_id
            ),
        )
        _LOGGER.debug("Fetched settings for user %s: %s", self.user_id, settings)
        return settings

    async def async_get_target_level(self) -> int | None:
        """Return the level the side is set to, not the measured level."""
        settings = await self.cache.async_get_active()
        return settings.current_level if settings else None

    async def async_get_is_on(self) -> bool:
        settings = await self.cache.async_get_active()
        return settings.is_on if settings else False

    async def async_set_target_level(self, level: int) -> int:
        """Set the target level and return the level the server acknowledged.

        The acknowledged settings replace the cached value, so a later read
        in this process reflects the server's answer without another GET.
        """
        settings = await async_authenticated_call(
            self._session_manager,
            lambda context: api.async_set_user_level(
                self._session, context, self.user_id, level
            ),
        )
        self.cache.set_value(settings)

        if settings.current_level != level:
            _LOGGER.error(
                "Level mismatch for user %s: requested %d, but Eight Sleep returned %d",
                self.user_id,
                level,
                settings.current_level,
            )
        else:
            _LOGGER.debug("Updated level of user %s to %d", self.user_id, level)
        return settings.current_level

    async def async_set_mode(self, mode: DeviceMode) -> bool:
        """Switch the side on or off and return whether it is now on."""
        settings = await async_authenticated_call(
            self._session_manager,
            lambda context: api.async_set_user_state(
                self._session, context, self.user_id, mode
            ),
        )
        self.cache.set_value(settings)

        if settings.is_on != (mode == DeviceMode.ON):
            _LOGGER.error(
                "State mismatch for user %s: requested %s, but Eight Sleep returned %s",
                self.user_id,
                mode,
                settings.state_type,
            )
        return settings.is_on

    async def async_turn_on(self) -> bool:
        return await self.async_set_mode(DeviceMode.ON)

    async def async_turn_off(self) -> bool:
        return not await self.async_set_mode(DeviceMode.OFF)


class SharedDeviceClient:
    """Device settings shared by both sides of a bed."""

    def __init__(
        self,
        session: httpx.AsyncClient,
        session_manager: SessionManager,
        device_id: str,
        **cache_options: Any,
    ) -> None:
        self._session = session
        self._session_manager = session_manager
        self.device_id = device_id
        self.cache: AdaptivePollingCache[SharedDeviceSettings] = AdaptivePollingCache(
            f"device {device_id} settings", self._async_fetch_settings, **cache_options
        )

    def peek(self) -> SharedDeviceSettings | None:
        return self.cache.peek()

    async def _async_fetch_settings(self) -> SharedDeviceSettings:
        settings = await async_authenticated_call(
            self._session_manager,
            lambda context: api.async_get_device_settings(
                self._session, context, self.device_id
            ),
        )
        _LOGGER.debug("Fetched device settings for %s", self.device_id)
        return settings

    async def async_get_settings(self) -> SharedDeviceSettings | None:
        return await self.cache.async_get_active()

    async def async_get_current_level(self, side: Side) -> int | None:
        """Return the measured level of a side."""
        settings = await self.cache.async_get_active()
        return settings.level_for_side(side) if settings else None
