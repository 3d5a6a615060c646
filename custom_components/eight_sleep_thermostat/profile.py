"""Resolution of the logged-in user's device and bed side."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx

from . import api
from .models import DeviceProfile

if TYPE_CHECKING:
    from .session import SessionManager
    from .storage import DiskCache

_LOGGER = logging.getLogger(__name__)


class DeviceProfileResolver:
    """Resolves the shared device id and side once per process.

    The profile is read from the disk cache when complete, otherwise fetched
    from ``/users/me``. A side change on the vendor's side therefore needs a
    restart (or a cache erase) to be picked up.
    """

    def __init__(
        self,
        session: httpx.AsyncClient,
        session_manager: SessionManager,
        cache: DiskCache,
    ) -> None:
        self._session = session
        self._session_manager = session_manager
        self._cache = cache
        self._profile: DeviceProfile | None = None

    @property
    def profile(self) -> DeviceProfile | None:
        return self._profile

    async def async_resolve_profile(self) -> DeviceProfile:
        """Return the device profile, from cache or the API.

        Raises:
            EightSleepProfileError: If no session can be established or the
                user has no usable device.

        """
        if self._profile is not None:
            return self._profile

        profile = DeviceProfile.from_user(await self._cache.async_read())
        if profile is None:
            await self._cache.async_erase()
            profile = await self._async_fetch_profile()
        else:
            _LOGGER.debug(
                "Using cached profile: device %s, side %s",
                profile.shared_device_id,
                profile.side,
            )

        self._profile = profile
        return profile

    async def _async_fetch_profile(self) -> DeviceProfile:
        try:
            context = await self._session_manager.async_request_context()
            profile = await api.async_get_user_profile(self._session, context)
        except api.EightSleepApiClientError as err:
            error_msg = f"Unable to fetch Eight Sleep device profile: {err}"
            _LOGGER.error(error_msg)
            raise api.EightSleepProfileError(error_msg) from err
        except httpx.HTTPError as err:
            error_msg = f"Connection error while fetching device profile: {err}"
            _LOGGER.error(error_msg)
            raise api.EightSleepProfileError(error_msg) from err

        _LOGGER.info(
            "Resolved Eight Sleep device %s, side %s",
            profile.shared_device_id,
            profile.side,
        )
        await self._cache.async_write(profile.as_user())
        return profile
