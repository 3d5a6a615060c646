from __future__ import annotations

import logging

import httpx
from homeassistant.config_entries import ConfigEntry
from homeassistant.const import CONF_EMAIL, CONF_PASSWORD, Platform
from homeassistant.core import HomeAssistant
from homeassistant.exceptions import ConfigEntryNotReady

from . import api
from .api import create_session_client
from .client import SharedDeviceClient, UserSettingsClient
from .const import DOMAIN, MODEL, STORAGE_PROFILE, STORAGE_SESSION
from .coordinator import EightSleepSessionCoordinator
from .models import AccessoryInfo, DeviceProfile, Side
from .profile import DeviceProfileResolver
from .session import SessionManager
from .storage import DiskCache

_LOGGER = logging.getLogger(__name__)

PLATFORMS = [Platform.CLIMATE]


async def async_resolve_accessories(
    user_id: str,
    profile: DeviceProfile,
    device_client: SharedDeviceClient,
) -> list[AccessoryInfo]:
    """Return the bed sides to expose: one for a solo bed, otherwise both."""
    if profile.side == Side.SOLO:
        return [AccessoryInfo(user_id=user_id, side=Side.SOLO, name=MODEL)]

    accessories = [
        AccessoryInfo(
            user_id=user_id,
            side=profile.side,
            name=f"{MODEL} {profile.side.title()}",
        )
    ]

    other_side = Side.RIGHT if profile.side == Side.LEFT else Side.LEFT
    settings = await device_client.async_get_settings()
    if settings is None:
        error_msg = (
            f"Unable to read settings of device {profile.shared_device_id}, "
            "cannot tell who sleeps on the other side"
        )
        raise ConfigEntryNotReady(error_msg)

    other_user_id = settings.user_id_for_side(other_side)

    if other_user_id and other_user_id != user_id:
        accessories.append(
            AccessoryInfo(
                user_id=other_user_id,
                side=other_side,
                name=f"{MODEL} {other_side.title()}",
            )
        )
    else:
        _LOGGER.warning(
            "No user found for the %s side of device %s, exposing the %s side only",
            other_side,
            profile.shared_device_id,
            profile.side,
        )

    return sorted(accessories, key=lambda accessory: accessory.side)


async def async_setup_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Setting up Eight Sleep integration for entry %s", entry.entry_id)

    session = create_session_client(hass)

    try:
        session_manager = SessionManager(
            session,
            DiskCache(hass, entry.entry_id, STORAGE_SESSION),
            entry.data.get(CONF_EMAIL),
            entry.data.get(CONF_PASSWORD),
        )
    except api.EightSleepConfigError as err:
        _LOGGER.error("Invalid configuration for entry %s: %s", entry.entry_id, err)
        return False

    try:
        active_session = await session_manager.async_obtain_session()
    except api.EightSleepApiAuthError as err:
        _LOGGER.warning(
            "Authentication failed for entry %s: %s", entry.entry_id, str(err)
        )
        return False
    except api.EightSleepApiClientError as err:
        _LOGGER.error("API client error for entry %s: %s", entry.entry_id, str(err))
        return False
    except httpx.ConnectError as err:
        error_msg = f"Connection error for entry {entry.entry_id}: {err}"
        raise ConfigEntryNotReady(error_msg) from err
    except httpx.TimeoutException as err:
        error_msg = f"Timeout error for entry {entry.entry_id}: {err}"
        raise ConfigEntryNotReady(error_msg) from err

    session_coordinator = EightSleepSessionCoordinator(hass, session_manager, entry)
    await session_coordinator.async_refresh()
    # The coordinator only schedules its next run while it has a listener
    entry.async_on_unload(session_coordinator.async_add_listener(lambda: None))

    profile_resolver = DeviceProfileResolver(
        session,
        session_manager,
        DiskCache(hass, entry.entry_id, STORAGE_PROFILE),
    )
    try:
        profile = await profile_resolver.async_resolve_profile()
    except api.EightSleepProfileError as err:
        _LOGGER.error("Unable to resolve device for entry %s: %s", entry.entry_id, err)
        return False

    device_client = SharedDeviceClient(
        session, session_manager, profile.shared_device_id
    )
    try:
        accessories = await async_resolve_accessories(
            active_session.user_id, profile, device_client
        )
    except ConfigEntryNotReady:
        await device_client.cache.async_stop()
        raise
    user_clients = {
        accessory.user_id: UserSettingsClient(
            session, session_manager, accessory.user_id
        )
        for accessory in accessories
    }

    hass.data.setdefault(DOMAIN, {})[entry.entry_id] = {
        "session": session,
        "session_manager": session_manager,
        "session_coordinator": session_coordinator,
        "profile": profile,
        "device_client": device_client,
        "user_clients": user_clients,
        "accessories": accessories,
    }
    _LOGGER.debug(
        "Stored data for entry %s: device %s, %d accessories",
        entry.entry_id,
        profile.shared_device_id,
        len(accessories),
    )

    await hass.config_entries.async_forward_entry_setups(entry, PLATFORMS)
    _LOGGER.info(
        "Successfully set up Eight Sleep integration for entry %s", entry.entry_id
    )
    return True


async def async_unload_entry(hass: HomeAssistant, entry: ConfigEntry) -> bool:
    _LOGGER.info("Unloading Eight Sleep integration for entry %s", entry.entry_id)

    unload_ok = await hass.config_entries.async_unload_platforms(entry, PLATFORMS)
    if not unload_ok:
        _LOGGER.warning("Failed to unload some platforms for entry %s", entry.entry_id)
        return False

    entry_data = hass.data.get(DOMAIN, {}).pop(entry.entry_id, None)
    if entry_data is not None:
        await entry_data["device_client"].cache.async_stop()
        for user_client in entry_data["user_clients"].values():
            await user_client.cache.async_stop()
        _LOGGER.debug("Cleaned up data for entry %s", entry.entry_id)

    return True
