"""Coordinator for the Eight Sleep Thermostat integration."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING

import httpx
from homeassistant.helpers.update_coordinator import DataUpdateCoordinator, UpdateFailed

from . import api
from .const import DOMAIN, SESSION_VALIDATION_INTERVAL
from .models import Session

if TYPE_CHECKING:
    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant

    from .session import SessionManager

_LOGGER = logging.getLogger(__name__)


class EightSleepSessionCoordinator(DataUpdateCoordinator[Session]):
    """Coordinator that keeps the Eight Sleep session fresh.

    Runs on a fixed interval and reauthenticates before the session reaches
    its expiry margin, so requests rarely race an expired token.
    """

    def __init__(
        self,
        hass: HomeAssistant,
        session_manager: SessionManager,
        config_entry: ConfigEntry,
    ) -> None:
        """Initialize the coordinator."""
        super().__init__(
            hass,
            _LOGGER,
            config_entry=config_entry,
            name=f"{DOMAIN}_session",
            update_interval=SESSION_VALIDATION_INTERVAL,
        )
        self.session_manager = session_manager

    async def _async_update_data(self) -> Session:
        """Validate the session and log in again if needed."""
        try:
            session = await self.session_manager.async_validate_active_session()
        except api.EightSleepApiAuthError as err:
            error_msg = f"Eight Sleep rejected the configured credentials: {err}"
            _LOGGER.exception("Authentication failed during session validation")
            raise UpdateFailed(error_msg) from err
        except api.EightSleepApiClientError as err:
            error_msg = f"API error: {err}"
            _LOGGER.exception("API error during session validation")
            raise UpdateFailed(error_msg) from err
        except httpx.HTTPError as err:
            error_msg = f"Connection error: {err}"
            _LOGGER.exception("Connection error during session validation")
            raise UpdateFailed(error_msg) from err

        _LOGGER.debug(
            "Session of user %s valid until %s",
            session.user_id,
            session.expiration_date.isoformat(),
        )
        return session
