"""Disk cache for small JSON blobs.

Blobs live under a dedicated subdirectory of the Home Assistant storage
directory. Every blob is fully overwritten on write; there are no partial
updates.
"""

from __future__ import annotations

import logging
from typing import Any

from homeassistant.core import HomeAssistant
from homeassistant.exceptions import HomeAssistantError
from homeassistant.helpers import storage

from .const import DOMAIN, STORAGE_VERSION

_LOGGER = logging.getLogger(__name__)


class DiskCache:
    """Read, write and erase a single cached JSON object."""

    def __init__(self, hass: HomeAssistant, entry_id: str, name: str) -> None:
        self.key = f"{DOMAIN}/{entry_id}_{name}"
        self._store: storage.Store[dict[str, Any]] = storage.Store(
            hass, STORAGE_VERSION, self.key
        )

    async def async_read(self) -> dict[str, Any] | None:
        """Return the cached object, or None if missing or unreadable."""
        try:
            data = await self._store.async_load()
        except (HomeAssistantError, OSError, ValueError) as err:
            _LOGGER.debug("Cache %s could not be read: %s", self.key, err)
            return None
        except NotImplementedError:
            # Written under another STORAGE_VERSION, there is no migration
            _LOGGER.debug("Cache %s has an outdated version", self.key)
            return None

        if not isinstance(data, dict) or not data:
            _LOGGER.debug("Cache %s is empty", self.key)
            return None
        return data

    async def async_write(self, data: dict[str, Any]) -> None:
        """Replace the cached object."""
        try:
            await self._store.async_save(data)
        except (HomeAssistantError, OSError) as err:
            _LOGGER.debug("Unable to write cache %s: %s", self.key, err)

    async def async_erase(self) -> None:
        """Remove the cached object."""
        try:
            await self._store.async_remove()
        except OSError as err:
            _LOGGER.debug("Unable to erase cache %s: %s", self.key, err)
