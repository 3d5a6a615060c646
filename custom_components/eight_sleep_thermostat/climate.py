"""Climate entities for Eight Sleep beds.

Each bed side is exposed as a thermostat: the user's target level is the
target temperature, the measured level of the side is the current
temperature, and the side's on/off state is the HVAC mode.
"""

from __future__ import annotations

import logging
from datetime import timedelta
from typing import TYPE_CHECKING, Any

import httpx
from homeassistant.components.climate import (
    ATTR_HVAC_MODE,
    ClimateEntity,
    ClimateEntityFeature,
    HVACAction,
    HVACMode,
)
from homeassistant.const import ATTR_TEMPERATURE, UnitOfTemperature
from homeassistant.core import callback
from homeassistant.helpers.device_registry import DeviceInfo

from .api import EightSleepApiClientError
from .const import (
    ATTR_CURRENT_LEVEL,
    ATTR_HAS_WATER,
    ATTR_IS_PRIMING,
    ATTR_NEEDS_PRIMING,
    ATTR_SIDE,
    ATTR_TARGET_LEVEL,
    DOMAIN,
    MANUFACTURER,
    MAX_TEMP_C,
    MIN_TEMP_C,
    MODEL,
    TARGET_TEMP_STEP,
)
from .models import AccessoryInfo, DeviceMode, OperatingState
from .reconciler import operating_state
from .temperature import MAX_LEVEL, MIN_LEVEL, TEMP_MAPPER, TempLevelMapper

if TYPE_CHECKING:
    from collections.abc import Callable

    from homeassistant.config_entries import ConfigEntry
    from homeassistant.core import HomeAssistant
    from homeassistant.helpers.entity_platform import AddEntitiesCallback

    from .client import SharedDeviceClient, UserSettingsClient

_LOGGER = logging.getLogger(__name__)

# Each update keeps the caches polling for their idle timeout, after which
# they stand by until the next update or user command.
SCAN_INTERVAL = timedelta(minutes=5)

HVAC_ACTION_MAP = {
    OperatingState.OFF: HVACAction.OFF,
    OperatingState.HEATING: HVACAction.HEATING,
    OperatingState.COOLING: HVACAction.COOLING,
    OperatingState.IDLE: HVACAction.IDLE,
}


async def async_setup_entry(
    hass: HomeAssistant,
    entry: ConfigEntry,
    async_add_entities: AddEntitiesCallback,
) -> None:
    """Set up one climate entity per bed side."""
    entry_data = hass.data[DOMAIN][entry.entry_id]
    profile = entry_data["profile"]

    entities = [
        EightSleepClimateEntity(
            accessory,
            entry_data["user_clients"][accessory.user_id],
            entry_data["device_client"],
            profile.shared_device_id,
        )
        for accessory in entry_data["accessories"]
    ]
    async_add_entities(entities, update_before_add=True)


class EightSleepClimateEntity(ClimateEntity):
    """Climate entity for one side of an Eight Sleep bed."""

    _attr_temperature_unit = UnitOfTemperature.CELSIUS
    _attr_target_temperature_step = TARGET_TEMP_STEP
    _attr_min_temp = MIN_TEMP_C
    _attr_max_temp = MAX_TEMP_C
    _attr_hvac_modes = [HVACMode.OFF, HVACMode.AUTO]
    _attr_supported_features = (
        ClimateEntityFeature.TARGET_TEMPERATURE
        | ClimateEntityFeature.TURN_ON
        | ClimateEntityFeature.TURN_OFF
    )
    _attr_has_entity_name = True
    _attr_name = None

    def __init__(
        self,
        accessory: AccessoryInfo,
        user_client: UserSettingsClient,
        device_client: SharedDeviceClient,
        shared_device_id: str,
        mapper: TempLevelMapper = TEMP_MAPPER,
    ) -> None:
        """Initialize the climate entity.

        Args:
            accessory: User and side controlled by this entity.
            user_client: Client for the user's target level and state.
            device_client: Client for the shared device settings.
            shared_device_id: Identifier of the bed.
            mapper: Level to temperature mapping.

        """
        self._accessory = accessory
        self._user_client = user_client
        self._device_client = device_client
        self._mapper = mapper
        self._remove_listeners: list[Callable[[], None]] = []

        self._attr_unique_id = f"{shared_device_id}_{accessory.side}"
        self._attr_device_info = DeviceInfo(
            identifiers={(DOMAIN, self._attr_unique_id)},
            manufacturer=MANUFACTURER,
            model=MODEL,
            name=accessory.name,
        )
        self._attr_hvac_mode = HVACMode.OFF
        self._attr_hvac_action = HVACAction.OFF
        self._attr_current_temperature = None
        self._attr_target_temperature = None

    # Host boundary

    async def async_get_current_temperature(self) -> float | None:
        """Return the measured temperature of this side."""
        level = await self._device_client.async_get_current_level(self._accessory.side)
        return None if level is None else self._mapper.celsius_for(level)

    async def async_get_target_temperature(self) -> float | None:
        """Return the temperature this side is set to."""
        level = await self._user_client.async_get_target_level()
        return None if level is None else self._mapper.celsius_for(level)

    async def async_get_on_off_intent(self) -> HVACMode:
        """Return AUTO when the side is switched on, OFF otherwise."""
        is_on = await self._user_client.async_get_is_on()
        return HVACMode.AUTO if is_on else HVACMode.OFF

    async def async_set_target_temperature(self, temperature: float) -> None:
        """Send a new target temperature as the matching level."""
        level = self._mapper.level_for_celsius(temperature)
        if level is None or not MIN_LEVEL <= level <= MAX_LEVEL:
            _LOGGER.error(
                "%s: no level for target temperature %s", self._accessory.name, temperature
            )
            return

        try:
            received_level = await self._user_client.async_set_target_level(level)
        except (EightSleepApiClientError, httpx.HTTPError):
            _LOGGER.exception("Error setting temperature of %s", self._accessory.name)
            return

        _LOGGER.debug(
            "%s: target %s°C sent as level %d, acknowledged %d",
            self._accessory.name,
            temperature,
            level,
            received_level,
        )
        self._handle_cache_update()

    async def async_set_on_off_intent(self, hvac_mode: HVACMode) -> None:
        """Switch the side on (AUTO) or off."""
        mode = DeviceMode.OFF if hvac_mode == HVACMode.OFF else DeviceMode.ON
        try:
            await self._user_client.async_set_mode(mode)
        except (EightSleepApiClientError, httpx.HTTPError):
            _LOGGER.exception("Error switching %s %s", self._accessory.name, mode)
            return

        _LOGGER.info("Switched %s to %s", self._accessory.name, hvac_mode)
        self._handle_cache_update()

    # Home Assistant API

    async def async_set_temperature(self, **kwargs: Any) -> None:  # noqa: ANN401
        """Set the target temperature and optionally the HVAC mode."""
        if (hvac_mode := kwargs.get(ATTR_HVAC_MODE)) is not None:
            await self.async_set_on_off_intent(hvac_mode)

        if (temperature := kwargs.get(ATTR_TEMPERATURE)) is not None:
            await self.async_set_target_temperature(temperature)

    async def async_set_hvac_mode(self, hvac_mode: HVACMode) -> None:
        await self.async_set_on_off_intent(hvac_mode)

    async def async_turn_on(self) -> None:
        await self.async_set_on_off_intent(HVACMode.AUTO)

    async def async_turn_off(self) -> None:
        await self.async_set_on_off_intent(HVACMode.OFF)

    async def async_update(self) -> None:
        """Mark both caches as active and take their current values."""
        await self.async_get_on_off_intent()
        await self.async_get_target_temperature()
        await self.async_get_current_temperature()
        self._update_from_cache()

    async def async_added_to_hass(self) -> None:
        """Subscribe to refreshes of both caches."""
        await super().async_added_to_hass()
        self._remove_listeners = [
            self._user_client.cache.async_add_listener(self._handle_cache_update),
            self._device_client.cache.async_add_listener(self._handle_cache_update),
        ]

    async def async_will_remove_from_hass(self) -> None:
        await super().async_will_remove_from_hass()
        for remove_listener in self._remove_listeners:
            remove_listener()
        self._remove_listeners = []

    @property
    def extra_state_attributes(self) -> dict[str, Any]:
        attributes: dict[str, Any] = {ATTR_SIDE: str(self._accessory.side)}

        if (settings := self._user_client.peek()) is not None:
            attributes[ATTR_TARGET_LEVEL] = settings.current_level

        if (device := self._device_client.peek()) is not None:
            attributes[ATTR_CURRENT_LEVEL] = device.level_for_side(self._accessory.side)
            attributes[ATTR_IS_PRIMING] = device.is_priming
            attributes[ATTR_NEEDS_PRIMING] = device.needs_priming
            attributes[ATTR_HAS_WATER] = device.has_water

        return attributes

    @callback
    def _handle_cache_update(self) -> None:
        """Recompute state from the caches and push it right away."""
        self._update_from_cache()
        if self.hass is not None:
            self.async_write_ha_state()

    def _update_from_cache(self) -> None:
        """Update entity state from the last known remote values."""
        if (settings := self._user_client.peek()) is not None:
            self._attr_target_temperature = self._mapper.celsius_for(
                settings.current_level
            )
            self._attr_hvac_mode = HVACMode.AUTO if settings.is_on else HVACMode.OFF

        if (device := self._device_client.peek()) is not None:
            self._attr_current_temperature = self._mapper.celsius_for(
                device.level_for_side(self._accessory.side)
            )

        if (
            self._attr_current_temperature is None
            or self._attr_target_temperature is None
        ):
            self._attr_hvac_action = HVACAction.OFF
            return

        state = operating_state(
            self._attr_current_temperature,
            self._attr_target_temperature,
            self._attr_hvac_mode != HVACMode.OFF,
        )
        self._attr_hvac_action = HVAC_ACTION_MAP[state]
