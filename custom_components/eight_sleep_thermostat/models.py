"""Data models for the Eight Sleep Thermostat integration."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from enum import StrEnum
from typing import Any


class Side(StrEnum):
    """Half of the bed a user sleeps on."""

    SOLO = "solo"
    LEFT = "left"
    RIGHT = "right"


class DeviceMode(StrEnum):
    """On/off state reported in a user's temperature settings."""

    ON = "smart"
    OFF = "off"


class OperatingState(StrEnum):
    """Displayed operating state of a bed side."""

    OFF = "off"
    HEATING = "heating"
    COOLING = "cooling"
    IDLE = "idle"


class PollingState(StrEnum):
    """Lifecycle state of an adaptive polling cache."""

    IDLE = "idle"
    POLLING = "polling"


@dataclass(frozen=True)
class RequestContext:
    """Credentials attached to a single authenticated API call."""

    user_id: str
    token: str


@dataclass(frozen=True)
class Session:
    """Represents a login session returned by the Eight Sleep API."""

    user_id: str
    token: str
    expiration_date: datetime

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> Session | None:
        """Build a session from an API or cache payload.

        Returns None when a field is missing or the expiry cannot be parsed.
        """
        user_id = data.get("userId")
        token = data.get("token")
        expiration = data.get("expirationDate")
        if not user_id or not token or not expiration:
            return None

        try:
            expiration_date = datetime.fromisoformat(
                str(expiration).replace("Z", "+00:00")
            )
        except ValueError:
            return None

        if expiration_date.tzinfo is None:
            expiration_date = expiration_date.replace(tzinfo=UTC)

        return cls(
            user_id=str(user_id),
            token=str(token),
            expiration_date=expiration_date,
        )

    def as_dict(self) -> dict[str, str]:
        """Serialize the session in the API's own shape."""
        return {
            "userId": self.user_id,
            "token": self.token,
            "expirationDate": self.expiration_date.isoformat(),
        }

    def is_valid(self, now: datetime, margin: timedelta) -> bool:
        """Return True if the session outlives ``now`` by more than ``margin``."""
        return bool(self.user_id and self.token) and (
            self.expiration_date > now + margin
        )

    @property
    def request_context(self) -> RequestContext:
        """Return the request context for this session."""
        return RequestContext(user_id=self.user_id, token=self.token)


@dataclass(frozen=True)
class DeviceProfile:
    """Durable device identity of the logged-in user."""

    shared_device_id: str
    side: Side
    is_owner: bool = True

    @classmethod
    def from_user(cls, user: dict[str, Any] | None) -> DeviceProfile | None:
        """Build a profile from a user payload, or None if incomplete."""
        if not isinstance(user, dict):
            return None

        device = user.get("currentDevice")
        if not isinstance(device, dict):
            return None

        device_id = device.get("id")
        side = device.get("side")
        if not device_id or not side:
            return None

        try:
            resolved_side = Side(side)
        except ValueError:
            return None

        return cls(
            shared_device_id=str(device_id),
            side=resolved_side,
            is_owner=bool(user.get("isOwner", True)),
        )

    def as_user(self) -> dict[str, Any]:
        """Serialize the profile in the shape of the user payload."""
        return {
            "currentDevice": {"id": self.shared_device_id, "side": str(self.side)},
            "isOwner": self.is_owner,
        }


@dataclass(frozen=True)
class UserSettings:
    """Temperature settings of a single user (one side of the bed)."""

    current_level: int
    state_type: str

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> UserSettings:
        """Parse a ``/users/{id}/temperature`` payload."""
        state = data.get("currentState") or {}
        return cls(
            current_level=int(data.get("currentLevel", 0)),
            state_type=str(state.get("type", DeviceMode.OFF)),
        )

    @property
    def is_on(self) -> bool:
        """Return True unless the side is switched off.

        The API reports ``smart:bedtime``, ``smart:initial`` and similar
        variants while on, so only ``off`` is compared.
        """
        return self.state_type != DeviceMode.OFF


@dataclass(frozen=True)
class SharedDeviceSettings:
    """Settings shared by both sides of a bed."""

    left_level: int
    right_level: int
    left_target_level: int
    right_target_level: int
    left_now_heating: bool
    right_now_heating: bool
    is_priming: bool
    needs_priming: bool
    has_water: bool
    left_user_id: str | None
    right_user_id: str | None

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> SharedDeviceSettings:
        """Parse the ``result`` object of a ``/devices/{id}`` payload."""
        return cls(
            left_level=int(data.get("leftHeatingLevel", 0)),
            right_level=int(data.get("rightHeatingLevel", 0)),
            left_target_level=int(data.get("leftTargetHeatingLevel", 0)),
            right_target_level=int(data.get("rightTargetHeatingLevel", 0)),
            left_now_heating=bool(data.get("leftNowHeating", False)),
            right_now_heating=bool(data.get("rightNowHeating", False)),
            is_priming=bool(data.get("priming", False)),
            needs_priming=bool(data.get("needsPriming", False)),
            has_water=bool(data.get("hasWater", True)),
            left_user_id=data.get("leftUserId"),
            right_user_id=data.get("rightUserId"),
        )

    def level_for_side(self, side: Side) -> int:
        """Return the measured level for a side; solo beds read the left half."""
        if side == Side.RIGHT:
            return self.right_level
        return self.left_level

    def user_id_for_side(self, side: Side) -> str | None:
        """Return the user assigned to a side."""
        if side == Side.RIGHT:
            return self.right_user_id
        return self.left_user_id


@dataclass(frozen=True)
class AccessoryInfo:
    """A bed side exposed as a climate entity."""

    user_id: str
    side: Side
    name: str
