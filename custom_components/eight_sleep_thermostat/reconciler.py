"""Derivation of the displayed operating state of a bed side."""

from .models import OperatingState

# Celsius. Adjacent whole Fahrenheit degrees are 0.55 or 0.56 apart once
# truncated, so a single degree of difference counts as reached.
DEFAULT_TOLERANCE = 0.6


def temps_are_equal(
    current: float, target: float, tolerance: float = DEFAULT_TOLERANCE
) -> bool:
    """Return True if two temperatures are within ``tolerance`` of each other."""
    return abs(target - current) <= tolerance


def operating_state(
    current_temp: float,
    target_temp: float,
    intent_on: bool,
    tolerance: float = DEFAULT_TOLERANCE,
) -> OperatingState:
    """Return whether a side is off, idle, heating or cooling.

    Args:
        current_temp: Measured bed temperature.
        target_temp: Requested bed temperature, in the same unit.
        intent_on: Whether the user switched the side on.
        tolerance: Largest difference still considered as target reached.

    Returns:
        The operating state to display.

    """
    if not intent_on:
        return OperatingState.OFF
    if temps_are_equal(current_temp, target_temp, tolerance):
        return OperatingState.IDLE
    if current_temp < target_temp:
        return OperatingState.HEATING
    return OperatingState.COOLING
