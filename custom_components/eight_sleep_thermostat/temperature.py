"""Conversion between temperatures and Eight Sleep heating levels.

The Eight Sleep API expresses bed temperature as a level between -100
(maximum cooling) and +100 (maximum heating), independent of the unit the
user picked in the app. The app maps 'real' temperatures onto that scale
piecewise:

- levels -100 to -89 move one degree Fahrenheit per level (50F - 61F);
- levels -88 to 0 interpolate between 61F and 80F (about 3 levels per degree);
- levels 1 to 100 interpolate between 81F and 113F.

Fahrenheit is the base unit of the lookup tables; Celsius values are
derived from it.
"""

from __future__ import annotations

import math

MIN_LEVEL = -100
MAX_LEVEL = 100

# Below this level each level is one degree Fahrenheit
LOW_LEVEL_BOUNDARY = -89
LOW_TEMP_ANCHOR = 50

COOLING_LEVEL_START = -89
COOLING_LEVEL_END = -1
COOLING_TEMP_START = 61
COOLING_TEMP_END = 80

HEATING_LEVEL_START = 2
HEATING_LEVEL_END = 101
HEATING_TEMP_START = 81
HEATING_TEMP_END = 113


def _round_half_up(value: float) -> int:
    return math.floor(value + 0.5)


def celsius_to_fahrenheit(celsius: float) -> int:
    """Convert Celsius to the nearest whole degree Fahrenheit."""
    return _round_half_up(celsius * 9 / 5) + 32


def fahrenheit_to_celsius(fahrenheit: float) -> float:
    """Convert Fahrenheit to Celsius, truncated to 2 decimals.

    Truncating keeps repeated conversions of the same value stable, so the
    displayed temperature does not jitter by float noise.
    """
    return math.trunc((fahrenheit - 32) * 5 / 9 * 100) / 100


def _interpolate(
    level: int,
    level_start: int,
    level_end: int,
    temp_start: int,
    temp_end: int,
) -> int:
    slope = (temp_end - temp_start) / (level_end - level_start)
    return temp_start + _round_half_up(slope * (level - level_start))


def calculate_fahrenheit(level: int) -> int:
    """Compute the Fahrenheit temperature for a level from the segment anchors."""
    if level <= LOW_LEVEL_BOUNDARY:
        return LOW_TEMP_ANCHOR + (level - MIN_LEVEL)
    if level <= 0:
        return _interpolate(
            level,
            COOLING_LEVEL_START,
            COOLING_LEVEL_END,
            COOLING_TEMP_START,
            COOLING_TEMP_END,
        )
    return _interpolate(
        level,
        HEATING_LEVEL_START,
        HEATING_LEVEL_END,
        HEATING_TEMP_START,
        HEATING_TEMP_END,
    )


class TempLevelMapper:
    """Two-way lookup between levels and temperatures.

    Several adjacent levels can share one displayed temperature. The
    temperature to level table keeps the first level written for each
    temperature, and levels are written from coolest to warmest, so the
    coolest level wins a tie. ``fahrenheit_for(level_for_fahrenheit(t)) == t``
    holds for every temperature the forward map produces.
    """

    def __init__(self) -> None:
        self._fahrenheit_by_level: dict[int, int] = {}
        self._level_by_fahrenheit: dict[int, int] = {}
        self._generate_tables()

    def _generate_tables(self) -> None:
        for level in range(MIN_LEVEL, MAX_LEVEL + 1):
            self._update_records(calculate_fahrenheit(level), level)

    def _update_records(self, fahrenheit: int, level: int) -> None:
        self._fahrenheit_by_level[level] = fahrenheit
        self._level_by_fahrenheit.setdefault(fahrenheit, level)

    @property
    def min_fahrenheit(self) -> int:
        return self._fahrenheit_by_level[MIN_LEVEL]

    @property
    def max_fahrenheit(self) -> int:
        return self._fahrenheit_by_level[MAX_LEVEL]

    def fahrenheit_for(self, level: int) -> int:
        """Return the Fahrenheit temperature for a level.

        Raises:
            ValueError: If the level is outside -100..100.

        """
        try:
            return self._fahrenheit_by_level[int(level)]
        except KeyError as err:
            error_msg = f"Level {level} outside {MIN_LEVEL}..{MAX_LEVEL}"
            raise ValueError(error_msg) from err

    def celsius_for(self, level: int) -> float:
        """Return the Celsius temperature for a level."""
        return fahrenheit_to_celsius(self.fahrenheit_for(level))

    def level_for_fahrenheit(self, fahrenheit: float) -> int | None:
        """Return the coolest level for a temperature, or None if out of range."""
        return self._level_by_fahrenheit.get(_round_half_up(fahrenheit))

    def level_for_celsius(self, celsius: float) -> int | None:
        """Return the coolest level for a Celsius temperature."""
        return self._level_by_fahrenheit.get(celsius_to_fahrenheit(celsius))


TEMP_MAPPER = TempLevelMapper()
