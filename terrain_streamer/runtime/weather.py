# terrain_streamer/runtime/weather.py

"""
================================================================================
WEATHER CYCLE
================================================================================
This module provides a class that decides the ambient weather from the biome
under the observer. It produces data only; particles, lighting and sound are
the consumer's concern.

Data Contract:
---------------
- Inputs (on initialization):
    - rng (numpy.random.Generator): The world's seeded weather stream.
    - settings (dict): The consolidated world settings.
- Public Methods:
    - update(delta_time, biome): Counts down and re-rolls the weather when
      the current spell has run out.
    - roll(biome): Draws a new weather state for a biome.
- Public Properties:
    - state (WeatherState): The current kind and intensity.
    - time_remaining (float): Seconds until the next re-roll.
- Side Effects: Logs weather changes at DEBUG level.
- Invariants: For a given seed and sequence of (delta_time, biome) calls the
  sequence of weather states is deterministic.
================================================================================
"""
import logging
from dataclasses import dataclass
from enum import Enum

import numpy as np

from ..biomes import Biome


class WeatherKind(Enum):
    CLEAR = "clear"
    RAIN = "rain"
    SNOW = "snow"
    THUNDERSTORM = "thunderstorm"


@dataclass(frozen=True)
class WeatherState:
    kind: WeatherKind
    intensity: float


CLEAR = WeatherState(WeatherKind.CLEAR, 0.0)


def weather_for_roll(biome: Biome, roll: float) -> WeatherState:
    """Maps a uniform roll in [0, 1) to the weather a biome produces."""
    if biome is Biome.SNOW:
        return WeatherState(WeatherKind.SNOW, 1.0) if roll < 0.8 else CLEAR
    if biome is Biome.DESERT:
        return CLEAR
    if biome in (Biome.OCEAN, Biome.BEACH):
        return WeatherState(WeatherKind.RAIN, 0.5) if roll < 0.2 else CLEAR
    if roll < 0.1:
        return WeatherState(WeatherKind.THUNDERSTORM, 1.0)
    if roll < 0.5:
        return WeatherState(WeatherKind.RAIN, 1.0)
    return CLEAR


class WeatherCycle:
    """Holds the current weather and re-rolls it every 10 to 20 seconds."""

    def __init__(self, rng: np.random.Generator, settings: dict, logger: logging.Logger = None):
        self.rng = rng
        self.logger = logger or logging.getLogger(__name__)
        self.min_duration = settings['weather_min_duration_s']
        self.extra_duration = settings['weather_extra_duration_s']

        self.state = CLEAR
        # Zero so the first update() rolls immediately.
        self.time_remaining = 0.0

    def roll(self, biome: Biome) -> WeatherState:
        # The roll is drawn even for biomes that ignore it, keeping the stream aligned.
        roll = float(self.rng.random())
        return weather_for_roll(biome, roll)

    def update(self, delta_time: float, biome: Biome) -> bool:
        """
        Advances the cycle by `delta_time` seconds.

        Returns:
            bool: True if the weather was re-rolled on this call.
        """
        self.time_remaining -= delta_time
        if self.time_remaining > 0:
            return False

        previous = self.state
        self.state = self.roll(biome)
        self.time_remaining = self.min_duration + float(self.rng.random()) * self.extra_duration
        if self.state != previous:
            self.logger.debug(
                f"Weather over {biome.display_name}: {previous.kind.value} -> {self.state.kind.value} "
                f"for {self.time_remaining:.1f}s."
            )
        return True
