# terrain_streamer/runtime/__init__.py

# This file makes the 'runtime' directory a Python package.
# We can also use it to define the public API of the package.

from .world import World, consolidate_settings
from .weather import WeatherCycle, WeatherKind, WeatherState

__all__ = ["World", "consolidate_settings", "WeatherCycle", "WeatherKind", "WeatherState"]
