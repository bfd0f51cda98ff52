# terrain_streamer/hydrology.py

"""
================================================================================
RIVER NETWORK GENERATION
================================================================================
Rivers are traced once, at world start, by steepest descent over the natural
elevation surface. Tracing against the whole world rather than per chunk means
a river looks the same no matter which direction it is approached from and no
matter which chunks happen to be loaded.

Each river passes through three states:
    Seeding    - draw random points until one lies on high terrain.
    Tracing    - step to the lowest of the 8 neighbours until no neighbour is
                 lower, the next step would enter the sea, or the step limit
                 is reached.
    Terminated - keep the trace if it is long enough, otherwise discard it.

Data Contract:
---------------
- Inputs:
    - elevation_fn: callable (x, z) -> elevation, usually
      ElevationModel.elevation.
    - rng: a seeded numpy.random.Generator used only for seeding.
    - settings: the consolidated world settings.
- Outputs:
    - A tuple of immutable RiverPath objects, in generation order.
- Side Effects: Logs progress using the provided logger.
- Invariants: Rivers never flow uphill; every point is strictly lower than
  the point before it.
================================================================================
"""
import logging
import math
from dataclasses import dataclass
from enum import Enum

import numpy as np

# Neighbour offsets in the order they are examined; the first strictly lowest
# neighbour wins.
_NEIGHBOUR_OFFSETS = tuple(
    (dx, dz) for dx in (-1, 0, 1) for dz in (-1, 0, 1) if (dx, dz) != (0, 0)
)


class TraceOutcome(Enum):
    REACHED_SEA = "reached_sea"
    LOCAL_MINIMUM = "local_minimum"
    STEP_LIMIT = "step_limit"


@dataclass(frozen=True)
class RiverPath:
    """An ordered, immutable list of (x, z) terrain points, source first."""
    points: tuple
    outcome: TraceOutcome

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    @property
    def source(self) -> tuple:
        return self.points[0]

    @property
    def mouth(self) -> tuple:
        return self.points[-1]

    @property
    def length(self) -> float:
        """Distance along the channel, in terrain units."""
        return sum(math.dist(a, b) for a, b in self.segments())

    def widths(self) -> list:
        """Channel width per point; rivers widen from 2 to 5 downstream."""
        count = len(self.points)
        return [2.0 + (i / count) * 3.0 for i in range(count)]

    def segments(self) -> list:
        """Consecutive point pairs in downstream order."""
        return list(zip(self.points[:-1], self.points[1:]))

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.float64).reshape(-1, 2)


def trace_river(elevation_fn, start_x: float, start_z: float, step_distance: float,
                max_steps: int, ocean_elevation: float) -> tuple:
    """
    Follows steepest descent from a starting point.

    Returns:
        (points, outcome): the visited points, start included, and why the
        trace stopped.
    """
    points = []
    x, z = start_x, start_z
    current = elevation_fn(x, z)

    for _ in range(max_steps):
        points.append((x, z))

        lowest_x, lowest_z, lowest = x, z, float('inf')
        for dx, dz in _NEIGHBOUR_OFFSETS:
            test_x = x + dx * step_distance
            test_z = z + dz * step_distance
            elevation = elevation_fn(test_x, test_z)
            if elevation < lowest:
                lowest_x, lowest_z, lowest = test_x, test_z, elevation

        if lowest >= current:
            return points, TraceOutcome.LOCAL_MINIMUM
        if lowest < ocean_elevation:
            return points, TraceOutcome.REACHED_SEA

        x, z, current = lowest_x, lowest_z, lowest

    return points, TraceOutcome.STEP_LIMIT


class HydrologyGenerator:
    """Seeds and traces the world's river network."""

    def __init__(self, elevation_fn, rng: np.random.Generator, settings: dict, logger: logging.Logger = None):
        self.elevation_fn = elevation_fn
        self.rng = rng
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)

    def _seed_point(self) -> tuple:
        extent = self.settings['river_seed_extent']
        x = float(self.rng.uniform(-extent, extent))
        z = float(self.rng.uniform(-extent, extent))
        return x, z

    def generate_river(self):
        """
        Runs Seeding -> Tracing -> Terminated until a river is accepted or the
        attempt budget is spent. Returns a RiverPath or None.
        """
        s = self.settings
        for attempt in range(s['river_seed_attempts']):
            x, z = self._seed_point()
            if self.elevation_fn(x, z) <= s['river_source_min_elevation']:
                continue

            points, outcome = trace_river(
                self.elevation_fn, x, z,
                step_distance=s['river_step_distance'],
                max_steps=s['river_max_steps'],
                ocean_elevation=s['ocean_elevation'],
            )
            if len(points) <= s['river_min_length']:
                self.logger.debug(
                    f"Discarded river trace from ({x:.2f}, {z:.2f}): "
                    f"{len(points)} points, {outcome.value}."
                )
                continue

            self.logger.debug(f"Accepted river after {attempt + 1} attempts: {len(points)} points, {outcome.value}.")
            return RiverPath(points=tuple(points), outcome=outcome)
        return None

    def generate(self) -> tuple:
        rivers = []
        for _ in range(self.settings['river_count']):
            river = self.generate_river()
            if river is not None:
                rivers.append(river)

        if not rivers and self.settings['river_count'] > 0:
            self.logger.warning("No river source found within the seed budget; the world has no rivers.")
        else:
            self.logger.info(f"Generated {len(rivers)} of {self.settings['river_count']} rivers.")
        return tuple(rivers)
