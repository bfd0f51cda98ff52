# terrain_streamer/speleology.py

"""
================================================================================
CAVE SYSTEM GENERATION
================================================================================
Caves are generated once, at world start. Each cave has an entrance on hilly
or mountainous terrain, one main tunnel and a fixed number of shorter branch
tunnels rooted on the main tunnel.

Tunnels are directed random walks: at every step the 3D noise field is sampled
three times (once per axis, decorrelated by an offset) and the walker moves by
the sampled amounts. Horizontal movement is scaled up and vertical movement
down, and y is clamped into a fixed band so tunnels neither surface nor bottom
out.

Data Contract:
---------------
- Inputs:
    - noise_field: the world's NoiseField (3D sampling).
    - elevation_fn: callable (x, z) -> elevation, for entrance selection.
    - rng: a seeded numpy.random.Generator.
    - settings: the consolidated world settings.
- Outputs:
    - A tuple of immutable Cave objects.
- Side Effects: Logs progress using the provided logger.
- Invariants: Every tunnel point's y lies within [cave_min_y, cave_max_y].
================================================================================
"""
import logging
from dataclasses import dataclass

import numpy as np

from .noise import NoiseField


@dataclass(frozen=True)
class Tunnel:
    """Ordered (x, y, z) points; x and z in terrain units, y in world units."""
    points: tuple

    def __len__(self) -> int:
        return len(self.points)

    def __iter__(self):
        return iter(self.points)

    def as_array(self) -> np.ndarray:
        return np.array(self.points, dtype=np.float64).reshape(-1, 3)


@dataclass(frozen=True)
class Cave:
    entrance: tuple
    tunnels: tuple
    # Reserved for chamber geometry; currently the branch root points.
    chambers: tuple

    @property
    def main_tunnel(self) -> Tunnel:
        return self.tunnels[0]

    @property
    def branches(self) -> tuple:
        return self.tunnels[1:]

    @property
    def entrance_floor(self) -> float:
        return self.entrance[1]


def walk_tunnel(noise_field: NoiseField, start: tuple, steps: int, settings: dict) -> Tunnel:
    """
    Walks `steps` points starting at `start` (x, y, z). A start outside the
    vertical band is clamped into it first.
    """
    frequency = settings['cave_walk_frequency']
    offset = settings['cave_walk_axis_offset']
    horizontal = settings['cave_walk_horizontal_step']
    vertical = settings['cave_walk_vertical_step']
    min_y, max_y = settings['cave_min_y'], settings['cave_max_y']

    x, y, z = start
    y = min(max(y, min_y), max_y)
    points = []
    for _ in range(steps):
        points.append((x, y, z))

        sx, sy, sz = x * frequency, y * frequency, z * frequency
        dx = noise_field.sample_3d(sx, sy, sz)
        dy = noise_field.sample_3d(sx + offset, sy, sz)
        dz = noise_field.sample_3d(sx, sy, sz + offset)

        x += dx * horizontal
        y = min(max(y + dy * vertical, min_y), max_y)
        z += dz * horizontal

    return Tunnel(points=tuple(points))


class SpeleologyGenerator:
    """Finds cave entrances and grows tunnel networks from them."""

    def __init__(self, noise_field: NoiseField, elevation_fn, rng: np.random.Generator,
                 settings: dict, logger: logging.Logger = None):
        self.noise_field = noise_field
        self.elevation_fn = elevation_fn
        self.rng = rng
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)

    def find_entrance(self):
        """Returns an (x, y, z) entrance inside the elevation band, or None."""
        s = self.settings
        extent = s['cave_seed_extent']
        for _ in range(s['cave_seed_attempts']):
            x = float(self.rng.uniform(-extent, extent))
            z = float(self.rng.uniform(-extent, extent))
            elevation = self.elevation_fn(x, z)
            if s['cave_entrance_min_elevation'] < elevation < s['cave_entrance_max_elevation']:
                return (x, elevation, z)
        return None

    def build_cave(self, entrance: tuple) -> Cave:
        s = self.settings
        entrance_x, _, entrance_z = entrance
        main = walk_tunnel(
            self.noise_field,
            (entrance_x, s['cave_start_y'], entrance_z),
            s['cave_main_tunnel_steps'],
            s,
        )

        tunnels = [main]
        branch_roots = []
        for _ in range(s['cave_branch_count']):
            root = main.points[int(self.rng.integers(len(main.points)))]
            branch_roots.append(root)
            tunnels.append(walk_tunnel(self.noise_field, root, s['cave_branch_steps'], s))

        return Cave(entrance=entrance, tunnels=tuple(tunnels), chambers=tuple(branch_roots))

    def generate(self) -> tuple:
        caves = []
        for index in range(self.settings['cave_count']):
            entrance = self.find_entrance()
            if entrance is None:
                self.logger.debug(f"Cave {index}: no entrance found within the attempt budget.")
                continue
            caves.append(self.build_cave(entrance))

        if not caves and self.settings['cave_count'] > 0:
            self.logger.warning("No cave entrance found within the attempt budget; the world has no caves.")
        else:
            self.logger.info(f"Generated {len(caves)} of {self.settings['cave_count']} caves.")
        return tuple(caves)
