# terrain_streamer/biomes.py

"""
================================================================================
BIOME CLASSIFICATION & COLOUR BLENDING
================================================================================
This module maps (elevation, temperature, moisture) to a normalised weight
vector over a fixed biome palette, and turns weight vectors into blended
surface colours.

It is a pure, stateless utility: every function accepts either scalars or
NumPy arrays of matching shape, so the same code classifies a single point
under the observer and a whole chunk grid.

Data Contract:
---------------
- Inputs:
    - elevation (world units), temperature [0, 1], moisture [0, 1]. Inputs
      must be finite; non-finite input gives undefined output.
- Outputs:
    - Weight vectors along a trailing axis of length len(PALETTE), each
      non-negative and summing to 1.
    - Dominant biome ids (first maximal weight wins ties).
    - RGB colours with channels in [0, 1].
- Side Effects: None.
================================================================================
"""
from dataclasses import dataclass
from enum import IntEnum
from typing import Callable

import numpy as np

from . import config as DEFAULTS


class Biome(IntEnum):
    """Closed set of biomes. The integer value is the index into PALETTE."""
    OCEAN = 0
    BEACH = 1
    DESERT = 2
    PLAINS = 3
    FOREST = 4
    HILLS = 5
    MOUNTAIN = 6
    SNOW = 7

    @property
    def display_name(self) -> str:
        return PALETTE[self].name


@dataclass(frozen=True)
class BiomeSpec:
    biome: Biome
    name: str
    color: tuple
    membership: Callable


def _ramp(value):
    """Clamped linear ramp: 0 below 0, 1 above 1."""
    return np.clip(value, 0.0, 1.0)


def _lowland(elevation):
    # Rises across the lowland band [5, 18].
    return _ramp((elevation - 5.0) / 13.0)


def _ocean(e, t, m):
    return 1.0 - _ramp((e - 1.5) / 1.5)

def _beach(e, t, m):
    return _ramp(1.0 - np.abs(e - 3.5) / 1.5)

def _desert(e, t, m):
    return _ramp((t - 0.6) * 2.0) * _ramp(0.3 - m) * _lowland(e)

def _plains(e, t, m):
    return _ramp((t - 0.4) * 2.0) * _ramp((m - 0.3) * 2.0) * _lowland(e)

def _forest(e, t, m):
    return _ramp((0.4 - t) * 2.0) * _ramp((m - 0.4) * 2.0) * _lowland(e)

def _hills(e, t, m):
    return _ramp((e - 18.0) / 10.0)

def _mountain(e, t, m):
    return _ramp((e - 28.0) / 10.0)

def _snow(e, t, m):
    return _ramp((e - 28.0) / 10.0) * _ramp((0.3 - t) * 3.0)


# --- Palette ---
# Order matters only for tie-breaking in dominant_biome().
PALETTE = (
    BiomeSpec(Biome.OCEAN, "Ocean", (0.1, 0.2, 0.8), _ocean),
    BiomeSpec(Biome.BEACH, "Beach", (0.9, 0.9, 0.5), _beach),
    BiomeSpec(Biome.DESERT, "Desert", (0.93, 0.85, 0.45), _desert),
    BiomeSpec(Biome.PLAINS, "Plains", (0.4, 0.8, 0.2), _plains),
    BiomeSpec(Biome.FOREST, "Forest", (0.1, 0.6, 0.1), _forest),
    BiomeSpec(Biome.HILLS, "Hills", (0.5, 0.4, 0.2), _hills),
    BiomeSpec(Biome.MOUNTAIN, "Mountain", (0.8, 0.8, 0.8), _mountain),
    BiomeSpec(Biome.SNOW, "Snow", (1.0, 1.0, 1.0), _snow),
)

# Row i is the base colour of Biome(i).
PALETTE_COLORS = np.array([spec.color for spec in PALETTE], dtype=np.float64)


def biome_weights_grid(elevation, temperature, moisture) -> np.ndarray:
    """
    Computes normalised biome weights. The palette axis is appended last, so
    an (H, W) grid yields an (H, W, len(PALETTE)) array.
    """
    e = np.asarray(elevation, dtype=np.float64)
    t = np.asarray(temperature, dtype=np.float64)
    m = np.asarray(moisture, dtype=np.float64)
    e, t, m = np.broadcast_arrays(e, t, m)

    raw = np.stack([spec.membership(e, t, m) for spec in PALETTE], axis=-1)
    raw = raw + DEFAULTS.BIOME_WEIGHT_EPSILON / len(PALETTE)
    total = raw.sum(axis=-1, keepdims=True)
    return raw / total


def biome_weights(elevation: float, temperature: float, moisture: float) -> np.ndarray:
    """Weight vector for a single point."""
    return biome_weights_grid(elevation, temperature, moisture)


def dominant_biome(weights: np.ndarray) -> Biome:
    """The first biome holding the maximal weight."""
    return Biome(int(np.argmax(weights)))


def dominant_biome_grid(weights: np.ndarray) -> np.ndarray:
    """Integer array of dominant biome ids for a weight grid."""
    return np.argmax(weights, axis=-1).astype(np.uint8)


def blend_colors(weights: np.ndarray) -> np.ndarray:
    """Weighted sum of palette colours; works for one point or a whole grid."""
    return np.asarray(weights) @ PALETTE_COLORS


def biomes_by_name(names) -> frozenset:
    """Resolves enum member names (e.g. from config) into a set of Biome values."""
    return frozenset(Biome[name] for name in names)
