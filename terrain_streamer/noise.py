# terrain_streamer/noise.py

"""
================================================================================
NOISE FIELD
================================================================================
This module provides the deterministic gradient-noise field every other part of
the terrain streamer is built on. The kernels are pure functions of a
pre-shuffled permutation table and the query coordinates; the `NoiseField`
class only binds a table to a seed.

Data Contract:
---------------
- Inputs:
    - p: A pre-shuffled NumPy permutation table (int array of length 512).
    - x, y (, z): Scalars or NumPy arrays of coordinates. Any finite value is
      accepted, including negative and fractional coordinates.
- Outputs:
    - Noise values clipped to [-1, 1].
- Side Effects: None.
- Invariants: The same table and coordinates always produce bit-identical
  output. The field is evaluated lazily; there is no precomputed grid.
================================================================================
"""

import numpy as np
from numba import njit

from . import config as DEFAULTS

# Pre-defined gradient vectors for performance.
_GRADIENT_VECTORS = np.array([[0, 1], [0, -1], [1, 0], [-1, 0]])

# The twelve cube-edge directions of classic 3D Perlin noise.
_GRADIENT_VECTORS_3D = np.array([
    [1, 1, 0], [-1, 1, 0], [1, -1, 0], [-1, -1, 0],
    [1, 0, 1], [-1, 0, 1], [1, 0, -1], [-1, 0, -1],
    [0, 1, 1], [0, -1, 1], [0, 1, -1], [0, -1, -1],
])


def build_permutation_table(seed: int) -> np.ndarray:
    """Shuffles 0..255 with the seed and doubles it to avoid index wrapping."""
    p = np.arange(256, dtype=np.int64)
    rng = np.random.default_rng(seed)
    rng.shuffle(p)
    return np.stack([p, p]).flatten()


@njit
def _lerp(a, b, x):
    "Linear interpolation."
    return a + x * (b - a)

@njit
def _fade(t):
    "6t^5 - 15t^4 + 10t^3"
    return t * t * t * (t * (t * 6 - 15) + 10)

@njit
def _clip_unit(value):
    return max(-1.0, min(1.0, value))

@njit
def _gradient(h, x, y):
    """Calculates the dot product between a gradient vector and coordinates."""
    g = _GRADIENT_VECTORS[h % 4]
    return g[0] * x + g[1] * y

@njit
def _gradient_3d(h, x, y, z):
    g = _GRADIENT_VECTORS_3D[h % 12]
    return g[0] * x + g[1] * y + g[2] * z

@njit
def noise_2d(p, x, y, amplitude):
    """Single-octave 2D Perlin noise at one point, scaled and clipped to [-1, 1]."""
    xi = int(np.floor(x))
    yi = int(np.floor(y))

    xf = x - xi
    yf = y - yi

    u = _fade(xf)
    v = _fade(yf)

    px0 = xi % 256
    px1 = (px0 + 1) % 256
    py0 = yi % 256
    py1 = (py0 + 1) % 256

    # Numba requires scalar indexing
    idx00 = p[p[px0] + py0]
    idx01 = p[p[px0] + py1]
    idx10 = p[p[px1] + py0]
    idx11 = p[p[px1] + py1]

    g00 = _gradient(idx00, xf, yf)
    g01 = _gradient(idx01, xf, yf - 1)
    g10 = _gradient(idx10, xf - 1, yf)
    g11 = _gradient(idx11, xf - 1, yf - 1)

    x1 = _lerp(g00, g10, u)
    x2 = _lerp(g01, g11, u)
    return _clip_unit(_lerp(x1, x2, v) * amplitude)

@njit
def noise_3d(p, x, y, z, amplitude):
    """Single-octave 3D Perlin noise at one point, scaled and clipped to [-1, 1]."""
    xi = int(np.floor(x))
    yi = int(np.floor(y))
    zi = int(np.floor(z))

    xf = x - xi
    yf = y - yi
    zf = z - zi

    u = _fade(xf)
    v = _fade(yf)
    w = _fade(zf)

    px0 = xi % 256
    px1 = (px0 + 1) % 256
    py0 = yi % 256
    py1 = (py0 + 1) % 256
    pz0 = zi % 256
    pz1 = (pz0 + 1) % 256

    a0 = p[px0] + py0
    a1 = p[px0] + py1
    b0 = p[px1] + py0
    b1 = p[px1] + py1

    g000 = _gradient_3d(p[p[a0] + pz0], xf, yf, zf)
    g100 = _gradient_3d(p[p[b0] + pz0], xf - 1, yf, zf)
    g010 = _gradient_3d(p[p[a1] + pz0], xf, yf - 1, zf)
    g110 = _gradient_3d(p[p[b1] + pz0], xf - 1, yf - 1, zf)
    g001 = _gradient_3d(p[p[a0] + pz1], xf, yf, zf - 1)
    g101 = _gradient_3d(p[p[b0] + pz1], xf - 1, yf, zf - 1)
    g011 = _gradient_3d(p[p[a1] + pz1], xf, yf - 1, zf - 1)
    g111 = _gradient_3d(p[p[b1] + pz1], xf - 1, yf - 1, zf - 1)

    x1 = _lerp(g000, g100, u)
    x2 = _lerp(g010, g110, u)
    x3 = _lerp(g001, g101, u)
    x4 = _lerp(g011, g111, u)

    y1 = _lerp(x1, x2, v)
    y2 = _lerp(x3, x4, v)

    return _clip_unit(_lerp(y1, y2, w) * amplitude)

@njit
def perlin_noise_2d(p, x, y, amplitude=1.0):
    """
    Evaluates 2D noise over a grid of coordinates.
    This function is JIT-compiled with Numba; the explicit loops compile to
    efficient machine code.
    """
    rows, cols = x.shape
    total_noise = np.zeros((rows, cols))

    for i in range(rows):
        for j in range(cols):
            total_noise[i, j] = noise_2d(p, x[i, j], y[i, j], amplitude)

    return total_noise


class NoiseField:
    """
    A seeded, stateless view onto the noise kernels.
    The only state is the permutation table fixed at construction.
    """
    def __init__(self, seed: int, permutation_table: np.ndarray = None):
        self.seed = seed
        if permutation_table is None:
            permutation_table = build_permutation_table(seed)
        self.permutation_table = permutation_table

    def sample_2d(self, x: float, z: float) -> float:
        return noise_2d(self.permutation_table, float(x), float(z), DEFAULTS.NOISE_2D_AMPLITUDE)

    def sample_3d(self, x: float, y: float, z: float) -> float:
        return noise_3d(self.permutation_table, float(x), float(y), float(z), DEFAULTS.NOISE_3D_AMPLITUDE)

    def sample_2d_grid(self, x_coords: np.ndarray, z_coords: np.ndarray) -> np.ndarray:
        """Samples the field on 2D coordinate arrays of identical shape."""
        return perlin_noise_2d(
            self.permutation_table,
            np.asarray(x_coords, dtype=np.float64),
            np.asarray(z_coords, dtype=np.float64),
            DEFAULTS.NOISE_2D_AMPLITUDE,
        )
