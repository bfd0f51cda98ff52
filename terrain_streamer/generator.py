# terrain_streamer/generator.py

"""
================================================================================
SURFACE GENERATION
================================================================================
This module turns the raw noise field into terrain data: the elevation model,
the climate model, and the sampler that combines them with biome
classification and feature carving into one query per surface point.

Data Contract:
---------------
- Inputs (on initialization):
    - noise_field (NoiseField): The seeded noise field shared by every model.
    - settings (dict): The consolidated world settings.
- Outputs (from methods):
    - Scalars for single-point queries, NumPy arrays for grid queries.
- Side Effects: None.
- Invariants: Given the same seed and settings, the output is deterministic,
  and a grid query returns exactly what the matching point queries return.
================================================================================
"""
from dataclasses import dataclass

import numpy as np

from . import biomes
from .noise import NoiseField


class ElevationModel:
    """Three weighted octaves of noise, sharpened by a cubic shaping curve."""

    def __init__(self, noise_field: NoiseField, settings: dict):
        self.noise_field = noise_field
        self.octaves = tuple(settings['elevation_octaves'])
        self.height_scale = settings['height_scale']

    def _shape(self, value):
        # Cubing flattens valleys and sharpens peaks.
        return value * value * value * self.height_scale

    def elevation(self, x: float, z: float) -> float:
        """Natural (uncarved) elevation at a terrain coordinate."""
        value = 0.0
        for weight, frequency in self.octaves:
            value += weight * self.noise_field.sample_2d(x * frequency, z * frequency)
        return self._shape(value)

    def elevation_grid(self, x_coords: np.ndarray, z_coords: np.ndarray) -> np.ndarray:
        value = np.zeros(np.shape(x_coords))
        for weight, frequency in self.octaves:
            value += weight * self.noise_field.sample_2d_grid(x_coords * frequency, z_coords * frequency)
        return self._shape(value)


class ClimateModel:
    """
    Temperature and moisture in [0, 1]. Both sample the same noise field as the
    elevation model, moved into distant regions of it by a fixed offset.
    """

    def __init__(self, noise_field: NoiseField, settings: dict):
        self.noise_field = noise_field
        self.frequency = settings['climate_frequency']
        self.offset = settings['climate_offset']

    def temperature(self, x: float, z: float) -> float:
        f, o = self.frequency, self.offset
        return 0.5 + 0.5 * self.noise_field.sample_2d(x * f + o, z * f + o)

    def moisture(self, x: float, z: float) -> float:
        f, o = self.frequency, self.offset
        return 0.5 + 0.5 * self.noise_field.sample_2d(x * f - o, z * f - o)

    def temperature_grid(self, x_coords: np.ndarray, z_coords: np.ndarray) -> np.ndarray:
        f, o = self.frequency, self.offset
        return 0.5 + 0.5 * self.noise_field.sample_2d_grid(x_coords * f + o, z_coords * f + o)

    def moisture_grid(self, x_coords: np.ndarray, z_coords: np.ndarray) -> np.ndarray:
        f, o = self.frequency, self.offset
        return 0.5 + 0.5 * self.noise_field.sample_2d_grid(x_coords * f - o, z_coords * f - o)


@dataclass(frozen=True)
class SurfaceSample:
    """Everything known about one surface point, computed once."""
    x: float
    z: float
    natural_elevation: float
    elevation: float
    temperature: float
    moisture: float
    weights: tuple
    biome: biomes.Biome

    @property
    def color(self) -> tuple:
        return tuple(float(c) for c in biomes.blend_colors(np.array(self.weights)))


@dataclass
class SurfaceGrid:
    """Grid counterpart of SurfaceSample. Arrays are indexed [row=z, col=x]."""
    x_coords: np.ndarray
    z_coords: np.ndarray
    natural_elevation: np.ndarray
    elevation: np.ndarray
    temperature: np.ndarray
    moisture: np.ndarray
    weights: np.ndarray
    biome_ids: np.ndarray
    colors: np.ndarray


class TerrainSampler:
    """
    The single entry point for surface queries. Chunk heightmaps, decoration
    placement and the biome-under-observer lookup all go through here, so what
    a chunk looks like and where decorations may stand can never drift apart.
    """

    def __init__(self, elevation_model: ElevationModel, climate_model: ClimateModel, features=None):
        self.elevation_model = elevation_model
        self.climate_model = climate_model
        # A carving.FeatureIndex, or None for an uncarved surface.
        self.features = features

    def sample(self, x: float, z: float) -> SurfaceSample:
        natural = self.elevation_model.elevation(x, z)
        elevation = natural
        if self.features is not None:
            elevation = self.features.carve_point(x, z, natural)
        temperature = self.climate_model.temperature(x, z)
        moisture = self.climate_model.moisture(x, z)
        weights = biomes.biome_weights(elevation, temperature, moisture)
        return SurfaceSample(
            x=x,
            z=z,
            natural_elevation=natural,
            elevation=elevation,
            temperature=temperature,
            moisture=moisture,
            weights=tuple(float(w) for w in weights),
            biome=biomes.dominant_biome(weights),
        )

    def sample_grid(self, x_coords: np.ndarray, z_coords: np.ndarray) -> SurfaceGrid:
        natural = self.elevation_model.elevation_grid(x_coords, z_coords)
        elevation = natural
        if self.features is not None:
            elevation = self.features.carve_grid(x_coords, z_coords, natural)
        temperature = self.climate_model.temperature_grid(x_coords, z_coords)
        moisture = self.climate_model.moisture_grid(x_coords, z_coords)
        weights = biomes.biome_weights_grid(elevation, temperature, moisture)
        return SurfaceGrid(
            x_coords=x_coords,
            z_coords=z_coords,
            natural_elevation=natural,
            elevation=elevation,
            temperature=temperature,
            moisture=moisture,
            weights=weights,
            biome_ids=biomes.dominant_biome_grid(weights),
            colors=biomes.blend_colors(weights).astype(np.float32),
        )

    def get_coordinate_grid(self, start_x: float, start_z: float, width: float, resolution: int):
        """
        Generates a square coordinate grid of (resolution + 1)^2 vertices whose
        outer vertices sit exactly on the square's edges, so neighbouring
        chunks share their border samples.
        """
        x_coords = start_x + np.linspace(0.0, width, resolution + 1)
        z_coords = start_z + np.linspace(0.0, width, resolution + 1)
        return np.meshgrid(x_coords, z_coords)
