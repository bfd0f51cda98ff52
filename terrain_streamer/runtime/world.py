# terrain_streamer/runtime/world.py

"""
================================================================================
WORLD RUNTIME
================================================================================
This module provides the user-facing `World` class, the single context object
that owns everything one generated world needs: the seed and the random
streams derived from it, the noise field and surface models, the river and
cave sets, the feature index, the chunk store and the weather cycle.

Nothing here is global, so several independent worlds (for example one per
test) can live in the same process.

Data Contract:
---------------
- Inputs (on initialization):
    - config (dict): Parameters overriding the defaults in config.py.
    - logger (logging.Logger): The logger instance for all output.
- Outputs:
    - Point queries (elevation, climate, biome) usable without loading chunks.
    - The immutable river and cave tuples.
    - The chunk store, kept in sync with the observer by update_observer().
- Side Effects: Logs initialisation and streaming activity. When
  `synthesis_workers` > 0, owns a thread pool until close() is called.
- Invariants: Given the same config, every query and every synthesised chunk
  is deterministic.
================================================================================
"""
import logging

import numpy as np

from .. import biomes
from .. import config as DEFAULTS
from ..carving import FeatureIndex
from ..chunks import ChunkStore, observer_chunk, synthesize_chunk
from ..generator import ClimateModel, ElevationModel, SurfaceSample, TerrainSampler
from ..hydrology import HydrologyGenerator
from ..noise import NoiseField
from ..speleology import SpeleologyGenerator
from ..worker import ChunkSynthesisQueue
from .weather import WeatherCycle


def consolidate_settings(user_config: dict) -> dict:
    """Merges a user config over the defaults. Unknown keys are ignored."""
    settings = {
        'seed': user_config.get('seed', DEFAULTS.DEFAULT_SEED),
        'river_seed_offset': user_config.get('river_seed_offset', DEFAULTS.RIVER_SEED_OFFSET),
        'cave_seed_offset': user_config.get('cave_seed_offset', DEFAULTS.CAVE_SEED_OFFSET),
        'decoration_seed_offset': user_config.get('decoration_seed_offset', DEFAULTS.DECORATION_SEED_OFFSET),
        'weather_seed_offset': user_config.get('weather_seed_offset', DEFAULTS.WEATHER_SEED_OFFSET),

        'elevation_octaves': user_config.get('elevation_octaves', DEFAULTS.ELEVATION_OCTAVES),
        'height_scale': user_config.get('height_scale', DEFAULTS.HEIGHT_SCALE),
        'climate_frequency': user_config.get('climate_frequency', DEFAULTS.CLIMATE_FREQUENCY),
        'climate_offset': user_config.get('climate_offset', DEFAULTS.CLIMATE_OFFSET),

        'river_count': user_config.get('river_count', DEFAULTS.RIVER_COUNT),
        'river_seed_attempts': user_config.get('river_seed_attempts', DEFAULTS.RIVER_SEED_ATTEMPTS),
        'river_seed_extent': user_config.get('river_seed_extent', DEFAULTS.RIVER_SEED_EXTENT),
        'river_step_distance': user_config.get('river_step_distance', DEFAULTS.RIVER_STEP_DISTANCE),
        'river_max_steps': user_config.get('river_max_steps', DEFAULTS.RIVER_MAX_STEPS),
        'river_min_length': user_config.get('river_min_length', DEFAULTS.RIVER_MIN_LENGTH),
        'river_source_min_elevation': user_config.get('river_source_min_elevation', DEFAULTS.RIVER_SOURCE_MIN_ELEVATION),
        'ocean_elevation': user_config.get('ocean_elevation', DEFAULTS.OCEAN_ELEVATION),

        'cave_count': user_config.get('cave_count', DEFAULTS.CAVE_COUNT),
        'cave_seed_attempts': user_config.get('cave_seed_attempts', DEFAULTS.CAVE_SEED_ATTEMPTS),
        'cave_seed_extent': user_config.get('cave_seed_extent', DEFAULTS.CAVE_SEED_EXTENT),
        'cave_entrance_min_elevation': user_config.get('cave_entrance_min_elevation', DEFAULTS.CAVE_ENTRANCE_MIN_ELEVATION),
        'cave_entrance_max_elevation': user_config.get('cave_entrance_max_elevation', DEFAULTS.CAVE_ENTRANCE_MAX_ELEVATION),
        'cave_main_tunnel_steps': user_config.get('cave_main_tunnel_steps', DEFAULTS.CAVE_MAIN_TUNNEL_STEPS),
        'cave_branch_count': user_config.get('cave_branch_count', DEFAULTS.CAVE_BRANCH_COUNT),
        'cave_branch_steps': user_config.get('cave_branch_steps', DEFAULTS.CAVE_BRANCH_STEPS),
        'cave_min_y': user_config.get('cave_min_y', DEFAULTS.CAVE_MIN_Y),
        'cave_max_y': user_config.get('cave_max_y', DEFAULTS.CAVE_MAX_Y),
        'cave_start_y': user_config.get('cave_start_y', DEFAULTS.CAVE_START_Y),
        'cave_walk_frequency': user_config.get('cave_walk_frequency', DEFAULTS.CAVE_WALK_FREQUENCY),
        'cave_walk_horizontal_step': user_config.get('cave_walk_horizontal_step', DEFAULTS.CAVE_WALK_HORIZONTAL_STEP),
        'cave_walk_vertical_step': user_config.get('cave_walk_vertical_step', DEFAULTS.CAVE_WALK_VERTICAL_STEP),
        'cave_walk_axis_offset': user_config.get('cave_walk_axis_offset', DEFAULTS.CAVE_WALK_AXIS_OFFSET),

        'river_carve_radius': user_config.get('river_carve_radius', DEFAULTS.RIVER_CARVE_RADIUS),
        'river_bed_elevation': user_config.get('river_bed_elevation', DEFAULTS.RIVER_BED_ELEVATION),
        'cave_carve_radius': user_config.get('cave_carve_radius', DEFAULTS.CAVE_CARVE_RADIUS),
        'cave_entrance_depth': user_config.get('cave_entrance_depth', DEFAULTS.CAVE_ENTRANCE_DEPTH),

        'chunk_size': user_config.get('chunk_size', DEFAULTS.CHUNK_SIZE),
        'chunk_resolution': user_config.get('chunk_resolution', DEFAULTS.CHUNK_RESOLUTION),
        'render_radius': user_config.get('render_radius', DEFAULTS.RENDER_RADIUS),
        'synthesis_workers': user_config.get('synthesis_workers', DEFAULTS.SYNTHESIS_WORKERS),

        'tree_min_candidates': user_config.get('tree_min_candidates', DEFAULTS.TREE_MIN_CANDIDATES),
        'tree_extra_candidates': user_config.get('tree_extra_candidates', DEFAULTS.TREE_EXTRA_CANDIDATES),
        'tree_biomes': user_config.get('tree_biomes', DEFAULTS.TREE_BIOMES),
        'animal_spawn_probability': user_config.get('animal_spawn_probability', DEFAULTS.ANIMAL_SPAWN_PROBABILITY),
        'animal_min_candidates': user_config.get('animal_min_candidates', DEFAULTS.ANIMAL_MIN_CANDIDATES),
        'animal_extra_candidates': user_config.get('animal_extra_candidates', DEFAULTS.ANIMAL_EXTRA_CANDIDATES),
        'animal_footprint': user_config.get('animal_footprint', DEFAULTS.ANIMAL_FOOTPRINT),
        'animal_biomes': user_config.get('animal_biomes', DEFAULTS.ANIMAL_BIOMES),
        'animal_lift': user_config.get('animal_lift', DEFAULTS.ANIMAL_LIFT),
        'decoration_min_elevation': user_config.get('decoration_min_elevation', DEFAULTS.DECORATION_MIN_ELEVATION),
        'decoration_slope_probe': user_config.get('decoration_slope_probe', DEFAULTS.DECORATION_SLOPE_PROBE),
        'decoration_max_slope': user_config.get('decoration_max_slope', DEFAULTS.DECORATION_MAX_SLOPE),

        'weather_min_duration_s': user_config.get('weather_min_duration_s', DEFAULTS.WEATHER_MIN_DURATION_S),
        'weather_extra_duration_s': user_config.get('weather_extra_duration_s', DEFAULTS.WEATHER_EXTRA_DURATION_S),
    }

    # --- Derived values ---
    settings['decoration_seed'] = settings['seed'] + settings['decoration_seed_offset']

    validate_settings(settings)
    return settings


def validate_settings(settings: dict):
    """Raises ValueError for settings no world can be built from."""
    if settings['seed'] < 0:
        raise ValueError(f"seed must be non-negative, got {settings['seed']}")
    if settings['render_radius'] < 0:
        raise ValueError(f"render_radius must be non-negative, got {settings['render_radius']}")
    if settings['chunk_resolution'] < 1:
        raise ValueError(f"chunk_resolution must be at least 1, got {settings['chunk_resolution']}")
    if settings['chunk_size'] <= 0:
        raise ValueError(f"chunk_size must be positive, got {settings['chunk_size']}")
    if settings['synthesis_workers'] < 0:
        raise ValueError(f"synthesis_workers must be non-negative, got {settings['synthesis_workers']}")

    bands = (
        ('cave_entrance_min_elevation', 'cave_entrance_max_elevation'),
        ('cave_min_y', 'cave_max_y'),
    )
    for low, high in bands:
        if settings[low] > settings[high]:
            raise ValueError(f"{low} ({settings[low]}) must not exceed {high} ({settings[high]})")
    if not 0.0 <= settings['animal_spawn_probability'] <= 1.0:
        raise ValueError(
            f"animal_spawn_probability must lie in [0, 1], got {settings['animal_spawn_probability']}"
        )
    # Raises KeyError for names outside the palette; surface it as a config error.
    for key in ('tree_biomes', 'animal_biomes'):
        try:
            biomes.biomes_by_name(settings[key])
        except KeyError as exc:
            raise ValueError(f"{key} names an unknown biome: {exc}") from exc


class World:
    """
    The main runtime class for a generated world. Owns generation state,
    chunk streaming and weather.
    """
    def __init__(self, config: dict = None, logger: logging.Logger = None):
        """
        Initializes the World and generates its rivers and caves.

        Args:
            config (dict, optional): User-defined parameters to override defaults.
            logger (logging.Logger, optional): The logger instance for all output.
        """
        self.logger = logger or logging.getLogger(__name__)
        self.user_config = dict(config or {})

        # --- 1. Consolidate Configuration ---
        self.settings = consolidate_settings(self.user_config)
        self.seed = self.settings['seed']
        self.chunk_size = self.settings['chunk_size']
        self.logger.info(f"World initializing with seed {self.seed}...")

        # --- 2. Surface Models ---
        self.noise_field = NoiseField(self.seed)
        self.elevation_model = ElevationModel(self.noise_field, self.settings)
        self.climate_model = ClimateModel(self.noise_field, self.settings)

        # --- 3. World-Scale Features (traced once, read-only afterwards) ---
        river_rng = np.random.default_rng(self.seed + self.settings['river_seed_offset'])
        cave_rng = np.random.default_rng(self.seed + self.settings['cave_seed_offset'])
        self.rivers = HydrologyGenerator(
            self.elevation_model.elevation, river_rng, self.settings, self.logger
        ).generate()
        self.caves = SpeleologyGenerator(
            self.noise_field, self.elevation_model.elevation, cave_rng, self.settings, self.logger
        ).generate()
        self.features = FeatureIndex(self.rivers, self.caves, self.settings)
        self.sampler = TerrainSampler(self.elevation_model, self.climate_model, self.features)

        # --- 4. Chunk Streaming ---
        self.queue = None
        if self.settings['synthesis_workers'] > 0:
            self.queue = ChunkSynthesisQueue(self.synthesize, self.settings['synthesis_workers'], self.logger)
        self.chunks = ChunkStore(self.synthesize, self.settings['render_radius'], self.logger, self.queue)

        # --- 5. Weather ---
        weather_rng = np.random.default_rng(self.seed + self.settings['weather_seed_offset'])
        self.weather = WeatherCycle(weather_rng, self.settings, self.logger)

        self.logger.info(
            f"World ready: {len(self.rivers)} rivers, {len(self.caves)} caves, "
            f"render radius {self.settings['render_radius']}."
        )

    # --- Point Queries (independent of chunk loading) ---
    def elevation_at(self, x: float, z: float) -> float:
        """Natural elevation at a terrain coordinate."""
        return self.elevation_model.elevation(x, z)

    def temperature_at(self, x: float, z: float) -> float:
        return self.climate_model.temperature(x, z)

    def moisture_at(self, x: float, z: float) -> float:
        return self.climate_model.moisture(x, z)

    def biome_weights_at(self, elevation: float, temperature: float, moisture: float) -> np.ndarray:
        return biomes.biome_weights(elevation, temperature, moisture)

    def sample_surface(self, x: float, z: float) -> SurfaceSample:
        """The carved surface at a terrain coordinate."""
        return self.sampler.sample(x, z)

    def dominant_biome_at(self, x: float, z: float) -> biomes.Biome:
        return self.sampler.sample(x, z).biome

    def biome_under_observer(self, world_x: float, world_z: float) -> biomes.Biome:
        return self.dominant_biome_at(world_x / self.chunk_size, world_z / self.chunk_size)

    # --- Chunk Streaming ---
    def synthesize(self, key):
        return synthesize_chunk(key, self.sampler, self.features, self.settings)

    def update_chunks(self, observer_cx: int, observer_cz: int):
        return self.chunks.update(observer_cx, observer_cz)

    def update_observer(self, world_x: float, world_z: float):
        """Streams chunks around an observer at a world-space position."""
        cx, cz = observer_chunk(world_x, world_z, self.chunk_size)
        return self.chunks.update(cx, cz)

    def update(self, delta_time: float, world_x: float, world_z: float):
        """
        Per-frame update: streams chunks and advances the weather.

        Args:
            delta_time (float): Real time elapsed since the last frame, in seconds.
            world_x, world_z (float): Observer position in world units.
        """
        report = self.update_observer(world_x, world_z)
        self.weather.update(delta_time, self.biome_under_observer(world_x, world_z))
        return report

    def close(self):
        """Evicts every chunk and stops the synthesis pool, if any."""
        self.chunks.clear()
        if self.queue is not None:
            self.queue.close()
            self.queue = None
            self.chunks.queue = None

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()
