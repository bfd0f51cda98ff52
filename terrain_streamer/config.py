# terrain_streamer/config.py

"""
================================================================================
INTERNAL DEFAULT CONFIGURATION
================================================================================
This module contains the default, fallback internal constants for the terrain
streamer. These values are used if they are not explicitly provided by the
user's configuration.

DO NOT MODIFY THIS FILE FOR A SPECIFIC WORLD.
Instead, pass a configuration dictionary to the World instance.

Units:
    - Terrain units: one unit is one chunk width. Every noise, elevation,
      river and cave query is expressed in terrain units.
    - World units: terrain units multiplied by CHUNK_SIZE. Elevations,
      observer positions and decoration positions are in world units.
================================================================================
"""

# --- Seeding ---
DEFAULT_SEED = 1337
# Offsets used to derive independent, deterministic random streams from the
# master seed. Each consumer of randomness draws from its own stream.
RIVER_SEED_OFFSET = 12347
CAVE_SEED_OFFSET = 98761
DECORATION_SEED_OFFSET = 54321
WEATHER_SEED_OFFSET = 25391

# --- Noise Normalisation ---
# Raw single-octave Perlin values rarely leave [-0.6, 0.6]. These factors
# stretch them towards the full [-1, 1] contract before clipping.
NOISE_2D_AMPLITUDE = 2.0
NOISE_3D_AMPLITUDE = 1.5

# --- Elevation Model ---
# (weight, frequency) pairs of the three octaves that build the surface.
ELEVATION_OCTAVES = (
    (0.6, 0.2),
    (0.3, 1.2),
    (0.1, 6.2),
)
# The shaped surface is v^3 * HEIGHT_SCALE, so elevations live in [-32, 32].
HEIGHT_SCALE = 32.0

# --- Climate Model ---
CLIMATE_FREQUENCY = 0.1
# Temperature samples the noise field at +offset, moisture at -offset.
CLIMATE_OFFSET = 100.0

# --- Biome Blending ---
# Floor spread evenly over the raw weights. An all-zero weight vector (dry,
# cool lowland between the climate ramps) normalises to a uniform blend.
BIOME_WEIGHT_EPSILON = 0.0001

# --- Hydrology ---
RIVER_COUNT = 3
# Random seed points tried per river before giving up on it.
RIVER_SEED_ATTEMPTS = 200
# Seeds are drawn uniformly from [-extent, extent] on both axes.
RIVER_SEED_EXTENT = 50.0
RIVER_STEP_DISTANCE = 2.0
RIVER_MAX_STEPS = 100
# A trace must hold MORE than this many points to be kept.
RIVER_MIN_LENGTH = 10
# Rivers only start above this elevation (hills and mountains).
RIVER_SOURCE_MIN_ELEVATION = 20.0
# A river that would step below this elevation has reached the sea.
OCEAN_ELEVATION = 2.0

# --- Speleology ---
CAVE_COUNT = 2
CAVE_SEED_ATTEMPTS = 50
CAVE_SEED_EXTENT = 50.0
# Entrances are only accepted strictly inside this elevation band.
CAVE_ENTRANCE_MIN_ELEVATION = 15.0
CAVE_ENTRANCE_MAX_ELEVATION = 30.0
CAVE_MAIN_TUNNEL_STEPS = 20
CAVE_BRANCH_COUNT = 3
CAVE_BRANCH_STEPS = 10
# Tunnel y-coordinates are clamped into this band (world units).
CAVE_MIN_Y = -10.0
CAVE_MAX_Y = 5.0
CAVE_START_Y = 0.0
CAVE_WALK_FREQUENCY = 0.1
CAVE_WALK_HORIZONTAL_STEP = 2.0
CAVE_WALK_VERTICAL_STEP = 0.5
# Offset into the 3D field used to decorrelate the three walk axes.
CAVE_WALK_AXIS_OFFSET = 100.0

# --- Carving ---
# Surface points closer than this (terrain units) to a river point are
# clamped down to RIVER_BED_ELEVATION.
RIVER_CARVE_RADIUS = 2.0
RIVER_BED_ELEVATION = 1.5
# Surface points closer than this to a cave entrance are clamped down to
# the entrance floor: entrance elevation minus CAVE_ENTRANCE_DEPTH.
CAVE_CARVE_RADIUS = 3.0
CAVE_ENTRANCE_DEPTH = 2.0

# --- Chunks & Streaming ---
CHUNK_SIZE = 64            # World units along one chunk side.
CHUNK_RESOLUTION = 64      # Grid cells per chunk side (vertices = resolution + 1).
RENDER_RADIUS = 2          # Chebyshev radius of the active window, in chunks.
SYNTHESIS_WORKERS = 0      # Worker threads for off-path synthesis; 0 synthesises inline.

# --- Decorations ---
TREE_MIN_CANDIDATES = 12
TREE_EXTRA_CANDIDATES = 7           # Candidates = min + an integer in [0, extra].
TREE_BIOMES = ("PLAINS", "FOREST", "HILLS")
ANIMAL_SPAWN_PROBABILITY = 0.5
ANIMAL_MIN_CANDIDATES = 1
ANIMAL_EXTRA_CANDIDATES = 1
ANIMAL_FOOTPRINT = 0.8              # Fraction of the chunk animals may occupy.
ANIMAL_BIOMES = ("PLAINS", "FOREST")
ANIMAL_LIFT = 0.5                   # Animals stand slightly above the surface.
DECORATION_MIN_ELEVATION = 2.5
DECORATION_SLOPE_PROBE = 0.01       # Terrain units between the two slope samples.
DECORATION_MAX_SLOPE = 2.5

# --- Weather ---
WEATHER_MIN_DURATION_S = 10.0
WEATHER_EXTRA_DURATION_S = 10.0
