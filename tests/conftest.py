"""Pytest configuration for terrain streamer tests."""
import sys
from pathlib import Path

import pytest

# Ensure the repository root is importable when the package is not installed.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from terrain_streamer.carving import FeatureIndex  # noqa: E402
from terrain_streamer.generator import TerrainSampler  # noqa: E402
from terrain_streamer.hydrology import RiverPath, TraceOutcome  # noqa: E402
from terrain_streamer.runtime import World, consolidate_settings  # noqa: E402
from terrain_streamer.speleology import Cave, Tunnel  # noqa: E402

SMALL_WORLD = {'seed': 7, 'chunk_resolution': 8, 'render_radius': 1}


@pytest.fixture
def settings():
    return consolidate_settings({})


@pytest.fixture
def small_world():
    world = World(config=SMALL_WORLD)
    yield world
    world.close()


@pytest.fixture
def pooled_world():
    world = World(config=dict(SMALL_WORLD, synthesis_workers=2))
    yield world
    world.close()


@pytest.fixture
def river_and_cave():
    """
    One short river through chunks (0, 0) and (1, 0) and one cave whose
    entrance sits in chunk (3, 3), built by hand so carving is always exercised.
    """
    river = RiverPath(points=((0.25, 0.25), (0.75, 0.25), (1.5, 0.5)), outcome=TraceOutcome.REACHED_SEA)
    tunnel = Tunnel(points=((3.5, 0.0, 3.5), (3.9, -1.0, 3.6)))
    cave = Cave(entrance=(3.5, 20.0, 3.5), tunnels=(tunnel,), chambers=())
    return (river,), (cave,)


@pytest.fixture
def carved_world(small_world, river_and_cave):
    """The small world with the hand-built river and cave indexed into its surface."""
    rivers, caves = river_and_cave
    small_world.rivers, small_world.caves = rivers, caves
    small_world.features = FeatureIndex(rivers, caves, small_world.settings)
    small_world.sampler = TerrainSampler(small_world.elevation_model, small_world.climate_model, small_world.features)
    return small_world
