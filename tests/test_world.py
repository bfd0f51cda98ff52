"""Tests for the World context: configuration, point queries and streaming."""
import logging

import numpy as np
import pytest

from terrain_streamer.biomes import Biome
from terrain_streamer.runtime import World, consolidate_settings

from conftest import SMALL_WORLD


def test_defaults_fill_missing_keys():
    settings = consolidate_settings({'seed': 5, 'not_a_setting': 1})
    assert settings['seed'] == 5
    assert settings['render_radius'] == 2
    assert settings['chunk_size'] == 64
    assert settings['decoration_seed'] == 5 + settings['decoration_seed_offset']
    assert 'not_a_setting' not in settings


@pytest.mark.parametrize("override", [
    {'seed': -1},
    {'render_radius': -1},
    {'chunk_resolution': 0},
    {'chunk_size': 0},
    {'synthesis_workers': -2},
    {'cave_min_y': 6.0},
    {'cave_entrance_min_elevation': 31.0},
    {'animal_spawn_probability': 1.5},
    {'tree_biomes': ['PLAINS', 'SWAMP']},
])
def test_invalid_config_raises(override):
    with pytest.raises(ValueError):
        World(config=dict(SMALL_WORLD, **override))


def test_same_seed_same_world():
    a, b = World(config=SMALL_WORLD), World(config=SMALL_WORLD)
    assert a.rivers == b.rivers
    assert a.caves == b.caves
    for x, z in [(0.25, 0.5), (-17.3, 40.1)]:
        assert a.elevation_at(x, z) == b.elevation_at(x, z)
        assert a.dominant_biome_at(x, z) is b.dominant_biome_at(x, z)


def test_point_queries_need_no_chunks(small_world):
    assert len(small_world.chunks) == 0
    e = small_world.elevation_at(3.3, -8.1)
    t = small_world.temperature_at(3.3, -8.1)
    m = small_world.moisture_at(3.3, -8.1)
    weights = small_world.biome_weights_at(e, t, m)
    assert weights.sum() == pytest.approx(1.0)
    assert isinstance(small_world.dominant_biome_at(3.3, -8.1), Biome)
    assert len(small_world.chunks) == 0


def test_rivers_are_carved_into_the_surface(carved_world):
    assert carved_world.rivers
    bed = carved_world.settings['river_bed_elevation']
    for x, z in carved_world.rivers[0].points:
        sample = carved_world.sample_surface(x, z)
        assert sample.elevation == min(sample.natural_elevation, bed)


def test_cave_entrances_are_carved_into_the_surface(carved_world):
    assert carved_world.caves
    cave = carved_world.caves[0]
    floor = cave.entrance_floor - carved_world.settings['cave_entrance_depth']
    sample = carved_world.sample_surface(cave.entrance[0], cave.entrance[2])
    assert sample.elevation == min(sample.natural_elevation, floor)


def test_streamed_chunks_carry_carved_features(carved_world):
    carved_world.update_chunks(0, 0)
    chunk = carved_world.chunks[(0, 0)]
    assert chunk.has_river and not chunk.has_cave
    assert chunk.heightmap.max() <= carved_world.settings['river_bed_elevation']


def test_update_observer_uses_world_coordinates(small_world):
    report = small_world.update_observer(100.0, -10.0)
    # (100 / 64, -10 / 64) lies in chunk (1, -1).
    assert small_world.chunks.center == (1, -1)
    assert set(report.created) == {(1 + dx, -1 + dz) for dx in (-1, 0, 1) for dz in (-1, 0, 1)}


def test_update_advances_weather(small_world):
    small_world.update(0.016, 0.0, 0.0)
    assert small_world.weather.time_remaining > 0.0


def test_close_releases_everything(pooled_world):
    pooled_world.update_chunks(0, 0)
    pooled_world.close()
    assert len(pooled_world.chunks) == 0
    assert pooled_world.queue is None


def test_initialisation_is_logged(caplog):
    with caplog.at_level(logging.INFO):
        World(config=SMALL_WORLD).close()
    assert "seed 7" in caplog.text
    assert "World ready" in caplog.text


def test_worlds_are_independent():
    a = World(config=dict(SMALL_WORLD, seed=1))
    b = World(config=dict(SMALL_WORLD, seed=2))
    a.update_chunks(0, 0)
    assert len(b.chunks) == 0
    assert not np.array_equal(a.synthesize((0, 0)).heightmap, b.synthesize((0, 0)).heightmap)
