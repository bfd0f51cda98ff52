"""Tests for the elevation and climate models and the terrain sampler."""
import numpy as np
import pytest

from terrain_streamer.biomes import Biome
from terrain_streamer.generator import ClimateModel, ElevationModel, TerrainSampler
from terrain_streamer.noise import NoiseField


@pytest.fixture
def models(settings):
    field = NoiseField(21)
    return ElevationModel(field, settings), ClimateModel(field, settings)


def test_elevation_is_deterministic(settings):
    a = ElevationModel(NoiseField(5), settings)
    b = ElevationModel(NoiseField(5), settings)
    for x, z in [(0.1, 0.2), (-40.3, 17.9), (123.45, -678.9)]:
        assert a.elevation(x, z) == a.elevation(x, z)
        assert a.elevation(x, z) == b.elevation(x, z)


def test_elevation_follows_weighted_octaves(settings):
    field = NoiseField(8)
    model = ElevationModel(field, settings)
    x, z = 3.3, -1.7
    v = (0.6 * field.sample_2d(x * 0.2, z * 0.2)
         + 0.3 * field.sample_2d(x * 1.2, z * 1.2)
         + 0.1 * field.sample_2d(x * 6.2, z * 6.2))
    assert model.elevation(x, z) == pytest.approx(v ** 3 * 32.0)


def test_elevation_and_climate_ranges(models):
    elevation, climate = models
    rng = np.random.default_rng(1)
    for x, z in rng.uniform(-300.0, 300.0, size=(200, 2)):
        assert -32.0 <= elevation.elevation(x, z) <= 32.0
        assert 0.0 <= climate.temperature(x, z) <= 1.0
        assert 0.0 <= climate.moisture(x, z) <= 1.0


def test_temperature_and_moisture_sample_opposite_offsets(settings):
    field = NoiseField(4)
    climate = ClimateModel(field, settings)
    x, z = 2.5, 7.25
    assert climate.temperature(x, z) == pytest.approx(0.5 + 0.5 * field.sample_2d(x * 0.1 + 100, z * 0.1 + 100))
    assert climate.moisture(x, z) == pytest.approx(0.5 + 0.5 * field.sample_2d(x * 0.1 - 100, z * 0.1 - 100))


def test_grids_match_point_queries(models):
    elevation, climate = models
    xg, zg = np.meshgrid(np.linspace(-3.0, 3.0, 6), np.linspace(10.0, 12.0, 4))
    e_grid = elevation.elevation_grid(xg, zg)
    t_grid = climate.temperature_grid(xg, zg)
    m_grid = climate.moisture_grid(xg, zg)
    for (row, col), x in np.ndenumerate(xg):
        z = zg[row, col]
        assert e_grid[row, col] == pytest.approx(elevation.elevation(x, z), abs=1e-12)
        assert t_grid[row, col] == pytest.approx(climate.temperature(x, z), abs=1e-12)
        assert m_grid[row, col] == pytest.approx(climate.moisture(x, z), abs=1e-12)


def test_coordinate_grid_covers_chunk_edges(models):
    sampler = TerrainSampler(*models)
    xg, zg = sampler.get_coordinate_grid(-2, 5, 1.0, 4)
    assert xg.shape == zg.shape == (5, 5)
    assert xg[0, 0] == -2.0 and xg[0, -1] == -1.0
    assert zg[0, 0] == 5.0 and zg[-1, 0] == 6.0
    # Rows run along z, columns along x.
    assert np.all(xg[:, 1] == xg[0, 1])
    assert np.all(zg[1, :] == zg[1, 0])


def test_uncarved_sample_matches_models(models):
    elevation, climate = models
    sampler = TerrainSampler(elevation, climate)
    sample = sampler.sample(1.25, -0.75)
    assert sample.elevation == sample.natural_elevation == elevation.elevation(1.25, -0.75)
    assert sample.temperature == climate.temperature(1.25, -0.75)
    assert sum(sample.weights) == pytest.approx(1.0)
    assert isinstance(sample.biome, Biome)
    assert len(sample.color) == 3


def test_sample_grid_matches_point_samples(models):
    sampler = TerrainSampler(*models)
    xg, zg = sampler.get_coordinate_grid(4, -3, 1.0, 3)
    grid = sampler.sample_grid(xg, zg)
    assert grid.colors.shape == xg.shape + (3,)
    assert grid.colors.dtype == np.float32
    for (row, col), x in np.ndenumerate(xg):
        point = sampler.sample(x, zg[row, col])
        assert grid.elevation[row, col] == pytest.approx(point.elevation, abs=1e-12)
        assert grid.biome_ids[row, col] == point.biome
