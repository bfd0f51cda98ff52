"""Tests for biome classification and colour blending."""
import numpy as np
import pytest

from terrain_streamer import biomes
from terrain_streamer.biomes import Biome


def _sample_inputs():
    rng = np.random.default_rng(2024)
    for _ in range(300):
        yield rng.uniform(-32.0, 32.0), rng.uniform(0.0, 1.0), rng.uniform(0.0, 1.0)
    # Boundaries of every ramp.
    for e in (-32.0, 0.0, 1.5, 2.0, 3.5, 5.0, 18.0, 28.0, 38.0, 32.0):
        for t in (0.0, 0.3, 0.4, 0.6, 1.0):
            for m in (0.0, 0.3, 0.4, 1.0):
                yield e, t, m


def test_weights_are_normalised_and_non_negative():
    for e, t, m in _sample_inputs():
        weights = biomes.biome_weights(e, t, m)
        assert weights.shape == (len(biomes.PALETTE),)
        assert np.all(weights >= 0.0)
        assert weights.sum() == pytest.approx(1.0, abs=1e-9)


def test_gap_between_climate_ramps_blends_uniformly():
    # Dry and cool lowland: every membership ramp is zero here.
    weights = biomes.biome_weights(10.0, 0.5, 0.0)
    np.testing.assert_allclose(weights, np.full(len(biomes.PALETTE), 1.0 / len(biomes.PALETTE)))
    assert biomes.dominant_biome(weights) is Biome.OCEAN


@pytest.mark.parametrize("elevation", [-30.0, -5.0, 0.0, 1.0, 1.99])
def test_ocean_dominates_below_two(elevation):
    for t in (0.0, 0.5, 1.0):
        for m in (0.0, 0.5, 1.0):
            weights = biomes.biome_weights(elevation, t, m)
            others = np.delete(weights, Biome.OCEAN)
            assert weights[Biome.OCEAN] > others.max()
            assert biomes.dominant_biome(weights) is Biome.OCEAN


@pytest.mark.parametrize("temperature", [0.0, 0.1, 0.29])
def test_snow_grows_with_elevation_when_cold(temperature):
    elevations = np.linspace(28.5, 37.5, 10)
    snow = [biomes.biome_weights(e, temperature, 0.5)[Biome.SNOW] for e in elevations]
    assert all(w > 0.0 for w in snow)
    assert all(b > a for a, b in zip(snow, snow[1:]))
    assert biomes.biome_weights(28.0, temperature, 0.5)[Biome.SNOW] > 0.0


def test_no_snow_when_warm():
    assert biomes.biome_weights(35.0, 0.5, 0.5)[Biome.SNOW] < 1e-4


def test_ties_resolve_to_first_biome():
    weights = np.zeros(len(biomes.PALETTE))
    weights[Biome.PLAINS] = weights[Biome.FOREST] = 0.5
    assert biomes.dominant_biome(weights) is Biome.PLAINS


def test_grid_matches_point_classification():
    e = np.array([[0.0, 4.0], [12.0, 33.0]])
    t = np.array([[0.2, 0.7], [0.8, 0.1]])
    m = np.array([[0.5, 0.1], [0.9, 0.6]])
    grid = biomes.biome_weights_grid(e, t, m)
    ids = biomes.dominant_biome_grid(grid)
    assert grid.shape == (2, 2, len(biomes.PALETTE))
    for (row, col), value in np.ndenumerate(e):
        point = biomes.biome_weights(value, t[row, col], m[row, col])
        np.testing.assert_allclose(grid[row, col], point)
        assert ids[row, col] == biomes.dominant_biome(point)


def test_blend_of_pure_weight_is_palette_color():
    weights = np.zeros(len(biomes.PALETTE))
    weights[Biome.DESERT] = 1.0
    np.testing.assert_allclose(biomes.blend_colors(weights), biomes.PALETTE[Biome.DESERT].color)


def test_blended_colors_stay_in_range():
    e, t, m = np.meshgrid(np.linspace(-32, 32, 9), np.linspace(0, 1, 5), np.linspace(0, 1, 5))
    colors = biomes.blend_colors(biomes.biome_weights_grid(e, t, m))
    assert colors.shape == e.shape + (3,)
    assert np.all(colors >= 0.0) and np.all(colors <= 1.0)


def test_display_name_is_metadata_only():
    assert Biome.SNOW.display_name == "Snow"
    assert Biome(3) is Biome.PLAINS


def test_biomes_by_name():
    assert biomes.biomes_by_name(["PLAINS", "FOREST"]) == {Biome.PLAINS, Biome.FOREST}
    with pytest.raises(KeyError):
        biomes.biomes_by_name(["SWAMP"])
