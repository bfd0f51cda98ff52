# terrain_streamer/chunks.py

"""
================================================================================
CHUNK SYNTHESIS & STREAMING
================================================================================
This module owns the unit of generation, caching and eviction: the chunk.

`synthesize_chunk` is a top-level, side-effect-free function that builds one
chunk from its key: it samples the surface on a fixed-resolution grid (carving
included), looks up the river and cave geometry overlapping the chunk, and
places decorations with a random stream derived from the world seed and the
key. Re-synthesising a key therefore reproduces the same chunk exactly.

`ChunkStore` keeps the set of loaded chunks equal to the active window around
the observer. Chunks are created lazily when they enter the window and
released when they leave it. Synthesis can run inline or, when a
ChunkSynthesisQueue is supplied, on a worker pool.

Data Contract:
---------------
- Inputs:
    - Chunk keys (cx, cz); chunk (cx, cz) covers terrain square
      [cx, cx + 1] x [cz, cz + 1].
    - A TerrainSampler and FeatureIndex shared read-only by every synthesis.
- Outputs:
    - Chunk objects holding heightmap, colour buffer, biome ids, feature
      overlap and decorations.
    - Lifecycle notifications to registered ChunkListeners.
- Side Effects: Logs using the provided logger; notifies listeners.
- Invariants: After every update, loaded keys plus keys still being
  synthesised equal the active window exactly.
================================================================================
"""
import logging
import math
from dataclasses import dataclass, field
from enum import Enum
from typing import Protocol, Tuple

import numpy as np

from .biomes import Biome, biomes_by_name

# (cx, cz); chunk (cx, cz) covers terrain square [cx, cx + 1] x [cz, cz + 1].
ChunkKey = Tuple[int, int]


class DecorationKind(Enum):
    TREE = "tree"
    ANIMAL = "animal"


@dataclass(frozen=True)
class Decoration:
    kind: DecorationKind
    # (x, y, z) in world units, relative to the chunk's origin corner.
    local_position: tuple
    biome: Biome


@dataclass
class Chunk:
    key: tuple
    heightmap: np.ndarray
    colors: np.ndarray
    biome_ids: np.ndarray
    river_points: list = field(default_factory=list)
    river_segments: list = field(default_factory=list)
    caves: list = field(default_factory=list)
    decorations: list = field(default_factory=list)

    @property
    def has_river(self) -> bool:
        return bool(self.river_points or self.river_segments)

    @property
    def has_cave(self) -> bool:
        return bool(self.caves)

    @property
    def cave_entrances(self) -> list:
        return [cave.entrance for cave in self.caves]

    @property
    def trees(self) -> list:
        return [d for d in self.decorations if d.kind is DecorationKind.TREE]

    @property
    def animals(self) -> list:
        return [d for d in self.decorations if d.kind is DecorationKind.ANIMAL]

    def release(self) -> list:
        """Drops ownership of every decoration and returns what was released."""
        released = self.decorations
        self.decorations = []
        return released


class ChunkListener(Protocol):
    """
    The interface chunk consumers (mesh builders, decoration renderers, audio
    emitters) implement to attach and detach their own resources.
    """
    def chunk_created(self, chunk: Chunk) -> None: ...
    def chunk_evicted(self, chunk: Chunk) -> None: ...


# --- Window helpers ---
def observer_chunk(world_x: float, world_z: float, chunk_size: float) -> ChunkKey:
    """The key of the chunk containing a world-space position."""
    return (math.floor(world_x / chunk_size), math.floor(world_z / chunk_size))


def active_window(center: tuple, radius: int) -> frozenset:
    """All keys within Chebyshev distance `radius` of `center`."""
    cx, cz = center
    return frozenset(
        (cx + dx, cz + dz)
        for dx in range(-radius, radius + 1)
        for dz in range(-radius, radius + 1)
    )


# --- Synthesis ---
def decoration_rng(seed: int, key: ChunkKey) -> np.random.Generator:
    """A random stream unique to (seed, key); identical every time it is built."""
    cx, cz = key
    return np.random.default_rng([seed, cx % 2**32, cz % 2**32])


def _place(kind, count, footprint, eligible, key, sampler, settings, rng) -> list:
    chunk_size = settings['chunk_size']
    probe = settings['decoration_slope_probe']
    lift = settings['animal_lift'] if kind is DecorationKind.ANIMAL else 0.0
    margin = (1.0 - footprint) / 2.0

    placed = []
    for _ in range(count):
        # Draw both coordinates before any rejection so the stream stays aligned.
        local_x = (margin + rng.random() * footprint) * chunk_size
        local_z = (margin + rng.random() * footprint) * chunk_size
        x = key[0] + local_x / chunk_size
        z = key[1] + local_z / chunk_size

        sample = sampler.sample(x, z)
        if sample.biome not in eligible:
            continue
        if sample.elevation < settings['decoration_min_elevation']:
            continue
        neighbour = sampler.sample(x + probe, z + probe)
        if abs(sample.elevation - neighbour.elevation) > settings['decoration_max_slope']:
            continue

        placed.append(Decoration(kind, (local_x, sample.elevation + lift, local_z), sample.biome))
    return placed


def place_decorations(key: tuple, sampler, settings: dict, rng: np.random.Generator) -> list:
    """Trees first, then animals, both drawn from the same per-chunk stream."""
    tree_count = settings['tree_min_candidates'] + int(rng.integers(0, settings['tree_extra_candidates'], endpoint=True))
    decorations = _place(
        DecorationKind.TREE, tree_count, 1.0,
        biomes_by_name(settings['tree_biomes']), key, sampler, settings, rng,
    )

    animal_count = 0
    if rng.random() < settings['animal_spawn_probability']:
        animal_count = settings['animal_min_candidates'] + int(rng.integers(0, settings['animal_extra_candidates'], endpoint=True))
    decorations += _place(
        DecorationKind.ANIMAL, animal_count, settings['animal_footprint'],
        biomes_by_name(settings['animal_biomes']), key, sampler, settings, rng,
    )
    return decorations


def synthesize_chunk(key: ChunkKey, sampler, features, settings: dict) -> Chunk:
    """
    Builds the chunk for `key`. Pure with respect to its inputs: the sampler
    and feature index are only read, so this may run on any worker thread.
    """
    cx, cz = key
    x_grid, z_grid = sampler.get_coordinate_grid(cx, cz, 1.0, settings['chunk_resolution'])
    surface = sampler.sample_grid(x_grid, z_grid)

    rng = decoration_rng(settings['decoration_seed'], key)
    return Chunk(
        key=key,
        heightmap=surface.elevation,
        colors=surface.colors,
        biome_ids=surface.biome_ids,
        river_points=features.river_points_in(key) if features is not None else [],
        river_segments=features.river_segments_in(key) if features is not None else [],
        caves=features.caves_in(key) if features is not None else [],
        decorations=place_decorations(key, sampler, settings, rng),
    )


@dataclass(frozen=True)
class UpdateReport:
    created: tuple
    evicted: tuple
    pending: tuple = ()

    @property
    def changed(self) -> bool:
        return bool(self.created or self.evicted)


class ChunkStore:
    """
    Spatial cache keyed by integer chunk coordinates. It is the single owner
    of every loaded chunk.
    """

    def __init__(self, synthesize, render_radius: int, logger: logging.Logger = None, queue=None):
        """
        Args:
            synthesize: callable key -> Chunk, used for inline synthesis.
            render_radius (int): Chebyshev radius of the active window.
            logger (logging.Logger): The logger instance for all output.
            queue (ChunkSynthesisQueue, optional): When given, missing chunks
                are submitted to the queue and inserted by collect().
        """
        self.synthesize = synthesize
        self.render_radius = render_radius
        self.logger = logger or logging.getLogger(__name__)
        self.queue = queue
        self.window = frozenset()
        self.center = None
        self._chunks = {}
        self._listeners = []

    # --- Mapping interface ---
    def __contains__(self, key) -> bool:
        return key in self._chunks

    def __len__(self) -> int:
        return len(self._chunks)

    def __getitem__(self, key) -> Chunk:
        return self._chunks[key]

    def __iter__(self):
        return iter(self._chunks)

    def get(self, key, default=None):
        return self._chunks.get(key, default)

    def keys(self) -> frozenset:
        return frozenset(self._chunks)

    def chunks(self) -> list:
        return list(self._chunks.values())

    @property
    def pending(self) -> frozenset:
        return self.queue.in_flight() if self.queue is not None else frozenset()

    # --- Listeners ---
    def add_listener(self, listener: ChunkListener):
        self._listeners.append(listener)

    def remove_listener(self, listener: ChunkListener):
        self._listeners.remove(listener)

    # --- Lifecycle ---
    def _insert(self, chunk: Chunk):
        self._chunks[chunk.key] = chunk
        self.logger.debug(f"Chunk {chunk.key} created ({len(chunk.decorations)} decorations).")
        for listener in self._listeners:
            listener.chunk_created(chunk)

    def evict(self, key) -> bool:
        """
        Removes a chunk and releases its decorations. Evicting a key that is not
        loaded is a no-op. A pending synthesis is cancelled only for keys
        outside the active window.
        """
        if self.queue is not None and key not in self.window:
            self.queue.cancel(key)
        chunk = self._chunks.pop(key, None)
        if chunk is None:
            return False
        for listener in self._listeners:
            listener.chunk_evicted(chunk)
        chunk.release()
        self.logger.debug(f"Chunk {key} evicted.")
        return True

    def update(self, observer_cx: int, observer_cz: int) -> UpdateReport:
        """Brings the store in line with the window around the observer's chunk."""
        self.center = (observer_cx, observer_cz)
        self.window = active_window(self.center, self.render_radius)

        # 1. Create what the window needs.
        created = []
        missing = sorted(key for key in self.window if key not in self._chunks)
        if self.queue is None:
            for key in missing:
                self._insert(self.synthesize(key))
                created.append(key)
        else:
            for key in missing:
                self.queue.submit(key)
            created.extend(self.collect())

        # 2. Evict what it no longer covers.
        evicted = [key for key in sorted(self._chunks) if key not in self.window]
        for key in evicted:
            self.evict(key)
        if self.queue is not None:
            for key in self.queue.in_flight() - self.window:
                self.queue.cancel(key)

        self._check_window()
        report = UpdateReport(created=tuple(created), evicted=tuple(evicted), pending=tuple(sorted(self.pending)))
        if report.changed:
            self.logger.info(
                f"Window centred on {self.center}: {len(created)} created, {len(evicted)} evicted, "
                f"{len(report.pending)} pending, {len(self._chunks)} loaded."
            )
        return report

    def collect(self) -> list:
        """Inserts finished pooled syntheses whose keys are still wanted."""
        if self.queue is None:
            return []
        created = []
        for key, chunk in self.queue.poll():
            if key not in self.window or key in self._chunks:
                self.logger.debug(f"Discarded synthesis result for {key}.")
                continue
            self._insert(chunk)
            created.append(key)
        return created

    def flush(self, timeout: float = None) -> list:
        """Blocks until every pending synthesis has finished, then collects."""
        if self.queue is None:
            return []
        self.queue.wait(timeout)
        created = self.collect()
        self._check_window()
        return created

    def clear(self):
        """Evicts every loaded chunk and cancels every pending synthesis."""
        for key in sorted(self._chunks):
            self.evict(key)
        if self.queue is not None:
            for key in self.queue.in_flight():
                self.queue.cancel(key)
        self.window = frozenset()
        self.center = None

    def _check_window(self):
        loaded = set(self._chunks)
        pending = set(self.pending)
        assert not (loaded & pending), f"Keys both loaded and pending: {sorted(loaded & pending)}"
        assert loaded | pending == set(self.window), (
            f"Store out of sync with window: extra={sorted((loaded | pending) - self.window)}, "
            f"missing={sorted(self.window - (loaded | pending))}"
        )
