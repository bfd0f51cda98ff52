# terrain_streamer/carving.py

"""
================================================================================
FEATURE INDEX & CARVING
================================================================================
This module indexes the world's rivers and caves once, after they have been
generated, and answers the two questions chunk synthesis asks about them:

    1. Carving: how far must the natural surface be lowered at a point?
       Points within RIVER_CARVE_RADIUS of any river point are clamped down to
       the river bed; points within CAVE_CARVE_RADIUS of a cave entrance are
       clamped down to that entrance's floor.
    2. Overlap: which river points, river segments and caves belong to a
       given chunk key?

River points are held in a k-d tree so a chunk grid is carved with a single
nearest-neighbour query instead of a point-by-point scan.

Data Contract:
---------------
- Inputs: the finalised river and cave tuples, and the world settings.
- Outputs: carved elevation arrays/scalars, per-chunk feature lists.
- Side Effects: None. The index is read-only after construction and may be
  shared between threads without locking.
================================================================================
"""
import math
from collections import defaultdict

import numpy as np
from scipy.spatial import cKDTree


def chunk_key_of(x: float, z: float) -> tuple:
    return (math.floor(x), math.floor(z))


class FeatureIndex:
    def __init__(self, rivers: tuple, caves: tuple, settings: dict):
        self.rivers = tuple(rivers)
        self.caves = tuple(caves)

        self.river_radius = settings['river_carve_radius']
        self.river_bed = settings['river_bed_elevation']
        self.cave_radius = settings['cave_carve_radius']

        # --- River lookup structures ---
        river_points = [point for river in self.rivers for point in river.points]
        self._river_points = np.array(river_points, dtype=np.float64).reshape(-1, 2)
        self._river_tree = cKDTree(self._river_points) if len(self._river_points) else None

        self._river_points_by_chunk = defaultdict(list)
        self._river_segments_by_chunk = defaultdict(list)
        for river in self.rivers:
            for point in river.points:
                self._river_points_by_chunk[chunk_key_of(*point)].append(point)
            for start, end in river.segments():
                keys = {chunk_key_of(*start), chunk_key_of(*end)}
                for key in keys:
                    self._river_segments_by_chunk[key].append((start, end))

        # --- Cave lookup structures ---
        depth = settings['cave_entrance_depth']
        self._cave_centers = [(cave.entrance[0], cave.entrance[2]) for cave in self.caves]
        self._cave_floors = [cave.entrance_floor - depth for cave in self.caves]
        self._caves_by_chunk = defaultdict(list)
        for cave in self.caves:
            self._caves_by_chunk[chunk_key_of(cave.entrance[0], cave.entrance[2])].append(cave)

    # --- Carving ---
    def carve_grid(self, x_coords: np.ndarray, z_coords: np.ndarray, elevation: np.ndarray) -> np.ndarray:
        """Returns a carved copy of `elevation`; the input is left untouched."""
        carved = np.array(elevation, dtype=np.float64, copy=True)

        if self._river_tree is not None:
            query = np.column_stack((np.ravel(x_coords), np.ravel(z_coords)))
            distance, _ = self._river_tree.query(query, k=1, distance_upper_bound=self.river_radius)
            near_river = (distance < self.river_radius).reshape(carved.shape)
            carved[near_river] = np.minimum(carved[near_river], self.river_bed)

        for (center_x, center_z), floor in zip(self._cave_centers, self._cave_floors):
            near_cave = np.hypot(x_coords - center_x, z_coords - center_z) < self.cave_radius
            carved[near_cave] = np.minimum(carved[near_cave], floor)

        return carved

    def carve_point(self, x: float, z: float, elevation: float) -> float:
        carved = self.carve_grid(np.array([[x]], dtype=np.float64), np.array([[z]], dtype=np.float64),
                                 np.array([[elevation]], dtype=np.float64))
        return float(carved[0, 0])

    # --- Per-chunk overlap ---
    def river_points_in(self, key: tuple) -> list:
        return list(self._river_points_by_chunk.get(key, ()))

    def river_segments_in(self, key: tuple) -> list:
        return list(self._river_segments_by_chunk.get(key, ()))

    def caves_in(self, key: tuple) -> list:
        return list(self._caves_by_chunk.get(key, ()))
