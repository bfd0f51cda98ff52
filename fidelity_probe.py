# fidelity_probe.py

"""
================================================================================
DETERMINISM PROBE
================================================================================
Checks that a chunk is the same chunk no matter how it was produced:

    1. inline synthesis in a fresh world,
    2. pooled synthesis on worker threads in a second world with the same seed,
    3. re-synthesis after the chunk was evicted and streamed back in.

Heightmaps, colour buffers, biome ids and decorations must match exactly.

Usage:
    python fidelity_probe.py --seed 1337 --workers 4
================================================================================
"""
import argparse
import logging
import sys

import numpy as np

from terrain_streamer.runtime import World


def compare_chunks(logger, label, expected, actual) -> bool:
    """Helper function to compare two syntheses of the same key."""
    checks = {
        "heightmap": np.array_equal(expected.heightmap, actual.heightmap),
        "colors": np.array_equal(expected.colors, actual.colors),
        "biome_ids": np.array_equal(expected.biome_ids, actual.biome_ids),
        "decorations": expected.decorations == actual.decorations,
        "rivers": expected.river_points == actual.river_points,
        "caves": expected.caves == actual.caves,
    }
    failed = [name for name, passed in checks.items() if not passed]
    if failed:
        logger.error(f"  - {label} {expected.key}: mismatch in {', '.join(failed)} -> FAIL")
        return False
    logger.info(f"  - {label} {expected.key}: {len(expected.decorations)} decorations -> PASS")
    return True


def run_full_probe(seed: int, workers: int, probe_keys) -> bool:
    logging.basicConfig(level=logging.INFO, format='%(asctime)s - %(levelname)s - %(message)s')
    logger = logging.getLogger("FidelityProbe")
    quiet = logging.getLogger("FidelityProbe.world")
    quiet.setLevel(logging.WARNING)

    config = {'seed': seed, 'render_radius': 1}
    all_probes_passed = True

    # --- 1. Ground truth: inline synthesis ---
    logger.info(f"Synthesising {len(probe_keys)} reference chunks inline (seed {seed})...")
    with World(config=config, logger=quiet) as reference_world:
        reference = {key: reference_world.synthesize(key) for key in probe_keys}

    # --- 2. Pooled synthesis ---
    logger.info(f"--- Pooled synthesis on {workers} workers ---")
    with World(config=dict(config, synthesis_workers=workers), logger=quiet) as pooled_world:
        for key in probe_keys:
            pooled_world.update_chunks(*key)
            pooled_world.chunks.flush()
            all_probes_passed &= compare_chunks(logger, "Pooled", reference[key], pooled_world.chunks[key])

    # --- 3. Re-synthesis after eviction ---
    logger.info("--- Re-synthesis after eviction ---")
    with World(config=config, logger=quiet) as streaming_world:
        for key in probe_keys:
            streaming_world.update_chunks(*key)
            far_away = (key[0] + 10, key[1] + 10)
            streaming_world.update_chunks(*far_away)
            if key in streaming_world.chunks:
                logger.error(f"  - Chunk {key} survived eviction -> FAIL")
                all_probes_passed = False
            streaming_world.update_chunks(*key)
            all_probes_passed &= compare_chunks(logger, "Re-synthesised", reference[key], streaming_world.chunks[key])

    logger.info("--- Full Probe Complete ---")
    if all_probes_passed:
        logger.info("SUCCESS: Every probed chunk is identical across synthesis paths.")
    else:
        logger.error("FAILURE: Mismatch detected in one or more chunks.")
    return all_probes_passed


if __name__ == '__main__':
    parser = argparse.ArgumentParser(description="Verify that chunk synthesis is deterministic.")
    parser.add_argument("--seed", type=int, default=1337)
    parser.add_argument("--workers", type=int, default=4)
    args = parser.parse_args()

    keys = [(0, 0), (-3, 2), (7, -5), (25, 25)]
    sys.exit(0 if run_full_probe(args.seed, args.workers, keys) else 1)
