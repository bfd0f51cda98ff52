# preview_world.py

"""
================================================================================
WORLD PREVIEW SCRIPT
================================================================================
This script is a command-line tool for exercising the streaming terrain core
without a renderer. It builds a world, walks an observer along a straight
line, streaming chunks in and out as it goes, and finally writes the blended
biome colours of the active window to a PNG for inspection.

The image is a diagnostic only; chunks are never persisted.

Usage:
    python preview_world.py --seed 42 --steps 200 --output preview.png
    python preview_world.py --config path/to/your/config.json --workers 4
================================================================================
"""
import os
import sys
import json
import logging
import argparse
import time
import numpy as np
from PIL import Image
from tqdm import tqdm

# Add project root to Python path to allow importing from terrain_streamer
sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from terrain_streamer.runtime import World

# Time step handed to the weather cycle for every observer step.
FRAME_SECONDS = 1.0 / 60.0


def compose_window_image(world: World) -> Image.Image:
    """
    Stitches the colour buffers of every loaded chunk into one RGB image.
    Rows run along z and columns along x; shared border vertices are dropped.
    """
    keys = world.chunks.keys()
    if not keys:
        raise ValueError("No chunks are loaded; nothing to preview.")

    res = world.settings['chunk_resolution']
    min_cx = min(cx for cx, _ in keys)
    min_cz = min(cz for _, cz in keys)
    width = (max(cx for cx, _ in keys) - min_cx + 1) * res
    height = (max(cz for _, cz in keys) - min_cz + 1) * res

    canvas = np.zeros((height, width, 3), dtype=np.uint8)
    for chunk in world.chunks.chunks():
        cx, cz = chunk.key
        tile = np.clip(chunk.colors[:res, :res] * 255.0, 0, 255).astype(np.uint8)
        row, col = (cz - min_cz) * res, (cx - min_cx) * res
        canvas[row:row + res, col:col + res] = tile

    # Image rows grow downward; flip so +z points up.
    return Image.fromarray(canvas[::-1], 'RGB')


def run_preview(args):
    # 1. --- Setup Logging ---
    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.INFO,
        format='%(asctime)s - %(levelname)s - %(message)s',
        stream=sys.stdout
    )
    logger = logging.getLogger("Preview")

    # 2. --- Load Configuration ---
    world_params = {}
    if args.config:
        logger.info(f"Loading configuration from: {args.config}")
        try:
            with open(args.config, 'r') as f:
                world_params = json.load(f).get('world_generation_parameters', {})
        except (FileNotFoundError, json.JSONDecodeError) as e:
            logger.critical(f"Failed to load or parse config file: {e}")
            return 1

    # Command-line flags override file values.
    if args.seed is not None:
        world_params['seed'] = args.seed
    if args.workers is not None:
        world_params['synthesis_workers'] = args.workers
    if args.render_radius is not None:
        world_params['render_radius'] = args.render_radius

    # 3. --- Build and Walk the World ---
    start_time = time.perf_counter()
    try:
        world = World(config=world_params, logger=logger)
    except ValueError as e:
        logger.critical(f"Invalid world configuration: {e}")
        return 1

    with world:
        dx, dz = args.direction
        x, z = args.start
        for _ in tqdm(range(args.steps), desc="Walking observer"):
            world.update(FRAME_SECONDS, x, z)
            x += dx * args.step_size
            z += dz * args.step_size
        world.chunks.flush()

        logger.info(
            f"Observer stopped at ({x:.1f}, {z:.1f}) over {world.biome_under_observer(x, z).display_name}; "
            f"weather is {world.weather.state.kind.value}."
        )

        # 4. --- Write the Preview ---
        image = compose_window_image(world)
        image.save(args.output, 'PNG')
        logger.info(f"Preview of {len(world.chunks)} chunks saved to: {args.output}")

    logger.info(f"Preview complete! Total time: {time.perf_counter() - start_time:.2f} seconds.")
    return 0


# --- Command-Line Interface ---
if __name__ == "__main__":
    parser = argparse.ArgumentParser(description="Stream a procedural world around a moving observer.")
    parser.add_argument("--config", type=str, help="Path to a JSON configuration file.")
    parser.add_argument("--seed", type=int, help="World seed; overrides the config file.")
    parser.add_argument("--steps", type=int, default=240, help="Number of observer steps.")
    parser.add_argument("--step-size", type=float, default=4.0, help="Observer step length in world units.")
    parser.add_argument("--start", type=float, nargs=2, default=(0.0, 0.0), metavar=("X", "Z"),
                        help="Observer start position in world units.")
    parser.add_argument("--direction", type=float, nargs=2, default=(1.0, 0.0), metavar=("DX", "DZ"),
                        help="Observer heading; multiplied by the step size.")
    parser.add_argument("--render-radius", type=int, help="Chebyshev radius of the active window.")
    parser.add_argument("--workers", type=int, help="Synthesis worker threads; 0 synthesises inline.")
    parser.add_argument("--output", type=str, default="preview.png", help="Path of the PNG to write.")
    parser.add_argument("--verbose", action="store_true", help="Log individual chunk events.")
    args = parser.parse_args()

    sys.exit(run_preview(args))
