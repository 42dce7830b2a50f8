#!/usr/bin/env python3
"""Render the showcase scene.

This script renders the showcase room (every shape kind, patterns, glass, a
mirror and an area light) with the band scheduler and writes the result as
PNG or PPM, chosen by the output file's extension.

Usage:
    python examples/render_scene.py [options]

Options:
    --width WIDTH           Image width in pixels (default: 400)
    --height HEIGHT         Image height in pixels (default: 225)
    --supersampling N       N x N rays per pixel (default: 2)
    --max-depth DEPTH       Reflection/refraction depth (default: 5)
    --band-rows ROWS        Rows per kernel launch (default: 16)
    --workers N             CPU threads (default: Taichi's choice)
    --hard-shadows          Use a point light instead of the area light
    --output OUTPUT         Output file path (default: showcase.png)
    --log-level LEVEL       Logging level (default: INFO)

Example:
    python examples/render_scene.py --width 320 --height 180 --output room.ppm
"""

import argparse
import logging
import sys
from pathlib import Path

from prism.core.config import RenderConfig, init_taichi
from prism.core.errors import PrismError
from prism.logging_config import setup_logging

logger = logging.getLogger("prism.examples.render_scene")


def parse_args() -> argparse.Namespace:
    """Parse command-line arguments."""
    parser = argparse.ArgumentParser(
        description="Render the showcase scene.",
        formatter_class=argparse.RawDescriptionHelpFormatter,
    )
    parser.add_argument("--width", type=int, default=400, help="Image width in pixels (default: 400)")
    parser.add_argument("--height", type=int, default=225, help="Image height in pixels (default: 225)")
    parser.add_argument(
        "--supersampling", type=int, default=2, help="N x N rays per pixel (default: 2)"
    )
    parser.add_argument(
        "--max-depth", type=int, default=5, help="Reflection/refraction depth (default: 5)"
    )
    parser.add_argument("--band-rows", type=int, default=16, help="Rows per kernel launch (default: 16)")
    parser.add_argument("--workers", type=int, default=None, help="CPU threads (default: auto)")
    parser.add_argument("--hard-shadows", action="store_true", help="Use a point light")
    parser.add_argument(
        "--output", type=str, default="showcase.png", help="Output file path (default: showcase.png)"
    )
    parser.add_argument("--log-level", type=str, default="INFO", help="Logging level (default: INFO)")
    return parser.parse_args()


def render_scene(args: argparse.Namespace) -> Path:
    """Build the showcase scene, render it and save the canvas.

    Returns:
        Path to the saved image file.
    """
    config = RenderConfig(
        max_depth=args.max_depth,
        supersampling=args.supersampling,
        workers=args.workers,
        band_rows=args.band_rows,
    )
    init_taichi(config)

    # Lazy imports: these modules allocate Taichi fields
    from prism.core.scheduler import RenderScheduler
    from prism.preview.export import save_png, save_ppm
    from prism.scene.presets import ShowcaseParams, create_showcase_scene

    params = ShowcaseParams(soft_shadows=not args.hard_shadows)
    world, camera = create_showcase_scene(args.width, args.height, params=params, config=config)
    scheduler = RenderScheduler(world, camera, config)

    def progress_callback(rows_done: int, total: int) -> None:
        logger.info("Progress: %d/%d rows (%.1f%%)", rows_done, total, 100.0 * rows_done / total)

    canvas = scheduler.render(callback=progress_callback)
    if scheduler.fault_count:
        logger.warning("%d pixels could not be shaded and were written black", scheduler.fault_count)

    output_file = Path(args.output)
    if output_file.suffix.lower() == ".ppm":
        save_ppm(canvas, output_file)
    else:
        save_png(canvas, output_file)
    logger.info("Saved to: %s", output_file.absolute())
    return output_file


def main() -> int:
    """Main entry point."""
    args = parse_args()
    setup_logging(level=args.log_level)

    try:
        render_scene(args)
        return 0
    except PrismError as e:
        logger.error("Render failed: %s", e)
        return 1


if __name__ == "__main__":
    sys.exit(main())
