"""
Application Entry Point
=======================
Builds a point cloud from an image (or a line of text), writes it as PLY and
optionally shows it.

Why is this file needed?
------------------------
It acts as the composition root. It:
1. Parses the command line into a SamplingConfig.
2. Acquires the raster (image decode or text rasterization).
3. Runs the sampler and the exporter.
4. Hands the cloud to a viewer when asked to.
"""
from __future__ import annotations

import argparse
import logging
import sys
from pathlib import Path
from typing import List, Optional

from PIL import UnidentifiedImageError

from pixelcloud.config import (
    DEFAULT_ALPHA_THRESHOLD,
    DEFAULT_BRIGHTNESS,
    DEFAULT_EXPORT_FILENAME,
    DEFAULT_PARTICLE_SIZE,
    DEFAULT_STEP,
    DEFAULT_TINT_HEX,
    DEFAULT_Z_EXTRUSION,
    MAX_RASTER_WIDTH,
)
from pixelcloud.logging_config import level_from_verbosity, setup_logging
from pixelcloud.model.color import ColorMode
from pixelcloud.model.io import save_ply
from pixelcloud.model.raster import Raster, load_image, rasterize_text
from pixelcloud.model.sampling import ConfigurationError, SamplingConfig, sample
from pixelcloud.model.state import ParticleShape, ViewerState, ViewportMode

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="pixelcloud",
        description="Convert an image into a colored 3D point cloud and export it as PLY.",
    )
    source = parser.add_mutually_exclusive_group(required=True)
    source.add_argument("image", nargs="?", type=Path, help="Input image file")
    source.add_argument("--text", help="Rasterize this text instead of reading an image")

    parser.add_argument("-o", "--output", type=Path, default=None,
                        help=f"PLY output path (default: {DEFAULT_EXPORT_FILENAME})")
    parser.add_argument("--no-export", action="store_true", help="Skip writing the PLY file")

    geo = parser.add_argument_group("geometry")
    geo.add_argument("--step", type=float, default=DEFAULT_STEP, help="Sampling stride in pixels")
    geo.add_argument("--particle-size", type=float, default=DEFAULT_PARTICLE_SIZE)
    geo.add_argument("--z-extrusion", type=float, default=DEFAULT_Z_EXTRUSION,
                     help="Depth range mapped from luminance")
    geo.add_argument("--alpha-threshold", type=int, default=DEFAULT_ALPHA_THRESHOLD,
                     help="Minimum alpha (0-255) for a pixel to become a point")
    geo.add_argument("--max-width", type=int, default=MAX_RASTER_WIDTH,
                     help="Downsample wider images to this width (0 keeps full size)")

    look = parser.add_argument_group("appearance")
    look.add_argument("--color-mode", default=str(ColorMode.ORIGINAL),
                      help=f"One of: {', '.join(m.value for m in ColorMode)}")
    look.add_argument("--brightness", type=float, default=DEFAULT_BRIGHTNESS)
    look.add_argument("--tint", default=DEFAULT_TINT_HEX, help="Multiplicative tint as #rrggbb")
    look.add_argument("--shape", choices=[s.value for s in ParticleShape],
                      default=ParticleShape.SQUARE.value)

    view = parser.add_argument_group("viewer")
    view.add_argument("--viewport", choices=[v.value for v in ViewportMode], default=ViewportMode.DARK.value,
                      help="Viewport background (transparent keeps alpha in screenshots)")
    view.add_argument("--show", action="store_true", help="Open a PyVista window")
    view.add_argument("--screenshot", type=Path, default=None, help="Render the cloud off screen to this PNG")
    view.add_argument("--gui", action="store_true", help="Open the Qt viewer with background resampling")

    parser.add_argument("-v", "--verbose", action="count", default=0)
    parser.add_argument("--log-file", default=None)
    return parser


def config_from_args(args: argparse.Namespace) -> SamplingConfig:
    return SamplingConfig.from_dict({
        "step": args.step,
        "particle_size": args.particle_size,
        "z_extrusion": args.z_extrusion,
        "alpha_threshold": args.alpha_threshold,
        "color_mode": args.color_mode,
        "brightness": args.brightness,
        "tint": args.tint,
    })


def acquire_raster(args: argparse.Namespace) -> Raster:
    if args.text is not None:
        return rasterize_text(args.text)
    return load_image(args.image, max_width=args.max_width)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    setup_logging(level=level_from_verbosity(args.verbose), log_file=args.log_file)

    try:
        config = config_from_args(args)
        raster = acquire_raster(args)
    except ConfigurationError as e:
        logger.error(f"Invalid settings: {e}")
        return 2
    except (OSError, UnidentifiedImageError) as e:
        logger.error(f"Could not read input: {e}")
        return 1

    source_name = args.text if args.text is not None else args.image.name
    state = ViewerState(source_name=source_name, raster=raster, config=config,
                        shape=ParticleShape(args.shape), viewport=ViewportMode(args.viewport))

    if args.gui:
        from pixelcloud.view.viewer import run_viewer
        return run_viewer(state)

    cloud = sample(raster, config)
    state.store.publish(state.store.next_request(), cloud)
    logger.info(f"Sampled {len(cloud)} points from '{source_name}'.")

    if not args.no_export:
        output = args.output or Path(DEFAULT_EXPORT_FILENAME)
        try:
            save_ply(cloud, output)
        except OSError as e:
            logger.error(f"Could not write '{output}': {e}")
            return 1
        print(f"{len(cloud)} points written to {output}")

    if args.screenshot is not None:
        from pixelcloud.view.plotter import save_screenshot
        try:
            save_screenshot(cloud, args.screenshot, state.shape, config.particle_size, state.viewport)
        except OSError as e:
            logger.error(f"Could not write screenshot '{args.screenshot}': {e}")
            return 1
        print(f"Screenshot written to {args.screenshot}")

    if args.show:
        from pixelcloud.view.plotter import show_interactive
        show_interactive(cloud, state.shape, config.particle_size, state.viewport,
                         title=f"pixelcloud - {source_name}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
