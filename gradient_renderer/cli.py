#!/usr/bin/env python3
"""
Gradient Art - Command Line Interface

Renders the procedural gradient headlessly and writes the export artifacts.

Usage:
    gradient-art still --pattern 3 --time 2.5
    gradient-art video --pattern 5 --colors "#ff0080" "#00c0ff" "#ffe000"
"""

import argparse
import asyncio
import logging
import sys
from pathlib import Path
from typing import List, Optional

import numpy as np

from .config import BACKENDS, RenderConfig
from .errors import GradientRendererError
from .exporter import FrameExporter
from .params import ParameterStore, RenderParameters, random_colors
from .patterns import PATTERN_NAMES, pattern_name
from .render_loop import RenderLoop
from .shell import create_renderer
from .timing import RenderTimings
from .transcoder import FFmpegTranscoder


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='gradient-art',
        description='Render animated procedural gradients to PNG or MP4',
        epilog="Patterns: " + ", ".join(f"{i}={name}" for i, name in PATTERN_NAMES.items())
    )
    subparsers = parser.add_subparsers(dest='command', required=True)

    common = argparse.ArgumentParser(add_help=False)
    common.add_argument('--pattern', type=int, default=0,
                        help='Pattern id (default: 0; ids outside 0-4 render turbulence)')
    common.add_argument('--noise', type=float, default=0.5,
                        help='Noise amount 0-1 (default: 0.5)')
    common.add_argument('--blur', type=float, default=0.2,
                        help='Blur (flatten) amount 0-1 (default: 0.2)')
    common.add_argument('--distortion-x', type=float, default=0.3,
                        help='Horizontal distortion 0-1 (default: 0.3)')
    common.add_argument('--distortion-y', type=float, default=0.3,
                        help='Vertical distortion 0-1 (default: 0.3)')
    common.add_argument('--distortion-scale', type=float, default=5.0,
                        help='Distortion noise scale 1-20 (default: 5)')
    common.add_argument('--colors', nargs='+', metavar='HEX',
                        help='Color stops as #rrggbb (2-10, sets the color count)')
    common.add_argument('--color-count', type=int, default=3,
                        help='Number of random color stops when --colors is not given (default: 3)')
    common.add_argument('--seed', type=int, default=None,
                        help='Seed for random colors')
    common.add_argument('--backend', choices=BACKENDS, default='numpy',
                        help='Renderer backend (default: numpy)')
    common.add_argument('--output-dir', type=Path, default=Path('.'),
                        help='Directory for the artifact (default: current directory)')
    common.add_argument('--timing', action='store_true',
                        help='Print a timing summary')
    verbosity = common.add_mutually_exclusive_group()
    verbosity.add_argument('-v', '--verbose', action='store_true',
                           help='Enable debug logging')
    verbosity.add_argument('-q', '--quiet', action='store_true',
                           help='Only report errors')

    still = subparsers.add_parser('still', parents=[common], help='Write gradient-art.png')
    still.add_argument('--time', type=float, default=0.0,
                       help='Animation time in seconds (default: 0)')

    video = subparsers.add_parser('video', parents=[common], help='Write gradient-art.mp4')
    video.add_argument('--ffmpeg-binary', default=None,
                       help='FFmpeg executable (default: ffmpeg)')
    video.add_argument('--transcode-timeout', type=float, default=None,
                       help='Seconds before transcoding is abandoned (default: 60)')

    return parser


def build_store(args: argparse.Namespace) -> ParameterStore:
    """Create the parameter store from CLI options

    Raises:
        InvalidParameter: For any out-of-range option
    """
    rng = np.random.default_rng(args.seed)
    params = RenderParameters(
        pattern_id=args.pattern,
        noise_amount=args.noise,
        blur_amount=args.blur,
        distortion_x=args.distortion_x,
        distortion_y=args.distortion_y,
        distortion_scale=args.distortion_scale,
        color_count=args.color_count,
        colors=random_colors(rng),
    )
    store = ParameterStore(params, rng=rng)
    if args.colors:
        store.set_colors(args.colors)
    return store


def run_still(args: argparse.Namespace, config: RenderConfig, timings: Optional[RenderTimings]) -> Path:
    store = build_store(args)
    loop = RenderLoop(create_renderer(config, timings=timings), store, config, timings=timings)
    try:
        loop.seek(args.time)
        loop.render_frame()
        exporter = FrameExporter(loop, FFmpegTranscoder(config.ffmpeg_binary), config, timings=timings)
        return exporter.export_still().save(args.output_dir)
    finally:
        loop.release()


async def run_video(args: argparse.Namespace, config: RenderConfig, timings: Optional[RenderTimings]) -> Path:
    store = build_store(args)
    renderer = create_renderer(config, timings=timings)
    loop = RenderLoop(renderer, store, config, timings=timings)
    exporter = FrameExporter(loop, FFmpegTranscoder(config.ffmpeg_binary), config, timings=timings)

    loop.play()
    try:
        result = await exporter.export_video()
    finally:
        await loop.close()

    if loop.failure is not None:
        raise loop.failure
    if not result.success:
        raise result.error
    return result.artifact.save(args.output_dir)


def main(argv: Optional[List[str]] = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    level = logging.DEBUG if args.verbose else logging.ERROR if args.quiet else logging.WARNING
    logging.basicConfig(level=level, format='%(asctime)s %(levelname)s %(name)s: %(message)s')

    timings = RenderTimings() if args.timing else None

    try:
        config = RenderConfig.from_args(args)
        if not args.quiet:
            print(f"Rendering {pattern_name(args.pattern)} with the {config.backend} backend...")
        if args.command == 'still':
            path = run_still(args, config, timings)
        else:
            if not args.quiet:
                print(f"Capturing {config.video_duration:.0f}s at {config.video_fps}fps...")
            path = asyncio.run(run_video(args, config, timings))
    except GradientRendererError as e:
        print(f"✗ {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        print(f"✓ Saved {path}")
    if timings is not None:
        print(timings.format_summary())
    return 0


if __name__ == '__main__':
    sys.exit(main())
