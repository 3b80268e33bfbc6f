#!/usr/bin/env python3
"""
NASA FIRMS Fire Intensity Map

Downloads near-real-time fire detections for a region, keeps the ones inside
its administrative boundaries and animates their brightness temperature over
a basemap as a looping GIF.
"""

import argparse
import sys
import time
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Optional

import matplotlib
matplotlib.use("Agg")

from .animate import (
    accumulate_groups,
    cleanup_frames,
    compile_animation,
    plan_frames,
    render_animation_frames,
)
from .config import BoundingBox, PipelineConfig, get_map_key
from .errors import FireMapError
from .firms import fetch_fire_data
from .region import resolve_region
from .render import (
    BASEMAP_STYLES,
    color_norm,
    default_title,
    fetch_basemap,
    prepare_plot_data,
    render_static_map,
)
from .spatial import join_fires_to_region


@dataclass
class PipelineResult:
    """What a run produced."""
    output: Path
    record_count: int
    joined_count: int
    groups: list = field(default_factory=list)
    specs: list = field(default_factory=list)
    frame_files: list = field(default_factory=list)
    bbox: Optional[BoundingBox] = None


def _quiet(*args, **kwargs):
    pass


def run_pipeline(config, verbose=True):
    """
    Run region -> fetch -> join -> render -> animate.

    Args:
        config (PipelineConfig): Run configuration
        verbose (bool): Print progress

    Returns:
        PipelineResult

    Raises:
        FireMapError: Any stage failure (all are fatal)
    """
    echo = print if verbose else _quiet
    t0 = time.time()

    # Validate the frame budget before touching the network; there are at
    # most day_range distinct acquisition dates
    if config.animate:
        plan_frames(config.day_range, config.nframes, config.start_pause, config.end_pause)

    echo("\n[1/5] Resolving region...")
    t1 = time.time()
    polygons, bbox = resolve_region(config)
    echo(f"Boundaries: {config.country} level {config.admin_level} ({len(polygons)} polygons)")
    echo(f"Bounding box: {bbox.as_area()}")
    echo(f"✓ Region resolved in {time.time() - t1:.1f}s")

    echo("\n[2/5] Fetching fire data...")
    t2 = time.time()
    map_key = get_map_key(config.map_key)
    start, end = config.window()
    echo(f"Source: {config.source}, {config.day_range} days from {start}")
    fire_df = fetch_fire_data(
        config.api_base_url, map_key, config.source, bbox,
        config.day_range, start, timeout=config.request_timeout,
    )
    echo(f"Total fire detections retrieved: {len(fire_df)}")
    echo(f"✓ Data fetch completed in {time.time() - t2:.1f}s")

    echo("\n[3/5] Joining fires to region polygons...")
    t3 = time.time()
    joined = join_fires_to_region(fire_df, polygons)
    echo(f"Fire points within region: {len(joined)} (from {len(fire_df)} total)")
    if joined.empty:
        echo("Warning: No fire detections fall inside the region; the map will be empty")
    echo(f"✓ Spatial processing completed in {time.time() - t3:.1f}s")

    echo("\n[4/5] Fetching basemap...")
    t4 = time.time()
    basemap = fetch_basemap(
        bbox, zoom=config.zoom, style=config.basemap_style, grayscale=config.grayscale_basemap
    )
    data = prepare_plot_data(joined)
    norm = color_norm(data)
    title = config.title or default_title(config.region_name, start, end)
    echo(f"✓ Basemap fetched in {time.time() - t4:.1f}s")

    result = PipelineResult(
        output=Path(config.output), record_count=len(fire_df), joined_count=len(joined), bbox=bbox
    )

    t5 = time.time()
    if not config.animate:
        echo("\n[5/5] Rendering static map...")
        output = result.output
        if output.suffix.lower() in ('.gif', '.mp4'):
            output = output.with_suffix('.png')
        output.parent.mkdir(parents=True, exist_ok=True)
        render_static_map(
            output, basemap, data, title, caption=config.caption,
            width=config.width, height=config.height, dpi=config.dpi,
        )
        result.output = output
        echo(f"✓ Rendering completed in {time.time() - t5:.1f}s")
    else:
        echo(f"\n[5/5] Animating {config.nframes} frames (DPI={config.dpi})...")
        groups = accumulate_groups(data)
        specs = plan_frames(len(groups), config.nframes, config.start_pause, config.end_pause)
        echo(f"Dates: {len(groups)}")
        frame_files = render_animation_frames(
            specs, groups, basemap, norm, config.frames_dir, title,
            caption=config.caption, width=config.width, height=config.height,
            dpi=config.dpi, shadow_alpha=config.shadow_alpha, progress=verbose,
        )
        fps = config.frames_per_second()
        compile_animation(frame_files, result.output, fps, progress=verbose)
        echo(f"Animation: {len(frame_files)} frames at {fps:g} fps")

        if not config.keep_frames:
            cleanup_frames(config.frames_dir)
        else:
            echo(f"Frames saved in: {config.frames_dir}")

        result.groups = groups
        result.specs = specs
        result.frame_files = frame_files
        echo(f"✓ Animation completed in {time.time() - t5:.1f}s")

    total_time = time.time() - t0
    echo(f"\n{'='*60}")
    echo(f"✓ Total processing time: {total_time:.1f}s")
    echo(f"{'='*60}")
    echo(f"\nSaved to: {result.output}")

    return result


def _bbox_arg(value):
    try:
        return BoundingBox.from_string(value)
    except ValueError as e:
        raise argparse.ArgumentTypeError(str(e))


def _date_arg(value):
    try:
        return datetime.strptime(value, "%Y-%m-%d").date()
    except ValueError:
        raise argparse.ArgumentTypeError(f"Invalid date {value!r}. Use YYYY-MM-DD")


def build_parser():
    defaults = PipelineConfig()
    parser = argparse.ArgumentParser(
        prog="fire-intensity-map",
        description="Animate NASA FIRMS fire brightness temperature over a region",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Examples:
  %(prog)s
  %(prog)s --date 2023-08-16 --day-range 10
  %(prog)s --country PRT --level 1 --region-name Portugal --bbox-from-boundary -o portugal.gif
  %(prog)s --static -o south_africa.png --basemap osm --color
        """
    )

    region = parser.add_argument_group("region")
    region.add_argument('--country', default=defaults.country,
                        help=f'ISO3 country code for GADM boundaries (default: {defaults.country})')
    region.add_argument('--level', type=int, default=defaults.admin_level,
                        help=f'GADM administrative level (default: {defaults.admin_level})')
    region.add_argument('--region-name', default=defaults.region_name,
                        help=f'Region name used in the title (default: {defaults.region_name})')
    region.add_argument('--boundary-dir', type=Path, default=defaults.boundary_dir,
                        help=f'Boundary download cache (default: {defaults.boundary_dir})')
    extent = region.add_mutually_exclusive_group()
    extent.add_argument('--bbox', type=_bbox_arg, default=defaults.bbox,
                        help=f'xmin,ymin,xmax,ymax (default: {defaults.bbox.as_area()})')
    extent.add_argument('--bbox-from-boundary', action='store_true',
                        help='Compute the bounding box from the boundary polygons')

    fires = parser.add_argument_group("fire data")
    fires.add_argument('--map-key', default=None,
                       help='NASA FIRMS MAP_KEY (default: FIRMS_MAP_KEY from env/.env or config.json)')
    fires.add_argument('--source', default=defaults.source,
                       help=f'FIRMS source (default: {defaults.source})')
    fires.add_argument('--day-range', type=int, default=defaults.day_range,
                       help=f'Days requested, 1-10 (default: {defaults.day_range})')
    fires.add_argument('--date', type=_date_arg, default=None,
                       help='First day of the window, YYYY-MM-DD (default: 11 days ago)')
    fires.add_argument('--timeout', type=float, default=defaults.request_timeout,
                       help=f'HTTP timeout in seconds (default: {defaults.request_timeout})')

    render = parser.add_argument_group("map")
    render.add_argument('--zoom', type=int, default=defaults.zoom,
                        help=f'Basemap zoom level (default: {defaults.zoom})')
    render.add_argument('--basemap', choices=list(BASEMAP_STYLES), default=defaults.basemap_style,
                        help=f'Basemap style (default: {defaults.basemap_style})')
    render.add_argument('--color', action='store_true',
                        help='Keep basemap colors instead of black and white')
    render.add_argument('--title', default=None, help='Plot title (default: derived from region and dates)')
    render.add_argument('--caption', default=defaults.caption,
                        help=f'Caption (default: "{defaults.caption}")')
    render.add_argument('--width', type=float, default=defaults.width,
                        help=f'Width in inches (default: {defaults.width})')
    render.add_argument('--height', type=float, default=defaults.height,
                        help=f'Height in inches (default: {defaults.height})')
    render.add_argument('--dpi', type=int, default=defaults.dpi,
                        help=f'Resolution (default: {defaults.dpi}). Try 100 for quick previews.')

    anim = parser.add_argument_group("animation")
    anim.add_argument('--nframes', type=int, default=defaults.nframes,
                      help=f'Total frames (default: {defaults.nframes})')
    anim.add_argument('--duration', type=float, default=defaults.duration,
                      help=f'Length in seconds, sets fps = nframes / duration (default: {defaults.duration})')
    anim.add_argument('--fps', type=float, default=None,
                      help='Frames per second; ignores --duration when given')
    anim.add_argument('--start-pause', type=int, default=defaults.start_pause,
                      help=f'Frames held on the first date (default: {defaults.start_pause})')
    anim.add_argument('--end-pause', type=int, default=defaults.end_pause,
                      help=f'Frames held on the last date (default: {defaults.end_pause})')
    anim.add_argument('--shadow-alpha', type=float, default=defaults.shadow_alpha,
                      help=f'Opacity of earlier dates (default: {defaults.shadow_alpha})')
    anim.add_argument('--static', action='store_true',
                      help='Write a single PNG with all fires instead of an animation')
    anim.add_argument('--keep-frames', action='store_true',
                      help='Keep temporary frame files after encoding')
    anim.add_argument('--frames-dir', type=Path, default=defaults.frames_dir,
                      help=f'Directory for temporary frames (default: {defaults.frames_dir})')

    parser.add_argument('-o', '--output', type=Path, default=defaults.output,
                        help=f'Output file, .gif or .mp4 (default: {defaults.output})')
    parser.add_argument('-q', '--quiet', action='store_true', help='Suppress progress output')
    return parser


def config_from_args(args):
    """Build a PipelineConfig from parsed arguments."""
    return PipelineConfig(
        country=args.country,
        admin_level=args.level,
        region_name=args.region_name,
        boundary_dir=args.boundary_dir,
        bbox=None if args.bbox_from_boundary else args.bbox,
        map_key=args.map_key,
        source=args.source,
        day_range=args.day_range,
        start_date=args.date,
        request_timeout=args.timeout,
        zoom=args.zoom,
        basemap_style=args.basemap,
        grayscale_basemap=not args.color,
        nframes=args.nframes,
        duration=None if args.fps else args.duration,
        fps=args.fps,
        start_pause=args.start_pause,
        end_pause=args.end_pause,
        shadow_alpha=args.shadow_alpha,
        width=args.width,
        height=args.height,
        dpi=args.dpi,
        output=args.output,
        animate=not args.static,
        keep_frames=args.keep_frames,
        frames_dir=args.frames_dir,
        title=args.title,
        caption=args.caption,
    )


def main(argv=None):
    """Main execution function."""
    parser = build_parser()
    args = parser.parse_args(argv)

    if not 1 <= args.day_range <= 10:
        parser.error("--day-range must be between 1 and 10")

    config = config_from_args(args)

    try:
        run_pipeline(config, verbose=not args.quiet)
    except FireMapError as e:
        print(f"ERROR: {e}", file=sys.stderr)
        sys.exit(1)
    except ValueError as e:
        print(f"ERROR: Invalid configuration: {e}", file=sys.stderr)
        sys.exit(1)

    if not args.quiet:
        print("Done!")


if __name__ == "__main__":
    main()
