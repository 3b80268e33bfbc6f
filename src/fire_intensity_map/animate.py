"""
Animation: date-ordered frames where fires accumulate over time.

Points for a new acquisition date fade in while the previous date fades down
to the shadow opacity; every point stays on the map once it has appeared.
"""

from dataclasses import dataclass
from pathlib import Path

import imageio.v2 as imageio
import imageio.v3 as iio
import numpy as np
import pandas as pd
from PIL import Image
from tqdm import tqdm

from .errors import AnimationError
from .render import PointLayer, render_frame


@dataclass
class FrameGroup:
    """Points of one acquisition date and everything visible up to it."""
    date: pd.Timestamp
    new: pd.DataFrame
    visible: pd.DataFrame


@dataclass(frozen=True)
class FrameSpec:
    """One output frame: the current group and how far its fade-in has gone."""
    group: int
    progress: float


def ease_cubic_in_out(t):
    """Cubic ease-in-out on [0, 1]."""
    t = min(max(t, 0.0), 1.0)
    if t < 0.5:
        return 4 * t ** 3
    return 1 - (-2 * t + 2) ** 3 / 2


def accumulate_groups(data):
    """
    Group points by acquisition date, carrying forward all earlier points.

    Args:
        data (pd.DataFrame): Plot data with an acq_date column

    Returns:
        list[FrameGroup]: One group per distinct date, ascending
    """
    groups = []
    seen = []

    for acq_date, new in data.groupby('acq_date', sort=True):
        seen.append(new)
        groups.append(FrameGroup(date=pd.Timestamp(acq_date), new=new, visible=pd.concat(seen)))

    return groups


def plan_frames(n_groups, nframes, start_pause=0, end_pause=0):
    """
    Lay out exactly ``nframes`` frames over the date groups.

    The first group is held for ``start_pause`` frames, the remaining
    transition frames are split as evenly as possible over the transitions
    into each later group, and the last group is held for ``end_pause`` frames.

    Returns:
        list[FrameSpec]: Group indices are non-decreasing

    Raises:
        ValueError: If the frame budget cannot fit the pauses and transitions
    """
    if nframes < 1:
        raise ValueError(f"nframes must be positive, got {nframes}")
    if start_pause < 0 or end_pause < 0:
        raise ValueError("Pauses must not be negative")

    transition_frames = nframes - start_pause - end_pause
    if transition_frames < 0:
        raise ValueError(
            f"start_pause + end_pause ({start_pause + end_pause}) exceeds nframes ({nframes})"
        )

    if n_groups <= 1:
        return [FrameSpec(0, 1.0)] * nframes

    transitions = n_groups - 1
    if transition_frames < transitions:
        raise ValueError(
            f"{n_groups} dates need at least {transitions} transition frames, "
            f"only {transition_frames} left after pauses"
        )

    specs = [FrameSpec(0, 1.0)] * start_pause
    blocks = np.array_split(np.arange(transition_frames), transitions)
    for group, block in enumerate(blocks, start=1):
        length = len(block)
        for step in range(length):
            specs.append(FrameSpec(group, ease_cubic_in_out((step + 1) / length)))
    specs.extend([FrameSpec(n_groups - 1, 1.0)] * end_pause)

    return specs


def frame_layers(groups, spec, shadow_alpha=0.6):
    """
    Point layers for one frame, bottom to top.

    Dates older than the previous one sit at ``shadow_alpha``, the previous
    date fades from full opacity to ``shadow_alpha`` and the current date
    fades in.
    """
    if not groups:
        return []

    current = spec.group
    progress = spec.progress
    layers = []

    if current >= 2:
        layers.append(PointLayer(groups[current - 2].visible, shadow_alpha))
    if current >= 1:
        layers.append(PointLayer(groups[current - 1].new, 1 - (1 - shadow_alpha) * progress))
    layers.append(PointLayer(groups[current].new, progress))

    return layers


def render_animation_frames(specs, groups, basemap, norm, frames_dir, title,
                            caption=None, width=7, height=7, dpi=300, shadow_alpha=0.6,
                            progress=True):
    """
    Render the planned frames to PNG files.

    Identical frames (pauses) are rendered once and their file reused.

    Returns:
        list[Path]: One path per planned frame, in playback order
    """
    frames_dir = Path(frames_dir)
    frames_dir.mkdir(parents=True, exist_ok=True)

    rendered = {}
    frame_files = []

    for spec in tqdm(specs, desc="Rendering frames", unit="frame", disable=not progress):
        key = (spec.group, round(spec.progress, 6))
        if key not in rendered:
            subtitle = f"{groups[spec.group].date:%Y-%m-%d}" if groups else None
            frame_file = frames_dir / f"frame_{len(rendered):03d}.png"
            render_frame(
                frame_file, basemap, frame_layers(groups, spec, shadow_alpha), norm, title,
                subtitle=subtitle, caption=caption, width=width, height=height, dpi=dpi,
            )
            rendered[key] = frame_file
        frame_files.append(rendered[key])

    return frame_files


def _pad_even(frame):
    """Pad to even dimensions (required by libx264)."""
    height, width = frame.shape[:2]
    if width % 2 == 0 and height % 2 == 0:
        return frame
    padded = Image.new('RGB', (width + width % 2, height + height % 2), (255, 255, 255))
    padded.paste(Image.fromarray(frame), (0, 0))
    return np.asarray(padded)


def frame_runs(frame_files):
    """Collapse consecutive repeats into (file, count) pairs."""
    runs = []
    for frame_file in frame_files:
        if runs and runs[-1][0] == frame_file:
            runs[-1][1] += 1
        else:
            runs.append([frame_file, 1])
    return [tuple(run) for run in runs]


def _load_frame(frame_file):
    return np.asarray(Image.open(frame_file).convert('RGB'))


def compile_animation(frame_files, output_path, fps, progress=True):
    """
    Encode frames into a looping GIF or an MP4.

    A GIF stores each run of identical frames (the pauses) once, with the
    run's combined display time, so it holds fewer images than
    ``len(frame_files)`` while playing for ``len(frame_files) / fps``
    seconds. An MP4 gets every frame, streamed to the encoder one at a time.

    Args:
        frame_files (list): Frame PNG paths in playback order
        output_path (Path): .gif or .mp4 file
        fps (float): Frames per second

    Raises:
        AnimationError: If the format is unsupported or encoding fails
    """
    output_path = Path(output_path)
    suffix = output_path.suffix.lower()
    if suffix not in ('.gif', '.mp4'):
        raise AnimationError(f"Unsupported animation format {suffix!r}; use .gif or .mp4")
    if not frame_files:
        raise AnimationError("No frames to encode")

    output_path.parent.mkdir(parents=True, exist_ok=True)
    runs = frame_runs(frame_files)

    try:
        if suffix == '.gif':
            frames = [_load_frame(f) for f, _ in tqdm(runs, desc="Loading frames", unit="frame",
                                                       disable=not progress)]
            durations = [count * 1000 / fps for _, count in runs]
            iio.imwrite(output_path, frames, duration=durations, loop=0)
        else:
            with imageio.get_writer(output_path, fps=fps, codec='libx264',
                                    quality=8, macro_block_size=1) as writer:
                for frame_file, count in tqdm(runs, desc="Encoding frames", unit="frame",
                                              disable=not progress):
                    frame = _pad_even(_load_frame(frame_file))
                    for _ in range(count):
                        writer.append_data(frame)
    except Exception as e:
        raise AnimationError(f"Failed to encode {output_path}: {e}") from e

    return output_path


def cleanup_frames(frame_dir):
    """
    Remove temporary frame files.

    Args:
        frame_dir (Path): Directory containing frames
    """
    frame_dir = Path(frame_dir)
    for frame_file in frame_dir.glob("frame_*.png"):
        frame_file.unlink()

    if frame_dir.exists() and not any(frame_dir.iterdir()):
        frame_dir.rmdir()
