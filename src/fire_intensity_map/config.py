"""
Configuration for the fire intensity map pipeline.

All the values the pipeline needs (API key, bounding box, date window,
basemap and animation parameters) live in a ``PipelineConfig`` that is passed
explicitly to each stage.
"""

import json
import os
from dataclasses import dataclass
from datetime import date, timedelta
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

from .errors import ConfigurationError


API_BASE_URL = "https://firms.modaps.eosdis.nasa.gov/api/area/csv"
SOURCE = "VIIRS_SNPP_NRT"
BOUNDARY_DIR = Path(".cache/boundaries")
FRAMES_DIR = Path("outputs/frames")

# Data is requested starting this many days before today
DAYS_BACK = 11
DEFAULT_FPS = 15


@dataclass(frozen=True)
class BoundingBox:
    """Geographic extent in EPSG:4326 as (xmin, ymin, xmax, ymax)."""
    xmin: float
    ymin: float
    xmax: float
    ymax: float

    def __post_init__(self):
        if not self.xmin < self.xmax:
            raise ValueError(f"xmin ({self.xmin}) must be less than xmax ({self.xmax})")
        if not self.ymin < self.ymax:
            raise ValueError(f"ymin ({self.ymin}) must be less than ymax ({self.ymax})")

    @classmethod
    def from_string(cls, text):
        """Parse 'xmin,ymin,xmax,ymax'."""
        parts = [p.strip() for p in text.split(",")]
        if len(parts) != 4:
            raise ValueError(f"Bounding box needs 4 comma-separated values, got {len(parts)}: {text!r}")
        try:
            values = [float(p) for p in parts]
        except ValueError:
            raise ValueError(f"Bounding box values must be numeric: {text!r}") from None
        return cls(*values)

    @classmethod
    def from_bounds(cls, bounds):
        """Build from a ``total_bounds`` style [minx, miny, maxx, maxy] array."""
        xmin, ymin, xmax, ymax = (float(v) for v in bounds)
        return cls(xmin, ymin, xmax, ymax)

    def as_tuple(self):
        return (self.xmin, self.ymin, self.xmax, self.ymax)

    def as_area(self):
        """Bounding box as the single comma-joined string FIRMS expects."""
        return ",".join(str(v) for v in self.as_tuple())


# Hardcoded extent of South Africa used by the default run
SOUTH_AFRICA_BBOX = BoundingBox(16.452, -34.835, 32.891, -22.125)


@dataclass
class PipelineConfig:
    """Every tunable of a pipeline run.

    Attributes:
        country: ISO3 country code for the GADM boundary download.
        admin_level: GADM administrative level (0 = country, 1 = provinces, ...).
        region_name: Human-readable region name used in the title.
        boundary_dir: Directory where boundary files are cached.
        bbox: Authoritative bounding box. None computes it from the boundaries.
        api_base_url: FIRMS area API base URL (CSV flavour).
        map_key: FIRMS MAP_KEY.
        source: FIRMS sensor/source identifier.
        day_range: Number of days requested (FIRMS allows 1-10).
        start_date: First day of the request window. None means today - 11 days.
        request_timeout: Seconds before an HTTP request is abandoned.
        zoom: Basemap tile zoom level.
        basemap_style: Key of ``render.BASEMAP_STYLES``.
        grayscale_basemap: Convert the basemap to black and white.
        nframes: Total number of frames in the animation.
        duration: Playback length in seconds. Overrides fps when set.
        fps: Frames per second used when duration is None.
        start_pause: Frames held on the first state.
        end_pause: Frames held on the last state.
        shadow_alpha: Opacity of points from earlier dates.
        width, height: Output size in inches.
        dpi: Pixels per inch.
        output: Output file (.gif, .mp4, or .png when animate is False).
        animate: Produce an animation rather than a single image.
        keep_frames: Keep the intermediate PNG frames.
        frames_dir: Directory for intermediate frames.
        title: Plot title. None derives it from region and date window.
        caption: Caption under the map.
    """
    country: str = "ZAF"
    admin_level: int = 2
    region_name: str = "South Africa"
    boundary_dir: Path = BOUNDARY_DIR
    bbox: Optional[BoundingBox] = SOUTH_AFRICA_BBOX
    api_base_url: str = API_BASE_URL
    map_key: Optional[str] = None
    source: str = SOURCE
    day_range: int = 10
    start_date: Optional[date] = None
    request_timeout: float = 60
    zoom: int = 7
    basemap_style: str = "terrain"
    grayscale_basemap: bool = True
    nframes: int = 60
    duration: Optional[float] = 12.0
    fps: Optional[float] = None
    start_pause: int = 3
    end_pause: int = 30
    shadow_alpha: float = 0.6
    width: float = 7
    height: float = 7
    dpi: int = 300
    output: Path = Path("fire-southAfrica_v1.gif")
    animate: bool = True
    keep_frames: bool = False
    frames_dir: Path = FRAMES_DIR
    title: Optional[str] = None
    caption: str = "Data: NASA FIRMS"

    def resolved_date(self, today=None):
        """First day of the request window."""
        if self.start_date is not None:
            return self.start_date
        today = today or date.today()
        return today - timedelta(days=DAYS_BACK)

    def window(self, today=None):
        """(first, last) day covered by the FIRMS request."""
        start = self.resolved_date(today)
        return start, start + timedelta(days=self.day_range - 1)

    def frames_per_second(self):
        if self.duration:
            return self.nframes / self.duration
        return self.fps or DEFAULT_FPS


def get_map_key(explicit=None):
    """
    Retrieve the NASA FIRMS MAP_KEY.

    Lookup order: explicit value, FIRMS_MAP_KEY from the environment (a .env
    file is loaded first), MAP_KEY from config.json in the working directory.

    Raises:
        ConfigurationError: If no key is configured
    """
    if explicit:
        return explicit

    load_dotenv()
    map_key = os.environ.get("FIRMS_MAP_KEY")

    if not map_key:
        config_file = Path("config.json")
        if config_file.exists():
            try:
                with open(config_file, 'r') as f:
                    map_key = json.load(f).get("MAP_KEY")
            except (OSError, ValueError) as e:
                raise ConfigurationError(f"Error reading config.json: {e}") from e

    if not map_key:
        raise ConfigurationError(
            "NASA FIRMS MAP_KEY not configured. Set FIRMS_MAP_KEY in the environment "
            "or a .env file, add {\"MAP_KEY\": ...} to config.json, or pass --map-key. "
            "Get a free key at https://firms.modaps.eosdis.nasa.gov/api/map_key/"
        )

    return map_key
