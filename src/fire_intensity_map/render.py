"""
Map rendering: basemap tiles plus fire points colored by brightness temperature.

Plotting happens in Web Mercator (EPSG:3857) so the contextily tiles and the
fire points share one coordinate system.
"""

from dataclasses import dataclass

import contextily as cx
import geopandas as gpd
import matplotlib
import matplotlib.pyplot as plt
import numpy as np
from matplotlib.cm import ScalarMappable
from matplotlib.colors import LinearSegmentedColormap, Normalize
from PIL import Image
from shapely.geometry import box

from .errors import BasemapError
from .firms import kelvin_to_celsius


# Basemap tile providers, resolved lazily from contextily.providers
BASEMAP_STYLES = {
    'terrain': "OpenTopoMap",
    'osm': "OpenStreetMap.Mapnik",
    'satellite': "Esri.WorldImagery",
    'light': "CartoDB.Positron",
}

# Reversed 6-step inferno: pale yellow for cool detections, near-black for hot
FIRE_CMAP = LinearSegmentedColormap.from_list(
    'fire_inferno_r',
    matplotlib.colormaps['inferno'](np.linspace(0, 1, 6))[::-1],
    N=256
)

GREY10 = '#1a1a1a'
GREY30 = '#4d4d4d'
LEGEND_TITLE = "Brightness\nTemperature\n(°C)"
POINT_SIZE = 12


@dataclass
class Basemap:
    """Raster basemap and its extent (minx, maxx, miny, maxy) in EPSG:3857."""
    image: np.ndarray
    extent: tuple
    bounds: tuple


@dataclass
class PointLayer:
    """A set of plot-ready points drawn with one opacity."""
    points: object
    alpha: float = 1.0


def basemap_source(style):
    """Look up the contextily tile provider for a style name."""
    if style not in BASEMAP_STYLES:
        raise BasemapError(f"Unknown basemap style {style!r}. Options: {', '.join(BASEMAP_STYLES)}")
    provider = cx.providers
    for part in BASEMAP_STYLES[style].split("."):
        provider = provider[part]
    return provider


def project_bbox(bbox):
    """Bounding box in EPSG:3857 as (minx, miny, maxx, maxy)."""
    extent = gpd.GeoSeries([box(*bbox.as_tuple())], crs="EPSG:4326").to_crs(epsg=3857)
    return tuple(float(v) for v in extent.total_bounds)


def to_grayscale(image):
    """Black and white copy of an RGB(A) tile image."""
    return np.asarray(Image.fromarray(np.asarray(image, dtype=np.uint8)).convert('L'))


def fetch_basemap(bbox, zoom=7, style='terrain', grayscale=True):
    """
    Fetch one raster basemap covering the bounding box.

    Args:
        bbox (BoundingBox): Extent in EPSG:4326
        zoom (int): Tile zoom level
        style (str): Key of BASEMAP_STYLES
        grayscale (bool): Convert the tiles to black and white

    Returns:
        Basemap: Image plus extent in EPSG:3857

    Raises:
        BasemapError: If the tiles cannot be fetched
    """
    source = basemap_source(style)
    try:
        image, extent = cx.bounds2img(
            bbox.xmin, bbox.ymin, bbox.xmax, bbox.ymax,
            zoom=zoom, source=source, ll=True
        )
    except Exception as e:
        raise BasemapError(f"Failed to fetch basemap tiles ({style}, zoom {zoom}): {e}") from e

    if grayscale:
        image = to_grayscale(image)

    return Basemap(image=image, extent=tuple(extent), bounds=project_bbox(bbox))


def prepare_plot_data(joined):
    """
    Add Web Mercator coordinates and the Celsius temperature.

    Args:
        joined (pd.DataFrame): longitude, latitude, bright_ti5, acq_date

    Returns:
        pd.DataFrame: Input columns plus x, y and celsius
    """
    data = joined.copy()
    points = gpd.GeoSeries(
        gpd.points_from_xy(data['longitude'].astype(float), data['latitude'].astype(float)),
        index=data.index, crs="EPSG:4326"
    ).to_crs(epsg=3857)
    data['x'] = points.x
    data['y'] = points.y
    data['celsius'] = kelvin_to_celsius(data['bright_ti5'].astype(float))
    return data


def color_norm(data):
    """Color limits shared by every frame."""
    if data.empty:
        return Normalize(vmin=0, vmax=1)
    vmin, vmax = float(data['celsius'].min()), float(data['celsius'].max())
    if vmin == vmax:
        vmin, vmax = vmin - 0.5, vmax + 0.5
    return Normalize(vmin=vmin, vmax=vmax)


def default_title(region_name, start, end):
    """e.g. 'Wildfires In South Africa: 16-25 August 2023'."""
    if (start.year, start.month) == (end.year, end.month):
        span = f"{start.day}-{end.day} {end:%B %Y}"
    elif start.year == end.year:
        span = f"{start.day} {start:%B} - {end.day} {end:%B %Y}"
    else:
        span = f"{start.day} {start:%B %Y} - {end.day} {end:%B %Y}"
    return f"Wildfires In {region_name}: {span}"


def _draw_map(basemap, layers, norm, title, subtitle, caption, width, height, dpi):
    fig = plt.figure(figsize=(width, height), dpi=dpi, facecolor='white')

    # Map on the left, legend on the right, text above and below
    ax = fig.add_axes([0.02, 0.08, 0.78, 0.78])
    cax = fig.add_axes([0.84, 0.32, 0.03, 0.3])

    if basemap.image.ndim == 2:
        ax.imshow(basemap.image, extent=basemap.extent, cmap='gray', vmin=0, vmax=255,
                  interpolation='bilinear', zorder=1)
    else:
        ax.imshow(basemap.image, extent=basemap.extent, interpolation='bilinear', zorder=1)

    for layer in layers:
        if layer.points.empty or layer.alpha <= 0:
            continue
        ax.scatter(
            layer.points['x'], layer.points['y'],
            c=layer.points['celsius'], cmap=FIRE_CMAP, norm=norm,
            s=POINT_SIZE, alpha=min(layer.alpha, 1.0), edgecolors='none', zorder=3
        )

    minx, miny, maxx, maxy = basemap.bounds
    ax.set_xlim(minx, maxx)
    ax.set_ylim(miny, maxy)
    ax.set_aspect('equal', adjustable='box')
    ax.set_axis_off()

    cbar = fig.colorbar(ScalarMappable(norm=norm, cmap=FIRE_CMAP), cax=cax)
    cbar.ax.tick_params(labelsize=11, colors=GREY10)
    cbar.outline.set_visible(False)
    cax.set_title(LEGEND_TITLE, fontsize=12, color=GREY10, loc='left', pad=10)

    fig.text(0.5, 0.965, title, ha='center', va='top', fontsize=16, color=GREY10)
    if subtitle:
        fig.text(0.5, 0.915, subtitle, ha='center', va='top', fontsize=24,
                 fontweight='bold', color='firebrick')
    if caption:
        fig.text(0.5, 0.02, caption, ha='center', va='bottom', fontsize=10, color=GREY30)

    return fig


def render_frame(path, basemap, layers, norm, title, subtitle=None, caption=None,
                 width=7, height=7, dpi=300):
    """
    Render one map to a PNG of ``width*dpi`` by ``height*dpi`` pixels.

    Args:
        path (Path): Output PNG
        basemap (Basemap): Background raster
        layers (list[PointLayer]): Point sets drawn bottom to top
        norm (Normalize): Shared color limits in °C
        title, subtitle, caption (str): Text around the map

    Returns:
        Path: The written file
    """
    fig = _draw_map(basemap, layers, norm, title, subtitle, caption, width, height, dpi)
    try:
        fig.savefig(path, dpi=dpi, facecolor=fig.get_facecolor())
    finally:
        plt.close(fig)
    return path


def render_static_map(path, basemap, data, title, caption=None, width=7, height=7, dpi=300):
    """Render every point in one image (no animation)."""
    if data.empty:
        subtitle = None
    else:
        first, last = data['acq_date'].min(), data['acq_date'].max()
        subtitle = f"{first:%Y-%m-%d}" if first == last else f"{first:%Y-%m-%d} to {last:%Y-%m-%d}"
    return render_frame(
        path, basemap, [PointLayer(data)], color_norm(data), title,
        subtitle=subtitle, caption=caption, width=width, height=height, dpi=dpi,
    )
