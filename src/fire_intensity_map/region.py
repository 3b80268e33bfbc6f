"""
Region resolution: administrative boundary polygons and the map extent.

Boundaries come from GADM 4.1 GeoJSON files, downloaded once into a local
directory and read with geopandas.
"""

from pathlib import Path

import geopandas as gpd
import requests

from .config import BoundingBox
from .errors import BoundaryDataError


GADM_URL = "https://geodata.ucdavis.edu/gadm/gadm4.1/json/gadm41_{country}_{level}.json"


def gadm_url(country, level):
    """URL of the GADM GeoJSON file for a country and administrative level."""
    return GADM_URL.format(country=country.upper(), level=int(level))


def download_boundaries(country, level, path, timeout=60):
    """
    Download GADM boundaries into ``path`` unless already cached there.

    Args:
        country (str): ISO3 country code
        level (int): Administrative level
        path (Path): Cache directory
        timeout (float): Request timeout in seconds

    Returns:
        Path: Local GeoJSON file

    Raises:
        BoundaryDataError: If the download fails
    """
    url = gadm_url(country, level)
    cache_dir = Path(path)
    local_file = cache_dir / Path(url).name

    if local_file.exists() and local_file.stat().st_size > 0:
        return local_file

    try:
        response = requests.get(url, timeout=timeout)
        response.raise_for_status()
    except requests.exceptions.RequestException as e:
        raise BoundaryDataError(f"Failed to download boundaries from {url}: {e}") from e

    cache_dir.mkdir(parents=True, exist_ok=True)
    local_file.write_bytes(response.content)
    return local_file


def load_boundaries(country, level, path, timeout=60):
    """
    Load boundary polygons for a country, downloading them if needed.

    Returns:
        gpd.GeoDataFrame: Polygons in EPSG:4326

    Raises:
        BoundaryDataError: If the file cannot be downloaded or read
    """
    local_file = download_boundaries(country, level, path, timeout=timeout)

    try:
        polygons = gpd.read_file(local_file)
    except Exception as e:
        raise BoundaryDataError(f"Failed to read boundary file {local_file}: {e}") from e

    if polygons.empty:
        raise BoundaryDataError(f"Boundary file {local_file} contains no features")

    return ensure_wgs84(polygons)


def ensure_wgs84(gdf):
    """Return ``gdf`` in EPSG:4326, assuming WGS84 when no CRS is set."""
    if gdf.crs is None:
        return gdf.set_crs("EPSG:4326")
    if gdf.crs.to_epsg() != 4326:
        return gdf.to_crs("EPSG:4326")
    return gdf


def bbox_from_polygons(polygons):
    """Bounding box covering all polygons."""
    return BoundingBox.from_bounds(ensure_wgs84(polygons).total_bounds)


def resolve_region(config):
    """
    Load the region polygons and decide the map extent.

    The configured bounding box is authoritative; it is only computed from
    the polygons when ``config.bbox`` is None.

    Returns:
        tuple: (polygons, bbox)
    """
    polygons = load_boundaries(
        config.country, config.admin_level, config.boundary_dir,
        timeout=config.request_timeout,
    )
    bbox = config.bbox if config.bbox is not None else bbox_from_polygons(polygons)
    return polygons, bbox
