"""Spatial join of fire points against region polygons."""

import geopandas as gpd
import pandas as pd
from shapely.geometry import Point

from .region import ensure_wgs84


OUTPUT_COLUMNS = ["longitude", "latitude", "bright_ti5", "acq_date"]


def fires_to_points(fire_df):
    """Convert fire records to a point GeoDataFrame in EPSG:4326."""
    geometry = [Point(lon, lat) for lon, lat in zip(fire_df['longitude'], fire_df['latitude'])]
    return gpd.GeoDataFrame(fire_df, geometry=geometry, crs="EPSG:4326")


def join_fires_to_region(fire_df, polygons):
    """
    Keep the fire records that fall inside any of the region polygons.

    Inner join on intersection. A point on a shared border matches several
    polygons but is kept only once. Longitude/latitude are re-read from the
    point geometry and polygon attributes are dropped.

    Args:
        fire_df (pd.DataFrame): Fire records with latitude/longitude columns
        polygons (gpd.GeoDataFrame): Region polygons

    Returns:
        pd.DataFrame: longitude, latitude, bright_ti5, acq_date
    """
    if fire_df.empty:
        return pd.DataFrame(columns=OUTPUT_COLUMNS)

    # Positional index so only border matches collapse, never duplicate records
    points = fires_to_points(fire_df.reset_index(drop=True))
    region = ensure_wgs84(polygons)[['geometry']]

    joined = gpd.sjoin(points, region, how="inner", predicate="intersects")
    joined = joined[~joined.index.duplicated(keep="first")].sort_index()

    result = pd.DataFrame({
        'longitude': joined.geometry.x,
        'latitude': joined.geometry.y,
        'bright_ti5': joined['bright_ti5'],
        'acq_date': joined['acq_date'],
    }, columns=OUTPUT_COLUMNS)

    return result.reset_index(drop=True)
