import geopandas as gpd
import matplotlib
import numpy as np
import pytest
import requests
from shapely.geometry import box

matplotlib.use("Agg")

from fire_intensity_map.config import BoundingBox
from fire_intensity_map.render import Basemap, project_bbox


FIRMS_HEADER = (
    "latitude,longitude,bright_ti4,scan,track,acq_date,acq_time,satellite,"
    "instrument,confidence,version,bright_ti5,frp,daynight"
)


def firms_row(lat, lon, acq_date, bright_ti5):
    return f"{lat},{lon},330.5,0.39,0.36,{acq_date},1102,N,VIIRS,n,2.0NRT,{bright_ti5},4.2,D"


def firms_csv(rows):
    return "\n".join([FIRMS_HEADER] + [firms_row(*row) for row in rows]) + "\n"


@pytest.fixture
def region_bbox():
    return BoundingBox(16.0, -35.0, 33.0, -22.0)


@pytest.fixture
def region_polygons():
    """Two adjacent provinces sharing the x=25 border."""
    return gpd.GeoDataFrame(
        {'NAME_2': ["West", "East"]},
        geometry=[box(17, -34, 25, -25), box(25, -34, 32, -25)],
        crs="EPSG:4326",
    )


@pytest.fixture
def region_geojson(region_polygons):
    return region_polygons.to_json()


@pytest.fixture
def fire_csv_text():
    """Two detections inside the region, one outside."""
    return firms_csv([
        (-30.0, 20.0, "2023-08-16", 300.0),
        (-28.0, 28.0, "2023-08-17", 310.5),
        (-30.0, 10.0, "2023-08-17", 295.0),
    ])


@pytest.fixture
def fake_basemap(region_bbox):
    bounds = project_bbox(region_bbox)
    image = np.full((32, 32), 200, dtype=np.uint8)
    return Basemap(image=image, extent=(bounds[0], bounds[2], bounds[1], bounds[3]), bounds=bounds)


class FakeResponse:
    def __init__(self, text="", status_code=200, content=None):
        self.text = text
        self.status_code = status_code
        self.content = content if content is not None else text.encode()

    def raise_for_status(self):
        if self.status_code >= 400:
            raise requests.exceptions.HTTPError(f"{self.status_code} Error")
