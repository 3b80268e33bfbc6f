import pandas as pd
import pytest

from conftest import firms_csv
from fire_intensity_map.firms import parse_fire_csv
from fire_intensity_map.spatial import join_fires_to_region


def test_keeps_only_points_inside(fire_csv_text, region_polygons):
    fires = parse_fire_csv(fire_csv_text)
    joined = join_fires_to_region(fires, region_polygons)

    assert list(joined.columns) == ["longitude", "latitude", "bright_ti5", "acq_date"]
    assert len(joined) == 2
    assert joined['longitude'].tolist() == pytest.approx([20.0, 28.0])
    assert joined['latitude'].tolist() == pytest.approx([-30.0, -28.0])
    assert joined['bright_ti5'].tolist() == [300.0, 310.5]


def test_join_is_a_filter(region_polygons):
    fires = parse_fire_csv(firms_csv([
        (-30.0, 25.0, "2023-08-16", 300.0),   # on the shared border
        (-26.0, 31.5, "2023-08-16", 305.0),
        (-20.0, 20.0, "2023-08-16", 301.0),   # north of both polygons
    ]))
    joined = join_fires_to_region(fires, region_polygons)

    assert len(joined) <= len(fires)
    assert len(joined) == 2
    xmin, ymin, xmax, ymax = region_polygons.total_bounds
    assert joined['longitude'].between(xmin, xmax).all()
    assert joined['latitude'].between(ymin, ymax).all()


def test_reprojected_polygons(fire_csv_text, region_polygons):
    fires = parse_fire_csv(fire_csv_text)
    joined = join_fires_to_region(fires, region_polygons.to_crs(epsg=3857))
    assert joined['longitude'].tolist() == pytest.approx([20.0, 28.0])


def test_nothing_inside(region_polygons):
    fires = parse_fire_csv(firms_csv([(10.0, 10.0, "2023-08-16", 300.0)]))
    joined = join_fires_to_region(fires, region_polygons)
    assert joined.empty
    assert list(joined.columns) == ["longitude", "latitude", "bright_ti5", "acq_date"]


def test_empty_input(region_polygons):
    joined = join_fires_to_region(pd.DataFrame(columns=["latitude", "longitude", "acq_date", "bright_ti5"]),
                                  region_polygons)
    assert joined.empty


def test_duplicate_records_pass_through(region_polygons):
    fires = parse_fire_csv(firms_csv([(-30.0, 20.0, "2023-08-16", 300.0)]))
    doubled = pd.concat([fires, fires])
    assert not doubled.index.is_unique

    joined = join_fires_to_region(doubled, region_polygons)
    assert len(joined) == 2
    assert joined['longitude'].tolist() == pytest.approx([20.0, 20.0])


def test_border_point_with_duplicate_index(region_polygons):
    fires = parse_fire_csv(firms_csv([
        (-30.0, 25.0, "2023-08-16", 300.0),   # on the shared border
        (-26.0, 31.5, "2023-08-16", 305.0),
    ]))
    joined = join_fires_to_region(fires.set_index(pd.Index([7, 7])), region_polygons)
    assert len(joined) == 2
