import pytest
import requests

from conftest import FakeResponse
from fire_intensity_map import region
from fire_intensity_map.config import SOUTH_AFRICA_BBOX, BoundingBox, PipelineConfig
from fire_intensity_map.errors import BoundaryDataError
from fire_intensity_map.region import (
    bbox_from_polygons,
    download_boundaries,
    gadm_url,
    load_boundaries,
    resolve_region,
)


def test_gadm_url():
    assert gadm_url("zaf", 2) == "https://geodata.ucdavis.edu/gadm/gadm4.1/json/gadm41_ZAF_2.json"


def test_download_is_cached(tmp_path, monkeypatch, region_geojson):
    calls = []

    def fake_get(url, timeout=None):
        calls.append(url)
        return FakeResponse(region_geojson)

    monkeypatch.setattr(region.requests, "get", fake_get)
    first = download_boundaries("ZAF", 2, tmp_path)
    second = download_boundaries("ZAF", 2, tmp_path)

    assert first == second == tmp_path / "gadm41_ZAF_2.json"
    assert first.read_text() == region_geojson
    assert len(calls) == 1


def test_download_failure(tmp_path, monkeypatch):
    def fake_get(url, timeout=None):
        raise requests.exceptions.ConnectionError("unreachable")

    monkeypatch.setattr(region.requests, "get", fake_get)
    with pytest.raises(BoundaryDataError):
        download_boundaries("ZAF", 2, tmp_path / "boundaries")
    assert not (tmp_path / "boundaries" / "gadm41_ZAF_2.json").exists()


def test_load_boundaries(tmp_path, monkeypatch, region_geojson):
    monkeypatch.setattr(region.requests, "get", lambda url, timeout=None: FakeResponse(region_geojson))
    polygons = load_boundaries("ZAF", 2, tmp_path)
    assert len(polygons) == 2
    assert polygons.crs.to_epsg() == 4326


def test_unreadable_boundaries(tmp_path, monkeypatch):
    monkeypatch.setattr(region.requests, "get", lambda url, timeout=None: FakeResponse("<html>oops</html>"))
    with pytest.raises(BoundaryDataError):
        load_boundaries("ZAF", 2, tmp_path)


def test_bbox_from_polygons(region_polygons):
    assert bbox_from_polygons(region_polygons) == BoundingBox(17.0, -34.0, 32.0, -25.0)


def test_configured_bbox_overrides(tmp_path, monkeypatch, region_geojson):
    monkeypatch.setattr(region.requests, "get", lambda url, timeout=None: FakeResponse(region_geojson))
    polygons, bbox = resolve_region(PipelineConfig(boundary_dir=tmp_path))
    assert len(polygons) == 2
    assert bbox == SOUTH_AFRICA_BBOX


def test_bbox_computed_when_unset(tmp_path, monkeypatch, region_geojson):
    monkeypatch.setattr(region.requests, "get", lambda url, timeout=None: FakeResponse(region_geojson))
    _, bbox = resolve_region(PipelineConfig(boundary_dir=tmp_path, bbox=None))
    assert bbox == BoundingBox(17.0, -34.0, 32.0, -25.0)
