import json
from datetime import date

import pytest

from fire_intensity_map.config import (
    SOUTH_AFRICA_BBOX,
    BoundingBox,
    PipelineConfig,
    get_map_key,
)
from fire_intensity_map.errors import ConfigurationError


class TestBoundingBox:
    def test_valid_box(self):
        bbox = BoundingBox(16.452, -34.835, 32.891, -22.125)
        assert bbox.xmin < bbox.xmax
        assert bbox.ymin < bbox.ymax
        assert bbox.as_tuple() == (16.452, -34.835, 32.891, -22.125)

    @pytest.mark.parametrize("coords", [
        (10.0, 0.0, 10.0, 5.0),
        (11.0, 0.0, 10.0, 5.0),
        (0.0, 5.0, 10.0, 5.0),
        (0.0, 6.0, 10.0, 5.0),
    ])
    def test_degenerate_box_rejected(self, coords):
        with pytest.raises(ValueError):
            BoundingBox(*coords)

    def test_as_area(self):
        assert SOUTH_AFRICA_BBOX.as_area() == "16.452,-34.835,32.891,-22.125"

    def test_from_string(self):
        bbox = BoundingBox.from_string(" 16.452, -34.835,32.891 ,-22.125")
        assert bbox == SOUTH_AFRICA_BBOX

    @pytest.mark.parametrize("text", ["1,2,3", "a,b,c,d", "1,2,3,4,5"])
    def test_from_string_invalid(self, text):
        with pytest.raises(ValueError):
            BoundingBox.from_string(text)

    def test_frozen(self):
        with pytest.raises(AttributeError):
            SOUTH_AFRICA_BBOX.xmin = 0


class TestPipelineConfig:
    def test_defaults_match_original_run(self):
        config = PipelineConfig()
        assert config.bbox == SOUTH_AFRICA_BBOX
        assert config.source == "VIIRS_SNPP_NRT"
        assert config.day_range == 10
        assert config.nframes == 60
        assert config.output.name == "fire-southAfrica_v1.gif"

    def test_default_date_is_eleven_days_back(self):
        config = PipelineConfig()
        assert config.resolved_date(today=date(2023, 8, 27)) == date(2023, 8, 16)

    def test_window(self):
        config = PipelineConfig(start_date=date(2023, 8, 16), day_range=10)
        assert config.window() == (date(2023, 8, 16), date(2023, 8, 25))

    def test_fps_from_duration(self):
        assert PipelineConfig(nframes=60, duration=12).frames_per_second() == 5

    def test_fps_without_duration(self):
        assert PipelineConfig(duration=None, fps=15).frames_per_second() == 15


class TestGetMapKey:
    @pytest.fixture(autouse=True)
    def isolated(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)
        monkeypatch.delenv("FIRMS_MAP_KEY", raising=False)
        monkeypatch.setattr("fire_intensity_map.config.load_dotenv", lambda: False)

    def test_explicit_key_wins(self, monkeypatch):
        monkeypatch.setenv("FIRMS_MAP_KEY", "from-env")
        assert get_map_key("explicit") == "explicit"

    def test_environment(self, monkeypatch):
        monkeypatch.setenv("FIRMS_MAP_KEY", "from-env")
        assert get_map_key() == "from-env"

    def test_config_json(self, tmp_path):
        (tmp_path / "config.json").write_text(json.dumps({"MAP_KEY": "from-file"}))
        assert get_map_key() == "from-file"

    def test_invalid_config_json(self, tmp_path):
        (tmp_path / "config.json").write_text("{not json")
        with pytest.raises(ConfigurationError):
            get_map_key()

    def test_missing(self):
        with pytest.raises(ConfigurationError, match="MAP_KEY"):
            get_map_key()
