"""Tests for eventky_lite.config_loader."""

import json

import pytest

from eventky_lite.config_loader import Config, build_config_from_env, load_config
from eventky_lite.lite_exceptions import LiteConfigError
from eventky_lite.lite_models import CountMode

pytestmark = pytest.mark.unit


class TestConfigFromDict:
    def test_defaults(self):
        cfg = Config.from_dict(None)
        assert cfg == Config()
        assert cfg.max_count == 10
        assert cfg.count_mode is CountMode.STRICT
        assert (cfg.max_step_iterations, cfg.max_scan_iterations, cfg.max_period_iterations) == (100, 1000, 1000)

    def test_string_values_coerced(self):
        cfg = Config.from_dict(
            {"max_count": "25", "count_mode": "FILL", "max_step_iterations": "200", "log_level": "debug"}
        )
        assert cfg.max_count == 25
        assert cfg.count_mode is CountMode.FILL
        assert cfg.max_step_iterations == 200
        assert cfg.log_level == "DEBUG"

    def test_invalid_values_fall_back_with_warning(self, caplog):
        cfg = Config.from_dict(
            {
                "max_count": "lots",
                "count_mode": "sometimes",
                "max_scan_iterations": 0,
                "default_timezone": "Nowhere/City",
            }
        )
        assert cfg.max_count == 10
        assert cfg.count_mode is CountMode.STRICT
        assert cfg.max_scan_iterations == 1000
        assert cfg.default_timezone == "UTC"
        assert "count_mode" in caplog.text

    def test_zero_max_count_allowed(self):
        assert Config.from_dict({"max_count": 0}).max_count == 0


class TestEnvironment:
    def test_build_config_from_env(self, monkeypatch):
        monkeypatch.setenv("EVENTKY_MAX_COUNT", "3")
        monkeypatch.setenv("EVENTKY_COUNT_MODE", "fill")
        assert build_config_from_env() == {"max_count": "3", "count_mode": "fill"}

    def test_empty_environment(self):
        assert build_config_from_env() == {}


class TestLoadConfig:
    def test_missing_file_gives_defaults(self, tmp_path):
        assert load_config(str(tmp_path / "absent.yaml")) == Config()

    def test_yaml_file(self, tmp_path):
        path = tmp_path / "eventky.yaml"
        path.write_text("max_count: 5\ncount_mode: fill\ndefault_timezone: Europe/Berlin\n", encoding="utf-8")

        cfg = load_config(str(path))
        assert cfg.max_count == 5
        assert cfg.count_mode is CountMode.FILL
        assert cfg.default_timezone == "Europe/Berlin"

    def test_json_file(self, tmp_path):
        path = tmp_path / "eventky.json"
        path.write_text(json.dumps({"max_period_iterations": 12}), encoding="utf-8")
        assert load_config(str(path)).max_period_iterations == 12

    def test_default_file_in_working_directory(self, tmp_path):
        (tmp_path / "eventky_lite.yaml").write_text("max_count: 7\n", encoding="utf-8")
        assert load_config().max_count == 7

    def test_config_path_from_environment(self, tmp_path, monkeypatch):
        path = tmp_path / "custom.yaml"
        path.write_text("max_count: 4\n", encoding="utf-8")
        monkeypatch.setenv("EVENTKY_CONFIG", str(path))
        assert load_config().max_count == 4

    def test_environment_overrides_file(self, tmp_path, monkeypatch):
        path = tmp_path / "eventky.yaml"
        path.write_text("max_count: 5\n", encoding="utf-8")
        monkeypatch.setenv("EVENTKY_MAX_COUNT", "9")
        assert load_config(str(path)).max_count == 9

    def test_default_timezone_from_environment(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EVENTKY_DEFAULT_TIMEZONE", "Asia/Tokyo")
        assert load_config(str(tmp_path / "absent.yaml")).default_timezone == "Asia/Tokyo"

    def test_invalid_default_timezone_from_environment_falls_back(self, tmp_path, monkeypatch):
        monkeypatch.setenv("EVENTKY_DEFAULT_TIMEZONE", "Invalid/Zone")
        assert load_config(str(tmp_path / "absent.yaml")).default_timezone == "UTC"

    def test_empty_file_gives_defaults(self, tmp_path):
        path = tmp_path / "empty.yaml"
        path.write_text("", encoding="utf-8")
        assert load_config(str(path)) == Config()

    def test_non_mapping_raises(self, tmp_path):
        path = tmp_path / "list.yaml"
        path.write_text("- a\n- b\n", encoding="utf-8")
        with pytest.raises(LiteConfigError):
            load_config(str(path))

    def test_malformed_yaml_raises(self, tmp_path):
        path = tmp_path / "broken.yaml"
        path.write_text("max_count: [unclosed\n", encoding="utf-8")
        with pytest.raises(LiteConfigError):
            load_config(str(path))
