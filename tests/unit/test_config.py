"""Unit tests for the YAML config loader."""

from __future__ import annotations

from pathlib import Path

from storymap.config.loader import load_config
from storymap.config.settings import Settings

BUNDLED_CONFIG = Path(__file__).resolve().parents[2] / "config" / "config.yaml"


def _settings(**overrides) -> Settings:
    defaults = {
        "mapbox_token": "",
        "elevenlabs_api_key": "",
        "app_env": "testing",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestLoadConfig:
    def test_yaml_values_merged_under_settings(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text(
            "app:\n"
            "  host: 10.0.0.1\n"
            "  port: 1\n"
            "cors:\n"
            "  allowed_origins: [\"https://maps.example\"]\n",
            encoding="utf-8",
        )

        config = load_config(str(path), settings=_settings(app_host="127.0.0.1", app_port=9000))

        assert config["app"] == {"host": "127.0.0.1", "port": 9000, "env": "testing"}
        assert config["cors"]["allowed_origins"] == ["https://maps.example"]

    def test_missing_file_uses_settings_only(self, tmp_path) -> None:
        config = load_config(str(tmp_path / "absent.yaml"), settings=_settings())

        assert config == {"app": {"host": "0.0.0.0", "port": 8000, "env": "testing"}}

    def test_empty_file(self, tmp_path) -> None:
        path = tmp_path / "config.yaml"
        path.write_text("", encoding="utf-8")

        config = load_config(str(path), settings=_settings())

        assert config["app"]["env"] == "testing"
        assert "cors" not in config

    def test_bundled_file_only_holds_read_keys(self) -> None:
        config = load_config(str(BUNDLED_CONFIG), settings=_settings())

        assert set(config) == {"app", "cors"}
        assert config["cors"]["allowed_origins"] == ["*"]
