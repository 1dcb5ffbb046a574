"""Unit tests for the application factories in storymap.main."""

from __future__ import annotations

from unittest.mock import patch

import pytest

from storymap.config.settings import Settings
from tests.conftest import FakeAudioPlayer, FakeMapWidget, FakeScheduler


def _settings(tmp_path, **overrides) -> Settings:
    defaults = {
        "mapbox_token": "",
        "elevenlabs_api_key": "",
        "data_dir": str(tmp_path / "data"),
        "stories_db_path": str(tmp_path / "stories.db"),
        "app_env": "testing",
    }
    defaults.update(overrides)
    return Settings(**defaults)


class TestBuildAll:
    @pytest.mark.asyncio
    async def test_registry_reflects_configured_keys(self, tmp_path) -> None:
        from storymap.main import _build_all

        components = _build_all(_settings(tmp_path, mapbox_token="pk.test"))
        try:
            assert components["provider_registry"] == {
                "stories": True,
                "geocoding": True,
                "tts": False,
            }
        finally:
            await components["http_client"].aclose()

    @pytest.mark.asyncio
    async def test_component_types(self, tmp_path) -> None:
        from storymap.main import _build_all
        from storymap.providers.geocoding.mapbox_provider import MapboxGeocodingProvider
        from storymap.providers.story.sqlite_story_provider import SQLiteStoryProvider
        from storymap.providers.tts.elevenlabs_provider import ElevenLabsTTSProvider
        from storymap.services.audio_service import AudioGenerationService
        from storymap.services.story_service import StoryService

        components = _build_all(_settings(tmp_path, elevenlabs_api_key="xi-test"))
        try:
            assert isinstance(components["story_store"], SQLiteStoryProvider)
            assert isinstance(components["geocoder"], MapboxGeocodingProvider)
            assert isinstance(components["tts"], ElevenLabsTTSProvider)
            assert isinstance(components["story_service"], StoryService)
            assert isinstance(components["audio_service"], AudioGenerationService)
            assert components["provider_registry"]["tts"] is True
            assert components["provider_registry"]["geocoding"] is False
        finally:
            await components["http_client"].aclose()


class TestCreateApp:
    def test_routes_registered(self, tmp_path) -> None:
        from storymap.main import create_app

        application = create_app(app_settings=_settings(tmp_path))
        paths = {getattr(route, "path", None) for route in application.routes}

        assert "/api/health" in paths
        assert "/api/stories" in paths
        assert "/api/stories/{story_id}/events" in paths
        assert "/images" in paths
        assert "/audio" in paths


class TestBuildViewOrchestrator:
    def test_uses_given_scheduler_and_settings(self, tmp_path) -> None:
        from storymap.main import build_view_orchestrator
        from storymap.mapview.orchestrator import ViewOrchestrator
        from storymap.models.map import ViewMode

        orchestrator = build_view_orchestrator(
            FakeMapWidget(),
            FakeAudioPlayer(),
            scheduler=FakeScheduler(),
            app_settings=_settings(tmp_path, api_base_url="http://testserver"),
        )

        assert isinstance(orchestrator, ViewOrchestrator)
        assert orchestrator.mode is ViewMode.HOME
        assert orchestrator.story_id is None


class TestMainEntryPoint:
    def test_runs_uvicorn_with_resolved_config(self, tmp_path) -> None:
        from storymap import main as main_module
        from storymap.config.loader import load_config

        settings = _settings(tmp_path, app_host="127.0.0.1", app_port=9000, app_env="production")
        config = load_config(str(tmp_path / "absent.yaml"), settings=settings)
        with patch.object(main_module, "config", config), patch.object(
            main_module.uvicorn, "run"
        ) as run:
            main_module.main()

        run.assert_called_once_with(
            "storymap.main:app",
            host="127.0.0.1",
            port=9000,
            reload=False,
        )
