"""StoryMap FastAPI application entry point.

Wires together all providers, services, and routes via dependency injection.
Loads configuration from ``.env`` and ``config/config.yaml``, configures
structured logging, and serves uploaded images and generated narration as
static files.

Also provides ``build_view_orchestrator`` for map front ends that drive a
ViewOrchestrator against a running API.
"""

from __future__ import annotations

import asyncio
from contextlib import asynccontextmanager
from typing import Any

import httpx
import structlog
import uvicorn
from fastapi import FastAPI
from fastapi.staticfiles import StaticFiles

from storymap import __version__
from storymap.api.middleware import (
    ErrorHandlingMiddleware,
    RequestLoggingMiddleware,
    configure_cors,
)
from storymap.api.routes import router as api_router
from storymap.config.loader import load_config
from storymap.config.settings import Settings
from storymap.interfaces.audio_player import IAudioPlayer
from storymap.interfaces.map_widget import IMapWidget
from storymap.interfaces.scheduler import Scheduler
from storymap.mapview.orchestrator import ViewOrchestrator
from storymap.providers.api_client.story_api_client import StoryApiClient
from storymap.providers.examples.json_example_provider import JsonExampleStoryProvider
from storymap.providers.geocoding.mapbox_provider import MapboxGeocodingProvider
from storymap.providers.media.local_media_store import (
    AUDIO_URL_PREFIX,
    IMAGES_URL_PREFIX,
    LocalMediaStore,
)
from storymap.providers.story.sqlite_story_provider import SQLiteStoryProvider
from storymap.providers.tts.elevenlabs_provider import ElevenLabsTTSProvider
from storymap.services.audio_service import AudioGenerationService
from storymap.services.story_service import StoryService
from storymap.utils.logging import configure_logging

# ---------------------------------------------------------------------------
# Module-level settings & logging
# ---------------------------------------------------------------------------

settings = Settings()
config = load_config(settings=settings)

configure_logging(
    log_level=settings.log_level,
    json_output=(settings.app_env == "production"),
    app_env=settings.app_env,
)
logger = structlog.get_logger(logger_name=__name__)


# ---------------------------------------------------------------------------
# Full DI assembly for the FastAPI application
# ---------------------------------------------------------------------------


def _build_all(app_settings: Settings) -> dict[str, Any]:
    """Construct every provider and service instance for the application.

    Returns a flat dict of named components to be stored on ``app.state``.
    """
    # -- Shared resources --
    http_client = httpx.AsyncClient(timeout=30.0)

    # -- Stores --
    story_store = SQLiteStoryProvider(db_path=app_settings.stories_db_path)
    example_store = JsonExampleStoryProvider(path=app_settings.example_stories_path or None)
    media_store = LocalMediaStore(data_dir=app_settings.data_dir)

    # -- External services --
    geocoder = MapboxGeocodingProvider(settings=app_settings, http_client=http_client)
    tts = ElevenLabsTTSProvider(settings=app_settings, http_client=http_client)

    # -- Services --
    story_service = StoryService(
        story_store=story_store,
        example_store=example_store,
        media_store=media_store,
        max_stories=app_settings.max_stories,
    )
    audio_service = AudioGenerationService(
        story_service=story_service,
        tts=tts,
        media_store=media_store,
    )

    provider_registry = {
        "stories": True,
        "geocoding": geocoder.is_available(),
        "tts": tts.is_available(),
    }

    return {
        "http_client": http_client,
        "story_store": story_store,
        "example_store": example_store,
        "media_store": media_store,
        "geocoder": geocoder,
        "tts": tts,
        "story_service": story_service,
        "audio_service": audio_service,
        "provider_registry": provider_registry,
    }


# ---------------------------------------------------------------------------
# Application lifespan (startup / shutdown)
# ---------------------------------------------------------------------------


@asynccontextmanager
async def _lifespan(application: FastAPI):  # noqa: ANN201
    """Initialise all providers and services on startup, clean up on shutdown."""
    components = getattr(application.state, "prebuilt_components", None)
    if components is None:
        components = _build_all(application.state.settings)

    for key, value in components.items():
        setattr(application.state, key, value)

    story_store = components.get("story_store")
    if story_store is not None:
        await story_store.initialize()
    media_store = components.get("media_store")
    if isinstance(media_store, LocalMediaStore):
        await asyncio.to_thread(media_store.ensure_dirs)

    logger.info(
        "app_startup",
        version=__version__,
        environment=application.state.settings.app_env,
        providers=components.get("provider_registry", {}),
    )

    yield

    # -- Shutdown: close shared httpx client --
    http_client: httpx.AsyncClient | None = components.get("http_client")
    if http_client is not None:
        await http_client.aclose()
    logger.info("app_shutdown", message="HTTP client closed")


# ---------------------------------------------------------------------------
# FastAPI application factory
# ---------------------------------------------------------------------------


def create_app(
    app_settings: Settings | None = None,
    components: dict[str, Any] | None = None,
) -> FastAPI:
    """Build and configure the FastAPI application.

    Parameters
    ----------
    app_settings:
        Settings to build providers from.  Defaults to the module settings.
    components:
        Optional pre-built DI components (tests pass stores on temporary
        paths here).  When omitted, the lifespan calls ``_build_all``.
    """
    app_settings = app_settings or settings
    application = FastAPI(
        title="StoryMap API",
        version=__version__,
        description=(
            "Build life story maps: chronological, geolocated events with "
            "styled paths, narrated cinema playback and example stories."
        ),
        lifespan=_lifespan,
    )
    application.state.settings = app_settings
    if components is not None:
        application.state.prebuilt_components = components

    # -- Middleware (order matters: last added = first executed) --
    application.add_middleware(ErrorHandlingMiddleware)
    application.add_middleware(RequestLoggingMiddleware)
    configure_cors(application, allowed_origins=config.get("cors", {}).get("allowed_origins"))

    # -- API routes --
    application.include_router(api_router)

    # -- Media static files (directories are created at startup) --
    media_store = (components or {}).get("media_store")
    if not isinstance(media_store, LocalMediaStore):
        media_store = LocalMediaStore(data_dir=app_settings.data_dir)
    application.mount(
        IMAGES_URL_PREFIX,
        StaticFiles(directory=str(media_store.images_dir), check_dir=False),
        name="images",
    )
    application.mount(
        AUDIO_URL_PREFIX,
        StaticFiles(directory=str(media_store.audio_dir), check_dir=False),
        name="audio",
    )

    return application


# ---------------------------------------------------------------------------
# Map front-end assembly
# ---------------------------------------------------------------------------


def build_view_orchestrator(
    widget: IMapWidget,
    audio_player: IAudioPlayer,
    scheduler: Scheduler | None = None,
    app_settings: Settings | None = None,
    http_client: httpx.AsyncClient | None = None,
) -> ViewOrchestrator:
    """Build a ViewOrchestrator that loads stories from the running API.

    ``scheduler`` defaults to the running asyncio event loop, so this must
    be called from inside one unless a scheduler is passed.
    """
    app_settings = app_settings or settings
    reader = StoryApiClient(app_settings.api_base_url, http_client=http_client)
    geocoder = MapboxGeocodingProvider(settings=app_settings, http_client=http_client)
    return ViewOrchestrator(
        story_reader=reader,
        widget=widget,
        audio_player=audio_player,
        geocoder=geocoder,
        scheduler=scheduler or asyncio.get_running_loop(),
        transition_ms=app_settings.camera_transition_ms,
        no_audio_delay_s=app_settings.cinema_no_audio_delay_s,
    )


app = create_app()

# ---------------------------------------------------------------------------
# CLI entry point
# ---------------------------------------------------------------------------


def main() -> None:
    app_config = config["app"]
    uvicorn.run(
        "storymap.main:app",
        host=app_config["host"],
        port=app_config["port"],
        reload=(app_config["env"] == "development"),
    )


if __name__ == "__main__":
    main()
