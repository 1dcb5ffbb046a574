"""FastAPI API routes for StoryMap.

Story CRUD, event lists, bundled example stories, image upload, narration
generation and the map-feature views.  Services are resolved from
``app.state`` via FastAPI's ``Depends`` using the ``Annotated`` pattern.

# ─── API ROUTE MAP ────────────────────────────────────────────────────
#
# Endpoint                                   Method  Description
# ─────────────────────────────────────────────────────────────────────
# /api/stories                               GET     List stories
# /api/stories                               POST    Create story (cap, name, language)
# /api/stories/{id}                          GET     One story
# /api/stories/{id}                          PUT     Partial header update
# /api/stories/{id}                          DELETE  Story + events + audio
# /api/stories/{id}/events                   GET     Event list
# /api/stories/{id}/events                   PUT     Replace event list
# /api/stories/{id}/generate-audio           POST    Narrate eligible events
# /api/stories/{id}/audio                    DELETE  Remove all narration
# /api/stories/{id}/audio/{eventId}          DELETE  Remove one event's narration
# /api/stories/{id}/map-features             GET     Markers + paths for one story
# /api/overview/map-features                 GET     Home overview of all stories
# /api/example-stories[/{id}[/events]]       GET     Bundled examples (read-only)
# /api/upload-image                          POST    Base64 image upload
# /api/geocode/search?q=                     GET     Forward geocode
# /api/geocode/reverse?lng=&lat=             GET     Reverse geocode
# /api/voices                                GET     Narration voices per language
# /api/health                                GET     Health + provider status
#
# Application errors are raised, never returned: ErrorHandlingMiddleware
# turns StoryMapError subclasses into JSON error bodies.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import base64
import binascii
from typing import Annotated, Any

import pydantic
import structlog
from fastapi import APIRouter, Body, Depends, HTTPException, Query, Request
from fastapi.responses import JSONResponse

from storymap import __version__
from storymap.api.schemas import (
    AudioItemError,
    CreateStoryRequest,
    CriticalAudioErrorResponse,
    DeleteAudioResponse,
    GeneratedAudioFile,
    GenerateAudioResponse,
    HealthResponse,
    OkResponse,
    SaveEventsResponse,
    UpdateStoryRequest,
    UploadImageRequest,
    UploadImageResponse,
)
from storymap.interfaces.geocoding_provider import IGeocodingProvider
from storymap.interfaces.media_store import IMediaStore
from storymap.mapview.renderer import render_home_overview, render_story
from storymap.models.event import documents_from_payload
from storymap.models.map import ViewMode
from storymap.models.story import is_example_story_id, voices_for_language
from storymap.services.audio_service import AudioGenerationService
from storymap.services.story_service import StoryService
from storymap.utils.errors import ProviderUnavailableError, ValidationError
from storymap.utils.logging import story_context

logger = structlog.get_logger(logger_name=__name__)

router = APIRouter(prefix="/api")


# ---------------------------------------------------------------------------
# Dependency injection helpers: resolve singletons from app.state
# ---------------------------------------------------------------------------


def _require_state(request: Request, name: str) -> Any:
    component = getattr(request.app.state, name, None)
    if component is None:
        raise HTTPException(status_code=503, detail=f"{name} is not available")
    return component


def _get_story_service(request: Request) -> StoryService:
    """Return the story service from application state."""
    return _require_state(request, "story_service")


def _get_audio_service(request: Request) -> AudioGenerationService:
    """Return the narration service from application state."""
    return _require_state(request, "audio_service")


def _get_media_store(request: Request) -> IMediaStore:
    """Return the media store from application state."""
    return _require_state(request, "media_store")


def _get_geocoder(request: Request) -> IGeocodingProvider:
    """Return the geocoding provider from application state."""
    return _require_state(request, "geocoder")


StoryServiceDep = Annotated[StoryService, Depends(_get_story_service)]
AudioServiceDep = Annotated[AudioGenerationService, Depends(_get_audio_service)]
MediaStoreDep = Annotated[IMediaStore, Depends(_get_media_store)]
GeocoderDep = Annotated[IGeocodingProvider, Depends(_get_geocoder)]


# ---------------------------------------------------------------------------
# Stories
# ---------------------------------------------------------------------------


@router.get("/stories", summary="List stories")
async def list_stories(service: StoryServiceDep) -> list[dict[str, Any]]:
    return [story.to_api() for story in await service.list_stories()]


@router.post("/stories", summary="Create a story")
async def create_story(body: CreateStoryRequest, service: StoryServiceDep) -> dict[str, Any]:
    story = await service.create_story(body.name, body.language)
    return story.to_api()


@router.get("/stories/{story_id}", summary="Get one story")
async def get_story(story_id: str, service: StoryServiceDep) -> dict[str, Any]:
    return (await service.get_story(story_id)).to_api()


@router.put("/stories/{story_id}", summary="Update story name, language, voice or publish flag")
async def update_story(
    story_id: str,
    body: UpdateStoryRequest,
    service: StoryServiceDep,
) -> dict[str, Any]:
    with story_context(story_id):
        story = await service.update_story(story_id, body.to_updates())
    return story.to_api()


@router.delete("/stories/{story_id}", response_model=OkResponse, summary="Delete a story")
async def delete_story(story_id: str, service: StoryServiceDep) -> OkResponse:
    with story_context(story_id):
        await service.delete_story(story_id)
    return OkResponse()


# ---------------------------------------------------------------------------
# Events
# ---------------------------------------------------------------------------


@router.get("/stories/{story_id}/events", summary="Get a story's event list")
async def get_events(story_id: str, service: StoryServiceDep) -> list[dict[str, Any]]:
    return await service.get_events(story_id)


@router.put(
    "/stories/{story_id}/events",
    response_model=SaveEventsResponse,
    summary="Replace a story's event list",
)
async def save_events(
    story_id: str,
    service: StoryServiceDep,
    events: Annotated[list[dict[str, Any]], Body()],
) -> SaveEventsResponse:
    try:
        documents = documents_from_payload(events)
    except pydantic.ValidationError as exc:
        raise ValidationError(message=f"Invalid event list: {exc.error_count()} invalid field(s)") from exc

    with story_context(story_id):
        story = await service.save_events(story_id, documents)
    return SaveEventsResponse(event_count=story.event_count)


# ---------------------------------------------------------------------------
# Narration
# ---------------------------------------------------------------------------


@router.post(
    "/stories/{story_id}/generate-audio",
    response_model=GenerateAudioResponse,
    responses={502: {"model": CriticalAudioErrorResponse}},
    summary="Generate narration for every eligible event",
)
async def generate_audio(story_id: str, service: AudioServiceDep) -> Any:
    result = await service.generate_for_story(story_id)
    if result.critical_error is not None:
        body = CriticalAudioErrorResponse(
            error=result.critical_error["message"],
            event_id=result.critical_error["eventId"],
        )
        return JSONResponse(status_code=502, content=body.model_dump(by_alias=True))

    return GenerateAudioResponse(
        generated=result.generated,
        files=[GeneratedAudioFile.model_validate(item) for item in result.files],
        errors=[AudioItemError.model_validate(item) for item in result.errors] or None,
    )


@router.delete(
    "/stories/{story_id}/audio",
    response_model=DeleteAudioResponse,
    summary="Delete all narration of a story",
)
async def delete_story_audio(story_id: str, service: AudioServiceDep) -> DeleteAudioResponse:
    deleted = await service.delete_story_audio(story_id)
    return DeleteAudioResponse(deleted=deleted)


@router.delete(
    "/stories/{story_id}/audio/{event_id}",
    response_model=OkResponse,
    summary="Delete one event's narration",
)
async def delete_event_audio(story_id: str, event_id: str, service: AudioServiceDep) -> OkResponse:
    await service.delete_event_audio(story_id, event_id)
    return OkResponse()


@router.get("/voices", summary="Narration voices for a language")
async def list_voices(language: Annotated[str | None, Query()] = None) -> list[dict[str, str]]:
    return voices_for_language(language)


# ---------------------------------------------------------------------------
# Map features
# ---------------------------------------------------------------------------


async def _load_events(service: StoryService, story_id: str) -> list[dict[str, Any]]:
    if is_example_story_id(story_id):
        return await service.get_example_events(story_id)
    return await service.get_events(story_id)


@router.get("/stories/{story_id}/map-features", summary="Markers and paths for one story")
async def story_map_features(
    story_id: str,
    service: StoryServiceDep,
    active: Annotated[int | None, Query(ge=0)] = None,
    mode: Annotated[ViewMode, Query()] = ViewMode.EDIT,
) -> dict[str, Any]:
    events = await _load_events(service, story_id)
    active_index = min(active, len(events) - 1) if active is not None and events else None
    return render_story(events, active_index, mode).to_geojson()


@router.get("/overview/map-features", summary="Home overview of every story")
async def overview_map_features(service: StoryServiceDep) -> dict[str, Any]:
    stories = await service.list_stories()
    event_lists = await asyncio.gather(*(service.get_events(story.id) for story in stories))
    return render_home_overview(
        [(story.id, events) for story, events in zip(stories, event_lists)]
    ).to_geojson()


# ---------------------------------------------------------------------------
# Geocoding
# ---------------------------------------------------------------------------


@router.get("/geocode/search", summary="First place matching a free-text query")
async def geocode_search(
    geocoder: GeocoderDep,
    q: Annotated[str, Query()] = "",
) -> dict[str, Any] | None:
    if not q.strip():
        raise ValidationError(message="Type a place name to search for.")
    if not geocoder.is_available():
        raise ProviderUnavailableError(
            message="Map search is not configured (missing MAPBOX_TOKEN)",
            provider_name=geocoder.get_provider_name(),
        )
    match = await geocoder.search(q)
    if match is None:
        return None
    return {"lng": match.lng, "lat": match.lat, "placeName": match.place_name}


@router.get("/geocode/reverse", summary="City and country label for a point")
async def geocode_reverse(
    geocoder: GeocoderDep,
    lng: Annotated[float, Query(ge=-180, le=180)],
    lat: Annotated[float, Query(ge=-90, le=90)],
) -> dict[str, Any]:
    return {"name": await geocoder.reverse(lng, lat)}


# ---------------------------------------------------------------------------
# Example stories
# ---------------------------------------------------------------------------


@router.get("/example-stories", summary="List bundled example stories")
async def list_example_stories(service: StoryServiceDep) -> list[dict[str, Any]]:
    return [story.to_api() for story in await service.list_example_stories()]


@router.get("/example-stories/{story_id}", summary="Get one example story")
async def get_example_story(story_id: str, service: StoryServiceDep) -> dict[str, Any]:
    return (await service.get_example_story(story_id)).to_api()


@router.get("/example-stories/{story_id}/events", summary="Get an example story's events")
async def get_example_events(story_id: str, service: StoryServiceDep) -> list[dict[str, Any]]:
    return await service.get_example_events(story_id)


# ---------------------------------------------------------------------------
# Uploads
# ---------------------------------------------------------------------------


@router.post("/upload-image", response_model=UploadImageResponse, summary="Upload a base64 image")
async def upload_image(body: UploadImageRequest, media: MediaStoreDep) -> UploadImageResponse:
    if not body.filename or not body.data:
        raise ValidationError(message="Missing filename or data")
    try:
        data = base64.b64decode(body.data, validate=True)
    except (binascii.Error, ValueError) as exc:
        raise ValidationError(message="Image data is not valid base64") from exc
    url = await media.save_image(body.filename, data)
    return UploadImageResponse(url=url)


# ---------------------------------------------------------------------------
# Health
# ---------------------------------------------------------------------------


@router.get("/health", response_model=HealthResponse, summary="Application health check")
async def health_check(request: Request) -> HealthResponse:
    """Return application health, version, and provider availability."""
    providers: dict[str, Any] = dict(getattr(request.app.state, "provider_registry", {}) or {})
    status = "healthy" if providers.get("stories", False) else "unhealthy"
    if status == "healthy" and not all(providers.get(name, False) for name in ("geocoding", "tts")):
        status = "degraded"
    return HealthResponse(status=status, version=__version__, providers=providers)
