"""Shared pytest fixtures and fakes for the StoryMap test suite.

The map core only talks to abstract collaborators, so every timer, map
widget and audio player here is a hand-driven fake: tests advance time
explicitly and inspect what the widget was asked to do.
"""

from __future__ import annotations

import asyncio
import os
import tempfile
from collections.abc import Callable
from typing import Any

import pytest

from storymap.interfaces.audio_player import IAudioPlayer
from storymap.interfaces.geocoding_provider import GeocodeResult, IGeocodingProvider
from storymap.interfaces.map_widget import IMapWidget
from storymap.interfaces.story_reader import IStoryReader
from storymap.models.map import CameraState
from storymap.utils.errors import PersistenceError, StoryNotFoundError


# ---------------------------------------------------------------------------
# Time
# ---------------------------------------------------------------------------


class FakeTimerHandle:
    def __init__(self, when: float, callback: Callable[..., Any], args: tuple[Any, ...]) -> None:
        self.when = when
        self.callback = callback
        self.args = args
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class FakeScheduler:
    """``call_later`` that only fires when the test calls :meth:`advance`."""

    def __init__(self) -> None:
        self.now = 0.0
        self._handles: list[FakeTimerHandle] = []

    def call_later(self, delay: float, callback: Callable[..., Any], *args: Any) -> FakeTimerHandle:
        handle = FakeTimerHandle(self.now + delay, callback, args)
        self._handles.append(handle)
        return handle

    @property
    def pending(self) -> list[FakeTimerHandle]:
        return [h for h in self._handles if not h.cancelled]

    def advance(self, seconds: float) -> None:
        """Move time forward, firing due callbacks in time order."""
        deadline = self.now + seconds
        while True:
            due = [h for h in self.pending if h.when <= deadline + 1e-9]
            if not due:
                break
            handle = min(due, key=lambda h: h.when)
            self._handles.remove(handle)
            self.now = max(self.now, handle.when)
            handle.callback(*handle.args)
        self.now = deadline

    def run_all(self, limit: float = 600.0) -> None:
        self.advance(limit)


class FakeClock:
    def __init__(self, now: float = 100.0) -> None:
        self.now = now

    def __call__(self) -> float:
        return self.now


# ---------------------------------------------------------------------------
# Map widget / audio
# ---------------------------------------------------------------------------


class FakeMapWidget(IMapWidget):
    """Records every command and moves its camera instantly."""

    def __init__(self, camera: CameraState | None = None) -> None:
        self.camera = camera or CameraState(center=(0.0, 0.0), zoom=3.0)
        self.calls: list[tuple[str, Any]] = []
        self.markers: dict[str, dict[str, Any]] = {}
        self.sources: dict[str, dict[str, Any]] = {}

    def get_camera(self) -> CameraState:
        return self.camera

    def ease_to(self, camera: CameraState, duration_ms: int) -> None:
        self.calls.append(("ease_to", (camera, duration_ms)))
        self.camera = camera

    def jump_to(self, camera: CameraState) -> None:
        self.calls.append(("jump_to", camera))
        self.camera = camera

    def fit_bounds(self, bounds: tuple[float, float, float, float], duration_ms: int) -> None:
        self.calls.append(("fit_bounds", (bounds, duration_ms)))
        center = ((bounds[0] + bounds[2]) / 2, (bounds[1] + bounds[3]) / 2)
        self.camera = CameraState(center=center, zoom=5.0)

    def add_marker(self, key: str, lng: float, lat: float, color: str) -> None:
        self.calls.append(("add_marker", key))
        self.markers[key] = {"lng": lng, "lat": lat, "color": color}

    def remove_marker(self, key: str) -> None:
        self.calls.append(("remove_marker", key))
        self.markers.pop(key, None)

    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None:
        self.calls.append(("set_source_data", source_id))
        self.sources[source_id] = data

    def calls_named(self, name: str) -> list[Any]:
        return [args for call, args in self.calls if call == name]


class FakeAudioPlayer(IAudioPlayer):
    def __init__(self, fail_on_play: bool = False) -> None:
        self.source: str | None = None
        self.playing = False
        self.fail_on_play = fail_on_play
        self.sources: list[str] = []
        self.stop_count = 0

    def set_source(self, url: str) -> None:
        self.source = url
        self.sources.append(url)

    def play(self) -> None:
        if self.fail_on_play:
            raise RuntimeError("decode error")
        self.playing = True

    def stop(self) -> None:
        self.playing = False
        self.stop_count += 1


# ---------------------------------------------------------------------------
# Story reader
# ---------------------------------------------------------------------------


class InMemoryStoryReader(IStoryReader):
    """Serves stories from dicts.  ``gates`` hold a load open until released."""

    def __init__(self, stories: dict[str, list[dict[str, Any]]] | None = None) -> None:
        self.stories = stories or {}
        self.failing: set[str] = set()
        self.gates: dict[str, asyncio.Event] = {}
        self.list_fails = False

    async def list_stories(self) -> list[dict[str, Any]]:
        if self.list_fails:
            raise PersistenceError(message="Request failed with status 500")
        return [{"id": story_id, "name": story_id} for story_id in self.stories]

    async def get_events(self, story_id: str) -> list[dict[str, Any]]:
        gate = self.gates.get(story_id)
        if gate is not None:
            await gate.wait()
        if story_id in self.failing:
            raise PersistenceError(message="Request failed with status 500")
        if story_id not in self.stories:
            raise StoryNotFoundError(story_id)
        return [dict(event) for event in self.stories[story_id]]


# ---------------------------------------------------------------------------
# Event builders
# ---------------------------------------------------------------------------


def make_event(
    event_id: str,
    lng: float | None = None,
    lat: float | None = None,
    source: str | None = None,
    event_type: str = "Event",
    style: str = "",
    text: str = "",
    audio_url: str | None = None,
    zoom: float = 10,
    transition_type: str = "ArcFlyWithPoint",
) -> dict[str, Any]:
    content: dict[str, Any] = {"textHtml": text, "media": []}
    if audio_url:
        content["audioUrl"] = audio_url
    return {
        "eventId": event_id,
        "eventType": event_type,
        "title": event_id,
        "timeline": {"dateStart": "", "dateEnd": ""},
        "location": {
            "name": "",
            "coordinates": {"lng": lng, "lat": lat},
            "mapView": {"zoom": zoom, "pitch": 0, "bearing": 0},
        },
        "transition": {
            "type": transition_type,
            "durationSeconds": 3,
            "sourceEventId": source,
            "lineStyleKey": style,
        },
        "content": content,
    }


def opening() -> dict[str, Any]:
    return {"eventId": "OPENING", "eventType": "Opening", "title": "Opening", "content": {"textHtml": ""}}


def closing(source: str | None = None) -> dict[str, Any]:
    return {
        "eventId": "CLOSING",
        "eventType": "Closing",
        "title": "Closing",
        "transition": {"sourceEventId": source},
        "content": {"textHtml": ""},
    }


KRAKOW = (19.9450, 50.0647)
VIENNA = (16.3738, 48.2082)
HAIFA = (34.9896, 32.7940)


@pytest.fixture
def scheduler() -> FakeScheduler:
    return FakeScheduler()


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def widget() -> FakeMapWidget:
    return FakeMapWidget()


@pytest.fixture
def audio_player() -> FakeAudioPlayer:
    return FakeAudioPlayer()


@pytest.fixture
def story_events() -> list[dict[str, Any]]:
    """Opening, three located events, Closing: a consistent chain."""
    return [
        opening(),
        make_event("E001", *KRAKOW, source="OPENING", text="Born in Krakow."),
        make_event("E002", *VIENNA, source="E001", style="Dashed", text="Moved to Vienna."),
        make_event("E003", *HAIFA, source="E002", style="ImportantJump", text="Sailed to Haifa."),
        closing(source="E003"),
    ]


@pytest.fixture
def tmp_db():
    tmp = tempfile.NamedTemporaryFile(suffix=".db", delete=False)
    tmp.close()
    yield tmp.name
    for suffix in ("", "-wal", "-shm"):
        if os.path.exists(tmp.name + suffix):
            os.unlink(tmp.name + suffix)


class FakeGeocoder(IGeocodingProvider):
    """Geocoder backed by a dict of query -> result."""

    def __init__(self, places: dict[str, GeocodeResult] | None = None, available: bool = True) -> None:
        self.places = places or {}
        self.available = available
        self.search_error: Exception | None = None
        self.reverse_names: dict[tuple[float, float], str] = {}
        self.reverse_gate: asyncio.Event | None = None
        self.queries: list[str] = []

    async def search(self, query: str) -> GeocodeResult | None:
        self.queries.append(query)
        if self.search_error is not None:
            raise self.search_error
        return self.places.get(query)

    async def reverse(self, lng: float, lat: float) -> str | None:
        if self.reverse_gate is not None:
            await self.reverse_gate.wait()
        return self.reverse_names.get((lng, lat))

    def get_provider_name(self) -> str:
        return "fake"

    def is_available(self) -> bool:
        return self.available


@pytest.fixture
def geocoder() -> FakeGeocoder:
    return FakeGeocoder(
        places={"Haifa": GeocodeResult(lng=HAIFA[0], lat=HAIFA[1], place_name="Haifa, Israel")},
    )
