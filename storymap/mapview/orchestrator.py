"""View orchestrator — the one owner of shared map state for a session.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Map core (application state).
#
# Every screen (home, edit, view, cinema) drives the same map through one
# ViewOrchestrator.  It owns:
#
#   desired_camera       — where the map should be (CameraSynchronizer
#                          pushes it into the widget)
#   active_event_index   — the card in focus
#   marker_location      — the location picker's overlay pin
#   events               — the current story's list (Event List Model)
#   is_picking_location  — LocationPicker state
#
# and composes the controllers that act on it:
#
#   CameraSynchronizer   (camera_sync.py)      map ⇄ desired camera
#   LocationPicker       (location_picker.py)  clicks → locations
#   MarkerLayer          (renderer.py)         overlay → widget markers
#   PlaybackController   (playback.py)         cinema auto-advance
#
# Story/mode switches reset everything unconditionally.  Loads are tagged
# with a generation number; a load that completes after a newer open()
# (or reset) is dropped instead of writing stale state.  All list edits
# go through event_list's pure functions against the latest list.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import asyncio
import time
from collections.abc import Callable, Sequence
from typing import Any

import structlog

from storymap.interfaces.audio_player import IAudioPlayer
from storymap.interfaces.geocoding_provider import IGeocodingProvider
from storymap.interfaces.map_widget import IMapWidget
from storymap.interfaces.scheduler import Clock, Scheduler
from storymap.interfaces.story_reader import IStoryReader
from storymap.mapview import event_list
from storymap.mapview.camera_sync import DEFAULT_TRANSITION_MS, CameraSynchronizer
from storymap.mapview.location_picker import LocationCommit, LocationPicker
from storymap.mapview.playback import NO_AUDIO_DELAY_S, PlaybackController
from storymap.mapview.renderer import (
    PICKING_MARKER_COLOR,
    MarkerLayer,
    MarkerSpec,
    RenderedOverlay,
    render_home_overview,
    render_story,
)
from storymap.mapview.timers import PendingTimer
from storymap.models.event import DEFAULT_TRANSITION_TYPE, EventType
from storymap.models.map import CameraState, MapClick, MarkerLocation, ViewMode
from storymap.utils.errors import StoryMapError
from storymap.utils.geometry import (
    bounding_box,
    event_coordinates,
    event_zoom,
    geolocated_points,
    has_location,
    is_special_event,
    transition_duration_ms,
)
from storymap.utils.logging import story_context

logger = structlog.get_logger(logger_name=__name__)

EVENT_ZOOM = 10
OPENING_TARGET_ZOOM = 12
ZOOM_CONTROL_MS = 600
ZOOM_IN_DEFAULT = 15
ZOOM_IN_STEP = 2
MAX_ZOOM = 18
WORLD_ZOOM = 2
SINGLE_POINT_ZOOM = 8
FIT_BOUNDS_MS = 800
PICKER_MARKER_KEY = "location-picker"


class ViewOrchestrator:
    """Shared map state and the controllers that act on it."""

    def __init__(
        self,
        story_reader: IStoryReader,
        widget: IMapWidget,
        audio_player: IAudioPlayer,
        geocoder: IGeocodingProvider | None,
        scheduler: Scheduler,
        clock: Clock = time.monotonic,
        transition_ms: int = DEFAULT_TRANSITION_MS,
        no_audio_delay_s: float = NO_AUDIO_DELAY_S,
        on_notice: Callable[[str], None] | None = None,
    ) -> None:
        self._reader = story_reader
        self._widget = widget
        self._on_notice = on_notice

        self._camera = CameraSynchronizer(
            widget, scheduler, self._on_user_camera_change, transition_ms=transition_ms
        )
        self._markers = MarkerLayer(widget)
        self._picker = LocationPicker(
            geocoder,
            clock=clock,
            on_marker_change=self._set_marker_location,
            on_notice=self._notify,
        )
        self._playback = PlaybackController(
            audio_player,
            scheduler,
            on_index_change=self._navigate,
            on_exit=self._on_cinema_exit,
            no_audio_delay_s=no_audio_delay_s,
        )
        self._zoom_timer = PendingTimer(scheduler)

        self._mode = ViewMode.HOME
        self._story_id: str | None = None
        self._events: list[dict[str, Any]] = []
        self._active_index: int | None = None
        self._desired_camera = widget.get_camera().flattened()
        self._marker_location: MarkerLocation | None = None
        self._home_overlay: RenderedOverlay | None = None
        self._loading = False
        self._load_error: str | None = None
        self._generation = 0
        self.notices: list[str] = []

    # ------------------------------------------------------------------
    # Read-only state
    # ------------------------------------------------------------------

    @property
    def mode(self) -> ViewMode:
        return self._mode

    @property
    def story_id(self) -> str | None:
        return self._story_id

    @property
    def events(self) -> list[dict[str, Any]]:
        return list(self._events)

    @property
    def active_event_index(self) -> int | None:
        return self._active_index

    @property
    def desired_camera(self) -> CameraState:
        return self._desired_camera

    @property
    def marker_location(self) -> MarkerLocation | None:
        return self._marker_location

    @property
    def is_picking_location(self) -> bool:
        return self._picker.is_picking

    @property
    def loading(self) -> bool:
        return self._loading

    @property
    def load_error(self) -> str | None:
        return self._load_error

    @property
    def camera(self) -> CameraSynchronizer:
        return self._camera

    @property
    def playback(self) -> PlaybackController:
        return self._playback

    @property
    def zoom_pending(self) -> bool:
        return self._zoom_timer.pending

    # ------------------------------------------------------------------
    # Story lifecycle
    # ------------------------------------------------------------------

    def _reset(self) -> None:
        self._generation += 1
        self._zoom_timer.cancel()
        self._playback.dispose()
        self._picker.reset()
        self._events = []
        self._active_index = None
        self._marker_location = None
        self._home_overlay = None
        self._loading = False
        self._load_error = None

    async def open(self, mode: ViewMode | str, story_id: str | None = None) -> bool:
        """Switch to ``mode`` for ``story_id`` and load its events.

        Returns ``False`` when the load failed or was superseded by a newer
        ``open`` before it completed.
        """
        mode = ViewMode(mode)
        if mode is not self._mode or story_id != self._story_id:
            self._reset()
            self._mode = mode
            self._story_id = story_id
        self._generation += 1
        generation = self._generation

        if mode is ViewMode.HOME or story_id is None:
            self.sync_overlay()
            return True

        self._loading = True
        with story_context(story_id, mode.value):
            try:
                events = await self._reader.get_events(story_id)
            except StoryMapError as exc:
                if generation != self._generation:
                    return False
                logger.warning("story_load_failed", error=str(exc))
                self._loading = False
                self._load_error = exc.message
                self._events = []
                self._active_index = None
                self.sync_overlay()
                return False

            if generation != self._generation:
                logger.debug("stale_story_load_dropped")
                return False

            self._loading = False
            self._load_error = None
            self._events = list(events)
            self._active_index = 0 if self._events else None
            logger.info("story_loaded", event_count=len(self._events))

        if self._events:
            first = self._events[0]
            coords = event_coordinates(first)
            if coords is not None and not is_special_event(first):
                self._move_camera(CameraState(center=coords, zoom=event_zoom(first, EVENT_ZOOM)))
        self.sync_overlay()

        if mode is ViewMode.CINEMA:
            self.start_cinema()
        return True

    async def load_home_overview(self) -> RenderedOverlay:
        """Aggregate every story onto the home map.

        Failures degrade to an empty overlay; a result that arrives after
        the user left the home screen is discarded.
        """
        generation = self._generation
        try:
            stories = await self._reader.list_stories()
            event_lists = await asyncio.gather(
                *(self._reader.get_events(story["id"]) for story in stories)
            )
        except StoryMapError as exc:
            logger.warning("home_overview_load_failed", error=str(exc))
            overlay = RenderedOverlay()
        else:
            overlay = render_home_overview(
                [(story["id"], events) for story, events in zip(stories, event_lists)]
            )

        if generation != self._generation or self._mode is not ViewMode.HOME:
            logger.debug("stale_home_overview_dropped")
            return overlay

        self._home_overlay = overlay
        self.sync_overlay()
        return overlay

    # ------------------------------------------------------------------
    # Rendering
    # ------------------------------------------------------------------

    def overlay(self) -> RenderedOverlay:
        """Current marker/path output for the map."""
        if self._mode is ViewMode.HOME:
            return self._home_overlay or RenderedOverlay()

        overlay = render_story(self._events, self._active_index, self._mode)
        if self._mode is ViewMode.EDIT and self._marker_location is not None:
            pin = MarkerSpec(
                key=PICKER_MARKER_KEY,
                lng=self._marker_location.lng,
                lat=self._marker_location.lat,
                color=PICKING_MARKER_COLOR,
                is_active=True,
            )
            overlay = RenderedOverlay(
                markers=(*overlay.markers, pin),
                paths=overlay.paths,
                overview_path=overlay.overview_path,
                paths_visible=overlay.paths_visible,
                cache_key=overlay.cache_key,
            )
        return overlay

    def sync_overlay(self) -> None:
        overlay = self.overlay()
        if self._mode is ViewMode.HOME and overlay.cache_key and overlay.cache_key == self._markers.cache_key:
            return
        self._markers.sync(overlay)

    # ------------------------------------------------------------------
    # Camera
    # ------------------------------------------------------------------

    def _move_camera(self, camera: CameraState, duration_ms: int | None = None) -> None:
        self._desired_camera = camera.flattened()
        self._camera.on_external_camera_change(self._desired_camera, duration_ms)

    def _on_user_camera_change(self, camera: CameraState) -> None:
        self._desired_camera = camera

    def handle_map_move_end(self) -> CameraState | None:
        return self._camera.on_map_move_end()

    def zoom_in(self) -> None:
        """Zoom to the active event's saved view, or two levels in place."""
        event = self._active_event()
        coords = event_coordinates(event) if event is not None else None
        if coords is not None:
            saved = event_zoom(event, 0)
            zoom = saved if saved > 0 else ZOOM_IN_DEFAULT
            self._move_camera(CameraState(center=coords, zoom=zoom), ZOOM_CONTROL_MS)
            return
        live = self._widget.get_camera()
        self._move_camera(
            CameraState(center=live.center, zoom=min(MAX_ZOOM, live.zoom + ZOOM_IN_STEP)),
            ZOOM_CONTROL_MS,
        )

    def zoom_out(self) -> None:
        """World view, a wide single-place view, or fit every located event."""
        points = geolocated_points(self._events)
        if not points:
            live = self._widget.get_camera()
            self._move_camera(CameraState(center=live.center, zoom=WORLD_ZOOM), ZOOM_CONTROL_MS)
        elif len(points) == 1:
            self._move_camera(CameraState(center=points[0], zoom=SINGLE_POINT_ZOOM), ZOOM_CONTROL_MS)
        else:
            bounds = bounding_box(points)
            if bounds is not None:
                self._camera.fit_bounds(bounds, FIT_BOUNDS_MS)

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def _active_event(self) -> dict[str, Any] | None:
        if self._active_index is None or not 0 <= self._active_index < len(self._events):
            return None
        return self._events[self._active_index]

    def _first_located_index(self) -> int | None:
        for index, event in enumerate(self._events):
            if not is_special_event(event) and has_location(event):
                return index
        return None

    def go_to(self, index: int) -> int | None:
        """Focus the event at ``index`` (clamped) and move the camera.

        In cinema mode this restarts playback at the new event.
        """
        if self._mode is ViewMode.CINEMA and self._playback.is_running:
            self._playback.jump_to(index)
            return self._active_index
        return self._navigate(index)

    def next(self) -> int | None:
        return self.go_to(0 if self._active_index is None else self._active_index + 1)

    def previous(self) -> int | None:
        return self.go_to(0 if self._active_index is None else self._active_index - 1)

    def _navigate(self, index: int) -> int | None:
        if not self._events:
            return None

        self._zoom_timer.cancel()
        target = max(0, min(len(self._events) - 1, index))
        previous = self._active_index
        origin_event = self._active_event()

        leaving_opening = (
            origin_event is not None
            and origin_event.get("eventType") == EventType.OPENING.value
            and previous is not None
            and target > previous
        )
        if leaving_opening:
            located = self._first_located_index()
            if located is not None:
                self._active_index = located
                self._establishing_shot(located)
                self.sync_overlay()
                logger.debug("navigate_from_opening", index=located)
                return located

        self._active_index = target
        self._move_to_event(origin_event, target, backward=previous is not None and target < previous)
        self.sync_overlay()
        return target

    def _move_to_event(self, origin_event: dict[str, Any] | None, index: int, backward: bool) -> None:
        event = self._events[index]
        coords = event_coordinates(event)
        if coords is None or event.get("eventType") == EventType.OPENING.value:
            return
        camera = CameraState(center=coords, zoom=event_zoom(event, EVENT_ZOOM))

        if backward:
            self._desired_camera = camera
            self._camera.jump_to(camera)
            return

        if self._mode is not ViewMode.CINEMA:
            self._move_camera(camera)
            return

        origin = event_coordinates(origin_event)
        duration = transition_duration_ms(origin, coords)
        transition = event.get("transition") if isinstance(event.get("transition"), dict) else {}
        if origin is not None and transition.get("type", DEFAULT_TRANSITION_TYPE) == DEFAULT_TRANSITION_TYPE:
            self._desired_camera = camera
            self._camera.fly_arc(
                origin,
                coords,
                self._widget.get_camera().zoom,
                camera.zoom,
                duration,
            )
        else:
            self._move_camera(camera, duration)

    def _establishing_shot(self, index: int) -> None:
        """Pan to the event holding the current zoom, then zoom in."""
        event = self._events[index]
        coords = event_coordinates(event)
        if coords is None:
            return
        live = self._widget.get_camera()
        pan_ms = transition_duration_ms(live.center, coords)
        self._move_camera(CameraState(center=coords, zoom=live.zoom), pan_ms)

        final = CameraState(center=coords, zoom=event_zoom(event, OPENING_TARGET_ZOOM))

        def _zoom_in() -> None:
            if self._active_index == index:
                self._move_camera(final)

        self._zoom_timer.schedule(pan_ms / 1000, _zoom_in)

    # ------------------------------------------------------------------
    # Cinema
    # ------------------------------------------------------------------

    def start_cinema(self, index: int = 0) -> None:
        if self._mode is not ViewMode.CINEMA:
            return
        self._active_index = None
        self._playback.start(self._events, index)

    def exit_cinema(self) -> None:
        self._playback.exit()

    def _on_cinema_exit(self) -> None:
        self._zoom_timer.cancel()
        self._mode = ViewMode.VIEW
        logger.info("cinema_exited", story_id=self._story_id)
        self.sync_overlay()

    # ------------------------------------------------------------------
    # Editing
    # ------------------------------------------------------------------

    def apply(self, mutation: Callable[[list[dict[str, Any]]], list[dict[str, Any]]]) -> list[dict[str, Any]]:
        """Replace the list with ``mutation(latest list)`` and re-render.

        The active card is followed by event id.  If it was removed, the
        same position (clamped) stays active.
        """
        active = self._active_event()
        active_id = active.get("eventId") if active is not None else None
        self._events = mutation(self._events)
        if not self._events:
            self._active_index = None
        elif self._active_index is not None:
            followed = self._index_of(active_id) if active_id is not None else None
            if followed is None:
                followed = max(0, min(self._active_index, len(self._events) - 1))
            self._active_index = followed
        if self._playback.is_running:
            self._playback.set_events(self._events)
        self.sync_overlay()
        return self.events

    def insert_after(self, index: int) -> list[dict[str, Any]]:
        return self.apply(lambda events: event_list.insert_after(events, index))

    def add_event(self) -> list[dict[str, Any]]:
        """Append an empty event after the last one."""
        return self.apply(event_list.insert_at_end)

    def delete_at(self, index: int) -> list[dict[str, Any]]:
        return self.apply(lambda events: event_list.delete_at(events, index))

    def reorder(self, from_index: int | None, to_index: int | None) -> list[dict[str, Any]]:
        return self.apply(lambda events: event_list.reorder(events, from_index, to_index))

    def update_field(self, index: int, path: Sequence[str] | str, value: Any) -> list[dict[str, Any]]:
        return self.apply(lambda events: event_list.update_field(events, index, path, value))

    # ------------------------------------------------------------------
    # Location picking
    # ------------------------------------------------------------------

    def _set_marker_location(self, marker: MarkerLocation | None) -> None:
        self._marker_location = marker

    def _notify(self, message: str) -> None:
        self.notices.append(message)
        if self._on_notice is not None:
            self._on_notice(message)

    def begin_pick(self, index: int) -> bool:
        """Toggle picking for the event at ``index`` (edit mode only)."""
        if self._mode is not ViewMode.EDIT or not 0 <= index < len(self._events):
            return False
        picking = self._picker.begin_pick(index, self._marker_location)
        self.sync_overlay()
        return picking

    def _index_of(self, event_id: Any) -> int | None:
        for index, event in enumerate(self._events):
            if event.get("eventId") == event_id:
                return index
        return None

    def _commit_location(self, commit: LocationCommit, index: int) -> None:
        self._events = commit.apply(self._events, index)
        if commit.camera is not None:
            self._move_camera(commit.camera)
        self.sync_overlay()

    async def handle_map_click(self, click: MapClick) -> LocationCommit | None:
        """Route a map click to the picker; commit, then name the place.

        The coordinates land synchronously.  The reverse-geocoded name is
        written afterwards onto the latest list, found by event id, and is
        skipped if the story changed or the lookup found nothing.
        """
        commit = self._picker.handle_map_click(click, self._widget.get_camera())
        if commit is None or commit.event_index >= len(self._events):
            self.sync_overlay()
            return None

        generation = self._generation
        event_id = self._events[commit.event_index].get("eventId")
        self._commit_location(commit, commit.event_index)

        name = await self._picker.resolve_place_name(click.lng, click.lat)
        if not name or generation != self._generation:
            return commit
        index = self._index_of(event_id)
        if index is not None:
            self._events = event_list.update_field(self._events, index, ["location", "name"], name)
            logger.debug("location_named", event_id=event_id, name=name)
        return commit

    async def search_location(self, index: int, query: str) -> LocationCommit | None:
        """Geocode ``query`` into the event at ``index``; notices on failure."""
        if not 0 <= index < len(self._events):
            return None
        generation = self._generation
        event_id = self._events[index].get("eventId")

        commit = await self._picker.search_location(index, query)
        if commit is None or generation != self._generation:
            return None
        current = self._index_of(event_id)
        if current is None:
            return None
        self._commit_location(commit, current)
        return commit

    def dispose(self) -> None:
        self._reset()
        self._camera.dispose()
        self._markers.clear()
