"""Location picker — "pick on map" state machine for event cards.

# ─── STATES ───────────────────────────────────────────────────────────
#
#   Idle ──begin_pick(i)──▶ Picking(i, t0, marker_before)
#   Picking(i) ──begin_pick(i)──▶ Idle            (toggle off, marker restored)
#   Picking(i) ──begin_pick(j)──▶ Picking(j, now)  (retarget)
#   Picking(i, t0) ──click(ts >= t0)──▶ Idle       (commit)
#   Picking(i, t0) ──click(ts <  t0)──▶ Picking    (stale click ignored)
#   any ──reset()──▶ Idle                          (story / mode switch)
#
# A commit writes coordinates and a map-view snapshot synchronously.  The
# place name comes later from a best-effort reverse geocode that the
# orchestrator runs and applies on top of whatever the list is by then.
#
# ``search_location`` is independent of the state machine: free text in,
# first match committed with a fixed flat zoom-12 view.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time
from collections.abc import Callable, Sequence
from dataclasses import dataclass
from typing import Any

import structlog

from storymap.interfaces.geocoding_provider import IGeocodingProvider
from storymap.interfaces.scheduler import Clock
from storymap.mapview import event_list
from storymap.models.event import DEFAULT_MAP_STYLE
from storymap.models.map import CameraState, MapClick, MarkerLocation
from storymap.utils.errors import GeocodingError

logger = structlog.get_logger(logger_name=__name__)

SEARCH_ZOOM = 12
FALLBACK_ZOOM = 10

NOTICE_EMPTY_QUERY = "Type a place name to search for."
NOTICE_NO_MATCH = "No matching place found on the map."
NOTICE_SEARCH_FAILED = "Failed to search for this place on the map."
NOTICE_SEARCH_UNAVAILABLE = "Map search is not available because no map token is configured."


@dataclass(frozen=True)
class Idle:
    pass


@dataclass(frozen=True)
class Picking:
    event_index: int
    started_at: float
    marker_before: MarkerLocation | None


PickerState = Idle | Picking


@dataclass(frozen=True)
class LocationCommit:
    """Field writes produced by a committed pick or search.

    The caller applies them to whatever its event list is at that point,
    so a commit that arrives after an await never overwrites newer edits
    to other fields.
    """

    event_index: int
    updates: tuple[tuple[tuple[str, ...], Any], ...]
    marker: MarkerLocation
    camera: CameraState | None

    def apply(self, events: Sequence[dict[str, Any]], index: int | None = None) -> list[dict[str, Any]]:
        target = self.event_index if index is None else index
        updated = list(events)
        for path, value in self.updates:
            updated = event_list.update_field(updated, target, list(path), value)
        return updated


def _map_view(camera: CameraState | None, fallback: CameraState | None) -> dict[str, Any]:
    source = camera or fallback
    if source is None:
        return {"zoom": FALLBACK_ZOOM, "pitch": 0, "bearing": 0, "mapStyle": DEFAULT_MAP_STYLE}
    return {
        "zoom": source.zoom,
        "pitch": source.pitch,
        "bearing": source.bearing,
        "mapStyle": DEFAULT_MAP_STYLE,
    }


class LocationPicker:
    """Turns the next map click into an event location."""

    def __init__(
        self,
        geocoder: IGeocodingProvider | None,
        clock: Clock = time.monotonic,
        on_marker_change: Callable[[MarkerLocation | None], None] | None = None,
        on_notice: Callable[[str], None] | None = None,
    ) -> None:
        self._geocoder = geocoder
        self._clock = clock
        self._on_marker_change = on_marker_change or (lambda _marker: None)
        self._on_notice = on_notice or (lambda _message: None)
        self._state: PickerState = Idle()

    @property
    def state(self) -> PickerState:
        return self._state

    @property
    def is_picking(self) -> bool:
        return isinstance(self._state, Picking)

    @property
    def picking_index(self) -> int | None:
        return self._state.event_index if isinstance(self._state, Picking) else None

    # ------------------------------------------------------------------
    # State machine
    # ------------------------------------------------------------------

    def begin_pick(self, event_index: int, current_marker: MarkerLocation | None) -> bool:
        """Start picking for ``event_index``, or toggle off if already picking it.

        The current pin is hidden while picking and restored on toggle-off.
        Returns ``True`` when picking is active afterwards.
        """
        state = self._state
        if isinstance(state, Picking) and state.event_index == event_index:
            self._state = Idle()
            self._on_marker_change(state.marker_before)
            logger.debug("location_pick_toggled_off", index=event_index)
            return False

        if isinstance(state, Picking):
            current_marker = state.marker_before
        self._state = Picking(
            event_index=event_index,
            started_at=self._clock(),
            marker_before=current_marker,
        )
        self._on_marker_change(None)
        logger.debug("location_pick_started", index=event_index)
        return True

    def handle_map_click(
        self,
        click: MapClick,
        current_camera: CameraState | None = None,
    ) -> LocationCommit | None:
        """Turn ``click`` into a location commit for the picked event.

        Ignored (``None``) when idle or when the click predates the start
        of picking.  The map view is snapshotted from the click's camera,
        falling back to ``current_camera`` and then to a flat zoom-10 view.
        """
        state = self._state
        if not isinstance(state, Picking):
            return None
        if click.timestamp < state.started_at:
            logger.debug(
                "location_pick_stale_click",
                click_ts=click.timestamp,
                started_at=state.started_at,
            )
            return None

        self._state = Idle()
        marker = MarkerLocation(lng=click.lng, lat=click.lat)
        self._on_marker_change(marker)
        logger.info("location_picked", index=state.event_index, lng=click.lng, lat=click.lat)
        return LocationCommit(
            event_index=state.event_index,
            updates=(
                (("location", "coordinates"), {"lng": click.lng, "lat": click.lat}),
                (("location", "mapView"), _map_view(click.camera, current_camera)),
            ),
            marker=marker,
            camera=click.camera,
        )

    def reset(self) -> None:
        """Force idle and clear any marker override."""
        was_picking = self.is_picking
        self._state = Idle()
        if was_picking:
            logger.debug("location_pick_reset")
        self._on_marker_change(None)

    # ------------------------------------------------------------------
    # Geocoding
    # ------------------------------------------------------------------

    async def resolve_place_name(self, lng: float, lat: float) -> str | None:
        """Best-effort reverse geocode; any failure yields ``None``."""
        if self._geocoder is None:
            return None
        try:
            return await self._geocoder.reverse(lng, lat)
        except Exception as exc:  # noqa: BLE001
            logger.warning("reverse_geocode_failed", lng=lng, lat=lat, error=str(exc))
            return None

    async def search_location(self, event_index: int, query: str) -> LocationCommit | None:
        """Geocode ``query`` into a commit of name, coordinates and a zoom-12 view.

        Every failure surfaces a notice and yields ``None``.
        """
        trimmed = (query or "").strip()
        if not trimmed:
            self._on_notice(NOTICE_EMPTY_QUERY)
            return None
        if self._geocoder is None or not self._geocoder.is_available():
            self._on_notice(NOTICE_SEARCH_UNAVAILABLE)
            return None

        try:
            match = await self._geocoder.search(trimmed)
        except GeocodingError as exc:
            logger.warning("location_search_failed", query=trimmed, error=str(exc))
            self._on_notice(NOTICE_SEARCH_FAILED)
            return None

        if match is None:
            self._on_notice(NOTICE_NO_MATCH)
            return None

        marker = MarkerLocation(lng=match.lng, lat=match.lat)
        self._on_marker_change(marker)
        logger.info("location_searched", index=event_index, query=trimmed, place=match.place_name)
        return LocationCommit(
            event_index=event_index,
            updates=(
                (("location", "name"), match.place_name or trimmed),
                (("location", "coordinates"), {"lng": match.lng, "lat": match.lat}),
                (
                    ("location", "mapView"),
                    {"zoom": SEARCH_ZOOM, "pitch": 0, "bearing": 0, "mapStyle": DEFAULT_MAP_STYLE},
                ),
            ),
            marker=marker,
            camera=CameraState(center=(match.lng, match.lat), zoom=SEARCH_ZOOM),
        )
