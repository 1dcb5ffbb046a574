"""Marker/path renderer — event lists in, map overlay features out.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Map core.
#
#   render_story(events, active_index, mode)   → RenderedOverlay
#   render_home_overview([(story_id, events)]) → RenderedOverlay
#   MarkerLayer.sync(overlay)                  → minimal widget calls
#
# Rendering is a pure function of its inputs: markers come out in the
# order their coordinate first appears in the list, and paths in walk
# order, so two renders of the same list compare equal feature for
# feature.  MarkerLayer is the only writer of widget markers; it diffs
# the new overlay against what it placed last time and touches only the
# markers that were added, removed or recolored.
#
# Path styles are a fixed enumeration (PATH_LAYERS).  Unknown style keys
# fall through to the solid layer.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from dataclasses import dataclass, field
from typing import Any

import structlog

from storymap.interfaces.map_widget import IMapWidget
from storymap.models.map import ViewMode
from storymap.utils.geometry import (
    build_overview_path_geojson,
    build_path_geojson,
    coord_key,
    event_coordinates,
    is_special_event,
)

logger = structlog.get_logger(logger_name=__name__)

ACTIVE_MARKER_COLOR = "#1d4ed8"
INACTIVE_MARKER_COLOR = "#6b7280"
PICKING_MARKER_COLOR = "#1d4ed8"

EVENT_PATH_SOURCE = "event-path"
OVERVIEW_PATH_SOURCE = "event-overview-path"

# One color per story on the home screen, assigned by list position.
STORY_PALETTE: tuple[str, ...] = (
    "#2563eb",
    "#dc2626",
    "#16a34a",
    "#d97706",
    "#9333ea",
    "#0891b2",
    "#db2777",
    "#4d7c0f",
)


@dataclass(frozen=True)
class PathLayer:
    """Line layer for one path style key."""

    layer_id: str
    style_key: str
    line_color: str
    line_width: float
    line_opacity: float
    line_dasharray: tuple[float, ...] | None = None

    def paint(self, visible: bool = True) -> dict[str, Any]:
        paint: dict[str, Any] = {
            "line-color": self.line_color,
            "line-width": self.line_width,
            "line-opacity": self.line_opacity if visible else 0.0,
        }
        if self.line_dasharray is not None:
            paint["line-dasharray"] = list(self.line_dasharray)
        return paint


SOLID_LAYER = PathLayer("event-path-solid", "", "#3b82f6", 6, 0.8)

PATH_LAYERS: tuple[PathLayer, ...] = (
    SOLID_LAYER,
    PathLayer("event-path-dashed", "Dashed", "#3b82f6", 6, 0.8, (2, 2)),
    PathLayer("event-path-dotted", "Dotted", "#3b82f6", 6, 0.8, (0.6, 1.6)),
    PathLayer("event-path-golden-age", "GoldenAgePath", "#f59e0b", 6, 0.85, (2.5, 1.5)),
    PathLayer("event-path-memory-trail", "MemoryTrail", "#a855f7", 6, 0.85, (0.6, 1.6)),
    PathLayer("event-path-important-jump", "ImportantJump", "#ef4444", 6, 0.9, (4, 2)),
)

OVERVIEW_PATH_LAYER = PathLayer(
    "event-overview-path-dashed", "", "#e3e3e3", 4, 0.6, (3, 3)
)

_LAYERS_BY_STYLE = {layer.style_key: layer for layer in PATH_LAYERS}


def layer_for_style(style_key: str | None) -> PathLayer:
    """Return the layer that draws ``style_key`` (solid for empty or unknown keys)."""
    return _LAYERS_BY_STYLE.get(style_key or "", SOLID_LAYER)


# ---------------------------------------------------------------------------
# Output types
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkerSpec:
    """One marker per unique (6-decimal) coordinate."""

    key: str
    lng: float
    lat: float
    color: str
    is_active: bool = False
    event_indices: tuple[int, ...] = ()
    story_id: str | None = None

    def to_feature(self) -> dict[str, Any]:
        properties: dict[str, Any] = {
            "coordKey": self.key,
            "color": self.color,
            "isActive": self.is_active,
            "eventIndices": list(self.event_indices),
        }
        if self.story_id is not None:
            properties["storyId"] = self.story_id
        return {
            "type": "Feature",
            "properties": properties,
            "geometry": {"type": "Point", "coordinates": [self.lng, self.lat]},
        }


def _empty_collection() -> dict[str, Any]:
    return {"type": "FeatureCollection", "features": []}


@dataclass(frozen=True)
class RenderedOverlay:
    """Everything the map needs to draw a story (or the home overview)."""

    markers: tuple[MarkerSpec, ...] = ()
    paths: dict[str, Any] = field(default_factory=_empty_collection)
    overview_path: dict[str, Any] | None = None
    paths_visible: bool = True
    cache_key: str = ""

    def to_geojson(self) -> dict[str, Any]:
        return {
            "markers": {
                "type": "FeatureCollection",
                "features": [marker.to_feature() for marker in self.markers],
            },
            "paths": self.paths,
            "overviewPath": self.overview_path,
            "pathsVisible": self.paths_visible,
            "cacheKey": self.cache_key,
        }


# ---------------------------------------------------------------------------
# Story rendering
# ---------------------------------------------------------------------------


def build_markers(
    events: Sequence[dict[str, Any]],
    active_index: int | None,
    active_color: str = ACTIVE_MARKER_COLOR,
    inactive_color: str = INACTIVE_MARKER_COLOR,
    story_id: str | None = None,
) -> list[MarkerSpec]:
    """Collapse geolocated regular events into one marker per place.

    A place is active-colored when any event at it is the active event.
    """
    order: list[str] = []
    places: dict[str, dict[str, Any]] = {}
    for index, event in enumerate(events):
        if is_special_event(event):
            continue
        coords = event_coordinates(event)
        if coords is None:
            continue
        key = coord_key(*coords)
        place = places.get(key)
        if place is None:
            place = {"lng": coords[0], "lat": coords[1], "indices": [], "active": False}
            places[key] = place
            order.append(key)
        place["indices"].append(index)
        if index == active_index:
            place["active"] = True

    markers: list[MarkerSpec] = []
    for key in order:
        place = places[key]
        markers.append(
            MarkerSpec(
                key=f"{story_id}:{key}" if story_id is not None else key,
                lng=place["lng"],
                lat=place["lat"],
                color=active_color if place["active"] else inactive_color,
                is_active=place["active"],
                event_indices=tuple(place["indices"]),
                story_id=story_id,
            )
        )
    return markers


def build_styled_paths(events: Sequence[dict[str, Any]]) -> dict[str, Any]:
    """Story path with each segment tagged by the layer that draws it."""
    collection = build_path_geojson(list(events))
    features = []
    for feature in collection["features"]:
        properties = dict(feature["properties"])
        properties["layerId"] = layer_for_style(properties.get("styleKey")).layer_id
        features.append({**feature, "properties": properties})
    return {"type": "FeatureCollection", "features": features}


def render_story(
    events: Sequence[dict[str, Any]],
    active_index: int | None,
    mode: ViewMode | str = ViewMode.EDIT,
) -> RenderedOverlay:
    """Render markers and paths for a single story.

    In edit mode the styled path is drawn.  In view and cinema modes the
    styled path is hidden and the dashed overview path is shown instead,
    but only while the first or last card is active.
    """
    mode = ViewMode(mode)
    markers = build_markers(events, active_index)
    paths = build_styled_paths(events)

    presenting = mode in (ViewMode.VIEW, ViewMode.CINEMA)
    overview = None
    if (
        presenting
        and events
        and active_index is not None
        and active_index in (0, len(events) - 1)
    ):
        overview = build_overview_path_geojson(list(events))

    return RenderedOverlay(
        markers=tuple(markers),
        paths=paths,
        overview_path=overview,
        paths_visible=not presenting,
        cache_key=f"1:{len(markers)}:{len(paths['features'])}",
    )


def render_home_overview(
    stories: Sequence[tuple[str, Sequence[dict[str, Any]]]],
) -> RenderedOverlay:
    """Merge every story's markers and paths into one overlay.

    Story ``i`` is drawn in ``STORY_PALETTE[i % len(STORY_PALETTE)]``.
    Marker keys are prefixed with the story id so two stories visiting the
    same place keep separate markers.
    """
    markers: list[MarkerSpec] = []
    features: list[dict[str, Any]] = []
    for index, (story_id, events) in enumerate(stories):
        color = STORY_PALETTE[index % len(STORY_PALETTE)]
        markers.extend(
            build_markers(
                events,
                active_index=None,
                active_color=color,
                inactive_color=color,
                story_id=story_id,
            )
        )
        for feature in build_path_geojson(list(events))["features"]:
            properties = {**feature["properties"], "storyId": story_id, "color": color}
            features.append({**feature, "properties": properties})

    cache_key = f"{len(stories)}:{len(markers)}:{len(features)}"
    logger.debug("home_overview_rendered", cache_key=cache_key)
    return RenderedOverlay(
        markers=tuple(markers),
        paths={"type": "FeatureCollection", "features": features},
        overview_path=None,
        paths_visible=True,
        cache_key=cache_key,
    )


# ---------------------------------------------------------------------------
# Widget sync
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class MarkerDiff:
    added: tuple[str, ...] = ()
    removed: tuple[str, ...] = ()
    recolored: tuple[str, ...] = ()

    @property
    def is_empty(self) -> bool:
        return not (self.added or self.removed or self.recolored)


class MarkerLayer:
    """Keeps the widget's markers and line sources in step with an overlay."""

    def __init__(self, widget: IMapWidget) -> None:
        self._widget = widget
        self._placed: dict[str, str] = {}
        self._cache_key: str | None = None

    @property
    def placed(self) -> dict[str, str]:
        return dict(self._placed)

    @property
    def cache_key(self) -> str | None:
        return self._cache_key

    @staticmethod
    def diff(previous: Mapping[str, str], markers: Sequence[MarkerSpec]) -> MarkerDiff:
        wanted = {marker.key: marker.color for marker in markers}
        return MarkerDiff(
            added=tuple(key for key in wanted if key not in previous),
            removed=tuple(key for key in previous if key not in wanted),
            recolored=tuple(
                key for key, color in wanted.items()
                if key in previous and previous[key] != color
            ),
        )

    def sync(self, overlay: RenderedOverlay) -> MarkerDiff:
        """Apply ``overlay`` to the widget, touching only what changed."""
        changes = self.diff(self._placed, overlay.markers)
        by_key = {marker.key: marker for marker in overlay.markers}

        for key in changes.removed:
            self._widget.remove_marker(key)
            del self._placed[key]
        for key in changes.recolored:
            marker = by_key[key]
            self._widget.remove_marker(key)
            self._widget.add_marker(key, marker.lng, marker.lat, marker.color)
            self._placed[key] = marker.color
        for key in changes.added:
            marker = by_key[key]
            self._widget.add_marker(key, marker.lng, marker.lat, marker.color)
            self._placed[key] = marker.color

        self._widget.set_source_data(
            EVENT_PATH_SOURCE,
            overlay.paths if overlay.paths_visible else _empty_collection(),
        )
        self._widget.set_source_data(
            OVERVIEW_PATH_SOURCE,
            overlay.overview_path if overlay.overview_path is not None else _empty_collection(),
        )
        self._cache_key = overlay.cache_key
        return changes

    def clear(self) -> None:
        for key in list(self._placed):
            self._widget.remove_marker(key)
        self._placed.clear()
        self._widget.set_source_data(EVENT_PATH_SOURCE, _empty_collection())
        self._widget.set_source_data(OVERVIEW_PATH_SOURCE, _empty_collection())
        self._cache_key = None
