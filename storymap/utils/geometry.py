"""Pure geometry helpers for story events on the map.

Everything here is stateless and operates on plain event documents (the
camelCase JSON dicts stored per story) or ``(lng, lat)`` tuples:

1. **Coordinate keying** -- ``format_coordinate``, ``coord_key`` and
   ``segment_key``.  Coordinates are rounded to 6 decimal places so tiny
   float differences collapse onto one marker, and segment keys are
   symmetric so A->B and B->A count as the same "between two places" line.
2. **Distance / bearing** -- great-circle distance (haversine) and initial
   bearing between two points.
3. **Path construction** -- ``build_path_geojson`` (deduplicated, styled
   story path) and ``build_overview_path_geojson`` (plain consecutive
   path shown when a story is viewed from its first or last card).
4. **Transition timing** -- distance-based fly-over duration and the
   zoom-out "altitude" used in the middle of the arc.
"""

from __future__ import annotations

import math
from typing import Any

EARTH_RADIUS_KM = 6371.0

# Event types that never carry a location and never take part in geometry.
SPECIAL_EVENT_TYPES = frozenset({"Opening", "Closing"})

# Fly-over timing (milliseconds / kilometres).
MIN_TRANSITION_MS = 4000
MAX_TRANSITION_MS = 13000
BASE_TRANSITION_S = 3.0
MAX_EXTRA_TRANSITION_S = 9.0
TRANSITION_DISTANCE_UNIT_KM = 500.0
DEFAULT_TRANSITION_MS = 2000

# Arc phases, as fractions of the whole transition.
ZOOM_OUT_END = 0.25
MOVE_END = 0.75

LngLat = tuple[float, float]


# ---------------------------------------------------------------------------
# Coordinate keying
# ---------------------------------------------------------------------------


def _as_float(value: Any) -> float | None:
    if isinstance(value, bool) or value is None:
        return None
    try:
        number = float(value)
    except (TypeError, ValueError):
        return None
    return number if math.isfinite(number) else None


def format_coordinate(value: Any) -> str:
    """Return ``value`` fixed to 6 decimals, or ``""`` when it is not a finite number."""
    number = _as_float(value)
    if number is None:
        return ""
    return f"{number:.6f}"


def coord_key(lng: Any, lat: Any) -> str:
    """Return the ``"lng,lat"`` key used to deduplicate markers."""
    return f"{format_coordinate(lng)},{format_coordinate(lat)}"


def segment_key(a: LngLat, b: LngLat) -> str:
    """Return an order-independent key for the segment between ``a`` and ``b``."""
    ka = coord_key(a[0], a[1])
    kb = coord_key(b[0], b[1])
    return f"{ka}|{kb}" if ka < kb else f"{kb}|{ka}"


# ---------------------------------------------------------------------------
# Event helpers
# ---------------------------------------------------------------------------


def is_special_event(event: Any) -> bool:
    """True for the synthetic Opening/Closing cards."""
    return isinstance(event, dict) and event.get("eventType") in SPECIAL_EVENT_TYPES


def event_coordinates(event: Any) -> LngLat | None:
    """Return ``(lng, lat)`` when both are finite numbers, else ``None``."""
    if not isinstance(event, dict):
        return None
    location = event.get("location")
    if not isinstance(location, dict):
        return None
    coords = location.get("coordinates")
    if not isinstance(coords, dict):
        return None
    lng = _as_float(coords.get("lng"))
    lat = _as_float(coords.get("lat"))
    if lng is None or lat is None:
        return None
    return (lng, lat)


def has_location(event: Any) -> bool:
    return event_coordinates(event) is not None


def event_zoom(event: Any, default: float) -> float:
    """Return the event's saved ``mapView.zoom`` or ``default``."""
    try:
        zoom = event["location"]["mapView"]["zoom"]
    except (KeyError, TypeError):
        return default
    number = _as_float(zoom)
    return number if number is not None else default


def geolocated_points(events: list[dict[str, Any]]) -> list[LngLat]:
    """Coordinates of every non-special event with a set location, in list order."""
    points: list[LngLat] = []
    for event in events:
        if is_special_event(event):
            continue
        coords = event_coordinates(event)
        if coords is not None:
            points.append(coords)
    return points


# ---------------------------------------------------------------------------
# Distance / bearing
# ---------------------------------------------------------------------------


def haversine_km(origin: LngLat, target: LngLat) -> float:
    """Great-circle distance between two ``(lng, lat)`` points in kilometres."""
    lat1 = math.radians(origin[1])
    lat2 = math.radians(target[1])
    d_lat = math.radians(target[1] - origin[1])
    d_lng = math.radians(target[0] - origin[0])
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(lat1) * math.cos(lat2) * math.sin(d_lng / 2) ** 2
    )
    return EARTH_RADIUS_KM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def bearing_deg(origin: LngLat, target: LngLat) -> float:
    """Initial bearing from ``origin`` to ``target`` in degrees (-180, 180]."""
    d_lng = math.radians(target[0] - origin[0])
    lat1 = math.radians(origin[1])
    lat2 = math.radians(target[1])
    y = math.sin(d_lng) * math.cos(lat2)
    x = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(d_lng)
    return math.degrees(math.atan2(y, x))


def bounding_box(points: list[LngLat]) -> tuple[float, float, float, float] | None:
    """Return ``(min_lng, min_lat, max_lng, max_lat)`` or ``None`` for no points."""
    if not points:
        return None
    lngs = [p[0] for p in points]
    lats = [p[1] for p in points]
    return (min(lngs), min(lats), max(lngs), max(lats))


# ---------------------------------------------------------------------------
# Path construction
# ---------------------------------------------------------------------------


def _line_feature(a: LngLat, b: LngLat, properties: dict[str, Any]) -> dict[str, Any]:
    return {
        "type": "Feature",
        "properties": properties,
        "geometry": {
            "type": "LineString",
            "coordinates": [[a[0], a[1]], [b[0], b[1]]],
        },
    }


def build_path_geojson(events: list[dict[str, Any]]) -> dict[str, Any]:
    """Build the styled story path as a GeoJSON FeatureCollection.

    Consecutive geolocated events are joined (events without a location are
    jumped over).  A segment already drawn in either direction is skipped,
    as is any zero-length segment.  Each segment takes its ``styleKey``
    from the later event's ``transition.lineStyleKey``.
    """
    nodes: list[tuple[LngLat, str]] = []
    for event in events:
        if is_special_event(event):
            continue
        coords = event_coordinates(event)
        if coords is None:
            continue
        transition = event.get("transition")
        style_raw = transition.get("lineStyleKey") if isinstance(transition, dict) else None
        nodes.append((coords, style_raw if isinstance(style_raw, str) else ""))

    features: list[dict[str, Any]] = []
    seen: set[str] = set()
    for (prev, _), (cur, style_key) in zip(nodes, nodes[1:]):
        if coord_key(*prev) == coord_key(*cur):
            continue
        key = segment_key(prev, cur)
        if key in seen:
            continue
        seen.add(key)
        features.append(_line_feature(prev, cur, {"styleKey": style_key, "segmentKey": key}))

    return {"type": "FeatureCollection", "features": features}


def build_overview_path_geojson(events: list[dict[str, Any]]) -> dict[str, Any]:
    """Build the unstyled overview path: every consecutive hop, zero-length hops dropped."""
    points = geolocated_points(events)
    features = [
        _line_feature(prev, cur, {})
        for prev, cur in zip(points, points[1:])
        if coord_key(*prev) != coord_key(*cur)
    ]
    return {"type": "FeatureCollection", "features": features}


# ---------------------------------------------------------------------------
# Transition timing
# ---------------------------------------------------------------------------


def transition_duration_ms(origin: LngLat | None, target: LngLat | None) -> int:
    """Fly-over duration for a hop: 3 s plus up to 9 s by distance, clamped to 4-13 s.

    Returns ``DEFAULT_TRANSITION_MS`` when either end has no location.
    """
    if origin is None or target is None:
        return DEFAULT_TRANSITION_MS
    distance = haversine_km(origin, target)
    seconds = BASE_TRANSITION_S + min(
        MAX_EXTRA_TRANSITION_S,
        distance / TRANSITION_DISTANCE_UNIT_KM * MAX_EXTRA_TRANSITION_S,
    )
    return int(max(MIN_TRANSITION_MS, min(MAX_TRANSITION_MS, seconds * 1000)))


def arc_mid_zoom(distance_km: float, start_zoom: float, target_zoom: float) -> float:
    """Zoom level held while travelling the middle of a fly-over arc.

    Close hops (<= 50 km) zoom out 0.3 to 3 levels; longer hops zoom out a
    further 0 to 7 levels, saturating around 4000 km.  Never below 0.5.
    """
    if not math.isfinite(distance_km) or distance_km <= 0:
        extra = 0.3
    elif distance_km <= 50:
        extra = 0.3 + (distance_km / 50) * 2.7
    else:
        extra = 3 + min(1.0, (distance_km - 50) / 3950) * 7
    return max(0.5, min(start_zoom, target_zoom) - extra)


def arc_camera_at(
    origin: LngLat,
    target: LngLat,
    start_zoom: float,
    target_zoom: float,
    progress: float,
) -> tuple[float, float, float]:
    """Camera ``(lng, lat, zoom)`` at ``progress`` (0..1) along a fly-over arc.

    Three phases: zoom out over the origin, travel at the arc height, then
    zoom in over the target.
    """
    t = max(0.0, min(1.0, progress))
    mid = arc_mid_zoom(haversine_km(origin, target), start_zoom, target_zoom)
    if t <= ZOOM_OUT_END:
        return (origin[0], origin[1], start_zoom + (mid - start_zoom) * (t / ZOOM_OUT_END))
    if t <= MOVE_END:
        travel = (t - ZOOM_OUT_END) / (MOVE_END - ZOOM_OUT_END)
        return (
            origin[0] + (target[0] - origin[0]) * travel,
            origin[1] + (target[1] - origin[1]) * travel,
            mid,
        )
    settle = (t - MOVE_END) / (1 - MOVE_END)
    return (target[0], target[1], mid + (target_zoom - mid) * settle)
