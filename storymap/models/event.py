"""Event document models — the narrative beats of a story.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models.
#
# Events are stored and exchanged as camelCase JSON documents.  Inside the
# map core they stay plain dicts (see ``storymap.mapview.event_list``) so
# arbitrary field-path edits remain total.  These Pydantic models are the
# validation boundary used by the HTTP API: they check the known shape,
# keep unknown keys (``extra="allow"``) and dump back with
# ``exclude_unset=True`` so a stored document round-trips unchanged.
#
# Shape:
#   Event
#   ├── timeline        {dateStart, dateEnd}
#   ├── location        {name, coordinates {lng, lat}, mapView {...}}
#   ├── transition      {type, durationSeconds, sourceEventId,
#   │                    lineStyleKey, transportType}
#   └── content         {textHtml, media[], imageComparison, audioUrl,
#                        wordTimestamps}
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from enum import Enum
from typing import Any

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

OPENING_EVENT_ID = "OPENING"
CLOSING_EVENT_ID = "CLOSING"
DEFAULT_MAP_STYLE = "mapbox://styles/mapbox/streets-v12"
DEFAULT_TRANSITION_TYPE = "ArcFlyWithPoint"


class EventType(str, Enum):
    """Kinds of story cards."""

    EVENT = "Event"
    PERIOD = "Period"
    OPENING = "Opening"
    CLOSING = "Closing"


class TransportType(str, Enum):
    """Icon shown travelling along the fly-over arc."""

    WALKING = "walking"
    CAR = "car"
    TRAIN = "train"
    AIRPLANE = "airplane"
    HORSE = "horse"


DEFAULT_TRANSPORT_TYPE = TransportType.AIRPLANE


class LineStyleKey(str, Enum):
    """Path style of the segment leading into an event."""

    SOLID = ""
    DASHED = "Dashed"
    DOTTED = "Dotted"
    GOLDEN_AGE = "GoldenAgePath"
    MEMORY_TRAIL = "MemoryTrail"
    IMPORTANT_JUMP = "ImportantJump"


# Shared config: camelCase on the wire, unknown keys preserved.
_DOCUMENT_CONFIG = ConfigDict(
    alias_generator=to_camel,
    populate_by_name=True,
    extra="allow",
)


class Timeline(BaseModel):
    model_config = _DOCUMENT_CONFIG

    date_start: str = Field(default="", description="ISO date YYYY-MM-DD.")
    date_end: str = Field(default="", description="ISO date; equals date_start for point events.")


class Coordinates(BaseModel):
    model_config = _DOCUMENT_CONFIG

    lng: float | None = None
    lat: float | None = None


class MapView(BaseModel):
    model_config = _DOCUMENT_CONFIG

    zoom: float = 10
    pitch: float = 0
    bearing: float = 0
    map_style: str = DEFAULT_MAP_STYLE


class Location(BaseModel):
    model_config = _DOCUMENT_CONFIG

    name: str = ""
    coordinates: Coordinates = Field(default_factory=Coordinates)
    map_view: MapView = Field(default_factory=MapView)


class Transition(BaseModel):
    model_config = _DOCUMENT_CONFIG

    type: str = DEFAULT_TRANSITION_TYPE
    duration_seconds: float = 3
    source_event_id: str | None = None
    line_style_key: str = LineStyleKey.SOLID.value
    transport_type: str = DEFAULT_TRANSPORT_TYPE.value


class ImageComparison(BaseModel):
    model_config = _DOCUMENT_CONFIG

    enabled: bool = False
    caption: str = ""
    url_old: str = ""
    url_new: str = ""


class WordTimestamp(BaseModel):
    model_config = _DOCUMENT_CONFIG

    word: str
    start: float
    end: float


class Content(BaseModel):
    model_config = _DOCUMENT_CONFIG

    text_html: str = ""
    media: list[dict[str, Any]] = Field(default_factory=list)
    image_comparison: ImageComparison = Field(default_factory=ImageComparison)
    audio_url: str | None = None
    word_timestamps: list[WordTimestamp] | None = None


class Event(BaseModel):
    """One story card.  Opening/Closing cards carry only id, type, title and content."""

    model_config = _DOCUMENT_CONFIG

    event_id: str = Field(description="'E###' for user events, 'OPENING'/'CLOSING' sentinels.")
    event_type: str = Field(default=EventType.EVENT.value)
    title: str = ""
    timeline: Timeline | None = None
    location: Location | None = None
    transition: Transition | None = None
    content: Content | None = None

    def to_document(self) -> dict[str, Any]:
        """Dump back to the stored camelCase document, omitting unset fields."""
        return self.model_dump(mode="json", by_alias=True, exclude_unset=True)


def documents_from_payload(payload: list[dict[str, Any]]) -> list[dict[str, Any]]:
    """Validate a raw event list and return normalized documents.

    Raises ``pydantic.ValidationError`` when an entry does not fit the model.
    """
    return [Event.model_validate(item).to_document() for item in payload]
