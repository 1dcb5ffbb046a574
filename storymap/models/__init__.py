"""StoryMap domain models — re-exports all public model classes.

The models are organized by concern:
    - story.py  — Story header, languages and narration voices
    - event.py  — Event document validation models and enumerations
    - map.py    — Camera, map click and view-mode value types
"""

from __future__ import annotations

from storymap.models.event import (
    CLOSING_EVENT_ID,
    DEFAULT_MAP_STYLE,
    OPENING_EVENT_ID,
    Content,
    Coordinates,
    Event,
    EventType,
    ImageComparison,
    LineStyleKey,
    Location,
    MapView,
    Timeline,
    Transition,
    TransportType,
    WordTimestamp,
)
from storymap.models.map import CameraState, MapClick, MarkerLocation, ViewMode
from storymap.models.story import Language, Story

__all__ = [
    "CLOSING_EVENT_ID",
    "DEFAULT_MAP_STYLE",
    "OPENING_EVENT_ID",
    "CameraState",
    "Content",
    "Coordinates",
    "Event",
    "EventType",
    "ImageComparison",
    "Language",
    "LineStyleKey",
    "Location",
    "MapClick",
    "MapView",
    "MarkerLocation",
    "Story",
    "Timeline",
    "Transition",
    "TransportType",
    "ViewMode",
    "WordTimestamp",
]
