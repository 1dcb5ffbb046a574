"""Map core: event ordering, camera sync, picking, rendering, playback.

Everything in this package is I/O-free apart from the abstract
collaborators it is handed (map widget, audio player, story reader,
geocoder, scheduler), so the whole subsystem runs under test with fakes.
"""

from storymap.mapview.camera_sync import CameraSynchronizer, camera_differs
from storymap.mapview.location_picker import LocationCommit, LocationPicker
from storymap.mapview.orchestrator import ViewOrchestrator
from storymap.mapview.playback import PlaybackController, PlaybackState
from storymap.mapview.renderer import (
    PATH_LAYERS,
    MarkerLayer,
    RenderedOverlay,
    render_home_overview,
    render_story,
)
from storymap.mapview.timers import PendingTimer

__all__ = [
    "CameraSynchronizer",
    "LocationCommit",
    "LocationPicker",
    "MarkerLayer",
    "PATH_LAYERS",
    "PendingTimer",
    "PlaybackController",
    "PlaybackState",
    "RenderedOverlay",
    "ViewOrchestrator",
    "camera_differs",
    "render_home_overview",
    "render_story",
]
