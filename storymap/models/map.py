"""Map-side value types shared by the view controllers.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Models.
#
# ``CameraState`` is the viewport the orchestrator wants (the *desired*
# camera) or the one the widget reports (the *live* camera).  ``MapClick``
# is a click delivered by the map widget, stamped with the moment it was
# made so the location picker can reject clicks queued before picking
# began.  ``ViewMode`` names the four screens that share one map.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field

DEFAULT_CENTER: tuple[float, float] = (34.7818, 32.0853)
DEFAULT_ZOOM = 3.0


class ViewMode(str, Enum):
    """Screens that drive the shared map."""

    HOME = "home"
    EDIT = "edit"
    VIEW = "view"
    CINEMA = "cinema"


class CameraState(BaseModel):
    """A flat map viewport: ``center`` is ``(lng, lat)``."""

    model_config = ConfigDict(frozen=True)

    center: tuple[float, float] = Field(default=DEFAULT_CENTER)
    zoom: float = Field(default=DEFAULT_ZOOM)
    pitch: float = 0.0
    bearing: float = 0.0

    def flattened(self) -> CameraState:
        """Same center and zoom with pitch and bearing forced to 0."""
        if self.pitch == 0 and self.bearing == 0:
            return self
        return self.model_copy(update={"pitch": 0.0, "bearing": 0.0})


class MapClick(BaseModel):
    """A click on the map, with the camera at the time of the click."""

    model_config = ConfigDict(frozen=True)

    lng: float
    lat: float
    timestamp: float = Field(description="Clock time of the click, same clock as the picker.")
    camera: CameraState | None = None


class MarkerLocation(BaseModel):
    """Picker overlay marker."""

    model_config = ConfigDict(frozen=True)

    lng: float
    lat: float
