"""Abstract base class for the interactive map widget.

The map core never assumes a rendering technology.  Anything that can
report its live camera, move it, and draw keyed markers and GeoJSON
sources can sit behind this contract (a Mapbox GL bridge, a headless
recorder in tests).  Map gestures come back the other way: the widget
glue calls ``CameraSynchronizer.on_map_move_end`` and
``ViewOrchestrator.handle_map_click``.

Single-writer rule: only CameraSynchronizer moves the camera and only
MarkerLayer / the orchestrator's overlay sync touch markers and sources.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from storymap.models.map import CameraState


class IMapWidget(ABC):
    """Contract for the live map view."""

    # ── Camera ─────────────────────────────────────────────────────────

    @abstractmethod
    def get_camera(self) -> CameraState:
        """Return the live viewport."""

    @abstractmethod
    def ease_to(self, camera: CameraState, duration_ms: int) -> None:
        """Start an eased transition to ``camera`` (0 ms means immediate)."""

    @abstractmethod
    def jump_to(self, camera: CameraState) -> None:
        """Move to ``camera`` immediately, without animation."""

    @abstractmethod
    def fit_bounds(
        self,
        bounds: tuple[float, float, float, float],
        duration_ms: int,
    ) -> None:
        """Fit ``(min_lng, min_lat, max_lng, max_lat)`` in view, flat and north-up."""

    # ── Overlays ───────────────────────────────────────────────────────

    @abstractmethod
    def add_marker(self, key: str, lng: float, lat: float, color: str) -> None:
        """Place a marker identified by ``key``."""

    @abstractmethod
    def remove_marker(self, key: str) -> None:
        """Remove the marker identified by ``key`` (no-op when absent)."""

    @abstractmethod
    def set_source_data(self, source_id: str, data: dict[str, Any]) -> None:
        """Replace the GeoJSON data of a line source."""
