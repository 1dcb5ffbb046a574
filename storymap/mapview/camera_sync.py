"""Camera synchronizer — one-writer bridge between desired and live camera.

# ─── HOW THE ECHO SUPPRESSION WORKS ───────────────────────────────────
#
# The orchestrator owns the *desired* camera; the map widget owns the
# *live* one.  Changes flow one direction at a time:
#
#   orchestrator ──on_external_camera_change──▶ widget.ease_to(...)
#   widget ──on_map_move_end──▶ on_user_camera_change(live camera)
#
# A programmatic move also ends in a move-end event from the widget.  To
# keep that echo from being reported back as a user gesture, every
# programmatic move raises ``is_syncing_from_map`` and schedules it to
# clear once the transition has had time to finish (duration + settle).
# Move-end events seen while the flag is up are dropped, not queued.
#
# A new command while a move is in flight replaces it: the pending clear
# (and any running arc animation) is cancelled and rescheduled, so the
# last call wins.
#
# Pitch and bearing are pinned to 0.  Every command is flattened and any
# rotate/pitch gesture is undone with a zero-duration ease.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import Callable

import structlog

from storymap.interfaces.map_widget import IMapWidget
from storymap.interfaces.scheduler import Scheduler
from storymap.mapview.timers import PendingTimer
from storymap.models.map import CameraState
from storymap.utils.geometry import LngLat, arc_camera_at

logger = structlog.get_logger(logger_name=__name__)

CENTER_TOLERANCE_DEG = 1e-4
ZOOM_TOLERANCE = 0.01
ORIENTATION_TOLERANCE_DEG = 0.01
DEFAULT_TRANSITION_MS = 800
DEFAULT_SETTLE_MS = 50
ARC_FRAME_MS = 50


def camera_differs(target: CameraState, live: CameraState) -> bool:
    """True when ``target`` is meaningfully different from ``live``.

    Center within 1e-4 degrees per axis and zoom within 0.01 count as the
    same view.  A live camera that is pitched or rotated always differs,
    since every target is flat.
    """
    return (
        abs(target.center[0] - live.center[0]) > CENTER_TOLERANCE_DEG
        or abs(target.center[1] - live.center[1]) > CENTER_TOLERANCE_DEG
        or abs(target.zoom - live.zoom) > ZOOM_TOLERANCE
        or abs(live.pitch) > ORIENTATION_TOLERANCE_DEG
        or abs(live.bearing) > ORIENTATION_TOLERANCE_DEG
    )


class CameraSynchronizer:
    """Pushes desired cameras into the widget and reports user moves back."""

    def __init__(
        self,
        widget: IMapWidget,
        scheduler: Scheduler,
        on_user_camera_change: Callable[[CameraState], None],
        transition_ms: int = DEFAULT_TRANSITION_MS,
        settle_ms: int = DEFAULT_SETTLE_MS,
    ) -> None:
        self._widget = widget
        self._on_user_camera_change = on_user_camera_change
        self._transition_ms = transition_ms
        self._settle_ms = settle_ms
        self._clear_timer = PendingTimer(scheduler)
        self._frame_timer = PendingTimer(scheduler)
        self._syncing = False

    @property
    def is_syncing_from_map(self) -> bool:
        return self._syncing

    # ------------------------------------------------------------------
    # Orchestrator → widget
    # ------------------------------------------------------------------

    def on_external_camera_change(
        self,
        target: CameraState,
        duration_ms: int | None = None,
    ) -> bool:
        """Ease the widget to ``target`` unless it is already there.

        Returns ``True`` when a transition was issued.
        """
        flat = target.flattened()
        if not camera_differs(flat, self._widget.get_camera()):
            return False

        duration = self._transition_ms if duration_ms is None else duration_ms
        self._frame_timer.cancel()
        self._begin_programmatic_move(duration)
        self._widget.ease_to(flat, duration)
        logger.debug(
            "camera_ease",
            center=flat.center,
            zoom=flat.zoom,
            duration_ms=duration,
        )
        return True

    def jump_to(self, target: CameraState) -> None:
        """Move instantly (used for backward navigation)."""
        self._frame_timer.cancel()
        self._begin_programmatic_move(0)
        self._widget.jump_to(target.flattened())

    def fit_bounds(
        self,
        bounds: tuple[float, float, float, float],
        duration_ms: int | None = None,
    ) -> None:
        """Frame ``(min_lng, min_lat, max_lng, max_lat)``, flat and north-up."""
        duration = self._transition_ms if duration_ms is None else duration_ms
        self._frame_timer.cancel()
        self._begin_programmatic_move(duration, report_on_settle=True)
        self._widget.fit_bounds(bounds, duration)
        logger.debug("camera_fit_bounds", bounds=bounds, duration_ms=duration)

    def fly_arc(
        self,
        origin: LngLat,
        target: LngLat,
        start_zoom: float,
        target_zoom: float,
        duration_ms: int,
    ) -> None:
        """Animate a zoom-out / travel / zoom-in arc frame by frame.

        The whole animation counts as one programmatic move: move-end
        events are suppressed until it finishes.
        """
        self._frame_timer.cancel()
        self._begin_programmatic_move(duration_ms)
        total = max(duration_ms, 1)
        elapsed_ms = 0

        def _frame() -> None:
            nonlocal elapsed_ms
            progress = min(1.0, elapsed_ms / total)
            lng, lat, zoom = arc_camera_at(origin, target, start_zoom, target_zoom, progress)
            self._widget.jump_to(CameraState(center=(lng, lat), zoom=zoom))
            if progress < 1.0:
                elapsed_ms += ARC_FRAME_MS
                self._frame_timer.schedule(ARC_FRAME_MS / 1000, _frame)

        _frame()

    def _begin_programmatic_move(self, duration_ms: int, report_on_settle: bool = False) -> None:
        self._syncing = True
        self._clear_timer.schedule(
            (duration_ms + self._settle_ms) / 1000,
            lambda: self._finish_sync(report_on_settle),
        )

    def _finish_sync(self, report: bool = False) -> None:
        self._syncing = False
        if report:
            # fit_bounds picks its own zoom; adopt whatever the widget settled on.
            self._on_user_camera_change(self._widget.get_camera().flattened())

    # ------------------------------------------------------------------
    # Widget → orchestrator
    # ------------------------------------------------------------------

    def on_map_move_end(self) -> CameraState | None:
        """Report a settled user move.  Dropped while a programmatic move runs."""
        if self._syncing:
            return None
        live = self._widget.get_camera().flattened()
        self._on_user_camera_change(live)
        return live

    def on_rotate_or_pitch(self) -> None:
        """Undo any rotation or pitch immediately."""
        live = self._widget.get_camera()
        if abs(live.pitch) > 0 or abs(live.bearing) > 0:
            self._widget.ease_to(live.flattened(), 0)

    def dispose(self) -> None:
        self._frame_timer.cancel()
        self._clear_timer.cancel()
        self._syncing = False
