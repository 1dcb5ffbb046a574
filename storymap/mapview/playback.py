"""Playback controller — cinema-mode auto-advance through a story.

# ─── STATES ───────────────────────────────────────────────────────────
#
#   Idle ──start(events, i)──▶ ShowingEvent(i)
#   ShowingEvent(i) ──audio ended──────────────▶ Advancing
#   ShowingEvent(i) ──no audio / audio error───▶ (2 s) ──▶ Advancing
#   Advancing ──i + 1 < len──▶ ShowingEvent(i + 1)
#   Advancing ──i + 1 ≥ len──▶ Exited
#   any ──exit()──▶ Exited       (audio stopped, timers cancelled)
#
# One IAudioPlayer serves the whole session; each event only swaps its
# source.  Playback errors are logged and handled exactly like an event
# with no audio, so a broken file never stalls the show.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from collections.abc import Callable, Sequence
from enum import Enum
from typing import Any

import structlog

from storymap.interfaces.audio_player import IAudioPlayer
from storymap.interfaces.scheduler import Scheduler
from storymap.mapview.timers import PendingTimer

logger = structlog.get_logger(logger_name=__name__)

NO_AUDIO_DELAY_S = 2.0


class PlaybackState(str, Enum):
    IDLE = "idle"
    SHOWING_EVENT = "showing_event"
    ADVANCING = "advancing"
    EXITED = "exited"


def audio_url_for(event: Any) -> str | None:
    """Return the event's generated audio URL, or ``None``."""
    if not isinstance(event, dict):
        return None
    content = event.get("content")
    if not isinstance(content, dict):
        return None
    url = content.get("audioUrl")
    return url if isinstance(url, str) and url else None


def has_audio(event: Any) -> bool:
    return audio_url_for(event) is not None


def word_index_at(word_timestamps: Sequence[dict[str, Any]], position_ms: float) -> int:
    """Index of the word being spoken at ``position_ms``, or -1.

    Past the end of the last timed word, the last word stays highlighted.
    """
    for index, word in enumerate(word_timestamps):
        start, end = word.get("start"), word.get("end")
        if start is not None and end is not None and start <= position_ms < end:
            return index
    if word_timestamps:
        last_end = word_timestamps[-1].get("end")
        if last_end is not None and position_ms >= last_end:
            return len(word_timestamps) - 1
    return -1


class PlaybackController:
    """Drives the active index through a story, one event at a time."""

    def __init__(
        self,
        audio_player: IAudioPlayer,
        scheduler: Scheduler,
        on_index_change: Callable[[int], int | None],
        on_exit: Callable[[], None],
        no_audio_delay_s: float = NO_AUDIO_DELAY_S,
    ) -> None:
        self._player = audio_player
        self._on_index_change = on_index_change
        self._on_exit = on_exit
        self._no_audio_delay_s = no_audio_delay_s
        self._advance_timer = PendingTimer(scheduler)
        self._events: list[dict[str, Any]] = []
        self._index: int | None = None
        self._state = PlaybackState.IDLE

    @property
    def state(self) -> PlaybackState:
        return self._state

    @property
    def index(self) -> int | None:
        return self._index

    @property
    def is_running(self) -> bool:
        return self._state in (PlaybackState.SHOWING_EVENT, PlaybackState.ADVANCING)

    def start(self, events: Sequence[dict[str, Any]], index: int = 0) -> None:
        """Begin the show at ``index`` (clamped).  An empty story exits at once."""
        self._events = list(events)
        if not self._events:
            self._state = PlaybackState.SHOWING_EVENT
            self.exit()
            return
        logger.info("cinema_started", event_count=len(self._events), index=index)
        self._show(max(0, min(index, len(self._events) - 1)))

    def set_events(self, events: Sequence[dict[str, Any]]) -> None:
        self._events = list(events)

    def _show(self, index: int) -> None:
        self._advance_timer.cancel()
        self._index = index
        self._state = PlaybackState.SHOWING_EVENT
        resolved = self._on_index_change(index)
        if self._state is not PlaybackState.SHOWING_EVENT:
            return
        if isinstance(resolved, int) and 0 <= resolved < len(self._events):
            # The navigator may redirect (e.g. Opening skips to the first located event).
            index = self._index = resolved

        self._player.stop()
        url = audio_url_for(self._events[index])
        if url is None:
            logger.debug("cinema_no_audio", index=index)
            self._schedule_advance()
            return

        self._player.set_source(url)
        try:
            self._player.play()
        except Exception as exc:  # noqa: BLE001
            self.on_audio_error(exc)

    def _schedule_advance(self) -> None:
        self._advance_timer.schedule(self._no_audio_delay_s, self.advance)

    # ------------------------------------------------------------------
    # Player callbacks
    # ------------------------------------------------------------------

    def on_audio_ended(self) -> None:
        if self._state is PlaybackState.SHOWING_EVENT:
            self.advance()

    def on_audio_error(self, error: BaseException | str | None = None) -> None:
        """Playback failed: fall back to the no-audio delay."""
        if self._state is not PlaybackState.SHOWING_EVENT:
            return
        logger.warning("cinema_audio_error", index=self._index, error=str(error) if error else None)
        self._player.stop()
        self._schedule_advance()

    # ------------------------------------------------------------------
    # Navigation
    # ------------------------------------------------------------------

    def advance(self) -> None:
        if not self.is_running or self._index is None:
            return
        self._state = PlaybackState.ADVANCING
        self._advance_timer.cancel()
        next_index = self._index + 1
        if next_index >= len(self._events):
            logger.info("cinema_finished", event_count=len(self._events))
            self.exit()
            return
        self._show(next_index)

    def jump_to(self, index: int) -> None:
        """Manual prev/next while the show runs; restarts the event's audio."""
        if not self.is_running or not self._events:
            return
        self._show(max(0, min(index, len(self._events) - 1)))

    def exit(self) -> None:
        """Stop audio, cancel the pending advance and leave cinema mode."""
        if self._state in (PlaybackState.EXITED, PlaybackState.IDLE):
            return
        self._advance_timer.cancel()
        self._player.stop()
        self._state = PlaybackState.EXITED
        self._on_exit()

    def dispose(self) -> None:
        """Tear down without notifying (story switch)."""
        self._advance_timer.cancel()
        if self.is_running:
            self._player.stop()
        self._state = PlaybackState.IDLE
        self._index = None
