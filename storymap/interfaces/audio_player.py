"""Abstract base class for the cinema narration player.

One player instance is reused for a whole cinema session; only its
source changes between events.  Completion and failures are reported by
the player glue calling ``PlaybackController.on_audio_ended`` /
``on_audio_error``; ``play`` may also raise synchronously when the
source cannot be started.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IAudioPlayer(ABC):
    """Contract for a single, reusable audio element."""

    @abstractmethod
    def set_source(self, url: str) -> None:
        """Point the player at ``url`` (``""`` clears the source)."""

    @abstractmethod
    def play(self) -> None:
        """Start playback of the current source."""

    @abstractmethod
    def stop(self) -> None:
        """Pause playback and rewind; safe to call when idle."""
