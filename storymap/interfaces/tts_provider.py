"""Abstract base class for text-to-speech providers.

Used by AudioGenerationService to narrate event text.  The concrete
implementation is ElevenLabsTTSProvider
(storymap/providers/tts/elevenlabs_provider.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class ITTSProvider(ABC):
    """Contract for speech synthesis."""

    @abstractmethod
    async def synthesize(
        self,
        text: str,
        voice_id: str,
        model_id: str,
        language_code: str | None = None,
    ) -> bytes:
        """Return encoded audio (MP3) for ``text``.

        Raises
        ------
        storymap.utils.errors.SpeechSynthesisError
            With ``critical=True`` for auth/quota/abuse failures that must
            stop a batch, ``critical=False`` for failures of this item only.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"elevenlabs"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if an API key is configured."""
