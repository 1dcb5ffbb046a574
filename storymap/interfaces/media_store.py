"""Abstract base class for uploaded images and generated narration files.

The concrete implementation is LocalMediaStore
(storymap/providers/media/local_media_store.py), which writes under the
data directory and hands back URLs served by the API app.
"""

from __future__ import annotations

from abc import ABC, abstractmethod


class IMediaStore(ABC):
    """Contract for binary media storage."""

    @abstractmethod
    async def save_image(self, filename: str, data: bytes) -> str:
        """Store an uploaded image under a unique name and return its URL."""

    @abstractmethod
    async def save_audio(self, story_id: str, event_id: str, data: bytes) -> str:
        """Store narration audio for one event and return its URL."""

    @abstractmethod
    async def delete_audio(self, audio_url: str) -> bool:
        """Delete the file behind ``audio_url``.  Returns ``False`` if it was missing."""

    @abstractmethod
    async def delete_story_audio(self, story_id: str) -> int:
        """Delete every narration file of a story.  Returns the number removed."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this store."""
