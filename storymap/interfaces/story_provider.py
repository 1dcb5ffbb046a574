"""Abstract base classes for story persistence providers.

# ─── ADAPTER PATTERN ─────────────────────────────────────────────────
#
# IStoryProvider is the read/write store behind ``/api/stories``.  The
# concrete implementation is SQLiteStoryProvider
# (storymap/providers/story/sqlite_story_provider.py).
#
# IExampleStoryProvider is the store behind ``/api/example-stories``:
# bundled sample content that can be read but never created or deleted.
# The concrete implementation is JsonExampleStoryProvider
# (storymap/providers/examples/json_example_provider.py).
#
# Business rules (story cap, default voice, event count bookkeeping) live
# in StoryService, not here; providers only persist what they are given.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from storymap.models.story import Story


class IStoryProvider(ABC):
    """Contract for story and event-list persistence.  All operations are async."""

    # ── Lifecycle ──────────────────────────────────────────────────────

    @abstractmethod
    async def initialize(self) -> None:
        """Create tables/indices if they don't exist.  Called at startup."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    # ── Stories ────────────────────────────────────────────────────────

    @abstractmethod
    async def list_stories(self) -> list[Story]:
        """Return every story, oldest first."""

    @abstractmethod
    async def count_stories(self) -> int:
        """Return the number of stored stories."""

    @abstractmethod
    async def get_story(self, story_id: str) -> Story | None:
        """Return the story or ``None`` when the id is unknown."""

    @abstractmethod
    async def create_story(self, story: Story, events: list[dict[str, Any]]) -> Story:
        """Persist a new story together with its initial event list."""

    @abstractmethod
    async def update_story(self, story: Story) -> Story:
        """Overwrite the stored header of an existing story."""

    @abstractmethod
    async def delete_story(self, story_id: str) -> bool:
        """Delete the story and its events.  Returns ``False`` if it did not exist."""

    # ── Events ─────────────────────────────────────────────────────────

    @abstractmethod
    async def get_events(self, story_id: str) -> list[dict[str, Any]] | None:
        """Return the stored event documents, or ``None`` for an unknown story."""

    @abstractmethod
    async def save_events(self, story_id: str, events: list[dict[str, Any]]) -> Story | None:
        """Replace the event list and refresh ``event_count``.

        Returns the updated story, or ``None`` for an unknown story.
        """


class IExampleStoryProvider(ABC):
    """Contract for bundled, read-only example stories."""

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier for this provider."""

    @abstractmethod
    async def list_stories(self) -> list[Story]:
        """Return every example story."""

    @abstractmethod
    async def get_story(self, story_id: str) -> Story | None:
        """Return one example story or ``None``."""

    @abstractmethod
    async def get_events(self, story_id: str) -> list[dict[str, Any]] | None:
        """Return the example story's events or ``None``."""
