"""Abstract base class for the view orchestrator's story source.

The orchestrator runs on the client side of the API: it loads a story's
events (and, for the home overview, every story's events) through this
contract.  StoryApiClient (storymap/providers/api_client/story_api_client.py)
implements it over HTTP with httpx; tests use in-memory fakes.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any


class IStoryReader(ABC):
    """Read access to stories and their event lists."""

    @abstractmethod
    async def list_stories(self) -> list[dict[str, Any]]:
        """Return story headers (camelCase dicts)."""

    @abstractmethod
    async def get_events(self, story_id: str) -> list[dict[str, Any]]:
        """Return the story's event documents.

        Raises
        ------
        storymap.utils.errors.StoryMapError
            When the story cannot be loaded.
        """
