"""Story service — business rules over the story and example stores.

# ─── ARCHITECTURE ROLE ───────────────────────────────────────────────
#
# Layer: Services.
# Depends on: IStoryProvider, IExampleStoryProvider, IMediaStore.
#
# Route handlers call this service and never touch a provider directly.
# It owns the rules the stores do not know about:
#
#   - CREATE: the story cap (``max_stories``), a required name, language
#     fallback to English, the language's default voice, and the initial
#     ``[OPENING, CLOSING]`` event list.
#   - UPDATE: partial header edits (name, language, voiceId, published);
#     a voice that does not belong to the story language is replaced by
#     that language's default.
#   - DELETE: removes the story, its events and its narration files.
#   - EVENTS: the event list is replaced as a whole; the store refreshes
#     the cached ``eventCount``.
#   - EXAMPLES: bundled stories are served read-only.
#
# Every failure is raised as a StoryMapError subclass; the API middleware
# maps them to HTTP status codes.
# ──────────────────────────────────────────────────────────────────────
"""

from __future__ import annotations

import time
from datetime import datetime, timezone
from typing import Any

import structlog

from storymap.interfaces.media_store import IMediaStore
from storymap.interfaces.story_provider import IExampleStoryProvider, IStoryProvider
from storymap.mapview.event_list import create_closing_event, create_opening_event
from storymap.models.story import (
    Story,
    default_voice_id,
    normalize_language,
    resolve_voice_id,
)
from storymap.utils.errors import StoryLimitError, StoryNotFoundError, ValidationError

logger = structlog.get_logger(logger_name=__name__)

_DEFAULT_MAX_STORIES = 5
_UPDATABLE_FIELDS = ("name", "language", "voiceId", "published")


def _new_story_id(millis: int | None = None) -> str:
    return f"story-{millis if millis is not None else int(time.time() * 1000)}"


def _clean_name(name: Any) -> str:
    if not isinstance(name, str) or not name.strip():
        raise ValidationError(message="Story name is required")
    return name.strip()


class StoryService:
    """CRUD for user stories plus read access to the bundled examples.

    All dependencies are constructor-injected.
    """

    def __init__(
        self,
        story_store: IStoryProvider,
        example_store: IExampleStoryProvider | None = None,
        media_store: IMediaStore | None = None,
        max_stories: int = _DEFAULT_MAX_STORIES,
    ) -> None:
        self._store = story_store
        self._examples = example_store
        self._media = media_store
        self._max_stories = max_stories

    @property
    def max_stories(self) -> int:
        return self._max_stories

    # ── Stories ────────────────────────────────────────────────────────

    async def list_stories(self) -> list[Story]:
        return await self._store.list_stories()

    async def get_story(self, story_id: str) -> Story:
        story = await self._store.get_story(story_id)
        if story is None:
            raise StoryNotFoundError(story_id)
        return story

    async def create_story(self, name: Any, language: Any = None) -> Story:
        """Create a story with just the Opening and Closing cards.

        Raises
        ------
        StoryLimitError
            When ``max_stories`` stories already exist.
        ValidationError
            When ``name`` is missing or blank.
        """
        if await self._store.count_stories() >= self._max_stories:
            logger.info("story_limit_reached", max_stories=self._max_stories)
            raise StoryLimitError(self._max_stories)

        clean_name = _clean_name(name)
        story_language = normalize_language(language if isinstance(language, str) else None)
        story_id = _new_story_id()
        # Two creates within one millisecond would collide on the id.
        while await self._store.get_story(story_id) is not None:
            story_id = _new_story_id(int(story_id.removeprefix("story-")) + 1)

        events = [create_opening_event(), create_closing_event()]
        story = Story(
            id=story_id,
            name=clean_name,
            language=story_language,
            voice_id=default_voice_id(story_language.value),
            event_count=len(events),
            published=False,
            date_created=datetime.now(timezone.utc).isoformat(),
        )
        return await self._store.create_story(story, events)

    async def update_story(self, story_id: str, updates: dict[str, Any]) -> Story:
        """Apply a partial header update.  Unknown keys are ignored."""
        story = await self.get_story(story_id)
        changes: dict[str, Any] = {}

        if "name" in updates:
            changes["name"] = _clean_name(updates["name"])
        if "language" in updates:
            changes["language"] = normalize_language(updates["language"])
        if "published" in updates:
            changes["published"] = bool(updates["published"])

        language = changes.get("language", story.language).value
        requested_voice = updates.get("voiceId", story.voice_id)
        changes["voice_id"] = resolve_voice_id(language, requested_voice)

        ignored = sorted(set(updates) - set(_UPDATABLE_FIELDS))
        if ignored:
            logger.debug("story_update_ignored_fields", story_id=story_id, fields=ignored)

        updated = story.model_copy(update=changes)
        return await self._store.update_story(updated)

    async def delete_story(self, story_id: str) -> None:
        """Delete the story, its events and its narration files."""
        if not await self._store.delete_story(story_id):
            raise StoryNotFoundError(story_id)
        if self._media is not None:
            removed = await self._media.delete_story_audio(story_id)
            logger.info("story_audio_cleaned", story_id=story_id, files=removed)

    # ── Events ─────────────────────────────────────────────────────────

    async def get_events(self, story_id: str) -> list[dict[str, Any]]:
        events = await self._store.get_events(story_id)
        if events is None:
            raise StoryNotFoundError(story_id)
        return events

    async def save_events(self, story_id: str, events: list[dict[str, Any]]) -> Story:
        story = await self._store.save_events(story_id, events)
        if story is None:
            raise StoryNotFoundError(story_id)
        return story

    # ── Examples ───────────────────────────────────────────────────────

    async def list_example_stories(self) -> list[Story]:
        if self._examples is None:
            return []
        return await self._examples.list_stories()

    async def get_example_story(self, story_id: str) -> Story:
        story = await self._examples.get_story(story_id) if self._examples else None
        if story is None:
            raise StoryNotFoundError(story_id)
        return story

    async def get_example_events(self, story_id: str) -> list[dict[str, Any]]:
        events = await self._examples.get_events(story_id) if self._examples else None
        if events is None:
            raise StoryNotFoundError(story_id)
        return events
