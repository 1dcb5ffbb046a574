"""Bundled example stories, read from a JSON file.

The file is a list of story headers, each carrying its own ``events``
array::

    [{"id": "example-...", "name": "...", "language": "en", ...,
      "events": [{"eventId": "OPENING", ...}, ...]}]

It is read once (in a worker thread) and cached.  Example stories are
read-only: the provider exposes no write operations.
"""

from __future__ import annotations

import asyncio
import copy
import json
from pathlib import Path
from typing import Any

import structlog

from storymap.interfaces.story_provider import IExampleStoryProvider
from storymap.models.story import Story
from storymap.utils.errors import ConfigurationError

logger = structlog.get_logger(logger_name=__name__)

BUNDLED_EXAMPLES_PATH = Path(__file__).resolve().parents[2] / "data" / "example_stories.json"


class JsonExampleStoryProvider(IExampleStoryProvider):
    """Serves example stories from a JSON file."""

    def __init__(self, path: str | Path | None = None) -> None:
        self._path = Path(path) if path else BUNDLED_EXAMPLES_PATH
        self._entries: list[dict[str, Any]] | None = None
        self._lock = asyncio.Lock()

    def get_provider_name(self) -> str:
        return "json_examples"

    async def _load(self) -> list[dict[str, Any]]:
        async with self._lock:
            if self._entries is None:
                self._entries = await asyncio.to_thread(self._read_file)
        return self._entries

    def _read_file(self) -> list[dict[str, Any]]:
        if not self._path.exists():
            logger.warning("example_stories_missing", path=str(self._path))
            return []
        try:
            data = json.loads(self._path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise ConfigurationError(
                message=f"Example stories file is not valid JSON: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc
        entries = [entry for entry in data if isinstance(entry, dict) and entry.get("id")] if isinstance(data, list) else []
        logger.info("example_stories_loaded", path=str(self._path), count=len(entries))
        return entries

    @staticmethod
    def _to_story(entry: dict[str, Any]) -> Story:
        events = entry.get("events")
        header = {key: value for key, value in entry.items() if key != "events"}
        header.setdefault("eventCount", len(events) if isinstance(events, list) else 0)
        return Story.model_validate(header)

    async def list_stories(self) -> list[Story]:
        return [self._to_story(entry) for entry in await self._load()]

    async def get_story(self, story_id: str) -> Story | None:
        for entry in await self._load():
            if entry["id"] == story_id:
                return self._to_story(entry)
        return None

    async def get_events(self, story_id: str) -> list[dict[str, Any]] | None:
        for entry in await self._load():
            if entry["id"] == story_id:
                events = entry.get("events")
                return copy.deepcopy(events) if isinstance(events, list) else []
        return None
