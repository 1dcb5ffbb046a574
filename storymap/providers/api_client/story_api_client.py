"""HTTP story reader implementing IStoryReader.

The view orchestrator runs against the same JSON API the service exposes.
Example story ids (``example-story-...``) are read from
``/api/example-stories``; everything else from ``/api/stories``.  Any
transport or status failure is raised as a :class:`StoryMapError`
subclass so the orchestrator can treat it as a failed load.
"""

from __future__ import annotations

from typing import Any

import httpx
import structlog

from storymap.interfaces.story_reader import IStoryReader
from storymap.models.story import is_example_story_id
from storymap.utils.errors import PersistenceError, StoryNotFoundError

logger = structlog.get_logger(logger_name=__name__)

_TIMEOUT = 15.0


class StoryApiClient(IStoryReader):
    """Reads stories and events from a running StoryMap API."""

    def __init__(
        self,
        base_url: str,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._base_url = base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=_TIMEOUT)

    def get_provider_name(self) -> str:
        return "story_api"

    async def _get_json(self, path: str, story_id: str | None = None) -> Any:
        try:
            response = await self._http.get(f"{self._base_url}{path}")
        except httpx.HTTPError as exc:
            logger.error("story_api_request_failed", path=path, error=str(exc))
            raise PersistenceError(
                message=f"Story API request failed: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if response.status_code == 404 and story_id is not None:
            raise StoryNotFoundError(story_id, provider_name=self.get_provider_name())
        if not response.is_success:
            try:
                payload = response.json()
            except ValueError:
                payload = None
            message = payload.get("error") if isinstance(payload, dict) else None
            raise PersistenceError(
                message=message or f"Request failed with status {response.status_code}",
                provider_name=self.get_provider_name(),
            )
        try:
            return response.json()
        except ValueError as exc:
            raise PersistenceError(
                message=f"Story API returned invalid JSON: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

    async def list_stories(self) -> list[dict[str, Any]]:
        data = await self._get_json("/api/stories")
        return [story for story in data if isinstance(story, dict)] if isinstance(data, list) else []

    async def list_example_stories(self) -> list[dict[str, Any]]:
        data = await self._get_json("/api/example-stories")
        return [story for story in data if isinstance(story, dict)] if isinstance(data, list) else []

    async def get_events(self, story_id: str) -> list[dict[str, Any]]:
        prefix = "/api/example-stories" if is_example_story_id(story_id) else "/api/stories"
        data = await self._get_json(f"{prefix}/{story_id}/events", story_id=story_id)
        return [event for event in data if isinstance(event, dict)] if isinstance(data, list) else []

    async def close(self) -> None:
        await self._http.aclose()
