"""Unit tests for StoryApiClient with a mocked transport."""

from __future__ import annotations

import httpx
import pytest

from storymap.providers.api_client.story_api_client import StoryApiClient
from storymap.utils.errors import PersistenceError, StoryNotFoundError


def _client(handler) -> StoryApiClient:
    http = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return StoryApiClient("http://storymap.test/", http_client=http)


class TestStoryApiClient:
    @pytest.mark.asyncio
    async def test_user_story_events(self) -> None:
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=[{"eventId": "OPENING"}, "junk"])

        events = await _client(handler).get_events("story-1")
        assert events == [{"eventId": "OPENING"}]
        assert paths == ["/api/stories/story-1/events"]

    @pytest.mark.asyncio
    async def test_example_story_events_use_example_route(self) -> None:
        paths: list[str] = []

        def handler(request: httpx.Request) -> httpx.Response:
            paths.append(request.url.path)
            return httpx.Response(200, json=[])

        await _client(handler).get_events("example-story-grandmother-journey")
        assert paths == ["/api/example-stories/example-story-grandmother-journey/events"]

    @pytest.mark.asyncio
    async def test_list_stories(self) -> None:
        client = _client(lambda request: httpx.Response(200, json=[{"id": "story-1"}]))
        assert await client.list_stories() == [{"id": "story-1"}]

    @pytest.mark.asyncio
    async def test_404_is_story_not_found(self) -> None:
        client = _client(lambda request: httpx.Response(404, json={"error": "Story not found"}))
        with pytest.raises(StoryNotFoundError):
            await client.get_events("story-0")

    @pytest.mark.asyncio
    async def test_server_error_carries_message(self) -> None:
        client = _client(lambda request: httpx.Response(500, json={"error": "disk full"}))
        with pytest.raises(PersistenceError, match="disk full"):
            await client.list_stories()

    @pytest.mark.asyncio
    async def test_status_without_body(self) -> None:
        client = _client(lambda request: httpx.Response(503, text="down"))
        with pytest.raises(PersistenceError, match="Request failed with status 503"):
            await client.get_events("story-1")

    @pytest.mark.asyncio
    async def test_network_error(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        with pytest.raises(PersistenceError):
            await _client(handler).list_example_stories()
