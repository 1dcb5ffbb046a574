"""Unit tests for MapboxGeocodingProvider with a mocked transport."""

from __future__ import annotations

import httpx
import pytest

from storymap.config.settings import Settings
from storymap.interfaces.geocoding_provider import GeocodeResult
from storymap.providers.geocoding.mapbox_provider import MapboxGeocodingProvider, _label_from_feature
from storymap.utils.errors import GeocodingError


def _settings(**overrides) -> Settings:
    defaults = {"mapbox_token": "pk.test", "mapbox_base_url": "https://mapbox.test"}
    defaults.update(overrides)
    return Settings(**defaults)


def _provider(handler, **overrides) -> MapboxGeocodingProvider:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return MapboxGeocodingProvider(_settings(**overrides), http_client=client)


HAIFA_FEATURE = {
    "place_name": "Haifa, Haifa District, Israel",
    "center": [34.9896, 32.794],
    "context": [
        {"id": "place.123", "text": "Haifa"},
        {"id": "region.9", "text": "Haifa District"},
        {"id": "country.1", "text": "Israel"},
    ],
}


class TestSearch:
    @pytest.mark.asyncio
    async def test_first_match(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"features": [HAIFA_FEATURE, {"center": [0, 0]}]})

        result = await _provider(handler).search("  Haifa ")
        assert result == GeocodeResult(lng=34.9896, lat=32.794, place_name="Haifa, Haifa District, Israel")
        request = seen[0]
        assert request.url.path == "/geocoding/v5/mapbox.places/Haifa.json"
        assert request.url.params["access_token"] == "pk.test"
        assert request.url.params["limit"] == "1"

    @pytest.mark.asyncio
    async def test_no_features_returns_none(self) -> None:
        provider = _provider(lambda request: httpx.Response(200, json={"features": []}))
        assert await provider.search("Atlantis") is None

    @pytest.mark.asyncio
    async def test_empty_query_makes_no_request(self) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("no request expected")

        assert await _provider(handler).search("   ") is None

    @pytest.mark.asyncio
    async def test_http_error_raises(self) -> None:
        provider = _provider(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(GeocodingError) as exc_info:
            await provider.search("Haifa")
        assert exc_info.value.provider_name == "mapbox"
        assert "Failed to search location" in exc_info.value.message

    @pytest.mark.asyncio
    async def test_missing_token_raises(self) -> None:
        provider = _provider(lambda request: httpx.Response(200), mapbox_token="")
        assert not provider.is_available()
        with pytest.raises(GeocodingError):
            await provider.search("Haifa")


class TestReverse:
    @pytest.mark.asyncio
    async def test_city_and_country(self) -> None:
        seen: list[httpx.Request] = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"features": [HAIFA_FEATURE]})

        assert await _provider(handler).reverse(34.9896, 32.794) == "Haifa, Israel"
        assert seen[0].url.path == "/geocoding/v5/mapbox.places/34.9896,32.794.json"

    @pytest.mark.asyncio
    async def test_failure_is_silent(self) -> None:
        provider = _provider(lambda request: httpx.Response(503))
        assert await provider.reverse(1.0, 2.0) is None

    @pytest.mark.asyncio
    async def test_no_token_is_silent(self) -> None:
        provider = _provider(lambda request: httpx.Response(200), mapbox_token="")
        assert await provider.reverse(1.0, 2.0) is None


class TestLabel:
    def test_country_only(self) -> None:
        assert _label_from_feature({"context": [{"id": "country.1", "text": "Israel"}]}) == "Israel"

    def test_city_only(self) -> None:
        assert _label_from_feature({"context": [{"id": "place.1", "text": "Haifa"}]}) == "Haifa"

    def test_place_name_fallback(self) -> None:
        assert _label_from_feature({"place_name": "Mid-ocean"}) == "Mid-ocean"
        assert _label_from_feature({}) is None
