"""Mapbox geocoding provider implementing IGeocodingProvider.

Uses the Mapbox Geocoding v5 ``mapbox.places`` endpoint for both
directions.  The token comes from ``Settings.mapbox_token``; without one
the provider reports itself unavailable, forward searches raise
:class:`GeocodingError` and reverse lookups quietly return ``None``.
The ``httpx.AsyncClient`` is injected for testability.
"""

from __future__ import annotations

from typing import Any
from urllib.parse import quote

import httpx
import structlog

from storymap.config.settings import Settings
from storymap.interfaces.geocoding_provider import GeocodeResult, IGeocodingProvider
from storymap.utils.errors import GeocodingError

logger = structlog.get_logger(logger_name=__name__)

_PLACES_PATH = "/geocoding/v5/mapbox.places"
_TIMEOUT = 10.0


def _label_from_feature(feature: dict[str, Any]) -> str | None:
    """Build ``"City, Country"`` from a feature's context, with fallbacks."""
    city: str | None = None
    country: str | None = None
    for item in feature.get("context") or []:
        item_id = item.get("id") or ""
        if item_id.startswith("place."):
            city = item.get("text")
        elif item_id.startswith("country."):
            country = item.get("text")

    if city and country:
        return f"{city}, {country}"
    if country:
        return country
    if city:
        return city
    return feature.get("place_name") or None


class MapboxGeocodingProvider(IGeocodingProvider):
    """Forward and reverse geocoding against the Mapbox places API."""

    def __init__(
        self,
        settings: Settings,
        http_client: httpx.AsyncClient | None = None,
    ) -> None:
        self._token = settings.mapbox_token
        self._base_url = settings.mapbox_base_url.rstrip("/")
        self._http = http_client or httpx.AsyncClient(timeout=_TIMEOUT)

    def get_provider_name(self) -> str:
        return "mapbox"

    def is_available(self) -> bool:
        return bool(self._token)

    async def _get_features(self, place: str, params: dict[str, Any]) -> list[dict[str, Any]]:
        url = f"{self._base_url}{_PLACES_PATH}/{place}.json"
        response = await self._http.get(url, params={"access_token": self._token, **params})
        response.raise_for_status()
        data = response.json()
        return data.get("features") or [] if isinstance(data, dict) else []

    async def search(self, query: str) -> GeocodeResult | None:
        trimmed = (query or "").strip()
        if not trimmed:
            return None
        if not self.is_available():
            raise GeocodingError(
                message="Mapbox token is not configured",
                provider_name=self.get_provider_name(),
            )

        try:
            features = await self._get_features(quote(trimmed, safe=""), {"limit": 1})
        except (httpx.HTTPError, ValueError) as exc:
            logger.error("mapbox_search_failed", query=trimmed, error=str(exc))
            raise GeocodingError(
                message=f"Failed to search location: {exc}",
                provider_name=self.get_provider_name(),
            ) from exc

        if not features:
            logger.debug("mapbox_search_no_match", query=trimmed)
            return None

        feature = features[0]
        center = feature.get("center") or []
        if len(center) < 2:
            return None
        return GeocodeResult(
            lng=float(center[0]),
            lat=float(center[1]),
            place_name=feature.get("place_name") or trimmed,
        )

    async def reverse(self, lng: float, lat: float) -> str | None:
        if not self.is_available():
            return None
        try:
            features = await self._get_features(f"{lng},{lat}", {})
        except (httpx.HTTPError, ValueError) as exc:
            logger.warning("mapbox_reverse_failed", lng=lng, lat=lat, error=str(exc))
            return None
        if not features:
            return None
        return _label_from_feature(features[0])
