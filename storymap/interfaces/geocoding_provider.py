"""Abstract base class for geocoding providers.

Forward geocoding turns free text typed into an event card into a point;
reverse geocoding names the point a user clicked on the map.  The
concrete implementation is MapboxGeocodingProvider
(storymap/providers/geocoding/mapbox_provider.py).
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass


@dataclass(frozen=True)
class GeocodeResult:
    """First forward-geocoding match.

    Attributes
    ----------
    lng, lat:
        The match center.
    place_name:
        The provider's full display name for the place.
    """

    lng: float
    lat: float
    place_name: str


class IGeocodingProvider(ABC):
    """Contract for forward and reverse geocoding."""

    @abstractmethod
    async def search(self, query: str) -> GeocodeResult | None:
        """Return the first match for ``query`` or ``None`` when nothing matches.

        Raises
        ------
        storymap.utils.errors.GeocodingError
            If the request itself fails (network error, non-2xx status).
        """

    @abstractmethod
    async def reverse(self, lng: float, lat: float) -> str | None:
        """Return a best-effort ``"City, Country"`` label for a point.

        Falls back to country only, city only, then the raw place name.
        Never raises: any failure yields ``None``.
        """

    @abstractmethod
    def get_provider_name(self) -> str:
        """Return a human-readable identifier, e.g. ``"mapbox"``."""

    @abstractmethod
    def is_available(self) -> bool:
        """Return ``True`` if the provider is configured (token present)."""
