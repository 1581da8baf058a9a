"""
Unswachh - Reverse Geocoding Clients
Turns a coordinate into a human-readable location label.

Labels are best effort: lookups never raise, they degrade to a
placeholder so a report can still be submitted.
"""

import logging
from typing import Any, Dict, Optional

import httpx

from unswachh.core.constants import (
    GOOGLE_KEY_MISSING,
    GOOGLE_SPECIFIC_TYPES,
    LOCATION_UNAVAILABLE,
    NOMINATIM_AREA_KEYS,
    NOMINATIM_CITY_KEYS,
    NOMINATIM_ROAD_KEYS,
    NOMINATIM_SPECIFIC_KEYS,
    UNKNOWN_LOCATION,
)

logger = logging.getLogger(__name__)


def _first(address: Dict[str, Any], keys) -> Optional[str]:
    for key in keys:
        if address.get(key):
            return address[key]
    return None


class ReverseGeocoder:
    """Base class for reverse geocoding services."""

    def __init__(
        self,
        timeout: float = 15.0,
        transport: Optional[httpx.AsyncBaseTransport] = None
    ):
        """
        Initialize the geocoder.

        Args:
            timeout: Request timeout in seconds
            transport: Optional httpx transport (used by tests)
        """
        self.timeout = timeout
        self._transport = transport

    def _client(self, headers: Optional[Dict[str, str]] = None) -> httpx.AsyncClient:
        return httpx.AsyncClient(
            timeout=self.timeout,
            headers=headers,
            transport=self._transport,
        )

    async def label_for(self, latitude: float, longitude: float) -> str:
        """
        Location label for a coordinate.

        Returns:
            Address text, or a placeholder when it cannot be resolved
        """
        try:
            return await self._lookup(latitude, longitude)
        except (httpx.HTTPError, ValueError, KeyError, TypeError) as e:
            logger.warning(f"Geocoding error for ({latitude}, {longitude}): {e}")
            return LOCATION_UNAVAILABLE

    async def _lookup(self, latitude: float, longitude: float) -> str:
        raise NotImplementedError


class NominatimGeocoder(ReverseGeocoder):
    """
    OpenStreetMap Nominatim reverse geocoder.
    Usage policy requires an identifying User-Agent.
    """

    def __init__(
        self,
        base_url: str = "https://nominatim.openstreetmap.org",
        user_agent: str = "Unswachh/1.0",
        **kwargs
    ):
        super().__init__(**kwargs)
        self.base_url = base_url.rstrip("/")
        self.user_agent = user_agent

    async def _lookup(self, latitude: float, longitude: float) -> str:
        async with self._client(headers={"User-Agent": self.user_agent}) as client:
            response = await client.get(
                f"{self.base_url}/reverse",
                params={
                    "format": "json",
                    "lat": latitude,
                    "lon": longitude,
                    "zoom": 18,
                    "addressdetails": 1,
                },
            )
            response.raise_for_status()
            data = response.json()

        return self.format_address(data)

    @staticmethod
    def format_address(data: Dict[str, Any]) -> str:
        """
        Build a readable label from a Nominatim response.

        Most specific first: named place, house number, road, area,
        city, state. Falls back to display_name.
        """
        address = data.get("address")
        if not address:
            return data.get("display_name") or UNKNOWN_LOCATION

        parts = [
            _first(address, NOMINATIM_SPECIFIC_KEYS),
            address.get("house_number"),
            _first(address, NOMINATIM_ROAD_KEYS),
            _first(address, NOMINATIM_AREA_KEYS),
            _first(address, NOMINATIM_CITY_KEYS),
            address.get("state"),
        ]
        parts = [p for p in parts if p]

        if parts:
            return ", ".join(parts)
        return data.get("display_name") or UNKNOWN_LOCATION


class GoogleGeocoder(ReverseGeocoder):
    """Google Maps Geocoding API reverse geocoder."""

    GEOCODE_URL = "https://maps.googleapis.com/maps/api/geocode/json"

    def __init__(self, api_key: Optional[str] = None, **kwargs):
        super().__init__(**kwargs)
        self.api_key = api_key

    async def label_for(self, latitude: float, longitude: float) -> str:
        if not self.api_key:
            logger.warning("Google Maps API key not configured")
            return GOOGLE_KEY_MISSING
        return await super().label_for(latitude, longitude)

    async def _lookup(self, latitude: float, longitude: float) -> str:
        async with self._client() as client:
            response = await client.get(
                self.GEOCODE_URL,
                params={"latlng": f"{latitude},{longitude}", "key": self.api_key},
            )
            response.raise_for_status()
            data = response.json()

        results = data.get("results") or []
        if data.get("status") != "OK" or not results:
            return UNKNOWN_LOCATION

        # Google lists the most relevant result first; prefer a named place
        for result in results:
            if any(t in GOOGLE_SPECIFIC_TYPES for t in result.get("types", [])):
                return result["formatted_address"]
        return results[0]["formatted_address"]


def create_geocoder(settings) -> ReverseGeocoder:
    """Geocoder selected by the ``geocoder`` setting."""
    if settings.geocoder == "google":
        return GoogleGeocoder(
            api_key=settings.google_maps_api_key,
            timeout=settings.http_timeout_seconds,
        )
    return NominatimGeocoder(
        base_url=settings.nominatim_url,
        user_agent=settings.nominatim_user_agent,
        timeout=settings.http_timeout_seconds,
    )
