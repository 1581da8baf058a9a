"""
Tests for reverse geocoding clients
"""
import asyncio
import httpx
import pytest

import sys
sys.path.insert(0, '.')

from unswachh.core.config import Settings
from unswachh.core.constants import GOOGLE_KEY_MISSING, LOCATION_UNAVAILABLE, UNKNOWN_LOCATION
from unswachh.ingestion.geocoding_client import (
    GoogleGeocoder,
    NominatimGeocoder,
    create_geocoder,
)


def _transport(payload=None, status_code=200, seen=None):
    def handler(request):
        if seen is not None:
            seen.append(request)
        return httpx.Response(status_code, json=payload if payload is not None else {})
    return httpx.MockTransport(handler)


class TestNominatimFormatting:
    """Test suite for Nominatim address formatting."""

    def test_full_address(self):
        data = {
            "address": {
                "amenity": "Cubbon Park",
                "road": "Kasturba Road",
                "suburb": "Sampangi Rama Nagar",
                "city": "Bengaluru",
                "state": "Karnataka",
                "country": "India",
            }
        }
        assert NominatimGeocoder.format_address(data) == (
            "Cubbon Park, Kasturba Road, Sampangi Rama Nagar, Bengaluru, Karnataka"
        )

    def test_fallback_keys(self):
        data = {"address": {"house_number": "12", "footway": "Lane 4", "village": "Kolar"}}
        assert NominatimGeocoder.format_address(data) == "12, Lane 4, Kolar"

    def test_display_name_fallback(self):
        assert NominatimGeocoder.format_address({"address": {"country": "India"}, "display_name": "India"}) == "India"
        assert NominatimGeocoder.format_address({"display_name": "Somewhere"}) == "Somewhere"

    def test_nothing_known(self):
        assert NominatimGeocoder.format_address({}) == UNKNOWN_LOCATION


class TestNominatimGeocoder:
    """Test suite for Nominatim lookups."""

    def test_label_for(self):
        seen = []
        geocoder = NominatimGeocoder(
            user_agent="UnswachhTests/1.0",
            transport=_transport({"address": {"road": "MG Road", "city": "Bengaluru"}}, seen=seen),
        )

        label = asyncio.run(geocoder.label_for(12.9716, 77.5946))

        assert label == "MG Road, Bengaluru"
        request = seen[0]
        assert request.url.path == "/reverse"
        assert request.url.params["lat"] == "12.9716"
        assert request.url.params["format"] == "json"
        assert request.headers["User-Agent"] == "UnswachhTests/1.0"

    def test_http_error_gives_placeholder(self):
        geocoder = NominatimGeocoder(transport=_transport(status_code=503))
        assert asyncio.run(geocoder.label_for(12.97, 77.59)) == LOCATION_UNAVAILABLE

    def test_transport_error_gives_placeholder(self):
        def handler(request):
            raise httpx.ConnectError("offline", request=request)

        geocoder = NominatimGeocoder(transport=httpx.MockTransport(handler))
        assert asyncio.run(geocoder.label_for(12.97, 77.59)) == LOCATION_UNAVAILABLE


class TestGoogleGeocoder:
    """Test suite for Google geocoding."""

    def test_missing_key(self):
        seen = []
        geocoder = GoogleGeocoder(api_key=None, transport=_transport(seen=seen))

        assert asyncio.run(geocoder.label_for(12.97, 77.59)) == GOOGLE_KEY_MISSING
        assert seen == []

    def test_prefers_point_of_interest(self):
        payload = {
            "status": "OK",
            "results": [
                {"formatted_address": "1 MG Road, Bengaluru", "types": ["street_address"]},
                {"formatted_address": "Metro Station, MG Road, Bengaluru", "types": ["establishment", "point_of_interest"]},
            ],
        }
        seen = []
        geocoder = GoogleGeocoder(api_key="key-123", transport=_transport(payload, seen=seen))

        assert asyncio.run(geocoder.label_for(12.97, 77.59)) == "Metro Station, MG Road, Bengaluru"
        assert seen[0].url.params["latlng"] == "12.97,77.59"
        assert seen[0].url.params["key"] == "key-123"

    def test_first_result_without_poi(self):
        payload = {"status": "OK", "results": [{"formatted_address": "Karnataka, India", "types": ["administrative_area_level_1"]}]}
        geocoder = GoogleGeocoder(api_key="key", transport=_transport(payload))
        assert asyncio.run(geocoder.label_for(12.97, 77.59)) == "Karnataka, India"

    @pytest.mark.parametrize("payload", [{"status": "ZERO_RESULTS", "results": []}, {"status": "REQUEST_DENIED"}])
    def test_no_results(self, payload):
        geocoder = GoogleGeocoder(api_key="key", transport=_transport(payload))
        assert asyncio.run(geocoder.label_for(12.97, 77.59)) == UNKNOWN_LOCATION


class TestCreateGeocoder:
    """Test suite for geocoder selection."""

    def test_default_is_nominatim(self):
        geocoder = create_geocoder(Settings(_env_file=None))
        assert isinstance(geocoder, NominatimGeocoder)

    def test_google(self):
        geocoder = create_geocoder(Settings(_env_file=None, geocoder="google", google_maps_api_key="k"))
        assert isinstance(geocoder, GoogleGeocoder)
        assert geocoder.api_key == "k"
