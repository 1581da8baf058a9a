"""
Share and navigation links for reports
"""

from typing import Optional
from urllib.parse import urlencode

from unswachh.core.constants import MAP_LINK_ZOOM

GOOGLE_MAPS_SEARCH_URL = "https://www.google.com/maps/search/"


def map_link(
    base_url: str,
    latitude: float,
    longitude: float,
    report_id: Optional[str] = None,
    zoom: int = MAP_LINK_ZOOM
) -> str:
    """
    Deep link that opens the public map centered on a location.

    Args:
        base_url: Public URL of the map
        latitude, longitude: Map center
        report_id: Report card to open on load
        zoom: Initial zoom level

    Returns:
        URL string
    """
    params = {"lat": latitude, "lng": longitude, "zoom": zoom}
    if report_id:
        params["reportId"] = report_id
    return f"{base_url.rstrip('/')}/?{urlencode(params)}"


def directions_link(latitude: float, longitude: float) -> str:
    """Google Maps search link for getting directions to a report."""
    query = urlencode({"api": 1, "query": f"{latitude},{longitude}"})
    return f"{GOOGLE_MAPS_SEARCH_URL}?{query}"
