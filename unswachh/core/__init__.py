"""
Unswachh - Core Utilities
Central configuration, errors, and geospatial helpers.
"""

from unswachh.core.config import settings
from unswachh.core.constants import (
    DUPLICATE_RADIUS_M,
    EARTH_RADIUS_M,
    UNKNOWN_LOCATION,
    LOCATION_UNAVAILABLE,
)
from unswachh.core.geo_utils import (
    Coordinate,
    VerifiedCoordinate,
    haversine_distance,
    destination_point,
    bounding_box,
    format_coordinates,
)

__all__ = [
    "settings",
    "DUPLICATE_RADIUS_M",
    "EARTH_RADIUS_M",
    "UNKNOWN_LOCATION",
    "LOCATION_UNAVAILABLE",
    "Coordinate",
    "VerifiedCoordinate",
    "haversine_distance",
    "destination_point",
    "bounding_box",
    "format_coordinates",
]
