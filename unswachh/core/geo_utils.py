"""
Unswachh - Geospatial Utilities
Coordinates and great-circle distance calculations.
"""

import math
from datetime import datetime, timezone
from typing import Optional, Tuple
from dataclasses import dataclass, field

from unswachh.core.constants import EARTH_RADIUS_M

# Meters per degree of latitude (spherical approximation)
METERS_PER_DEGREE = math.pi * EARTH_RADIUS_M / 180

# Slack added to bounding boxes so points exactly on the radius stay inside
BOX_EPSILON_DEG = 1e-9


@dataclass(frozen=True)
class Coordinate:
    """Geographic point with latitude and longitude in decimal degrees."""
    latitude: float
    longitude: float

    def __post_init__(self):
        if not -90 <= self.latitude <= 90:
            raise ValueError(f"Latitude out of range: {self.latitude}")
        if not -180 <= self.longitude <= 180:
            raise ValueError(f"Longitude out of range: {self.longitude}")

    def to_tuple(self) -> Tuple[float, float]:
        return (self.latitude, self.longitude)

    def distance_to(self, other: "Coordinate") -> float:
        """Great-circle distance to another coordinate in meters."""
        return haversine_distance(
            self.latitude, self.longitude,
            other.latitude, other.longitude
        )


@dataclass(frozen=True)
class VerifiedCoordinate(Coordinate):
    """
    Coordinate obtained from live device positioning.

    Only this type is accepted as a report location; a coordinate picked
    by clicking on the map is a plain Coordinate.
    """
    accuracy_m: Optional[float] = None
    verified_at: datetime = field(default_factory=lambda: datetime.now(timezone.utc))


@dataclass(frozen=True)
class BoundingBox:
    """Geographic bounding box."""
    west: float   # min longitude
    south: float  # min latitude
    east: float   # max longitude
    north: float  # max latitude

    def contains(self, latitude: float, longitude: float) -> bool:
        """Check if a point is within the bounding box."""
        return (
            self.west <= longitude <= self.east and
            self.south <= latitude <= self.north
        )


def haversine_distance(
    lat1: float, lon1: float,
    lat2: float, lon2: float
) -> float:
    """
    Calculate the great-circle distance between two points on Earth.

    Args:
        lat1, lon1: First point coordinates in decimal degrees
        lat2, lon2: Second point coordinates in decimal degrees

    Returns:
        Distance in meters
    """
    lat1_rad = math.radians(lat1)
    lat2_rad = math.radians(lat2)
    delta_lat = math.radians(lat2 - lat1)
    delta_lon = math.radians(lon2 - lon1)

    a = (
        math.sin(delta_lat / 2) ** 2 +
        math.cos(lat1_rad) * math.cos(lat2_rad) * math.sin(delta_lon / 2) ** 2
    )
    # Rounding can push a just past 1 for near-antipodal points
    a = min(1.0, max(0.0, a))
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))

    return EARTH_RADIUS_M * c


def destination_point(
    lat: float, lon: float,
    distance_m: float,
    bearing_degrees: float
) -> Tuple[float, float]:
    """
    Calculate destination point given start, distance, and bearing.

    Args:
        lat, lon: Start point coordinates in decimal degrees
        distance_m: Distance to travel in meters
        bearing_degrees: Bearing in degrees (0=North, 90=East)

    Returns:
        Tuple of (latitude, longitude) of destination point
    """
    lat_rad = math.radians(lat)
    lon_rad = math.radians(lon)
    bearing_rad = math.radians(bearing_degrees)
    angular_distance = distance_m / EARTH_RADIUS_M

    dest_lat = math.asin(
        math.sin(lat_rad) * math.cos(angular_distance) +
        math.cos(lat_rad) * math.sin(angular_distance) * math.cos(bearing_rad)
    )

    dest_lon = lon_rad + math.atan2(
        math.sin(bearing_rad) * math.sin(angular_distance) * math.cos(lat_rad),
        math.cos(angular_distance) - math.sin(lat_rad) * math.sin(dest_lat)
    )

    return (math.degrees(dest_lat), math.degrees(dest_lon))


def bounding_box(
    latitude: float,
    longitude: float,
    radius_m: float
) -> Optional[BoundingBox]:
    """
    Box enclosing every point within radius_m of the center.

    Returns None when the box would cross a pole or the antimeridian;
    callers then fall back to an unfiltered scan.
    """
    dlat = radius_m / METERS_PER_DEGREE + BOX_EPSILON_DEG
    south, north = latitude - dlat, latitude + dlat
    if south <= -90 or north >= 90:
        return None

    # Widest longitude span is at the latitude closest to the pole
    widest = max(abs(south), abs(north))
    dlon = radius_m / (METERS_PER_DEGREE * math.cos(math.radians(widest))) + BOX_EPSILON_DEG
    west, east = longitude - dlon, longitude + dlon
    if west < -180 or east > 180:
        return None

    return BoundingBox(west=west, south=south, east=east, north=north)


def format_coordinates(latitude: float, longitude: float, precision: int = 4) -> str:
    """Short "lat, lon" label shown next to location names."""
    return f"{latitude:.{precision}f}, {longitude:.{precision}f}"
