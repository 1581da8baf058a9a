"""
Unswachh - Constants
Static values used throughout the application.
"""

# =============================================================================
# GEOGRAPHY
# =============================================================================

# Mean Earth radius used by the haversine formula
EARTH_RADIUS_M: float = 6371000.0

# A new report closer than this to any existing one is a duplicate
DUPLICATE_RADIUS_M: float = 50.0

# Zoom level used by map deep links
MAP_LINK_ZOOM: int = 18

# =============================================================================
# LOCATION LABELS
# =============================================================================

UNKNOWN_LOCATION: str = "Unknown Location"
LOCATION_UNAVAILABLE: str = "Location unavailable"
GOOGLE_KEY_MISSING: str = "Google Maps Key Missing"
OTHER_REGION: str = "Other"

# Nominatim address parts, most specific first
NOMINATIM_SPECIFIC_KEYS = ("amenity", "shop", "building", "tourism", "historic", "leisure")
NOMINATIM_ROAD_KEYS = ("road", "pedestrian", "footway")
NOMINATIM_AREA_KEYS = ("suburb", "neighbourhood", "residential")
NOMINATIM_CITY_KEYS = ("city", "town", "village", "county")

# Google result types preferred over plain street addresses
GOOGLE_SPECIFIC_TYPES = ("point_of_interest", "establishment", "premise")

# =============================================================================
# IMAGES
# =============================================================================

CLOUDINARY_UPLOAD_URL: str = "https://api.cloudinary.com/v1_1/{cloud_name}/image/upload"
