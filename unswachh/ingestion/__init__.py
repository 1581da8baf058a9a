"""
Unswachh - External Services
Reverse geocoding and image storage used by report submission.
"""

from unswachh.ingestion.geocoding_client import (
    ReverseGeocoder,
    NominatimGeocoder,
    GoogleGeocoder,
    create_geocoder,
)
from unswachh.ingestion.image_pipeline import (
    ImageNormalizer,
    ImageUploader,
    CloudinaryUploader,
    ImagePipeline,
    create_image_pipeline,
)

__all__ = [
    "ReverseGeocoder",
    "NominatimGeocoder",
    "GoogleGeocoder",
    "create_geocoder",
    "ImageNormalizer",
    "ImageUploader",
    "CloudinaryUploader",
    "ImagePipeline",
    "create_image_pipeline",
]
