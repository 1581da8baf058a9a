"""
Unswachh - Configuration Management
Centralized configuration using pydantic-settings.
"""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application
    app_env: str = "development"
    debug: bool = True
    log_level: str = "INFO"

    # Database (None keeps reports in memory)
    database_url: Optional[str] = None

    # Moderation
    admin_password: Optional[str] = None

    # Public map, used to build share links
    public_base_url: Optional[str] = None

    # Reverse geocoding
    geocoder: str = "nominatim"
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "Unswachh/1.0"
    google_maps_api_key: Optional[str] = None

    # Image storage (Cloudinary unsigned upload)
    cloudinary_cloud_name: Optional[str] = None
    cloudinary_upload_preset: Optional[str] = None
    image_max_dimension: int = 1920
    image_quality: int = 80

    # Outbound HTTP
    http_timeout_seconds: float = 15.0

    # Device-local vote book
    vote_book_path: Optional[str] = None

    # API Settings
    api_host: str = "0.0.0.0"
    api_port: int = 8000

    @property
    def is_production(self) -> bool:
        return self.app_env == "production"


@lru_cache()
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()


# Global settings instance
settings = get_settings()
