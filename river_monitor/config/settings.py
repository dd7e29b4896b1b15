from typing import List, Optional
from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    model_config = SettingsConfigDict(env_file=".env", case_sensitive=False, extra="ignore")

    # API Configuration
    app_name: str = Field(default="River Monitor Service")
    app_version: str = Field(default="1.0.0")
    debug: bool = Field(default=False)
    host: str = Field(default="0.0.0.0")
    port: int = Field(default=5000)

    # Google Earth Engine Configuration
    # Service account key file path (for authentication)
    gee_service_account_key: Optional[str] = Field(default=None)
    gee_project_id: str = Field(default="")
    gee_initialize_on_startup: bool = Field(default=True)

    # Cloud cover thresholds (percentage) per call site
    batch_cloud_threshold: float = Field(default=10.0, ge=0, le=100)
    river_imagery_cloud_threshold: float = Field(default=10.0, ge=0, le=100)
    water_body_cloud_threshold: float = Field(default=20.0, ge=0, le=100)
    water_body_max_images: int = Field(default=10, ge=1)

    # Aggregation scales (meters per pixel)
    index_scale_meters: int = Field(default=10)
    thumbnail_scale_meters: int = Field(default=10)
    climate_scale_meters: int = Field(default=1000)
    max_pixels: float = Field(default=1e9)

    # Upstream call policy
    upstream_timeout_seconds: float = Field(default=120.0, gt=0)
    upstream_retry_attempts: int = Field(default=3, ge=1)
    upstream_retry_min_wait: float = Field(default=1.0, ge=0)
    upstream_retry_max_wait: float = Field(default=10.0, ge=0)
    executor_max_workers: int = Field(default=10, ge=1)
    upstream_max_concurrent: int = Field(default=15, ge=1)

    # Historical weather proxy
    weather_api_url: str = Field(default="https://archive-api.open-meteo.com/v1/archive")
    weather_timeout_seconds: float = Field(default=30.0, gt=0)

    # Batch collection
    output_dir: str = Field(default="river_data/csv")
    csv_file_prefix: str = Field(default="ganges_data")
    batch_default_start_date: str = Field(default="2020-01-01")
    batch_default_end_date: str = Field(default="2023-12-31")
    # Varanasi reach of the Ganges
    batch_coordinates: List[List[float]] = Field(
        default=[[83.00, 25.20], [83.00, 25.40], [83.30, 25.40], [83.30, 25.20]]
    )

    # Logging
    log_level: str = Field(default="INFO")


# Global settings instance
settings = Settings()


def get_settings() -> Settings:
    """Get application settings."""
    return settings
