"""Configuration management for the offline geocoder service."""

from pydantic import Field
from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    # Service identification
    service_name: str = Field(
        default="offline-geocoder",
        description="Name of the service for logging and metrics",
    )
    environment: str = Field(
        default="development",
        description="Deployment environment",
    )

    # Server configuration
    host: str = Field(default="0.0.0.0", description="Server host")
    port: int = Field(default=3001, description="Server port")
    cors_origins: str = Field(
        default="*",
        description="Comma separated list of allowed CORS origins",
    )

    # Logging
    log_level: str = Field(default="INFO", description="Log level")
    log_format: str = Field(
        default="json",
        description="Log output format (json or console)",
    )

    # Cache store
    database_url: str = Field(
        default="",
        description="Cache database URL; empty keeps the cache in memory",
    )
    database_echo: bool = Field(
        default=False,
        description="Echo SQL statements issued by the cache store",
    )

    # GeoNames resolver
    data_dir: str = Field(
        default="./geocoder-data",
        description="Directory holding the GeoNames dump files",
    )
    cities_dataset: str = Field(
        default="cities1000",
        description="GeoNames cities dump to load (cities500, cities1000, ...)",
    )
    geonames_base_url: str = Field(
        default="https://download.geonames.org/export/dump",
        description="Base URL for downloading missing GeoNames files",
    )
    download_missing: bool = Field(
        default=True,
        description="Download missing GeoNames files on first start",
    )
    download_timeout: float = Field(
        default=300.0,
        description="Timeout in seconds for each GeoNames download",
    )
    load_admin1: bool = Field(
        default=True,
        description="Resolve admin level 1 codes (states/provinces) to names",
    )
    load_admin2: bool = Field(
        default=True,
        description="Resolve admin level 2 codes (districts/counties) to names",
    )

    # Request handling
    batch_max_size: int = Field(
        default=100,
        description="Maximum number of coordinates per batch request",
    )
    default_eviction_days: int = Field(
        default=90,
        description="Age in days used when a cache eviction request gives none",
    )

    # Monitoring
    enable_metrics: bool = Field(default=True, description="Enable Prometheus metrics")

    model_config = {
        "env_prefix": "GEOCODER_",
        "case_sensitive": False,
    }

    @property
    def cors_origin_list(self) -> list[str]:
        return [origin.strip() for origin in self.cors_origins.split(",") if origin.strip()]


# Global settings instance
settings = Settings()
