"""Pydantic models for location records and API payloads."""

from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class CamelModel(BaseModel):
    """Base model serialized with camelCase keys."""

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class LocationRecord(CamelModel):
    """Canonical place record produced from a resolver candidate."""

    name: str = Field(default="", description="City/town name")
    admin_level1_name: str = Field(default="", description="State or province")
    admin_level2_name: str = Field(default="", description="District or county")
    country_code: str = Field(default="", description="ISO country code (IN, US, ...)")
    country_name: str = Field(default="", description="Country display name")
    display_name: str = Field(default="", description="Full formatted place name")
    population: int = Field(default=0, description="Population of the place")
    feature_code: str = Field(default="", description="GeoNames feature code (PPL, PPLA, ...)")


class LocationResult(LocationRecord):
    """Location answer for a single lookup."""

    source: Literal["cache", "local"] = Field(description="Where the answer came from")
    key: str = Field(description="Quantized cache key for the coordinates")
    hit_count: Optional[int] = Field(
        default=None,
        description="Hit counter of the cache entry (cache answers only)",
    )


UNKNOWN_NAME = "Unknown"
UNKNOWN_DISPLAY_NAME = "Unknown Location"


def unknown_location(key: str) -> LocationResult:
    return LocationResult(
        name=UNKNOWN_NAME,
        display_name=UNKNOWN_DISPLAY_NAME,
        source="local",
        key=key,
    )


class Coordinate(CamelModel):
    """Latitude/longitude pair in decimal degrees."""

    lat: float = Field(ge=-90, le=90, description="Latitude in decimal degrees")
    lng: float = Field(ge=-180, le=180, description="Longitude in decimal degrees")


class BatchEntry(CamelModel):
    """Outcome of one coordinate in a batch lookup."""

    lat: float
    lng: float
    location: Optional[LocationResult] = None
    error: Optional[str] = None


class CacheStats(CamelModel):
    """Aggregate cache statistics."""

    total_entries: int = Field(description="Number of cached keys")
    total_hits: int = Field(description="Sum of hit counters over all keys")
    avg_hits_per_entry: float = Field(description="total_hits / total_entries, or 0")


class ShortLocation(CamelModel):
    """City/state/country view of a location."""

    city: str = ""
    state: str = ""
    country: str = ""


# Response envelopes


class LocationResponse(CamelModel):
    success: bool = True
    data: LocationResult


class BatchResponse(CamelModel):
    success: bool = True
    count: int
    data: list[BatchEntry]


class StatsResponse(CamelModel):
    success: bool = True
    data: CacheStats


class NameResponse(CamelModel):
    success: bool = True
    data: str


class ShortLocationResponse(CamelModel):
    success: bool = True
    data: ShortLocation


class EvictionResponse(CamelModel):
    success: bool = True
    deleted_count: int


class ErrorResponse(CamelModel):
    success: bool = False
    error: str


class HealthStatus(CamelModel):
    """Service health summary."""

    status: str
    geocoder_initialized: bool
    store_connected: bool
