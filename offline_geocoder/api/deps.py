"""API dependencies."""

from ..config import settings
from ..geonames import GeoNamesResolver
from ..service import GeocoderService
from ..store import create_cache_store

geocoder_service = GeocoderService(
    resolver=GeoNamesResolver(settings),
    store=create_cache_store(settings.database_url, echo=settings.database_echo),
    default_eviction_days=settings.default_eviction_days,
)


def get_geocoder_service() -> GeocoderService:
    """Get the process-wide geocoder service."""
    return geocoder_service
