"""Reverse geocoding endpoints."""

import math
from typing import Any, Optional

import structlog
from fastapi import APIRouter, Body, Depends, Query

from ..api.deps import get_geocoder_service
from ..config import settings
from ..exceptions import InvalidInputError
from ..models import (
    BatchResponse,
    Coordinate,
    EvictionResponse,
    LocationResponse,
    NameResponse,
    ShortLocationResponse,
    StatsResponse,
)
from ..service import GeocoderService

logger = structlog.get_logger(__name__)
router = APIRouter(prefix="/geocode", tags=["geocode"])


def parse_coordinates(lat: Optional[str], lng: Optional[str]) -> Coordinate:
    """Validate query-string coordinates."""
    if not lat or not lng:
        raise InvalidInputError("lat and lng query parameters are required")
    try:
        latitude = float(lat)
        longitude = float(lng)
    except ValueError:
        raise InvalidInputError("Invalid lat/lng values") from None
    if not math.isfinite(latitude) or not math.isfinite(longitude):
        raise InvalidInputError("Invalid lat/lng values")
    if not -90 <= latitude <= 90 or not -180 <= longitude <= 180:
        raise InvalidInputError("Coordinates out of range")
    return Coordinate(lat=latitude, lng=longitude)


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and math.isfinite(value)
    )


def parse_batch(payload: Any) -> list[Coordinate]:
    """Validate a batch body of the form {"coordinates": [{"lat": .., "lng": ..}, ...]}."""
    coordinates = payload.get("coordinates") if isinstance(payload, dict) else None
    if not isinstance(coordinates, list) or not coordinates:
        raise InvalidInputError("coordinates array is required")
    if len(coordinates) > settings.batch_max_size:
        raise InvalidInputError(
            f"Maximum {settings.batch_max_size} coordinates per request"
        )

    parsed = []
    for i, entry in enumerate(coordinates):
        lat = entry.get("lat") if isinstance(entry, dict) else None
        lng = entry.get("lng") if isinstance(entry, dict) else None
        if not _is_number(lat) or not _is_number(lng):
            raise InvalidInputError(f"Invalid coordinate at index {i}")
        if not -90 <= lat <= 90 or not -180 <= lng <= 180:
            raise InvalidInputError(f"Coordinate out of range at index {i}")
        parsed.append(Coordinate(lat=lat, lng=lng))
    return parsed


@router.get("", response_model=LocationResponse)
async def geocode(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    skip_cache: Optional[str] = Query(default=None, alias="skipCache"),
    service: GeocoderService = Depends(get_geocoder_service),
) -> LocationResponse:
    """Reverse geocode a single coordinate.

    Example: GET /geocode?lat=26.7606&lng=83.3732
    """
    coordinate = parse_coordinates(lat, lng)
    location = await service.resolve(
        coordinate.lat,
        coordinate.lng,
        skip_cache=(skip_cache or "").lower() in ("true", "1"),
    )
    return LocationResponse(data=location)


@router.post("/batch", response_model=BatchResponse)
async def geocode_batch(
    payload: Any = Body(default=None),
    service: GeocoderService = Depends(get_geocoder_service),
) -> BatchResponse:
    """Reverse geocode up to ``batch_max_size`` coordinates in one request.

    Entries that fail carry an ``error`` instead of a ``location``.
    """
    coordinates = parse_batch(payload)
    results = await service.resolve_batch(coordinates)

    failed = sum(1 for entry in results if entry.error)
    logger.info("Batch geocode completed", total=len(results), failed=failed)
    return BatchResponse(count=len(results), data=results)


@router.get("/name", response_model=NameResponse)
async def geocode_name(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    service: GeocoderService = Depends(get_geocoder_service),
) -> NameResponse:
    """Display name only."""
    coordinate = parse_coordinates(lat, lng)
    return NameResponse(data=await service.location_name(coordinate.lat, coordinate.lng))


@router.get("/short", response_model=ShortLocationResponse)
async def geocode_short(
    lat: Optional[str] = None,
    lng: Optional[str] = None,
    service: GeocoderService = Depends(get_geocoder_service),
) -> ShortLocationResponse:
    """City, state and country only."""
    coordinate = parse_coordinates(lat, lng)
    return ShortLocationResponse(
        data=await service.location_short(coordinate.lat, coordinate.lng)
    )


@router.get("/stats", response_model=StatsResponse)
async def cache_stats(
    service: GeocoderService = Depends(get_geocoder_service),
) -> StatsResponse:
    """Cache statistics."""
    return StatsResponse(data=await service.cache_stats())


@router.delete("/cache", response_model=EvictionResponse)
async def evict_cache(
    days_old: Optional[str] = Query(default=None, alias="daysOld"),
    service: GeocoderService = Depends(get_geocoder_service),
) -> EvictionResponse:
    """Remove entries not accessed in ``daysOld`` days (default 90)."""
    deleted = await service.evict_older_than(days_old)
    return EvictionResponse(deleted_count=deleted)


@router.delete("/cache/all", response_model=EvictionResponse)
async def clear_cache(
    service: GeocoderService = Depends(get_geocoder_service),
) -> EvictionResponse:
    """Remove every cache entry."""
    deleted = await service.clear_cache()
    return EvictionResponse(deleted_count=deleted)
