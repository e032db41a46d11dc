"""Cache-aside reverse geocoding: quantize, check cache, resolve, repopulate."""

import asyncio
import math
from datetime import datetime, timedelta, timezone
from enum import Enum
from typing import Any, Awaitable, Iterable, Optional, TypeVar

import structlog

from . import metrics
from .exceptions import (
    CacheStoreError,
    GeocoderNotInitializedError,
    InvalidInputError,
    ResolverError,
    ResolverInitError,
)
from .formatter import format_location
from .models import (
    BatchEntry,
    CacheStats,
    Coordinate,
    LocationResult,
    ShortLocation,
    unknown_location,
)
from .quantizer import quantize
from .resolver import PlaceResolver, RankedCandidates, raw_response_payload
from .store.base import CacheStore, Clock, StoreResult, utc_now

logger = structlog.get_logger(__name__)

T = TypeVar("T")

DEFAULT_EVICTION_DAYS = 90

EARLIEST_CUTOFF = datetime.min.replace(tzinfo=timezone.utc)


class EngineState(str, Enum):
    UNINITIALIZED = "uninitialized"
    INITIALIZING = "initializing"
    READY = "ready"


class GeocoderService:
    """Answers coordinate lookups from the cache, falling back to the resolver."""

    def __init__(
        self,
        resolver: PlaceResolver,
        store: CacheStore,
        clock: Optional[Clock] = None,
        default_eviction_days: int = DEFAULT_EVICTION_DAYS,
    ):
        self.resolver = resolver
        self.store = store
        self.clock = clock or utc_now
        self.default_eviction_days = default_eviction_days
        self.state = EngineState.UNINITIALIZED
        self._init_task: Optional[asyncio.Task] = None

    @property
    def is_initialized(self) -> bool:
        return self.state is EngineState.READY

    async def init(self) -> None:
        """Initialize the resolver once.

        Concurrent callers share the same in-flight initialization. After a
        failure the next call starts a fresh attempt.
        """
        if self.state is EngineState.READY:
            return
        if self._init_task is None:
            self.state = EngineState.INITIALIZING
            self._init_task = asyncio.ensure_future(self._initialize())
        await asyncio.shield(self._init_task)

    async def _initialize(self) -> None:
        logger.info("Initializing local geocoder")
        try:
            await self.resolver.init()
        except Exception as e:
            logger.error("Geocoder init failed", error=str(e))
            self.state = EngineState.UNINITIALIZED
            self._init_task = None
            if isinstance(e, ResolverInitError):
                raise
            raise ResolverInitError(str(e)) from e
        self.state = EngineState.READY
        logger.info("Local geocoder initialized successfully")

    def _require_ready(self) -> None:
        if self.state is not EngineState.READY:
            raise GeocoderNotInitializedError()

    async def _attempt(self, operation: str, call: Awaitable[T]) -> StoreResult[T]:
        try:
            return StoreResult(value=await call)
        except CacheStoreError as e:
            metrics.cache_store_errors.labels(operation=operation).inc()
            return StoreResult(error=e)

    async def _lookup(self, lat: float, lng: float) -> RankedCandidates:
        with metrics.resolver_duration.time():
            try:
                return await self.resolver.lookup(lat, lng, max_results=1)
            except ResolverError:
                raise
            except Exception as e:
                raise ResolverError(str(e)) from e

    async def resolve(
        self, lat: float, lng: float, skip_cache: bool = False
    ) -> LocationResult:
        """Resolve coordinates to a location.

        Args:
            lat: Latitude
            lng: Longitude
            skip_cache: Force a fresh resolver lookup

        Returns:
            Location with ``source`` set to "cache" or "local"
        """
        self._require_ready()
        key = quantize(lat, lng)

        if not skip_cache:
            cached = await self._attempt("get_and_touch", self.store.get_and_touch(key))
            if not cached.ok:
                logger.warning("Cache lookup error", key=key, error=str(cached.error))
            elif cached.value is not None:
                record = cached.value
                metrics.lookups_total.labels(source="cache").inc()
                logger.debug("Cache hit", key=key, hit_count=record.hit_count)
                return LocationResult(
                    **record.location.model_dump(),
                    source="cache",
                    key=key,
                    hit_count=record.hit_count,
                )

        logger.debug("Cache miss, looking up locally", key=key, skip_cache=skip_cache)
        raw_result = await self._lookup(lat, lng)
        location = format_location(raw_result)
        metrics.lookups_total.labels(source="local").inc()

        if location is None:
            # Not cached so the point is retried once resolver data improves
            metrics.unresolved_total.inc()
            logger.info("No place found for coordinates", key=key)
            return unknown_location(key)

        saved = await self._attempt(
            "upsert",
            self.store.upsert(key, (lat, lng), location, raw_response_payload(raw_result)),
        )
        if saved.ok:
            logger.debug("Cached location", key=key)
        else:
            logger.warning("Cache save error", key=key, error=str(saved.error))

        return LocationResult(**location.model_dump(), source="local", key=key)

    async def resolve_batch(self, coordinates: Iterable[Coordinate]) -> list[BatchEntry]:
        """Resolve coordinates one by one; a failing entry does not stop the rest."""
        results = []
        for coordinate in coordinates:
            try:
                location = await self.resolve(coordinate.lat, coordinate.lng)
                results.append(
                    BatchEntry(lat=coordinate.lat, lng=coordinate.lng, location=location)
                )
            except Exception as e:
                logger.warning(
                    "Batch entry failed",
                    lat=coordinate.lat,
                    lng=coordinate.lng,
                    error=str(e),
                )
                results.append(
                    BatchEntry(lat=coordinate.lat, lng=coordinate.lng, error=str(e))
                )
        return results

    async def location_name(self, lat: float, lng: float) -> str:
        """Display name only, e.g. "Gorakhpur, Uttar Pradesh, India"."""
        result = await self.resolve(lat, lng)
        return result.display_name

    async def location_short(self, lat: float, lng: float) -> ShortLocation:
        result = await self.resolve(lat, lng)
        return ShortLocation(
            city=result.name,
            state=result.admin_level1_name,
            country=result.country_name,
        )

    async def cache_stats(self) -> CacheStats:
        total_entries = (await self._attempt("count_all", self.store.count_all())).unwrap()
        total_hits = (
            await self._attempt("sum_hit_counts", self.store.sum_hit_counts())
        ).unwrap()
        return CacheStats(
            total_entries=total_entries,
            total_hits=total_hits,
            avg_hits_per_entry=total_hits / total_entries if total_entries > 0 else 0,
        )

    def _coerce_days(self, days_old: Any) -> int:
        if isinstance(days_old, bool) or days_old is None:
            return self.default_eviction_days
        if isinstance(days_old, str):
            try:
                days_old = float(days_old.strip())
            except ValueError:
                return self.default_eviction_days
        if not isinstance(days_old, (int, float)) or not math.isfinite(days_old):
            return self.default_eviction_days
        days = int(days_old)
        if days < 0:
            raise InvalidInputError("daysOld must be a non-negative integer")
        return days

    async def evict_older_than(self, days_old: Any = None) -> int:
        """Delete entries not accessed for ``days_old`` days (default 90)."""
        days = self._coerce_days(days_old)
        try:
            cutoff = self.clock() - timedelta(days=days)
        except OverflowError:
            # Older than any representable timestamp, so nothing qualifies
            cutoff = EARLIEST_CUTOFF
        removed = (
            await self._attempt("delete_older_than", self.store.delete_older_than(cutoff))
        ).unwrap()
        metrics.evicted_entries.inc(removed)
        logger.info("Evicted old cache entries", days_old=days, removed=removed)
        return removed

    async def clear_cache(self) -> int:
        removed = (await self._attempt("clear", self.store.clear())).unwrap()
        metrics.evicted_entries.inc(removed)
        logger.info("Cleared cache", removed=removed)
        return removed
