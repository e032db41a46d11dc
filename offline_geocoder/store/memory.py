"""In-process cache store used when no database is configured."""

import asyncio
from dataclasses import replace
from datetime import datetime
from typing import Any, Optional

import structlog

from ..models import LocationRecord
from .base import CacheRecord, CacheStore, Clock

logger = structlog.get_logger(__name__)


class InMemoryCacheStore(CacheStore):
    """Dict-backed store; every operation runs under one asyncio lock."""

    def __init__(self, clock: Optional[Clock] = None):
        super().__init__(clock)
        self._records: dict[str, CacheRecord] = {}
        self._lock = asyncio.Lock()

    async def start(self) -> None:
        logger.info("Using in-memory cache store")

    async def ping(self) -> bool:
        return True

    async def get_and_touch(self, key: str) -> Optional[CacheRecord]:
        async with self._lock:
            record = self._records.get(key)
            if record is None:
                return None
            record.hit_count += 1
            record.last_accessed_at = self.clock()
            return _snapshot(record)

    async def upsert(
        self,
        key: str,
        coordinates: tuple[float, float],
        location: LocationRecord,
        raw_response: Any,
    ) -> None:
        latitude, longitude = coordinates
        async with self._lock:
            now = self.clock()
            existing = self._records.get(key)
            if existing is None:
                self._records[key] = CacheRecord(
                    key=key,
                    raw_latitude=latitude,
                    raw_longitude=longitude,
                    location=location.model_copy(),
                    hit_count=1,
                    created_at=now,
                    last_accessed_at=now,
                    raw_resolver_response=raw_response,
                )
                return
            existing.raw_latitude = latitude
            existing.raw_longitude = longitude
            existing.location = location.model_copy()
            existing.raw_resolver_response = raw_response
            existing.last_accessed_at = now

    async def count_all(self) -> int:
        async with self._lock:
            return len(self._records)

    async def sum_hit_counts(self) -> int:
        async with self._lock:
            return sum(record.hit_count for record in self._records.values())

    async def delete_older_than(self, cutoff: datetime) -> int:
        async with self._lock:
            stale = [
                key
                for key, record in self._records.items()
                if record.last_accessed_at < cutoff
            ]
            for key in stale:
                del self._records[key]
            return len(stale)

    async def clear(self) -> int:
        async with self._lock:
            removed = len(self._records)
            self._records.clear()
            return removed

    async def get(self, key: str) -> Optional[CacheRecord]:
        """Read a record without touching it."""
        async with self._lock:
            record = self._records.get(key)
            return _snapshot(record) if record else None


def _snapshot(record: CacheRecord) -> CacheRecord:
    return replace(record, location=record.location.model_copy())
