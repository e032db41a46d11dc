"""Cache store contract shared by all backends."""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Callable, Generic, Optional, TypeVar

from ..models import LocationRecord

T = TypeVar("T")

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


@dataclass
class CacheRecord:
    """One cached location, keyed by its quantized coordinates."""

    key: str
    raw_latitude: float
    raw_longitude: float
    location: LocationRecord
    hit_count: int
    created_at: datetime
    last_accessed_at: datetime
    raw_resolver_response: Any = None


@dataclass(frozen=True)
class StoreResult(Generic[T]):
    """Outcome of a store call: either a value or the error that prevented it."""

    value: Optional[T] = None
    error: Optional[Exception] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    def unwrap(self) -> T:
        if self.error is not None:
            raise self.error
        return self.value


class CacheStore(ABC):
    """Persistent key -> CacheRecord store with hit counting."""

    def __init__(self, clock: Optional[Clock] = None):
        self.clock = clock or utc_now

    async def start(self) -> None:
        """Open connections and prepare storage."""

    async def stop(self) -> None:
        """Release connections."""

    @abstractmethod
    async def ping(self) -> bool:
        """Return True when the backing store is reachable."""

    @abstractmethod
    async def get_and_touch(self, key: str) -> Optional[CacheRecord]:
        """Atomically bump the hit counter and access time; return the updated record."""

    @abstractmethod
    async def upsert(
        self,
        key: str,
        coordinates: tuple[float, float],
        location: LocationRecord,
        raw_response: Any,
    ) -> None:
        """Insert a new record, or refresh an existing one without resetting its counter."""

    @abstractmethod
    async def count_all(self) -> int:
        """Number of records."""

    @abstractmethod
    async def sum_hit_counts(self) -> int:
        """Sum of hit counters over all records."""

    @abstractmethod
    async def delete_older_than(self, cutoff: datetime) -> int:
        """Delete records last accessed strictly before ``cutoff``; return how many."""

    @abstractmethod
    async def clear(self) -> int:
        """Delete every record; return how many."""
