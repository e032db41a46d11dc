"""Cache store backends."""

from .base import CacheRecord, CacheStore, StoreResult
from .memory import InMemoryCacheStore
from .sql import SQLCacheStore


def create_cache_store(database_url: str, echo: bool = False) -> CacheStore:
    """Pick a backend from the configured database URL."""
    if not database_url:
        return InMemoryCacheStore()
    return SQLCacheStore(database_url, echo=echo)


__all__ = [
    "CacheRecord",
    "CacheStore",
    "InMemoryCacheStore",
    "SQLCacheStore",
    "StoreResult",
    "create_cache_store",
]
