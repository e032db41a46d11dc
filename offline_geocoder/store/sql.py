"""SQLAlchemy-backed cache store (PostgreSQL in production, SQLite for local runs)."""

from datetime import datetime, timezone
from typing import Any, Optional

import structlog
from pydantic import ValidationError
from sqlalchemy import (
    JSON,
    Column,
    DateTime,
    Float,
    Index,
    Integer,
    String,
    delete,
    func,
    select,
    text,
    update,
)
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, create_async_engine
from sqlalchemy.orm import declarative_base

from ..exceptions import CacheStoreError
from ..models import LocationRecord
from .base import CacheRecord, CacheStore, Clock

logger = structlog.get_logger(__name__)

Base = declarative_base()


class GeoCacheEntry(Base):
    __tablename__ = "geo_cache"

    key = Column(String, primary_key=True)
    latitude = Column(Float, nullable=False)
    longitude = Column(Float, nullable=False)
    location = Column(JSON, nullable=False)
    raw_response = Column(JSON)
    hit_count = Column(Integer, server_default="1", nullable=False)
    created_at = Column(DateTime(timezone=True), nullable=False)
    last_accessed_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_geo_cache_coords", "latitude", "longitude"),
        Index("idx_geo_cache_last_accessed", "last_accessed_at"),
    )


geo_cache = GeoCacheEntry.__table__


def async_database_url(database_url: str) -> str:
    """Point plain driver URLs at the async drivers SQLAlchemy needs."""
    if database_url.startswith("postgresql://"):
        return database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
    if database_url.startswith("postgres://"):
        return database_url.replace("postgres://", "postgresql+asyncpg://", 1)
    if database_url.startswith("sqlite://"):
        return database_url.replace("sqlite://", "sqlite+aiosqlite://", 1)
    return database_url


def _as_utc(value: datetime) -> datetime:
    # SQLite hands back naive datetimes
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value


def _row_to_record(row) -> CacheRecord:
    return CacheRecord(
        key=row["key"],
        raw_latitude=row["latitude"],
        raw_longitude=row["longitude"],
        location=LocationRecord.model_validate(row["location"]),
        hit_count=row["hit_count"],
        created_at=_as_utc(row["created_at"]),
        last_accessed_at=_as_utc(row["last_accessed_at"]),
        raw_resolver_response=row["raw_response"],
    )


class SQLCacheStore(CacheStore):
    """Cache store on a SQL database through an async SQLAlchemy engine."""

    def __init__(
        self,
        database_url: str,
        clock: Optional[Clock] = None,
        echo: bool = False,
    ):
        super().__init__(clock)
        self.database_url = async_database_url(database_url)
        self.echo = echo
        self.engine: Optional[AsyncEngine] = None

    async def start(self) -> None:
        """Create the engine and the cache table if needed."""
        logger.info("Starting cache store", dialect=self.database_url.split(":", 1)[0])
        try:
            self.engine = create_async_engine(self.database_url, echo=self.echo)
            async with self.engine.begin() as conn:
                await conn.run_sync(Base.metadata.create_all)
        except (SQLAlchemyError, OSError) as e:
            logger.error("Failed to start cache store", error=str(e))
            raise CacheStoreError("start", str(e)) from e
        logger.info("Cache store started")

    async def stop(self) -> None:
        if self.engine:
            await self.engine.dispose()
            self.engine = None
            logger.info("Cache store stopped")

    def _require_engine(self, operation: str) -> AsyncEngine:
        if self.engine is None:
            raise CacheStoreError(operation, "cache store not started")
        return self.engine

    async def ping(self) -> bool:
        if self.engine is None:
            return False
        try:
            async with self.engine.connect() as conn:
                await conn.execute(text("SELECT 1"))
            return True
        except (SQLAlchemyError, OSError) as e:
            logger.warning("Cache store ping failed", error=str(e))
            return False

    async def get_and_touch(self, key: str) -> Optional[CacheRecord]:
        engine = self._require_engine("get_and_touch")
        stmt = (
            update(geo_cache)
            .where(geo_cache.c.key == key)
            .values(
                hit_count=geo_cache.c.hit_count + 1,
                last_accessed_at=self.clock(),
            )
            .returning(*geo_cache.c)
        )
        try:
            async with engine.begin() as conn:
                row = (await conn.execute(stmt)).mappings().first()
            return _row_to_record(row) if row else None
        except (SQLAlchemyError, OSError, ValidationError) as e:
            raise CacheStoreError("get_and_touch", str(e)) from e

    def _insert(self):
        if self.engine.dialect.name == "postgresql":
            return postgresql.insert(geo_cache)
        if self.engine.dialect.name == "sqlite":
            return sqlite.insert(geo_cache)
        raise CacheStoreError(
            "upsert", f"unsupported dialect {self.engine.dialect.name}"
        )

    async def upsert(
        self,
        key: str,
        coordinates: tuple[float, float],
        location: LocationRecord,
        raw_response: Any,
    ) -> None:
        engine = self._require_engine("upsert")
        latitude, longitude = coordinates
        now = self.clock()
        stmt = self._insert().values(
            key=key,
            latitude=latitude,
            longitude=longitude,
            location=location.model_dump(),
            raw_response=raw_response,
            hit_count=1,
            created_at=now,
            last_accessed_at=now,
        )
        # A concurrent writer may have created the key since our miss
        stmt = stmt.on_conflict_do_update(
            index_elements=[geo_cache.c.key],
            set_={
                "latitude": stmt.excluded.latitude,
                "longitude": stmt.excluded.longitude,
                "location": stmt.excluded.location,
                "raw_response": stmt.excluded.raw_response,
                "last_accessed_at": stmt.excluded.last_accessed_at,
            },
        )
        try:
            async with engine.begin() as conn:
                await conn.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            raise CacheStoreError("upsert", str(e)) from e

    async def _scalar(self, operation: str, stmt) -> Any:
        engine = self._require_engine(operation)
        try:
            async with engine.connect() as conn:
                return (await conn.execute(stmt)).scalar_one()
        except (SQLAlchemyError, OSError) as e:
            raise CacheStoreError(operation, str(e)) from e

    async def count_all(self) -> int:
        return await self._scalar(
            "count_all", select(func.count()).select_from(geo_cache)
        )

    async def sum_hit_counts(self) -> int:
        total = await self._scalar(
            "sum_hit_counts", select(func.coalesce(func.sum(geo_cache.c.hit_count), 0))
        )
        return int(total)

    async def _delete(self, operation: str, stmt) -> int:
        engine = self._require_engine(operation)
        try:
            async with engine.begin() as conn:
                result = await conn.execute(stmt)
        except (SQLAlchemyError, OSError) as e:
            raise CacheStoreError(operation, str(e)) from e
        return result.rowcount

    async def delete_older_than(self, cutoff: datetime) -> int:
        return await self._delete(
            "delete_older_than",
            delete(geo_cache).where(geo_cache.c.last_accessed_at < cutoff),
        )

    async def clear(self) -> int:
        return await self._delete("clear", delete(geo_cache))

    async def get(self, key: str) -> Optional[CacheRecord]:
        """Read a record without touching it."""
        engine = self._require_engine("get")
        try:
            async with engine.connect() as conn:
                row = (
                    await conn.execute(select(geo_cache).where(geo_cache.c.key == key))
                ).mappings().first()
            return _row_to_record(row) if row else None
        except (SQLAlchemyError, OSError, ValidationError) as e:
            raise CacheStoreError("get", str(e)) from e
