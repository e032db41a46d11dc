"""Readiness probing for the resolver and the cache store."""

import asyncio
import time
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Awaitable, Callable, Optional

import structlog

from .service import GeocoderService

logger = structlog.get_logger(__name__)

Check = Callable[[], Awaitable[bool]]


@dataclass
class CheckResult:
    name: str
    healthy: bool
    duration_ms: float
    error: Optional[str] = None

    def to_dict(self) -> dict[str, Any]:
        result = {
            "name": self.name,
            "status": "healthy" if self.healthy else "unhealthy",
            "duration_ms": round(self.duration_ms, 3),
        }
        if self.error:
            result["error"] = self.error
        return result


class ReadinessProbe:
    """Runs named async checks concurrently, each bounded by ``timeout`` seconds."""

    def __init__(self, checks: dict[str, Check], timeout: float = 2.0):
        self.checks = checks
        self.timeout = timeout

    async def _run(self, name: str, check: Check) -> CheckResult:
        started = time.perf_counter()
        error = None
        try:
            healthy = bool(await asyncio.wait_for(check(), self.timeout))
        except asyncio.TimeoutError:
            healthy, error = False, f"timed out after {self.timeout}s"
        except Exception as e:
            healthy, error = False, str(e)
        if error:
            logger.warning("Readiness check failed", check=name, error=error)
        return CheckResult(
            name=name,
            healthy=healthy,
            duration_ms=(time.perf_counter() - started) * 1000,
            error=error,
        )

    async def run(self) -> dict[str, Any]:
        results = await asyncio.gather(
            *(self._run(name, check) for name, check in self.checks.items())
        )
        ready = all(result.healthy for result in results)
        return {
            "ready": ready,
            "status": "healthy" if ready else "unhealthy",
            "checks": [result.to_dict() for result in results],
            "timestamp": datetime.now(timezone.utc).isoformat(),
        }


def readiness_probe(service: GeocoderService, timeout: float = 2.0) -> ReadinessProbe:
    """Ready once the resolver has loaded and the cache store answers a ping."""

    async def resolver_loaded() -> bool:
        return service.is_initialized

    return ReadinessProbe(
        {"resolver": resolver_loaded, "cache_store": service.store.ping},
        timeout=timeout,
    )
