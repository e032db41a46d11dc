"""Health and metrics endpoints."""

from fastapi import APIRouter, Depends, Response
from fastapi.responses import JSONResponse
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from ..api.deps import get_geocoder_service
from ..health import readiness_probe
from ..models import HealthStatus
from ..service import GeocoderService

router = APIRouter(tags=["health"])


@router.get("/health", response_model=HealthStatus)
async def health(
    service: GeocoderService = Depends(get_geocoder_service),
) -> HealthStatus:
    """Resolver and cache store status."""
    return HealthStatus(
        status="ok",
        geocoder_initialized=service.is_initialized,
        store_connected=await service.store.ping(),
    )


@router.get("/healthz")
async def liveness() -> dict[str, str]:
    """
    Kubernetes liveness probe endpoint.
    Returns 200 if the service is alive.
    """
    return {"status": "ok"}


@router.get("/readyz")
async def readiness(service: GeocoderService = Depends(get_geocoder_service)):
    """
    Kubernetes readiness probe endpoint.
    Returns 503 until the resolver is loaded and the cache store answers.
    """
    result = await readiness_probe(service).run()
    if not result["ready"]:
        return JSONResponse(content=result, status_code=503)
    return result


@router.get("/metrics")
async def metrics() -> Response:
    """
    Prometheus metrics endpoint
    """
    return Response(content=generate_latest(), media_type=CONTENT_TYPE_LATEST)
