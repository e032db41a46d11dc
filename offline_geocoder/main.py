"""Main FastAPI application for the offline geocoder service."""

import time
from collections.abc import AsyncGenerator
from contextlib import asynccontextmanager

import structlog
from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

from . import __version__, metrics
from .api.deps import geocoder_service
from .config import settings
from .exceptions import (
    CacheStoreError,
    GeocoderError,
    GeocoderNotInitializedError,
    InvalidInputError,
)
from .logging_config import configure_logging
from .routers import geocode, system

configure_logging(settings)

logger = structlog.get_logger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncGenerator[None, None]:
    """Application lifespan handler for startup and shutdown."""
    logger.info("Starting offline geocoder", version=__version__)

    try:
        await geocoder_service.store.start()
    except CacheStoreError as e:
        # Lookups still work without the cache
        logger.error("Failed to start cache store, continuing without cache", error=str(e))

    await geocoder_service.init()
    logger.info("Geocoder service ready")

    yield

    logger.info("Shutting down offline geocoder")
    try:
        await geocoder_service.store.stop()
    except Exception as e:
        logger.error("Error during shutdown", error=str(e))


app = FastAPI(
    title="Offline Geocoder",
    description="Reverse geocoding with a cache-aside resolution layer",
    version=__version__,
    lifespan=lifespan,
)

app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origin_list,
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)

app.include_router(geocode.router)
app.include_router(system.router)


@app.get("/", status_code=status.HTTP_200_OK)
async def root() -> JSONResponse:
    """Root endpoint with basic service information."""
    return JSONResponse(
        status_code=status.HTTP_200_OK,
        content={
            "service": settings.service_name,
            "version": __version__,
            "endpoints": {
                "geocode": "GET /geocode?lat=XX&lng=XX",
                "batch": "POST /geocode/batch",
                "name": "GET /geocode/name?lat=XX&lng=XX",
                "short": "GET /geocode/short?lat=XX&lng=XX",
                "stats": "GET /geocode/stats",
                "evict": "DELETE /geocode/cache?daysOld=90",
                "clear": "DELETE /geocode/cache/all",
                "health": "/health",
                "liveness": "/healthz",
                "readiness": "/readyz",
                "metrics": "/metrics",
            },
        },
    )


if settings.enable_metrics:

    @app.middleware("http")
    async def add_metrics_middleware(request: Request, call_next):
        """Middleware to collect HTTP request metrics."""
        method = request.method
        path = request.url.path
        start_time = time.time()

        response = await call_next(request)

        duration = time.time() - start_time
        metrics.http_request_duration.labels(method=method, endpoint=path).observe(duration)
        metrics.http_requests_total.labels(
            method=method,
            endpoint=path,
            status_code=response.status_code,
        ).inc()

        return response


def error_response(status_code: int, message: str) -> JSONResponse:
    return JSONResponse(
        status_code=status_code,
        content={"success": False, "error": message},
    )


@app.exception_handler(InvalidInputError)
async def invalid_input_handler(request: Request, exc: InvalidInputError):
    return error_response(status.HTTP_400_BAD_REQUEST, str(exc))


@app.exception_handler(RequestValidationError)
async def request_validation_handler(request: Request, exc: RequestValidationError):
    return error_response(status.HTTP_400_BAD_REQUEST, "Invalid request payload")


@app.exception_handler(GeocoderNotInitializedError)
async def not_initialized_handler(request: Request, exc: GeocoderNotInitializedError):
    return error_response(status.HTTP_503_SERVICE_UNAVAILABLE, str(exc))


@app.exception_handler(GeocoderError)
async def geocoder_error_handler(request: Request, exc: GeocoderError):
    logger.error(
        "Geocode error",
        path=request.url.path,
        method=request.method,
        error=str(exc),
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, str(exc))


@app.exception_handler(Exception)
async def general_exception_handler(request: Request, exc: Exception):
    """Handle unexpected exceptions."""
    logger.error(
        "Unhandled exception",
        path=request.url.path,
        method=request.method,
        error=str(exc),
        exc_info=True,
    )
    return error_response(status.HTTP_500_INTERNAL_SERVER_ERROR, "Internal server error")


if __name__ == "__main__":
    import uvicorn

    uvicorn.run(
        "offline_geocoder.main:app",
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=False,
    )
