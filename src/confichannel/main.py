"""Main entry point for the ConfiChannel relay."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.middleware.cors import CORSMiddleware
from fastapi.middleware.gzip import GZipMiddleware
from fastapi.responses import JSONResponse

from confichannel.api.v1 import (
    channels_router,
    devices_router,
    invites_router,
    subscriptions_router,
)
from confichannel.api.v1.dependencies import error_event_for
from confichannel.core.errors import BadInputError, RelayError
from confichannel.core.settings import settings
from confichannel.services.bootstrap import run_startup_migrations
from confichannel.services.events import get_event_sink

logging.basicConfig(level=settings.log_level.upper())
logger = logging.getLogger(__name__)

# Initialize FastAPI app
app = FastAPI(
    title="ConfiChannel API",
    description="Relay for end-to-end encrypted messages between paired devices",
    version=settings.app_version,
)

# Add CORS middleware
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=settings.cors_allow_credentials,
    allow_methods=settings.cors_allow_methods,
    allow_headers=settings.cors_allow_headers,
    expose_headers=["X-Device-Token"],
)

# Add GZip middleware for compression
app.add_middleware(GZipMiddleware)

# Include API routers
app.include_router(devices_router, prefix="/api/v1")
app.include_router(channels_router, prefix="/api/v1")
app.include_router(invites_router, prefix="/api/v1")
app.include_router(subscriptions_router, prefix="/api/v1")


@app.exception_handler(RelayError)
async def relay_error_handler(request: Request, exc: RelayError) -> JSONResponse:
    """Render domain errors with their status and machine readable code."""
    if exc.status_code >= status.HTTP_500_INTERNAL_SERVER_ERROR:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.detail)
    return JSONResponse(
        status_code=exc.status_code,
        content={"detail": exc.detail, "code": exc.code},
    )


@app.exception_handler(RequestValidationError)
async def validation_error_handler(request: Request, exc: RequestValidationError) -> JSONResponse:
    """Report malformed requests as bad input rather than 422."""
    endpoint = request.scope.get("endpoint")
    event_name = error_event_for(getattr(endpoint, "__name__", ""))
    # Exception handlers sit outside dependency injection
    sink_factory = request.app.dependency_overrides.get(get_event_sink, get_event_sink)
    sink_factory().record(event_name, error_type=BadInputError.code)
    return JSONResponse(
        status_code=BadInputError.status_code,
        content={"detail": "Invalid request", "code": BadInputError.code},
    )


@app.on_event("startup")
async def on_startup() -> None:
    if settings.run_startup_migrations:
        run_startup_migrations()


@app.get("/health")
async def health_check() -> dict[str, str]:
    """Health check endpoint to verify the service is running."""
    return {"status": "ok"}


@app.get("/")
async def root() -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    return {
        "name": settings.app_name,
        "version": settings.app_version,
        "docs": "/docs",
    }


if __name__ == "__main__":
    import uvicorn
    uvicorn.run("confichannel.main:app", host="0.0.0.0", port=8000, reload=settings.debug)
