"""Service information and health probes."""

from __future__ import annotations

import logging

from fastapi import APIRouter, Request, status
from fastapi.responses import JSONResponse

from seedkey_backend.api.v1.dependencies import StoresDep
from seedkey_backend.core.errors import SeedKeyError

logger = logging.getLogger(__name__)

router = APIRouter(tags=["system"])


@router.get("/")
async def root(request: Request) -> dict[str, str]:
    """Root endpoint with basic information about the API."""
    app_settings = request.app.state.settings
    return {
        "name": app_settings.app_name,
        "version": app_settings.app_version,
        "docs": "/docs",
    }


@router.get("/health/live")
async def liveness() -> dict[str, str]:
    """The process is up and serving requests."""
    return {"status": "ok"}


@router.get("/health/ready")
async def readiness(stores: StoresDep) -> JSONResponse:
    """The backing store answers a trivial query."""
    try:
        healthy = stores.is_healthy()
    except SeedKeyError as e:
        logger.warning("Readiness check failed: %s", e)
        healthy = False
    if not healthy:
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "unavailable"},
        )
    return JSONResponse(content={"status": "ok"})


@router.get("/health/startup")
async def startup(request: Request) -> JSONResponse:
    """Startup hooks have finished."""
    if not getattr(request.app.state, "started", False):
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content={"status": "starting"},
        )
    return JSONResponse(content={"status": "ok"})
