"""Health, readiness and metrics endpoints."""

from __future__ import annotations

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response
from prometheus_client import CONTENT_TYPE_LATEST, generate_latest

from completion import ensure_configured
from constants import SERVICE_VERSION
from deps import get_service
from errors import CompletionError
from service import PromptService
from utils.time import now

router = APIRouter()


@router.get("/health")
async def health() -> JSONResponse:
    """Return liveness status and timestamp."""
    return JSONResponse({"status": "ok", "service": "promptcraft", "timestamp": now()})


@router.get("/ping")
async def ping() -> JSONResponse:
    """Return a basic liveness response."""
    return JSONResponse({"status": "ok"})


@router.get("/ready")
async def ready(service: PromptService = Depends(get_service)) -> JSONResponse:
    """Report whether the active backend is usable, without contacting it."""
    config = service.current_config()
    try:
        ensure_configured(config)
    except CompletionError as exc:
        return JSONResponse(
            {"status": "unavailable", "error": exc.kind.value, "detail": exc.detail},
            status_code=503,
        )
    return JSONResponse(
        {
            "status": "ok",
            "backend": config.kind.value,
            "version": SERVICE_VERSION,
            "timestamp": now(),
        }
    )


@router.get("/metrics")
async def metrics() -> Response:
    """Return Prometheus metrics."""
    return Response(generate_latest(), media_type=CONTENT_TYPE_LATEST)
