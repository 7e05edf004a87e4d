"""Request middleware for authentication, request IDs, size limits and metrics."""

from __future__ import annotations

import logging
from typing import Awaitable, Callable
from uuid import uuid4

from fastapi import Request
from fastapi.responses import JSONResponse, Response

from logging_config import logger, request_id_ctx
from metrics import request_count, request_latency
from state import settings

AUTH_BEARER_PREFIX = "bearer "

PUBLIC_PATHS = {
    "/health",
    "/ready",
    "/metrics",
    "/ping",
    "/version",
}


def _scrub_path(path: str) -> str:
    if path.startswith("/v1/"):
        return "/v1/*"
    if path in PUBLIC_PATHS:
        return path
    return "other"


async def request_id_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Attach a request ID header to each request/response pair."""
    request_id = request.headers.get("X-Request-Id") or str(uuid4())
    token = request_id_ctx.set(request_id)
    request.state.logger = logging.LoggerAdapter(logger, {"request_id": request_id})
    try:
        response = await call_next(request)
    finally:
        request_id_ctx.reset(token)
    response.headers["X-Request-Id"] = request_id
    return response


async def api_key_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Require the service API key on non-public endpoints when one is configured."""
    if not settings.api_key or request.url.path in PUBLIC_PATHS:
        return await call_next(request)
    auth = request.headers.get("Authorization", "")
    if not auth:
        return JSONResponse(
            {"error": "unauthorized", "detail": "missing Authorization header"},
            401,
        )
    if auth.lower().startswith(AUTH_BEARER_PREFIX):
        token = auth[len(AUTH_BEARER_PREFIX):].strip()
    else:
        token = auth.strip()
    if token != settings.api_key:
        return JSONResponse({"error": "unauthorized", "detail": "invalid API key"}, 401)
    return await call_next(request)


async def request_size_limit_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Reject requests that exceed the configured max size."""
    limit = settings.max_request_bytes
    if not limit:
        return await call_next(request)
    size_header = request.headers.get("Content-Length")
    if size_header:
        try:
            size = int(size_header)
        except ValueError:
            return JSONResponse(
                {"error": "invalid_request", "detail": "invalid Content-Length"},
                400,
            )
    else:
        size = len(await request.body())
    if size > limit:
        return JSONResponse(
            {"error": "payload_too_large", "detail": f"payload exceeds {limit} bytes"},
            413,
        )
    return await call_next(request)


async def prometheus_middleware(
    request: Request, call_next: Callable[[Request], Awaitable[Response]]
) -> Response:
    """Collect request metrics."""
    method = request.method
    path = _scrub_path(request.url.path)
    with request_latency.labels(method=method, path=path).time():
        response = await call_next(request)
    request_count.labels(method=method, path=path, status=response.status_code).inc()
    return response
