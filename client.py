"""HTTP client factory and the buffered (non-streaming) backend call."""

from __future__ import annotations

import logging
from typing import Any

import httpx

from config import Settings
from errors import CompletionError, classify_exception, classify_status
from logging_config import request_id_ctx
from request_builder import WireRequest
from utils import json
from utils.types import HTTPClientLike

logger = logging.getLogger(__name__)


def default_client_factory(settings: Settings) -> httpx.AsyncClient:
    """Create the shared HTTP client for the service.

    The transport never retries; retry policy belongs to the caller.
    """
    timeout = httpx.Timeout(settings.http_timeout) if settings.http_timeout is not None else None
    limits = httpx.Limits(
        max_keepalive_connections=settings.max_keepalive_connections or None,
        max_connections=settings.max_connections or None,
    )
    transport = httpx.AsyncHTTPTransport(retries=0, verify=settings.verify_ssl, http2=True)
    return httpx.AsyncClient(timeout=timeout, limits=limits, transport=transport)


async def fetch_json(
    client: HTTPClientLike,
    wire: WireRequest,
    *,
    timeout: float | None,
) -> Any:
    """Perform ``wire`` with a single buffered read and decode the JSON body.

    Status and connection failures go through the same classifier as the
    streaming path.
    """
    request_id = request_id_ctx.get("-")
    try:
        response = await client.request(
            wire.method,
            wire.url,
            json=wire.body,
            headers=wire.headers,
            timeout=httpx.Timeout(timeout) if timeout else httpx.USE_CLIENT_DEFAULT,
        )
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        error = classify_exception(exc)
        logger.error(
            "Backend request failed: %s",
            error.kind.value,
            extra={"url": wire.url, "request_id_ctx": request_id},
            exc_info=logger.isEnabledFor(logging.DEBUG),
        )
        raise error from exc

    error = classify_status(response.status_code)
    if error is not None:
        logger.error(
            "Backend request error",
            extra={
                "url": wire.url,
                "status": response.status_code,
                "body": response.text[:500],
                "request_id_ctx": request_id,
            },
        )
        raise error

    try:
        return json.loads(response.content)
    except json.JSONDecodeError as exc:
        logger.error(
            "Backend returned invalid JSON",
            extra={"url": wire.url, "response_body": response.text[:500], "request_id_ctx": request_id},
        )
        raise CompletionError.invalid_response("body is not JSON") from exc
