"""Factory helpers for the service's shared collaborators."""

from __future__ import annotations

import inspect
from typing import Any, Awaitable, Callable

import httpx

from logging_config import request_id_ctx


def coerce_client_factory(
    factory: Any,
    *,
    default_factory: Callable[[], httpx.AsyncClient],
    logger,
) -> Callable[[], Awaitable[httpx.AsyncClient]]:
    """Validate or wrap an HTTP client factory.

    The argument may be ``None`` or a callable returning an ``httpx.AsyncClient``,
    including async callables. Tests pass factories whose clients are backed by
    ``httpx.MockTransport``.
    """
    if not callable(factory):
        async def default_wrapper() -> httpx.AsyncClient:
            return default_factory()

        return default_wrapper

    async def wrapped_factory() -> httpx.AsyncClient:
        result = factory()
        if inspect.isawaitable(result):
            result = await result
        if not isinstance(result, httpx.AsyncClient):
            logger.error(
                "client_factory returned unexpected type %s",
                type(result).__name__,
                extra={"request_id_ctx": request_id_ctx.get("-")},
            )
            raise TypeError("client_factory must return httpx.AsyncClient")
        return result

    return wrapped_factory
