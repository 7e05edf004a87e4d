"""FastAPI entry point for the PromptCraft service."""

from __future__ import annotations

import asyncio
import importlib
import os
from contextlib import asynccontextmanager
from typing import Any, AsyncGenerator, Callable, Optional

import httpx
import uvicorn
from fastapi import FastAPI, Request
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse

import state
from client import default_client_factory
from constants import SERVICE_VERSION
from deps import EntitlementDenied
from entitlement import AllowAllGate
from errors import CompletionError
from logging_config import logger
from middleware import (
    api_key_middleware,
    prometheus_middleware,
    request_id_middleware,
    request_size_limit_middleware,
)
from routes import backend_router, health_router, optimize_router, version_router
from service import PromptService
from settings_store import JsonFileSettingsStore
from utils.factory import coerce_client_factory

try:
    UVLOOP = importlib.import_module("uvloop")
except ModuleNotFoundError:
    UVLOOP = None


def install_uvloop() -> bool:
    """Install uvloop if available for faster event loops."""
    if UVLOOP is not None and not os.getenv("DISABLE_UVLOOP"):
        try:
            UVLOOP.install()
            logger.info("uvloop enabled")
            return True
        except (RuntimeError, ValueError):
            return False
    return False


async def _init_client(
    fastapi_app: FastAPI,
    client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
) -> httpx.AsyncClient:
    """Create the shared HTTP client using the configured factory."""
    client_factory_attr = getattr(fastapi_app.state, "client_factory", None)
    resolved_factory = coerce_client_factory(
        client_factory or client_factory_attr,
        default_factory=lambda: default_client_factory(state.settings),
        logger=logger,
    )
    return await resolved_factory()


async def _close_client(client: httpx.AsyncClient) -> None:
    """Close the client, bounded by the configured timeout."""
    try:
        timeout = state.settings.http_timeout or 5.0
        await asyncio.wait_for(client.aclose(), timeout=timeout)
    except Exception:  # pylint: disable=broad-exception-caught
        logger.exception("Error closing HTTP client")


@asynccontextmanager
async def lifespan(
    fastapi_app: FastAPI,
    client_factory: Optional[Callable[[], httpx.AsyncClient]] = None,
) -> AsyncGenerator[None, None]:
    """Manage startup and shutdown of the shared client and service."""
    try:
        client = await _init_client(fastapi_app, client_factory=client_factory)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        logger.error("Failed to create HTTP client", exc_info=True)
        raise RuntimeError("Failed to start PromptCraft") from exc

    store = getattr(fastapi_app.state, "settings_store", None)
    if store is None:
        store = JsonFileSettingsStore(state.settings.settings_path)
        fastapi_app.state.settings_store = store
    if isinstance(store, JsonFileSettingsStore):
        try:
            store.ensure_client_id()
        except OSError:
            logger.warning("Could not persist client id to %s", store.path, exc_info=True)

    if getattr(fastapi_app.state, "entitlement_gate", None) is None:
        fastapi_app.state.entitlement_gate = AllowAllGate()
    fastapi_app.state.client = client
    fastapi_app.state.service = PromptService(client, store, state.settings)

    logger.info("PromptCraft started", extra={"version": SERVICE_VERSION})
    logger.info(
        "Built-in backend %s",
        "configured" if state.settings.builtin_configured else "not configured",
        extra={"base_url": state.settings.builtin_base},
    )
    try:
        yield
    finally:
        await _close_client(client)


async def completion_error_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render a classified backend failure.

    FastAPI registers handlers against a generic ``Exception`` signature, so
    anything that is not a ``CompletionError`` gets a generic 500 body.
    """
    if isinstance(exc, CompletionError):
        return JSONResponse(
            {"error": exc.kind.value, "detail": exc.detail},
            status_code=exc.http_status,
        )
    return JSONResponse({"error": "unknown_error", "detail": str(exc)}, status_code=500)


async def entitlement_denied_handler(_request: Request, exc: Exception) -> JSONResponse:
    """Render an entitlement refusal."""
    return JSONResponse({"error": EntitlementDenied.error, "detail": str(exc)}, status_code=402)


def create_app() -> FastAPI:
    """Factory that builds the FastAPI instance with all routers & middleware."""
    fastapi_app = FastAPI(
        title="PromptCraft",
        version=SERVICE_VERSION,
        lifespan=lifespan,
    )
    fastapi_app.add_middleware(
        CORSMiddleware,
        allow_origins=state.settings.allowed_origins,
        allow_methods=["GET", "POST"],
        allow_headers=["*"],
        allow_credentials=False,
    )

    fastapi_app.middleware("http")(request_size_limit_middleware)
    fastapi_app.middleware("http")(request_id_middleware)
    fastapi_app.middleware("http")(api_key_middleware)
    fastapi_app.middleware("http")(prometheus_middleware)

    fastapi_app.include_router(version_router)
    fastapi_app.include_router(health_router)
    fastapi_app.include_router(optimize_router)
    fastapi_app.include_router(backend_router)

    fastapi_app.add_exception_handler(CompletionError, completion_error_handler)
    fastapi_app.add_exception_handler(EntitlementDenied, entitlement_denied_handler)

    return fastapi_app


app = create_app()


def run(host: Optional[str] = None, port: Optional[int] = None) -> None:
    """Start the Uvicorn server."""
    use_uvloop = install_uvloop()
    app_target: Any = app
    try:
        uvicorn.run(
            app_target,
            host=host or state.settings.host,
            port=port or state.settings.port,
            timeout_graceful_shutdown=1,
            loop="uvloop" if use_uvloop else "asyncio",
        )
    except KeyboardInterrupt:
        pass


__all__ = ["app", "create_app", "lifespan", "run"]


if __name__ == "__main__":
    run()
