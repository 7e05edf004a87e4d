"""Routes module for the PromptCraft service."""

from routes.backend import router as backend_router
from routes.health import router as health_router
from routes.optimize import router as optimize_router
from routes.version import router as version_router

__all__ = ["backend_router", "health_router", "optimize_router", "version_router"]
