"""Shared FastAPI dependencies."""

from __future__ import annotations

from typing import cast

from fastapi import Request

from constants import ERROR_ENTITLEMENT_DENIED
from entitlement import EntitlementGate
from service import PromptService


class EntitlementDenied(Exception):
    """Raised when the entitlement gate refuses a request."""

    error = ERROR_ENTITLEMENT_DENIED


def get_service(request: Request) -> PromptService:
    """Return the shared prompt service."""
    return cast(PromptService, request.app.state.service)


async def require_entitlement(request: Request) -> None:
    """Consult the entitlement gate before a completion starts."""
    gate = cast(EntitlementGate, request.app.state.entitlement_gate)
    if not await gate.can_request():
        raise EntitlementDenied("request limit reached for the current plan")
