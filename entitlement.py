"""Entitlement gate consulted before a completion is started.

The decision itself belongs to the subscription service; the core only asks.
"""

from __future__ import annotations

from typing import Protocol


class EntitlementGate(Protocol):
    """Answers whether the current user may make another request."""

    async def can_request(self) -> bool:
        """Return True when a request is allowed."""


class AllowAllGate:  # pylint: disable=too-few-public-methods
    """Gate used when no subscription service is attached."""

    async def can_request(self) -> bool:
        return True
