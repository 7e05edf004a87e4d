"""Shared typing helpers."""

from __future__ import annotations

from typing import Any, AsyncContextManager, Mapping, Optional, Protocol

import httpx


class HTTPClientLike(Protocol):
    """Subset of ``httpx.AsyncClient`` used to reach completion backends."""

    async def request(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Any = None,
    ) -> httpx.Response:
        """Perform a buffered request."""

    def stream(
        self,
        method: str,
        url: str,
        *,
        json: Optional[Any] = None,
        headers: Optional[Mapping[str, str]] = None,
        timeout: Any = None,
    ) -> AsyncContextManager[httpx.Response]:
        """Open a streaming response context."""
