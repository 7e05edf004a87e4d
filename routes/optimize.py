"""Optimization and title endpoints."""

from __future__ import annotations

import logging
from typing import AsyncGenerator, Optional

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse, Response, StreamingResponse
from pydantic import BaseModel, ConfigDict, Field

from constants import SSE_DONE, STREAM_CONTENT_TYPE
from deps import get_service, require_entitlement
from errors import CompletionError
from modes import OptimizeMode
from service import OptimizeSession, PromptService
from settings_store import BackendKind
from title import fallback_title
from utils.json import sse_event

logger = logging.getLogger(__name__)

router = APIRouter()

_DONE_EVENT = f"data: {SSE_DONE}\n\n".encode()


class OptimizeBody(BaseModel):  # pylint: disable=too-few-public-methods
    """Optimization request body."""

    model_config = ConfigDict(extra="ignore")
    input: str = Field(min_length=1)
    mode: OptimizeMode = OptimizeMode.CONCISE
    backend: Optional[BackendKind] = None
    stream: bool = True
    title: bool = True


class TitleBody(BaseModel):  # pylint: disable=too-few-public-methods
    """Title request body."""

    text: str


async def _relay(session: OptimizeSession, first: Optional[str]) -> AsyncGenerator[bytes, None]:
    """Re-encode session deltas as SSE events for the caller."""
    try:
        if first is not None:
            yield sse_event({"type": "delta", "content": first})
        async for delta in session:
            yield sse_event({"type": "delta", "content": delta})
        text = session.result.text if session.result else ""
        yield sse_event({"type": "done", "content": text})
        derived = await session.title()
        if derived is not None:
            yield sse_event({"type": "title", "title": derived})
        yield _DONE_EVENT
    except CompletionError as exc:
        logger.warning("optimize stream failed: %s", exc)
        yield sse_event({"type": "error", "error": exc.kind.value, "detail": exc.detail})
        yield _DONE_EVENT
    finally:
        await session.aclose()


@router.post("/v1/optimize", dependencies=[Depends(require_entitlement)])
async def optimize(
    body: OptimizeBody,
    service: PromptService = Depends(get_service),
) -> Response:
    """Optimize text, streaming deltas as SSE unless ``stream`` is false."""
    logger.debug(
        "optimize request",
        extra={"mode": body.mode.value, "stream": body.stream, "backend": body.backend},
    )
    if not body.stream:
        request = service.build_request(body.input, body.mode, body.backend)
        result = await service.completion.complete(request)
        # Model titles come from /v1/title; the body is never held back for one.
        derived = fallback_title(result.text) if body.title else None
        return JSONResponse({"content": result.text, "model": result.model, "title": derived})

    session = service.optimize(
        body.input, body.mode, backend=body.backend, derive_title=body.title
    )
    # Pull the first delta here so status and configuration errors become HTTP errors.
    try:
        first: Optional[str] = await session.__anext__()
    except StopAsyncIteration:
        first = None
    return StreamingResponse(_relay(session, first), media_type=STREAM_CONTENT_TYPE)


@router.post("/v1/title")
async def title(body: TitleBody, service: PromptService = Depends(get_service)) -> JSONResponse:
    """Derive a title for finished text. Never fails; falls back locally."""
    return JSONResponse({"title": await service.generate_title(body.text)})
