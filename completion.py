"""Completion client: streaming and single-shot calls against one backend snapshot."""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass, replace
from typing import Any, AsyncGenerator, List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

import metrics
from client import fetch_json
from constants import BUILTIN_MODELS, BUILTIN_NOT_CONFIGURED, CUSTOM_KEY_MISSING
from errors import CompletionError
from frames import FrameKind, FrameParser
from logging_config import mask_secret, request_id_ctx
from request_builder import (
    CompletionRequest,
    build_chat_request,
    build_models_request,
    build_title_request,
)
from selector import BackendConfig
from settings_store import BackendKind
from title import clean_title, fallback_title
from transport import open_event_stream
from utils.types import HTTPClientLike

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CompletionResult:
    """Text assembled from one completion, in arrival order."""

    text: str
    model: str
    chunks: int = 0


class _Message(BaseModel):
    model_config = ConfigDict(extra="allow")
    content: Optional[str] = None


class _Choice(BaseModel):
    model_config = ConfigDict(extra="allow")
    message: _Message


class ChatCompletion(BaseModel):
    """Typed view of a non-streaming ``chat.completion`` body."""

    model_config = ConfigDict(extra="allow")
    choices: List[_Choice]


class ModelEntry(BaseModel):
    model_config = ConfigDict(extra="allow")
    id: str


class ModelsPayload(BaseModel):
    """Typed response payload for ``GET /models``."""

    model_config = ConfigDict(extra="allow")
    data: List[ModelEntry] = Field(default_factory=list)


def ensure_configured(config: BackendConfig) -> None:
    """Raise a configuration error before any I/O when a call cannot succeed."""
    if config.has_credential:
        return
    if config.kind is BackendKind.BUILTIN:
        raise CompletionError.configuration_error(BUILTIN_NOT_CONFIGURED)
    raise CompletionError.configuration_error(CUSTOM_KEY_MISSING)


def _message_content(payload: Any) -> str:
    try:
        parsed = ChatCompletion.model_validate(payload)
    except ValidationError as exc:
        raise CompletionError.invalid_response("unexpected completion shape") from exc
    if not parsed.choices:
        raise CompletionError.empty_response()
    content = parsed.choices[0].message.content
    if not content:
        raise CompletionError.empty_response()
    return content


class CompletionClient:
    """Issue completion calls over a shared HTTP client.

    The client holds no per-call state; every method takes the backend
    snapshot it should use, so concurrent calls never share buffers or
    configuration.
    """

    def __init__(
        self,
        client: HTTPClientLike,
        *,
        decode_warn_ratio: float = 0.05,
        chunk_size: Optional[int] = None,
    ) -> None:
        self._client = client
        self._decode_warn_ratio = decode_warn_ratio
        self._chunk_size = chunk_size

    async def stream(self, request: CompletionRequest) -> AsyncGenerator[str, None]:
        """Yield content deltas in arrival order until ``[DONE]`` or close."""
        config = request.config
        backend = config.kind.value
        try:
            ensure_configured(config)
            wire = build_chat_request(request, stream=True)
            logger.info(
                "Streaming completion",
                extra={
                    "backend": backend,
                    "model": config.model_id,
                    "mode": request.mode.value,
                    "credential": mask_secret(config.credential),
                    "request_id_ctx": request_id_ctx.get("-"),
                },
            )
            parser = FrameParser()
            async with open_event_stream(
                self._client, wire, timeout=config.timeout, chunk_size=self._chunk_size
            ) as events:
                async for line in events.lines():
                    frame = parser.feed(line)
                    if frame.kind is FrameKind.DONE:
                        break
                    if frame.kind is FrameKind.CONTENT:
                        yield frame.text
            self._report_frames(parser, backend)
            if parser.content_frames == 0:
                raise CompletionError.empty_response()
        except CompletionError as exc:
            metrics.record_outcome(backend, "stream", exc.kind.value)
            raise
        metrics.record_outcome(backend, "stream", "ok")

    async def collect(self, request: CompletionRequest) -> CompletionResult:
        """Run the streaming call and return the assembled result."""
        parts: List[str] = []
        async for delta in self.stream(request):
            parts.append(delta)
        return CompletionResult(text="".join(parts), model=request.config.model_id, chunks=len(parts))

    async def complete(self, request: CompletionRequest) -> CompletionResult:
        """Single-shot completion decoded from one buffered body."""
        config = request.config
        backend = config.kind.value
        try:
            ensure_configured(config)
            payload = await fetch_json(
                self._client, build_chat_request(request, stream=False), timeout=config.timeout
            )
            text = _message_content(payload)
        except CompletionError as exc:
            metrics.record_outcome(backend, "single", exc.kind.value)
            raise
        metrics.record_outcome(backend, "single", "ok")
        return CompletionResult(text=text, model=config.model_id, chunks=1)

    async def generate_title(self, config: BackendConfig, text: str) -> str:
        """Ask the backend for a short title; fall back to a local one on any failure."""
        if not text.strip():
            return fallback_title(text)
        try:
            ensure_configured(config)
            payload = await fetch_json(
                self._client, build_title_request(config, text), timeout=config.timeout
            )
            title = clean_title(_message_content(payload))
            if not title:
                raise CompletionError.empty_response()
        except CompletionError as exc:
            logger.warning("Title request failed, using fallback: %s", exc)
            metrics.title_fallbacks.inc()
            return fallback_title(text)
        except Exception:  # pylint: disable=broad-exception-caught
            logger.exception("Unexpected title failure, using fallback")
            metrics.title_fallbacks.inc()
            return fallback_title(text)
        logger.debug("Generated title: %s", title)
        return title

    async def list_models(self, config: BackendConfig) -> List[str]:
        """Return the model identifiers the backend offers."""
        if config.kind is BackendKind.BUILTIN:
            return list(BUILTIN_MODELS)
        ensure_configured(config)
        payload = await fetch_json(self._client, build_models_request(config), timeout=config.timeout)
        try:
            parsed = ModelsPayload.model_validate(payload)
        except ValidationError as exc:
            raise CompletionError.invalid_response("unexpected model list shape") from exc
        return [entry.id for entry in parsed.data]

    async def validate_credential(self, config: BackendConfig, key: str) -> bool:
        """Return True when ``key`` can list models on the custom backend."""
        if config.kind is BackendKind.BUILTIN:
            return True
        key = key.strip()
        if not key:
            return False
        try:
            await self.list_models(replace(config, credential=key))
        except CompletionError as exc:
            logger.info("Credential rejected: %s", exc.kind.value)
            return False
        return True

    def _report_frames(self, parser: FrameParser, backend: str) -> None:
        metrics.stream_frames.labels(backend=backend).inc(parser.data_lines)
        if not parser.decode_failures:
            return
        metrics.frame_decode_failures.labels(backend=backend).inc(parser.decode_failures)
        if parser.decode_failure_ratio > self._decode_warn_ratio:
            logger.warning(
                "Skipped %d of %d undecodable stream frames",
                parser.decode_failures,
                parser.data_lines,
                extra={"backend": backend, "request_id_ctx": request_id_ctx.get("-")},
            )


async def cancel_quietly(task: "asyncio.Task[Any]") -> None:
    """Cancel ``task`` and wait for it to settle."""
    if task.done():
        return
    task.cancel()
    await asyncio.gather(task, return_exceptions=True)


__all__ = [
    "ChatCompletion",
    "CompletionClient",
    "CompletionResult",
    "ModelsPayload",
    "cancel_quietly",
    "ensure_configured",
]
