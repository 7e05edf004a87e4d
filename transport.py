"""Event-stream transport: open a streaming POST and expose it as text lines."""

from __future__ import annotations

import asyncio
import codecs
import logging
import re
from contextlib import asynccontextmanager
from typing import AsyncGenerator, AsyncIterator, List, Optional

import httpx

from errors import CompletionError, classify_exception, classify_status
from logging_config import request_id_ctx
from request_builder import WireRequest
from utils.types import HTTPClientLike

logger = logging.getLogger(__name__)

_NEWLINE = re.compile(r"\r\n|\r|\n")


class LineBuffer:
    """Reassemble text lines from byte chunks that ignore line boundaries.

    Accepts ``\\n``, ``\\r\\n`` and ``\\r`` terminators. A ``\\r`` at the end of
    a chunk is held back so a ``\\r\\n`` split across two reads yields one line,
    and UTF-8 sequences split across reads are decoded incrementally.
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._pending = ""

    def feed(self, chunk: bytes) -> List[str]:
        text = self._pending + self._decoder.decode(chunk)
        carry = ""
        if text.endswith("\r"):
            text, carry = text[:-1], "\r"
        parts = _NEWLINE.split(text)
        self._pending = parts.pop() + carry
        return parts

    def flush(self) -> Optional[str]:
        """Return the unterminated tail, if any, once the body has ended."""
        tail = (self._pending + self._decoder.decode(b"", final=True)).rstrip("\r")
        self._pending = ""
        return tail or None


class EventStream:
    """Lazy, single-pass line view over a streaming response."""

    def __init__(self, response: httpx.Response, *, chunk_size: Optional[int] = None) -> None:
        self.response = response
        self._chunk_size = chunk_size
        self._consumed = False

    async def lines(self) -> AsyncGenerator[str, None]:
        if self._consumed:
            raise RuntimeError("event stream can only be iterated once")
        self._consumed = True
        buffer = LineBuffer()
        async for chunk in self.response.aiter_bytes(self._chunk_size):
            for line in buffer.feed(chunk):
                yield line
        tail = buffer.flush()
        if tail is not None:
            yield tail


async def _raise_for_status(response: httpx.Response, url: str) -> None:
    error = classify_status(response.status_code)
    if error is None:
        return
    body = ""
    try:
        await response.aread()
        body = response.text[:500]
    except httpx.HTTPError:
        pass
    logger.error(
        "Backend stream error",
        extra={
            "url": url,
            "status": response.status_code,
            "body": body,
            "request_id_ctx": request_id_ctx.get("-"),
        },
    )
    raise error


@asynccontextmanager
async def open_event_stream(
    client: HTTPClientLike,
    wire: WireRequest,
    *,
    timeout: Optional[float],
    chunk_size: Optional[int] = None,
) -> AsyncIterator[EventStream]:
    """Open ``wire`` as a stream and yield its line view.

    A non-2xx status is classified before any line is produced. Connection and
    read failures, including those raised while the caller iterates lines, are
    re-raised as :class:`CompletionError`. Leaving the context, for whatever
    reason, closes the response and releases the connection.
    """
    request_id = request_id_ctx.get("-")
    try:
        async with client.stream(
            wire.method,
            wire.url,
            json=wire.body,
            headers=wire.headers,
            timeout=httpx.Timeout(timeout) if timeout else httpx.USE_CLIENT_DEFAULT,
        ) as response:
            await _raise_for_status(response, wire.url)
            yield EventStream(response, chunk_size=chunk_size)
    except asyncio.CancelledError:
        logger.info(
            "Backend stream cancelled",
            extra={"url": wire.url, "request_id_ctx": request_id},
        )
        raise
    except CompletionError:
        raise
    except (httpx.HTTPError, httpx.InvalidURL) as exc:
        error = classify_exception(exc)
        logger.error(
            "Backend stream failed: %s",
            error.kind.value,
            extra={"url": wire.url, "request_id_ctx": request_id},
            exc_info=logger.isEnabledFor(logging.DEBUG),
        )
        raise error from exc


__all__ = ["EventStream", "LineBuffer", "open_event_stream"]
