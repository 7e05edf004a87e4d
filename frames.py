"""SSE frame parsing for streamed chat completions."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from constants import SSE_DATA_FIELD, SSE_DONE, SSE_FIELDS
from errors import CompletionError
from utils import json

logger = logging.getLogger(__name__)

_DATA_PREFIX = SSE_DATA_FIELD + ":"


class FrameKind(str, Enum):
    CONTENT = "content"
    DONE = "done"
    IGNORED = "ignored"


@dataclass(frozen=True)
class StreamFrame:
    """One parsed line of the event stream."""

    kind: FrameKind
    text: str = ""
    malformed: bool = False


DONE = StreamFrame(FrameKind.DONE)
IGNORED = StreamFrame(FrameKind.IGNORED)
MALFORMED = StreamFrame(FrameKind.IGNORED, malformed=True)


class _Delta(BaseModel):
    model_config = ConfigDict(extra="allow")
    content: Optional[str] = None


class _StreamChoice(BaseModel):
    model_config = ConfigDict(extra="allow")
    delta: _Delta = Field(default_factory=_Delta)


class StreamChunk(BaseModel):
    """Typed view of a ``chat.completion.chunk`` payload."""

    model_config = ConfigDict(extra="allow")
    choices: List[_StreamChoice] = Field(default_factory=list)

    def delta_content(self) -> Optional[str]:
        if not self.choices:
            return None
        return self.choices[0].delta.content


def parse_line(line: str) -> StreamFrame:
    """Classify one line of the stream.

    ``data: [DONE]`` ends the stream. A ``data:`` line carrying a chunk with
    non-empty ``choices[0].delta.content`` is content. Undecodable data lines
    come back as malformed ignored frames; everything else is ignored.
    """
    if not line.startswith(_DATA_PREFIX):
        return IGNORED
    payload = line[len(_DATA_PREFIX):]
    if payload.startswith(" "):
        payload = payload[1:]
    if payload.strip() == SSE_DONE:
        return DONE
    if not payload.strip():
        return IGNORED
    try:
        chunk = StreamChunk.model_validate(json.loads(payload))
    except (json.JSONDecodeError, ValidationError):
        logger.debug("stream skipped undecodable data: %s", payload[:200])
        return MALFORMED
    content = chunk.delta_content()
    if not content:
        return IGNORED
    return StreamFrame(FrameKind.CONTENT, content)


def _is_sse_line(line: str) -> bool:
    if line.startswith(":"):
        return True
    name = line.partition(":")[0]
    return name in SSE_FIELDS


class FrameParser:
    """Stateful wrapper around :func:`parse_line` for a single stream.

    Tracks per-stream counts and rejects a body whose first meaningful line is
    not event-stream framing at all (an HTML error page, a bare JSON object).
    """

    def __init__(self) -> None:
        self.data_lines = 0
        self.content_frames = 0
        self.decode_failures = 0
        self.done = False
        self._framed = False

    def feed(self, line: str) -> StreamFrame:
        if self.done:
            raise RuntimeError("stream already terminated")
        if not self._framed and line.strip():
            if not _is_sse_line(line):
                raise CompletionError.invalid_response(
                    f"expected an event stream, got {line[:80]!r}"
                )
            self._framed = True
        frame = parse_line(line)
        if line.startswith(_DATA_PREFIX):
            self.data_lines += 1
        if frame.kind is FrameKind.DONE:
            self.done = True
        elif frame.kind is FrameKind.CONTENT:
            self.content_frames += 1
        elif frame.malformed:
            self.decode_failures += 1
        return frame

    @property
    def decode_failure_ratio(self) -> float:
        if not self.data_lines:
            return 0.0
        return self.decode_failures / self.data_lines


__all__ = [
    "DONE",
    "FrameKind",
    "FrameParser",
    "IGNORED",
    "StreamChunk",
    "StreamFrame",
    "parse_line",
]
