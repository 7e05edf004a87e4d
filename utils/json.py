"""JSON helpers backed by orjson."""

from __future__ import annotations

from typing import Any

import orjson

JSONDecodeError = orjson.JSONDecodeError


def dumps_bytes(obj: Any) -> bytes:
    """Serialize to JSON bytes."""
    return orjson.dumps(obj)


def loads(data: Any) -> Any:
    """Parse JSON from str/bytes."""
    return orjson.loads(data)


def sse_event(payload: Any) -> bytes:
    """Encode a payload as one SSE ``data:`` event."""
    return b"data: " + orjson.dumps(payload) + b"\n\n"


__all__ = ["JSONDecodeError", "dumps_bytes", "loads", "sse_event"]
