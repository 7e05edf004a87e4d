"""Title derivation for completed optimizations."""

from __future__ import annotations

import asyncio
import logging
from typing import TYPE_CHECKING

from constants import FALLBACK_TITLE_CHARS, FALLBACK_TITLE_SUFFIX, TITLE_MAX_CHARS

if TYPE_CHECKING:
    from completion import CompletionClient
    from selector import BackendConfig

logger = logging.getLogger(__name__)


def fallback_title(text: str) -> str:
    """Derive a title locally from the first non-empty line of ``text``."""
    first_line = next((line for line in text.split("\n") if line), text)
    trimmed = first_line.strip()
    if len(trimmed) <= FALLBACK_TITLE_CHARS:
        return trimmed
    return trimmed[:FALLBACK_TITLE_CHARS] + FALLBACK_TITLE_SUFFIX


def clean_title(raw: str) -> str:
    """Strip quotes and whitespace from a model-written title and cap its length."""
    title = raw.strip().replace('"', "").replace("'", "").strip()
    if len(title) > TITLE_MAX_CHARS:
        title = title[:TITLE_MAX_CHARS].rstrip()
    return title


def spawn_title_task(
    client: "CompletionClient", config: "BackendConfig", text: str
) -> "asyncio.Task[str]":
    """Start title derivation as its own task; the task never fails."""
    task = asyncio.create_task(client.generate_title(config, text), name="derive-title")
    task.add_done_callback(_log_cancelled)
    return task


def _log_cancelled(task: "asyncio.Task[str]") -> None:
    if task.cancelled():
        logger.debug("title derivation cancelled")
