"""Inbound facade: optimize, title, credential validation and model listing."""

from __future__ import annotations

import asyncio
import logging
from typing import AsyncGenerator, List, Optional

from completion import CompletionClient, CompletionResult, cancel_quietly
from config import Settings
from modes import OptimizeMode
from request_builder import CompletionRequest
from selector import BackendConfig, BackendSelector
from settings_store import BackendKind, SettingsStore
from title import spawn_title_task
from utils.types import HTTPClientLike

logger = logging.getLogger(__name__)


class OptimizeSession:
    """One optimize call: content deltas followed by a detached title task.

    Iterate the session to receive deltas in arrival order. Once the stream
    completes successfully, ``result`` holds the assembled text and title
    derivation starts as its own task; ``await session.title()`` returns it.
    Title failures never surface here, and a stream that fails or is
    cancelled never starts title derivation.
    """

    def __init__(
        self,
        completion: CompletionClient,
        request: CompletionRequest,
        *,
        derive_title: bool = True,
    ) -> None:
        self.request = request
        self.result: Optional[CompletionResult] = None
        self._completion = completion
        self._derive_title = derive_title
        self._title_task: Optional["asyncio.Task[str]"] = None
        self._deltas = self._run()

    @property
    def config(self) -> BackendConfig:
        return self.request.config

    def __aiter__(self) -> "OptimizeSession":
        return self

    async def __anext__(self) -> str:
        return await self._deltas.__anext__()

    async def _run(self) -> AsyncGenerator[str, None]:
        parts: List[str] = []
        async for delta in self._completion.stream(self.request):
            parts.append(delta)
            yield delta
        self.result = CompletionResult(
            text="".join(parts), model=self.config.model_id, chunks=len(parts)
        )
        if self._derive_title:
            self._title_task = spawn_title_task(self._completion, self.config, self.result.text)

    async def collect(self) -> CompletionResult:
        """Drain the remaining deltas and return the assembled result."""
        async for _ in self:
            pass
        if self.result is None:
            raise RuntimeError("optimize session closed before the stream completed")
        return self.result

    @property
    def title_task(self) -> Optional["asyncio.Task[str]"]:
        return self._title_task

    async def title(self) -> Optional[str]:
        """Wait for the derived title, or None when none was started."""
        if self._title_task is None:
            return None
        return await self._title_task

    def cancel(self) -> None:
        """Cancel title derivation if it is still running."""
        if self._title_task is not None and not self._title_task.done():
            self._title_task.cancel()

    async def aclose(self) -> None:
        """Stop the stream, release its connection and cancel the title task."""
        await self._deltas.aclose()
        if self._title_task is not None:
            await cancel_quietly(self._title_task)


class PromptService:
    """Entry point used by the HTTP surface and the CLI.

    Every call re-reads the settings store through the backend selector, so a
    credential or endpoint change applies to the next call without a restart.
    """

    def __init__(
        self,
        client: HTTPClientLike,
        store: SettingsStore,
        settings: Settings,
        *,
        completion: Optional[CompletionClient] = None,
    ) -> None:
        self.store = store
        self.selector = BackendSelector(store, settings)
        self.completion = completion or CompletionClient(
            client, decode_warn_ratio=settings.frame_decode_warn_ratio
        )

    def build_request(
        self,
        raw_input: str,
        mode: OptimizeMode,
        backend: Optional[BackendKind] = None,
    ) -> CompletionRequest:
        """Capture the backend snapshot and mode preamble for one call."""
        selection = self.selector.select()
        config = selection.config
        if backend is not None and backend is not config.kind:
            config = self.selector.with_kind(backend, selection.persisted)
        return CompletionRequest(
            raw_input=raw_input,
            mode=mode,
            config=config,
            preamble_override=selection.persisted.preamble_override(mode),
        )

    def optimize(
        self,
        raw_input: str,
        mode: OptimizeMode,
        *,
        backend: Optional[BackendKind] = None,
        derive_title: bool = True,
    ) -> OptimizeSession:
        """Start an optimization; configuration is captured before this returns."""
        request = self.build_request(raw_input, mode, backend)
        return OptimizeSession(self.completion, request, derive_title=derive_title)

    async def complete(
        self,
        raw_input: str,
        mode: OptimizeMode,
        *,
        backend: Optional[BackendKind] = None,
    ) -> CompletionResult:
        """Single-shot optimization without streaming."""
        return await self.completion.complete(self.build_request(raw_input, mode, backend))

    async def generate_title(self, text: str) -> str:
        return await self.completion.generate_title(self.selector.current(), text)

    async def validate_credential(self, key: str) -> bool:
        config = self.selector.with_kind(BackendKind.CUSTOM)
        return await self.completion.validate_credential(config, key)

    async def list_models(self) -> List[str]:
        return await self.completion.list_models(self.selector.current())

    def current_config(self) -> BackendConfig:
        return self.selector.current()
