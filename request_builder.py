"""Wire payloads for OpenAI-compatible chat completion backends."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Optional

from constants import TITLE_MAX_TOKENS, TITLE_TEMPERATURE, USER_AGENT
from modes import TITLE_PREAMBLE, TITLE_USER_TEMPLATE, OptimizeMode, effective_preamble
from selector import BackendConfig
from settings_store import BackendKind


@dataclass(frozen=True)
class CompletionRequest:
    """One optimization request, frozen at call start."""

    raw_input: str
    mode: OptimizeMode
    config: BackendConfig
    preamble_override: Optional[str] = None

    @property
    def preamble(self) -> str:
        return effective_preamble(self.mode, self.preamble_override)


@dataclass(frozen=True)
class WireRequest:
    """HTTP request description handed to a transport."""

    method: str
    url: str
    headers: Dict[str, str] = field(repr=False)
    body: Optional[Dict[str, Any]] = None


def build_headers(config: BackendConfig) -> Dict[str, str]:
    """Return headers for ``config``.

    Custom backends authenticate with a bearer token. The built-in backend is
    addressed anonymously; the client id and plan only drive quota attribution.
    """
    headers = {
        "Content-Type": "application/json",
        "Accept": "application/json",
        "User-Agent": USER_AGENT,
    }
    if config.kind is BackendKind.CUSTOM:
        headers["Authorization"] = f"Bearer {config.credential}"
    else:
        headers["X-User-ID"] = config.client_id
        headers["X-User-Plan"] = config.plan
    return headers


def _url(config: BackendConfig, path: str) -> str:
    return f"{config.endpoint.rstrip('/')}{path}"


def build_chat_request(request: CompletionRequest, *, stream: bool) -> WireRequest:
    """Build the chat completion call for an optimization request."""
    config = request.config
    headers = build_headers(config)
    if stream:
        headers["Accept"] = "text/event-stream"
    body = {
        "model": config.model_id,
        "messages": [
            {"role": "system", "content": request.preamble},
            {"role": "user", "content": request.raw_input},
        ],
        "stream": stream,
        "temperature": config.temperature,
    }
    return WireRequest("POST", _url(config, "/chat/completions"), headers, body)


def build_title_request(config: BackendConfig, content: str) -> WireRequest:
    """Build the short, non-streaming title call."""
    body = {
        "model": config.title_model,
        "messages": [
            {"role": "system", "content": TITLE_PREAMBLE},
            {"role": "user", "content": TITLE_USER_TEMPLATE.format(content=content)},
        ],
        "stream": False,
        "temperature": TITLE_TEMPERATURE,
        "max_tokens": TITLE_MAX_TOKENS,
    }
    return WireRequest("POST", _url(config, "/chat/completions"), build_headers(config), body)


def build_models_request(config: BackendConfig) -> WireRequest:
    """Build the model enumeration call."""
    headers = build_headers(config)
    headers.pop("Content-Type", None)
    return WireRequest("GET", _url(config, "/models"), headers)
