"""HTTP surface tests using the app factory and mocked backends."""

# pylint: disable=duplicate-code

import asyncio
import json
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Dict, List, Optional

import httpx
import pytest

import main
import state
from constants import SERVICE_VERSION
from settings_store import JsonFileSettingsStore

DONE = b"data: [DONE]\n\n"


def _chunk(text: str) -> bytes:
    payload = {"choices": [{"delta": {"content": text}}]}
    return b"data: " + json.dumps(payload).encode() + b"\n\n"


def _message(text: str) -> Dict[str, Any]:
    return {"choices": [{"message": {"role": "assistant", "content": text}}]}


def _backend(request: httpx.Request) -> httpx.Response:
    if request.url.path.endswith("/models"):
        return httpx.Response(200, json={"data": [{"id": "gpt-test"}, {"id": "gpt-mini"}]})
    body = json.loads(request.content)
    if body["stream"]:
        return httpx.Response(200, content=_chunk("Hel") + _chunk("lo") + DONE)
    if "max_tokens" in body:
        return httpx.Response(200, json=_message("Greeting"))
    return httpx.Response(200, json=_message("Hello there"))


class DenyGate:  # pylint: disable=too-few-public-methods
    """Entitlement gate that refuses every request."""

    async def can_request(self) -> bool:
        """Always refuse."""
        return False


@asynccontextmanager
async def _app(
    store: JsonFileSettingsStore, handler=_backend, gate: Optional[Any] = None
) -> AsyncIterator[httpx.AsyncClient]:
    app = main.create_app()
    app.state.settings_store = store
    if gate is not None:
        app.state.entitlement_gate = gate
    backend = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    async with main.lifespan(app, client_factory=lambda: backend):
        transport = httpx.ASGITransport(app=app)
        async with httpx.AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


def _events(text: str) -> List[Any]:
    events: List[Any] = []
    for line in text.splitlines():
        if not line.startswith("data: "):
            continue
        payload = line[len("data: "):]
        events.append(payload if payload == "[DONE]" else json.loads(payload))
    return events


@pytest.mark.asyncio
async def test_health(store: JsonFileSettingsStore) -> None:
    """Ensure /health returns ok with a timestamp."""
    async with _app(store) as client:
        resp = await client.get("/health")
    assert resp.status_code == 200
    data = resp.json()
    assert data["status"] == "ok"
    assert "timestamp" in data
    assert resp.headers["X-Request-Id"]


@pytest.mark.asyncio
async def test_version(store: JsonFileSettingsStore) -> None:
    """Ensure /version reports the service version."""
    async with _app(store) as client:
        resp = await client.get("/version")
    assert resp.json() == {"version": SERVICE_VERSION}


@pytest.mark.asyncio
async def test_ready_when_configured(store: JsonFileSettingsStore) -> None:
    """Ensure /ready is ok when the active backend has a credential."""
    async with _app(store) as client:
        resp = await client.get("/ready")
    assert resp.status_code == 200
    assert resp.json()["backend"] == "custom"


@pytest.mark.asyncio
async def test_ready_without_key(store: JsonFileSettingsStore) -> None:
    """Ensure /ready reports a configuration error when no key is stored."""
    store.update(api_key="")
    async with _app(store) as client:
        resp = await client.get("/ready")
    assert resp.status_code == 503
    assert resp.json()["error"] == "configuration_error"


@pytest.mark.asyncio
async def test_optimize_streams_events(store: JsonFileSettingsStore) -> None:
    """Ensure deltas, the full text and the title are relayed as SSE."""
    async with _app(store) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi", "mode": "detailed"})
    assert resp.status_code == 200
    assert resp.headers["content-type"].startswith("text/event-stream")
    events = _events(resp.text)
    assert events[0] == {"type": "delta", "content": "Hel"}
    assert events[1] == {"type": "delta", "content": "lo"}
    assert events[2] == {"type": "done", "content": "Hello"}
    assert events[3] == {"type": "title", "title": "Greeting"}
    assert events[-1] == "[DONE]"


@pytest.mark.asyncio
async def test_optimize_stream_survives_title_crash(store: JsonFileSettingsStore) -> None:
    """Ensure an unexpected title failure still ends the stream with a fallback title."""

    def handler(request: httpx.Request) -> httpx.Response:
        if "max_tokens" in json.loads(request.content):
            raise RuntimeError("client closed")
        return _backend(request)

    async with _app(store, handler=handler) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi"})
    events = _events(resp.text)
    assert events[2] == {"type": "done", "content": "Hello"}
    assert events[3] == {"type": "title", "title": "Hello"}
    assert events[-1] == "[DONE]"


@pytest.mark.asyncio
async def test_optimize_without_title(store: JsonFileSettingsStore) -> None:
    """Ensure no title event is sent when titles are disabled."""
    async with _app(store) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi", "title": False})
    kinds = [event["type"] for event in _events(resp.text) if isinstance(event, dict)]
    assert kinds == ["delta", "delta", "done"]


@pytest.mark.asyncio
async def test_optimize_non_streaming(store: JsonFileSettingsStore) -> None:
    """Ensure stream=false returns one JSON body."""
    async with _app(store) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi", "stream": False})
    assert resp.status_code == 200
    assert resp.json() == {"content": "Hello there", "model": "gpt-test", "title": "Hello there"}


@pytest.mark.asyncio
async def test_optimize_non_streaming_not_delayed_by_title(store: JsonFileSettingsStore) -> None:
    """Ensure a stalled title backend never holds back the single-shot result."""
    stalled = asyncio.Event()

    async def handler(request: httpx.Request) -> httpx.Response:
        if "max_tokens" in json.loads(request.content):
            await stalled.wait()
        return _backend(request)

    async with _app(store, handler=handler) as client:
        resp = await asyncio.wait_for(
            client.post("/v1/optimize", json={"input": "hi", "stream": False}), timeout=1
        )
    assert resp.status_code == 200
    assert resp.json()["content"] == "Hello there"
    assert resp.json()["title"] == "Hello there"


@pytest.mark.asyncio
@pytest.mark.parametrize(
    ("status", "expected", "kind"),
    [(401, 401, "unauthorized"), (429, 429, "rate_limited"), (500, 502, "http_error")],
)
async def test_optimize_backend_errors(
    store: JsonFileSettingsStore, status: int, expected: int, kind: str
) -> None:
    """Ensure upstream failures map to HTTP statuses on both paths."""
    async with _app(store, handler=lambda request: httpx.Response(status)) as client:
        streamed = await client.post("/v1/optimize", json={"input": "hi"})
        single = await client.post("/v1/optimize", json={"input": "hi", "stream": False})
    for resp in (streamed, single):
        assert resp.status_code == expected
        assert resp.json()["error"] == kind


@pytest.mark.asyncio
async def test_optimize_missing_key(store: JsonFileSettingsStore) -> None:
    """Ensure a missing key is a configuration error before any backend call."""
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return httpx.Response(200)

    store.update(api_key="")
    async with _app(store, handler=handler) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi"})
    assert resp.status_code == 503
    assert resp.json()["error"] == "configuration_error"
    assert not calls


@pytest.mark.asyncio
async def test_optimize_empty_stream(store: JsonFileSettingsStore) -> None:
    """Ensure a stream with no content is a 502 empty_response."""
    async with _app(store, handler=lambda request: httpx.Response(200, content=DONE)) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi"})
    assert resp.status_code == 502
    assert resp.json()["error"] == "empty_response"


@pytest.mark.asyncio
async def test_optimize_rejects_blank_input(store: JsonFileSettingsStore) -> None:
    """Ensure empty input is rejected by validation."""
    async with _app(store) as client:
        resp = await client.post("/v1/optimize", json={"input": ""})
    assert resp.status_code == 422


@pytest.mark.asyncio
async def test_entitlement_denied(store: JsonFileSettingsStore) -> None:
    """Ensure a refused entitlement stops the call before the backend."""
    calls: List[httpx.Request] = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request)
        return _backend(request)

    async with _app(store, handler=handler, gate=DenyGate()) as client:
        resp = await client.post("/v1/optimize", json={"input": "hi"})
    assert resp.status_code == 402
    assert resp.json()["error"] == "entitlement_denied"
    assert not calls


@pytest.mark.asyncio
async def test_title_endpoint(store: JsonFileSettingsStore) -> None:
    """Ensure /v1/title returns the model title."""
    async with _app(store) as client:
        resp = await client.post("/v1/title", json={"text": "Hello there"})
    assert resp.json() == {"title": "Greeting"}


@pytest.mark.asyncio
async def test_title_endpoint_falls_back(store: JsonFileSettingsStore) -> None:
    """Ensure /v1/title never fails."""
    async with _app(store, handler=lambda request: httpx.Response(500)) as client:
        resp = await client.post("/v1/title", json={"text": "请优化此方案\n详情..."})
    assert resp.status_code == 200
    assert resp.json() == {"title": "请优化此方案"}


@pytest.mark.asyncio
async def test_models(store: JsonFileSettingsStore) -> None:
    """Ensure /v1/models lists the custom backend models."""
    async with _app(store) as client:
        resp = await client.get("/v1/models")
    assert resp.json() == {"models": ["gpt-test", "gpt-mini"]}


@pytest.mark.asyncio
async def test_validate_credentials(store: JsonFileSettingsStore) -> None:
    """Ensure the validation endpoint reports acceptance and rejection."""

    def handler(request: httpx.Request) -> httpx.Response:
        if request.headers.get("Authorization") == "Bearer sk-good":
            return httpx.Response(200, json={"data": []})
        return httpx.Response(401)

    async with _app(store, handler=handler) as client:
        good = await client.post("/v1/credentials/validate", json={"api_key": "sk-good"})
        bad = await client.post("/v1/credentials/validate", json={"api_key": "sk-bad"})
    assert good.json() == {"valid": True}
    assert bad.json() == {"valid": False}


@pytest.mark.asyncio
async def test_backend_info_hides_credential(store: JsonFileSettingsStore) -> None:
    """Ensure the active backend is described without its key."""
    async with _app(store) as client:
        resp = await client.get("/v1/backend")
    data = resp.json()
    assert data["kind"] == "custom"
    assert data["configured"] is True
    assert "sk-user-1" not in resp.text


@pytest.mark.asyncio
async def test_api_key_required(store: JsonFileSettingsStore, monkeypatch) -> None:
    """Ensure the service key guards non-public routes only."""
    monkeypatch.setattr(state.settings, "api_key", "service-key")
    async with _app(store) as client:
        missing = await client.get("/v1/backend")
        wrong = await client.get("/v1/backend", headers={"Authorization": "Bearer nope"})
        ok = await client.get("/v1/backend", headers={"Authorization": "Bearer service-key"})
        public = await client.get("/health")
    assert missing.status_code == 401
    assert wrong.status_code == 401
    assert ok.status_code == 200
    assert public.status_code == 200


@pytest.mark.asyncio
async def test_metrics(store: JsonFileSettingsStore) -> None:
    """Ensure Prometheus metrics are exposed."""
    async with _app(store) as client:
        await client.post("/v1/optimize", json={"input": "hi", "title": False})
        resp = await client.get("/metrics")
    assert resp.status_code == 200
    assert "promptcraft_completions_total" in resp.text


@pytest.mark.asyncio
async def test_request_size_limit(store: JsonFileSettingsStore, monkeypatch) -> None:
    """Ensure oversized bodies are rejected before routing."""
    monkeypatch.setattr(state.settings, "max_request_bytes", 16)
    async with _app(store) as client:
        resp = await client.post("/v1/optimize", json={"input": "x" * 64})
    assert resp.status_code == 413
    assert resp.json()["error"] == "payload_too_large"
