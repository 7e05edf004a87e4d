"""Backend selection: turn the latest persisted settings into a call snapshot."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

from config import Settings
from constants import DEFAULT_CUSTOM_ENDPOINT
from settings_store import BackendKind, PersistedSettings, SettingsStore


@dataclass(frozen=True)
class BackendConfig:
    """Immutable backend snapshot owned by a single call."""

    kind: BackendKind
    endpoint: str
    credential: str = field(repr=False)
    model_id: str
    timeout: float
    title_model: str
    temperature: float
    client_id: str = "anonymous"
    plan: str = "free"

    @property
    def has_credential(self) -> bool:
        return bool(self.credential)


def select_backend(persisted: PersistedSettings, settings: Settings) -> BackendConfig:
    """Build the backend snapshot for one call. Performs no I/O and never fails.

    A missing credential is not an error here; it is reported as a
    configuration error when the request is made.
    """
    if persisted.backend is BackendKind.BUILTIN:
        return BackendConfig(
            kind=BackendKind.BUILTIN,
            endpoint=settings.builtin_base.rstrip("/"),
            credential=settings.builtin_api_key or "",
            model_id=settings.builtin_model,
            timeout=persisted.timeout or settings.builtin_timeout,
            title_model=settings.builtin_title_model,
            temperature=settings.default_temperature,
            client_id=persisted.client_id or "anonymous",
            plan=persisted.plan,
        )

    model_id = persisted.model_id or settings.default_custom_model
    return BackendConfig(
        kind=BackendKind.CUSTOM,
        endpoint=(persisted.custom_endpoint or DEFAULT_CUSTOM_ENDPOINT).rstrip("/"),
        credential=persisted.api_key,
        model_id=model_id,
        timeout=persisted.timeout or settings.custom_timeout,
        title_model=model_id,
        temperature=settings.default_temperature,
        client_id=persisted.client_id or "anonymous",
        plan=persisted.plan,
    )


@dataclass(frozen=True)
class Selection:
    """Backend snapshot plus the persisted values captured alongside it."""

    config: BackendConfig
    persisted: PersistedSettings


class BackendSelector:
    """Re-reads the settings store on every call; holds no cached selection."""

    def __init__(self, store: SettingsStore, settings: Settings) -> None:
        self._store = store
        self._settings = settings

    def select(self) -> Selection:
        persisted = self._store.load()
        return Selection(config=select_backend(persisted, self._settings), persisted=persisted)

    def current(self) -> BackendConfig:
        """Return a fresh snapshot of the active backend."""
        return self.select().config

    def with_kind(
        self,
        kind: Optional[BackendKind],
        persisted: Optional[PersistedSettings] = None,
    ) -> BackendConfig:
        """Return a snapshot for ``kind`` regardless of the persisted choice.

        Pass ``persisted`` to derive it from settings already loaded for the
        same call instead of reading the store again.
        """
        if persisted is None:
            persisted = self._store.load()
        if kind is not None and kind is not persisted.backend:
            persisted = persisted.model_copy(update={"backend": kind})
        return select_backend(persisted, self._settings)
