"""Persisted user settings consumed by the backend selector.

The settings file is owned by the surrounding application (settings screen,
entitlement service). The core only reads it, and it reads it again on every
call so that a changed API key or endpoint applies to the very next request.
"""

from __future__ import annotations

import logging
import os
import tempfile
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Dict, Optional, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError, field_validator

from modes import OptimizeMode
from utils import json

logger = logging.getLogger(__name__)


class BackendKind(str, Enum):
    """Which backend family serves a request."""

    BUILTIN = "builtin"
    CUSTOM = "custom"


class PersistedSettings(BaseModel):
    """User-level backend preferences as stored on disk."""

    model_config = ConfigDict(extra="ignore", protected_namespaces=())

    backend: BackendKind = BackendKind.CUSTOM
    api_key: str = ""
    custom_endpoint: Optional[str] = None
    model_id: Optional[str] = None
    timeout: Optional[float] = Field(default=None, gt=0)
    preamble_overrides: Dict[OptimizeMode, str] = Field(default_factory=dict)
    client_id: Optional[str] = None
    plan: str = "free"

    @field_validator("custom_endpoint", "model_id", "client_id", mode="before")
    @classmethod
    def _blank_to_none(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("api_key", mode="before")
    @classmethod
    def _strip_key(cls, value: Any) -> str:
        if value is None:
            return ""
        return str(value).strip()

    def preamble_override(self, mode: OptimizeMode) -> Optional[str]:
        """Return the user's custom preamble for ``mode`` if one is stored."""
        return self.preamble_overrides.get(mode)


class SettingsStore(Protocol):
    """Read access to the externally owned settings."""

    def load(self) -> PersistedSettings:
        """Return the latest persisted settings."""


class JsonFileSettingsStore:
    """Settings persisted as a JSON document on disk."""

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    def load(self) -> PersistedSettings:
        """Read the file; missing or unreadable content yields defaults."""
        try:
            raw = self.path.read_bytes()
        except FileNotFoundError:
            return PersistedSettings()
        except OSError:
            logger.error("Cannot read settings file", extra={"path": str(self.path)}, exc_info=True)
            return PersistedSettings()
        if not raw.strip():
            return PersistedSettings()
        try:
            return PersistedSettings.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as exc:
            logger.error("Ignoring invalid settings file %s: %s", self.path, exc)
            return PersistedSettings()

    def update(self, **changes: Any) -> PersistedSettings:
        """Apply ``changes`` and rewrite the file atomically."""
        current = self.load().model_dump(mode="json")
        current.update(changes)
        updated = PersistedSettings.model_validate(current)
        self._write(updated)
        return updated

    def ensure_client_id(self) -> str:
        """Return the anonymous client identifier, creating it on first use."""
        current = self.load()
        if current.client_id:
            return current.client_id
        client_id = str(uuid.uuid4())
        self.update(client_id=client_id)
        logger.info("Generated anonymous client id")
        return client_id

    def _write(self, data: PersistedSettings) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=".settings-", suffix=".tmp")
        try:
            with os.fdopen(fd, "wb") as handle:
                handle.write(json.dumps_bytes(data.model_dump(mode="json")))
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise


__all__ = ["BackendKind", "JsonFileSettingsStore", "PersistedSettings", "SettingsStore"]
