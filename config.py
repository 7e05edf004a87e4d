"""Service configuration for PromptCraft."""

from __future__ import annotations

from pathlib import Path
from typing import Any, List, Optional

import httpx
from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from constants import (
    DEFAULT_BUILTIN_ENDPOINT,
    DEFAULT_BUILTIN_MODEL,
    DEFAULT_BUILTIN_TIMEOUT,
    DEFAULT_BUILTIN_TITLE_MODEL,
    DEFAULT_CUSTOM_MODEL,
    DEFAULT_CUSTOM_TIMEOUT,
    DEFAULT_SETTINGS_PATH,
    DEFAULT_TEMPERATURE,
)


def _validate_base_url(value: str, name: str) -> str:
    """Validate a backend base URL."""
    try:
        url = httpx.URL(value)
    except Exception as exc:  # pylint: disable=broad-exception-caught
        raise ValueError(f"{name} is not a valid URL: {value}") from exc
    if not url.scheme or not url.host:
        raise ValueError(f"{name} must include scheme and host: {value}")
    return value


def _positive_float(value: Any, name: str, default: float) -> float:
    if value is None or value == "":
        return default
    try:
        parsed = float(value)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"{name} must be a number") from exc
    if parsed <= 0:
        raise ValueError(f"{name} must be > 0")
    return parsed


class Settings(BaseSettings):
    """Service configuration loaded from environment variables.

    All environment variables are prefixed with ``PROMPTCRAFT_``. For example,
    ``PROMPTCRAFT_BUILTIN_API_KEY`` provisions the credential of the built-in
    backend. User-facing backend choices (mode, API key, endpoint, model) are
    not configured here; they live in the persisted settings file at
    ``settings_path`` and are re-read on every call.
    """

    model_config = SettingsConfigDict(
        extra="ignore",
        env_prefix="PROMPTCRAFT_",
        protected_namespaces=(),
    )

    host: str = "127.0.0.1"
    port: int = 8765
    debug: bool = False
    allowed_origins: List[str] = Field(
        default_factory=lambda: ["http://localhost", "http://127.0.0.1"]
    )
    api_key: Optional[str] = None

    http_timeout: Optional[float] = 60.0
    max_connections: int = 50
    max_keepalive_connections: int = 20
    verify_ssl: bool = True
    max_request_bytes: Optional[int] = None

    settings_path: Path = Path(DEFAULT_SETTINGS_PATH)

    # The built-in backend is unusable until a server-side credential is provisioned.
    builtin_base: str = DEFAULT_BUILTIN_ENDPOINT
    builtin_api_key: Optional[str] = None
    builtin_model: str = DEFAULT_BUILTIN_MODEL
    builtin_title_model: str = DEFAULT_BUILTIN_TITLE_MODEL
    builtin_timeout: float = DEFAULT_BUILTIN_TIMEOUT

    custom_timeout: float = DEFAULT_CUSTOM_TIMEOUT
    default_custom_model: str = DEFAULT_CUSTOM_MODEL
    default_temperature: float = DEFAULT_TEMPERATURE

    # Share of undecodable data frames in one stream above which a warning is logged.
    frame_decode_warn_ratio: float = 0.05

    @field_validator("allowed_origins", mode="before")
    @classmethod
    def _parse_origins(cls, value: Any) -> List[str]:
        if value is None or value == "":
            return []
        if isinstance(value, list):
            return [origin.strip() for origin in value if str(origin).strip()]
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        raise ValueError("ALLOWED_ORIGINS must be a comma-separated string")

    @field_validator("http_timeout", mode="before")
    @classmethod
    def _validate_timeout(cls, value: Any) -> Optional[float]:
        if value is None or value == "":
            return 60.0
        try:
            parsed = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("HTTP_TIMEOUT must be a number") from exc
        if parsed == 0:
            return None
        if parsed < 0.1:
            raise ValueError("HTTP_TIMEOUT must be >= 0.1 or 0 for no limit")
        return parsed

    @field_validator("builtin_timeout", mode="before")
    @classmethod
    def _validate_builtin_timeout(cls, value: Any) -> float:
        return _positive_float(value, "BUILTIN_TIMEOUT", DEFAULT_BUILTIN_TIMEOUT)

    @field_validator("custom_timeout", mode="before")
    @classmethod
    def _validate_custom_timeout(cls, value: Any) -> float:
        return _positive_float(value, "CUSTOM_TIMEOUT", DEFAULT_CUSTOM_TIMEOUT)

    @field_validator("debug", "verify_ssl", mode="before")
    @classmethod
    def _parse_flag(cls, value: Any) -> bool:
        if isinstance(value, bool):
            return value
        if value is None:
            return False
        if isinstance(value, (int, float)):
            return bool(value)
        if isinstance(value, str):
            return value.strip().lower() in {"1", "true", "yes", "y", "on"}
        return False

    @field_validator("api_key", "builtin_api_key", mode="before")
    @classmethod
    def _normalize_secret(cls, value: Any) -> Optional[str]:
        if value is None:
            return None
        text = str(value).strip()
        return text or None

    @field_validator("builtin_base", mode="before")
    @classmethod
    def _normalize_builtin_base(cls, value: Any) -> str:
        if value is None or value == "":
            return DEFAULT_BUILTIN_ENDPOINT
        if not isinstance(value, str):
            raise ValueError("BUILTIN_BASE must be a string URL")
        return value.rstrip("/")

    @field_validator("settings_path", mode="before")
    @classmethod
    def _expand_settings_path(cls, value: Any) -> Path:
        if value is None or value == "":
            value = DEFAULT_SETTINGS_PATH
        return Path(str(value)).expanduser()

    @field_validator("port", mode="before")
    @classmethod
    def _normalize_port(cls, value: Any) -> int:
        if value is None or value == "":
            return 8765
        try:
            parsed = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("PORT must be an integer") from exc
        if parsed <= 0:
            raise ValueError("PORT must be > 0")
        return parsed

    @field_validator("max_connections", "max_keepalive_connections", mode="before")
    @classmethod
    def _normalize_connection_limits(cls, value: Any) -> int:
        if value is None or value == "":
            return 0
        try:
            parsed = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("Connection limits must be integers") from exc
        if parsed < 0:
            raise ValueError("Connection limits must be >= 0")
        return parsed

    @field_validator("max_request_bytes", mode="before")
    @classmethod
    def _normalize_max_request_bytes(cls, value: Any) -> Optional[int]:
        if value is None or value == "":
            return None
        try:
            parsed = int(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("MAX_REQUEST_BYTES must be an integer") from exc
        if parsed <= 0:
            raise ValueError("MAX_REQUEST_BYTES must be > 0")
        return parsed

    @field_validator("default_temperature", mode="before")
    @classmethod
    def _normalize_default_temperature(cls, value: Any) -> float:
        if value is None or value == "":
            return DEFAULT_TEMPERATURE
        try:
            parsed = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("DEFAULT_TEMPERATURE must be a number") from exc
        if parsed < 0 or parsed > 2:
            raise ValueError("DEFAULT_TEMPERATURE must be between 0 and 2")
        return parsed

    @field_validator("frame_decode_warn_ratio", mode="before")
    @classmethod
    def _normalize_warn_ratio(cls, value: Any) -> float:
        if value is None or value == "":
            return 0.05
        try:
            parsed = float(value)
        except (TypeError, ValueError) as exc:
            raise ValueError("FRAME_DECODE_WARN_RATIO must be a number") from exc
        if parsed < 0 or parsed > 1:
            raise ValueError("FRAME_DECODE_WARN_RATIO must be between 0 and 1")
        return parsed

    @model_validator(mode="after")
    def _finalize_bases(self) -> "Settings":
        _validate_base_url(self.builtin_base, "PROMPTCRAFT_BUILTIN_BASE")
        return self

    @property
    def builtin_configured(self) -> bool:
        """Return True when the built-in backend has a provisioned credential."""
        return bool(self.builtin_api_key)
