"""Tests for service settings validation."""

import importlib
import warnings
from pathlib import Path

import pytest
from pydantic import ValidationError

import config
from config import Settings


def test_defaults(tmp_path: Path) -> None:
    """Ensure defaults leave the built-in backend unconfigured."""
    settings = Settings(settings_path=tmp_path / "s.json", builtin_api_key=None)
    assert not settings.builtin_configured
    assert settings.custom_timeout == 30.0
    assert settings.builtin_timeout == 60.0


def test_blank_secret_is_unset() -> None:
    """Ensure whitespace-only credentials count as missing."""
    settings = Settings(builtin_api_key="   ", api_key="")
    assert settings.builtin_api_key is None
    assert settings.api_key is None


def test_builtin_base_trailing_slash() -> None:
    """Ensure the built-in base URL is normalised."""
    assert Settings(builtin_base="http://host.test/v1/").builtin_base == "http://host.test/v1"


def test_builtin_base_requires_host() -> None:
    """Ensure a base URL without scheme or host is rejected."""
    with pytest.raises(ValidationError):
        Settings(builtin_base="not-a-url")


@pytest.mark.parametrize("value", ["0", "-3", "soon"])
def test_invalid_backend_timeout(value: str) -> None:
    """Ensure backend timeouts must be positive numbers."""
    with pytest.raises(ValidationError):
        Settings(custom_timeout=value)


def test_http_timeout_zero_disables_limit() -> None:
    """Ensure 0 disables the shared client timeout."""
    assert Settings(http_timeout="0").http_timeout is None


def test_settings_path_expands_user() -> None:
    """Ensure the settings path expands the home directory."""
    assert "~" not in str(Settings(settings_path="~/prompt.json").settings_path)


def test_flags_from_strings() -> None:
    """Ensure boolean flags accept common spellings."""
    assert Settings(debug="yes").debug is True
    assert Settings(verify_ssl="off").verify_ssl is False


def test_settings_class_defines_without_warnings() -> None:
    """Ensure field names do not collide with pydantic's protected namespaces."""
    with warnings.catch_warnings(record=True) as caught:
        warnings.simplefilter("always")
        importlib.reload(config)
    assert not [w for w in caught if "protected namespace" in str(w.message)]
