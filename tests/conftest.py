"""Shared fixtures. Environment is pinned before any service module is imported."""

import os
import tempfile
from pathlib import Path

import pytest

_SETTINGS_DIR = tempfile.mkdtemp(prefix="promptcraft-tests-")
os.environ["PROMPTCRAFT_SETTINGS_PATH"] = os.path.join(_SETTINGS_DIR, "settings.json")
os.environ.pop("PROMPTCRAFT_API_KEY", None)
os.environ.pop("PROMPTCRAFT_BUILTIN_API_KEY", None)
os.environ.pop("PROMPTCRAFT_MAX_REQUEST_BYTES", None)

# pylint: disable=wrong-import-position
from config import Settings
from settings_store import JsonFileSettingsStore


@pytest.fixture
def settings(tmp_path: Path) -> Settings:
    """Service settings with a provisioned built-in credential."""
    return Settings(
        builtin_api_key="builtin-secret",
        builtin_base="http://builtin.test/v1",
        settings_path=tmp_path / "settings.json",
    )


@pytest.fixture
def store(tmp_path: Path) -> JsonFileSettingsStore:
    """Settings store backed by a temporary file, preloaded with a custom backend."""
    store = JsonFileSettingsStore(tmp_path / "settings.json")
    store.update(
        backend="custom",
        api_key="sk-user-1",
        custom_endpoint="http://custom.test/v1",
        model_id="gpt-test",
        client_id="client-123",
    )
    return store
