"""Tests for environment-driven settings."""
from __future__ import annotations

from pathlib import Path

import pytest

from business_finder.config import ConfigurationError, DEFAULT_CALLS_DIR, load_settings


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in (
        "SERPAPI_API_KEY",
        "BF_FIRESTORE_PROJECT",
        "BF_FIRESTORE_CREDENTIALS",
        "GOOGLE_APPLICATION_CREDENTIALS",
        "BF_CALLS_COLLECTION",
        "BF_CALLS_FORCE_FILE",
        "BF_CALLS_DIR",
        "BF_SEARCH_TIMEOUT_SECONDS",
        "BF_STORE_TIMEOUT_SECONDS",
        "BF_ENV",
        "BF_LOG_LEVEL",
    ):
        monkeypatch.delenv(name, raising=False)


def test_missing_store_configuration_fails_fast():
    with pytest.raises(ConfigurationError, match="BF_FIRESTORE_PROJECT"):
        load_settings()


def test_store_not_required_when_disabled():
    settings = load_settings(require_store=False)
    assert settings.firestore_project is None
    assert settings.storage_backend == "firestore"


def test_firestore_settings(monkeypatch):
    monkeypatch.setenv("BF_FIRESTORE_PROJECT", "finder-prod")
    monkeypatch.setenv("GOOGLE_APPLICATION_CREDENTIALS", "/secrets/sa.json")
    monkeypatch.setenv("SERPAPI_API_KEY", "  serp-key  ")
    monkeypatch.setenv("BF_CALLS_COLLECTION", "calls_v2")

    settings = load_settings()

    assert settings.firestore_project == "finder-prod"
    assert settings.firestore_credentials == "/secrets/sa.json"
    assert settings.serpapi_api_key == "serp-key"
    assert settings.search_configured is True
    assert settings.calls_collection == "calls_v2"
    assert settings.storage_backend == "firestore"


def test_file_backend_defaults(monkeypatch):
    monkeypatch.setenv("BF_CALLS_FORCE_FILE", "1")

    settings = load_settings()

    assert settings.storage_backend == "file"
    assert settings.calls_dir == DEFAULT_CALLS_DIR
    assert settings.search_configured is False
    assert settings.search_timeout_seconds == 15.0
    assert settings.store_timeout_seconds == 10.0
    assert settings.environment == "local"


def test_file_backend_directory_override(monkeypatch, tmp_path):
    monkeypatch.setenv("BF_CALLS_FORCE_FILE", "1")
    monkeypatch.setenv("BF_CALLS_DIR", str(tmp_path / "calls"))

    settings = load_settings()

    assert settings.calls_dir == Path(tmp_path / "calls")


@pytest.mark.parametrize("value", ["soon", "0", "-3"])
def test_invalid_search_timeout(monkeypatch, value):
    monkeypatch.setenv("BF_CALLS_FORCE_FILE", "1")
    monkeypatch.setenv("BF_SEARCH_TIMEOUT_SECONDS", value)

    with pytest.raises(ConfigurationError, match="BF_SEARCH_TIMEOUT_SECONDS"):
        load_settings()


def test_store_timeout_override(monkeypatch):
    monkeypatch.setenv("BF_FIRESTORE_PROJECT", "finder-prod")
    monkeypatch.setenv("BF_STORE_TIMEOUT_SECONDS", "2.5")

    assert load_settings().store_timeout_seconds == 2.5


@pytest.mark.parametrize("value", ["never", "0"])
def test_invalid_store_timeout(monkeypatch, value):
    monkeypatch.setenv("BF_CALLS_FORCE_FILE", "1")
    monkeypatch.setenv("BF_STORE_TIMEOUT_SECONDS", value)

    with pytest.raises(ConfigurationError, match="BF_STORE_TIMEOUT_SECONDS"):
        load_settings()
