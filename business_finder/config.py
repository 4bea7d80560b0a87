"""Configuration helpers for Business Finder."""
from __future__ import annotations

from dataclasses import dataclass
import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


PROJECT_ROOT = Path(__file__).resolve().parent.parent
DEFAULT_CALLS_DIR = PROJECT_ROOT / "calls_log"


class ConfigurationError(RuntimeError):
    """Raised when required configuration is missing."""


@dataclass(slots=True)
class Settings:
    """Runtime configuration for the API and CLI."""

    serpapi_api_key: Optional[str] = None
    firestore_project: Optional[str] = None
    firestore_credentials: Optional[str] = None
    calls_collection: str = "phone_calls"
    force_file_storage: bool = False
    calls_dir: Path = DEFAULT_CALLS_DIR
    search_timeout_seconds: float = 15.0
    store_timeout_seconds: float = 10.0
    environment: str = "local"
    log_level: str = "INFO"

    @property
    def search_configured(self) -> bool:
        return bool(self.serpapi_api_key)

    @property
    def storage_backend(self) -> str:
        return "file" if self.force_file_storage else "firestore"


def _env(name: str) -> Optional[str]:
    value = os.getenv(name, "").strip()
    return value or None


def _positive_seconds(name: str, default: str) -> float:
    raw = os.getenv(name, default)
    try:
        value = float(raw)
    except ValueError as exc:
        raise ConfigurationError(f"{name} must be a number, got {raw!r}") from exc
    if value <= 0:
        raise ConfigurationError(f"{name} must be positive")
    return value


def load_settings(*, require_store: bool = True) -> Settings:
    """Load settings from environment variables (and a ``.env`` file if present).

    Args:
        require_store: When True, a Firestore project id must be configured
            unless the local file backend is forced.

    Returns:
        Settings with the resolved values.

    Raises:
        ConfigurationError: if the store is required but not configured, or a
            numeric setting cannot be parsed.
    """

    load_dotenv()

    force_file = os.getenv("BF_CALLS_FORCE_FILE", "0").strip() == "1"
    project = _env("BF_FIRESTORE_PROJECT")

    if require_store and not force_file and not project:
        raise ConfigurationError(
            "Missing Firestore project. Export BF_FIRESTORE_PROJECT or set "
            "BF_CALLS_FORCE_FILE=1 to use the local file store."
        )

    timeout = _positive_seconds("BF_SEARCH_TIMEOUT_SECONDS", "15")
    store_timeout = _positive_seconds("BF_STORE_TIMEOUT_SECONDS", "10")

    calls_dir = _env("BF_CALLS_DIR")

    return Settings(
        serpapi_api_key=_env("SERPAPI_API_KEY"),
        firestore_project=project,
        firestore_credentials=_env("BF_FIRESTORE_CREDENTIALS")
        or _env("GOOGLE_APPLICATION_CREDENTIALS"),
        calls_collection=os.getenv("BF_CALLS_COLLECTION", "phone_calls").strip()
        or "phone_calls",
        force_file_storage=force_file,
        calls_dir=Path(calls_dir) if calls_dir else DEFAULT_CALLS_DIR,
        search_timeout_seconds=timeout,
        store_timeout_seconds=store_timeout,
        environment=os.getenv("BF_ENV", "local"),
        log_level=os.getenv("BF_LOG_LEVEL", "INFO"),
    )
