"""Shared dependencies and helper functions for API routers.

Usage in routers:
    from api.dependencies import get_call_history, get_search_client, error_response
"""
from __future__ import annotations

import os
from functools import lru_cache
from typing import Optional

from fastapi import Depends, Request
from fastapi.responses import JSONResponse

from business_finder.calls import CallHistoryRepository
from business_finder.config import ConfigurationError, Settings, load_settings
from business_finder.search import SerpApiClient


# =============================================================================
# Configuration Constants
# =============================================================================

ALLOWED_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
    os.getenv("BF_ALLOWED_FRONTEND", "").strip(),
]


# =============================================================================
# Cached Functions
# =============================================================================

@lru_cache
def get_settings() -> Settings:
    """Get application settings (cached)."""
    return load_settings()


# =============================================================================
# Injected Resources
# =============================================================================

def get_call_history(request: Request) -> CallHistoryRepository:
    """Return the call history repository opened at application startup."""
    repository = getattr(request.app.state, "call_history", None)
    if repository is None:
        raise ConfigurationError("Call history store is not initialized")
    return repository


def get_search_client(settings: Settings = Depends(get_settings)) -> SerpApiClient:
    return SerpApiClient(settings)


# =============================================================================
# Response Helpers
# =============================================================================

def error_response(
    status_code: int,
    message: str,
    exc: Optional[BaseException] = None,
) -> JSONResponse:
    """Build the ``{success: false, message[, error]}`` body used by every endpoint."""
    content = {"success": False, "message": message}
    if exc is not None:
        content["error"] = str(exc)
    return JSONResponse(status_code=status_code, content=content)
