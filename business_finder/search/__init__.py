"""Local business search via the SerpAPI Google Maps engine."""
from __future__ import annotations

from .client import (
    SearchResponse,
    SerpApiClient,
    UpstreamError,
    build_query,
)
from .results import NO_DESCRIPTION, BusinessResult, normalize_result

__all__ = [
    "BusinessResult",
    "NO_DESCRIPTION",
    "SearchResponse",
    "SerpApiClient",
    "UpstreamError",
    "build_query",
    "normalize_result",
]
