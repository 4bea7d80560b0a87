"""SerpAPI Google Maps connector for local business search."""
from __future__ import annotations

from dataclasses import dataclass, field
import json
import logging
from typing import Any, Dict, List, Optional
from urllib import error as urlerror
from urllib import parse as urlparse
from urllib import request as urlrequest

from ..config import ConfigurationError, Settings
from .results import BusinessResult, normalize_result

logger = logging.getLogger(__name__)

FETCH_ERROR = "Failed to fetch search results"
NO_RESULTS_ERROR = "hasn't returned any results"


class UpstreamError(RuntimeError):
    """Raised when the search provider is unreachable or returns an error."""


@dataclass(slots=True)
class SearchResponse:
    query: str
    results: List[BusinessResult] = field(default_factory=list)

    @property
    def total_results(self) -> int:
        return len(self.results)


def build_query(category: str, zip_code: str) -> str:
    """Return the free-text query sent to the provider."""

    category = (category or "").strip()
    zip_code = (zip_code or "").strip()
    if not category or not zip_code:
        raise ValueError("Service and zip code are required")
    return f"{category} near {zip_code}"


def _is_empty_search(payload: Dict[str, Any]) -> bool:
    """True when an ``error`` body only means the query matched nothing.

    SerpAPI reports an empty search with HTTP 200, a successful
    ``search_metadata.status`` and a "hasn't returned any results" message.
    """
    metadata = payload.get("search_metadata")
    if isinstance(metadata, dict) and metadata.get("status") == "Success":
        return True
    return NO_RESULTS_ERROR in str(payload.get("error", ""))


class SerpApiClient:
    """Very small SerpAPI wrapper for Google Maps local results."""

    base_url = "https://serpapi.com/search.json"
    engine = "google_maps"

    def __init__(
        self,
        settings: Settings,
        *,
        timeout_seconds: Optional[float] = None,
    ) -> None:
        self.settings = settings
        self.timeout_seconds = (
            timeout_seconds
            if timeout_seconds is not None
            else settings.search_timeout_seconds
        )

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def search(self, category: str, zip_code: str) -> SearchResponse:
        """Search for ``category`` businesses near ``zip_code``.

        Raises:
            ValueError: if either input is blank.
            ConfigurationError: if no API key is configured (no request is made).
            UpstreamError: if the provider call fails.
        """
        query = build_query(category, zip_code)

        if not self.settings.serpapi_api_key:
            raise ConfigurationError("API key not configured")

        payload = self._request({"engine": self.engine, "q": query})
        if not isinstance(payload, dict):
            logger.error(
                "Search provider returned %s instead of an object for %r",
                type(payload).__name__,
                query,
            )
            raise UpstreamError(FETCH_ERROR)

        if payload.get("error"):
            if _is_empty_search(payload):
                logger.info("Search %r matched no businesses: %s", query, payload["error"])
                return SearchResponse(query=query)
            logger.error("Search provider returned an error for %r: %s", query, payload["error"])
            raise UpstreamError(FETCH_ERROR)

        local_results = payload.get("local_results") or []
        if not isinstance(local_results, list):
            logger.warning("Ignoring malformed local_results for %r", query)
            local_results = []

        results: List[BusinessResult] = []
        for raw in local_results:
            if not isinstance(raw, dict):
                logger.warning("Skipping malformed provider result: %r", raw)
                continue
            result = normalize_result(raw)
            if result is not None:
                results.append(result)

        logger.info("Search %r returned %d results", query, len(results))
        return SearchResponse(query=query, results=results)

    # ------------------------------------------------------------------
    # HTTP
    # ------------------------------------------------------------------
    def _request(self, params: Dict[str, Any]) -> Dict[str, Any]:
        query = urlparse.urlencode({**params, "api_key": self.settings.serpapi_api_key})
        url = f"{self.base_url}?{query}"
        safe_url = f"{self.base_url}?{urlparse.urlencode(params)}&api_key=***"
        logger.debug("GET %s", safe_url)

        req = urlrequest.Request(url, method="GET", headers={"Accept": "application/json"})

        try:
            with urlrequest.urlopen(req, timeout=self.timeout_seconds) as resp:
                raw = resp.read().decode("utf-8")
                return json.loads(raw)
        except urlerror.HTTPError as exc:
            detail = exc.read().decode("utf-8", errors="ignore")
            logger.error(
                "Search provider GET %s failed with status %s: %s", safe_url, exc.code, detail
            )
            raise UpstreamError(FETCH_ERROR) from exc
        except urlerror.URLError as exc:
            logger.error("Network error calling search provider: %s", exc.reason)
            raise UpstreamError(FETCH_ERROR) from exc
        except TimeoutError as exc:
            logger.error("Search provider timed out after %ss", self.timeout_seconds)
            raise UpstreamError(FETCH_ERROR) from exc
        except json.JSONDecodeError as exc:
            logger.error("Search provider returned invalid JSON: %s", exc)
            raise UpstreamError(FETCH_ERROR) from exc
