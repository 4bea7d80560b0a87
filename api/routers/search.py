"""Search Router - local business search annotated with call history."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends

from api.dependencies import error_response, get_call_history, get_search_client
from api.models import SearchRequest
from business_finder.calls import CallHistoryRepository
from business_finder.config import ConfigurationError
from business_finder.search import SerpApiClient, UpstreamError

logger = logging.getLogger(__name__)

router = APIRouter()

SEARCH_ERROR = "Error searching for businesses"


@router.post("/search")
def search_businesses(
    request: SearchRequest,
    client: SerpApiClient = Depends(get_search_client),
    call_history: CallHistoryRepository = Depends(get_call_history),
):
    """Search the provider and flag businesses that were already called."""
    service = (request.service or "").strip()
    zip_code = (request.zip_code or "").strip()
    if not service or not zip_code:
        return error_response(400, "Service and zip code are required")

    try:
        response = client.search(service, zip_code)
    except ConfigurationError as exc:
        logger.error("Search is not configured: %s", exc)
        return error_response(500, SEARCH_ERROR, exc)
    except UpstreamError as exc:
        logger.exception("Search failed for %s near %s", service, zip_code)
        return error_response(500, SEARCH_ERROR, exc)

    results = call_history.annotate_previously_called(response.results)
    return {
        "success": True,
        "query": response.query,
        "results": [result.to_dict() for result in results],
        "totalResults": len(results),
    }
