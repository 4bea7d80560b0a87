"""Calls Router - logging phone calls and reading the call history."""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends
from fastapi.responses import JSONResponse

from api.dependencies import error_response, get_call_history
from api.models import CallRequest
from business_finder.calls import CallHistoryRepository, StoreError
from business_finder.search import BusinessResult

logger = logging.getLogger(__name__)

router = APIRouter()


@router.post("/call")
def log_phone_call(
    request: CallRequest,
    call_history: CallHistoryRepository = Depends(get_call_history),
):
    """Record a call to a business: 201 for its first call, 200 afterwards."""
    if request.business is None:
        return error_response(400, "Business data is required")

    business = BusinessResult.from_dict(request.business.model_dump())
    if not business.id:
        return error_response(400, "Business id is required")

    try:
        result = call_history.record_call(business)
    except StoreError as exc:
        logger.exception("Failed to save phone call for %s", business.id)
        return error_response(500, "Error saving phone call data", exc)

    return JSONResponse(
        status_code=201 if result.is_new_record else 200,
        content={
            "success": True,
            "message": "Phone call logged successfully",
            "data": result.to_api_dict(),
        },
    )


@router.get("/history")
def call_history_list(
    call_history: CallHistoryRepository = Depends(get_call_history),
):
    """Return every called business, most recently called first."""
    try:
        records = call_history.list_history()
    except StoreError as exc:
        logger.exception("Failed to fetch call history")
        return error_response(500, "Error fetching call history", exc)

    return {
        "success": True,
        "results": [record.to_history_dict() for record in records],
        "totalCalls": len(records),
    }
