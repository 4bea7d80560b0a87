"""Pydantic request models for the API routers.

Fields the handlers must validate themselves are Optional so that a missing
value produces the endpoint's own 400 message.
"""
from __future__ import annotations

from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


class SearchRequest(BaseModel):
    """Request body for ``POST /search``."""
    model_config = ConfigDict(populate_by_name=True)

    service: Optional[str] = None
    zip_code: Optional[str] = Field(None, alias="zipCode")


class BusinessModel(BaseModel):
    """A business as displayed in the UI (search result or history entry)."""
    model_config = ConfigDict(extra="ignore", coerce_numbers_to_str=True)

    id: Optional[str] = None
    name: Optional[str] = None
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    category: Optional[str] = None
    type: Optional[str] = Field(None, description="Legacy alias for category.")
    thumbnail: Optional[str] = None


class CallRequest(BaseModel):
    """Request body for ``POST /call``."""
    business: Optional[BusinessModel] = None
