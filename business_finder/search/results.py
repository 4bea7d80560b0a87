"""Business result shape shared by search, history and the API."""
from __future__ import annotations

from dataclasses import dataclass, replace
import logging
from typing import Any, Dict, Optional

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "No description available"


@dataclass(slots=True)
class BusinessResult:
    """A single business listing as returned to the UI."""

    id: str
    name: str
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: str = NO_DESCRIPTION
    rating: Optional[float] = None
    reviews: Optional[int] = None
    category: Optional[str] = None
    thumbnail: Optional[str] = None
    previously_called: bool = False

    def to_dict(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "name": self.name,
            "phone": self.phone,
            "address": self.address,
            "website": self.website,
            "description": self.description,
            "rating": self.rating,
            "reviews": self.reviews,
            "category": self.category,
            "thumbnail": self.thumbnail,
            "previously_called": self.previously_called,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "BusinessResult":
        # Older clients send the provider's "type" instead of "category".
        return cls(
            id=str(data.get("id") or ""),
            name=data.get("name") or "",
            phone=data.get("phone"),
            address=data.get("address"),
            website=data.get("website"),
            description=data.get("description") or NO_DESCRIPTION,
            rating=data.get("rating"),
            reviews=data.get("reviews"),
            category=data.get("category") or data.get("type"),
            thumbnail=data.get("thumbnail"),
            previously_called=bool(data.get("previously_called", False)),
        )

    def mark_previously_called(self, called: bool) -> "BusinessResult":
        return replace(self, previously_called=called)


def _optional(raw: Dict[str, Any], key: str) -> Any:
    value = raw.get(key)
    if value in ("", None):
        return None
    return value


def normalize_result(raw: Dict[str, Any]) -> Optional[BusinessResult]:
    """Map one provider ``local_results`` entry to a BusinessResult.

    Returns None for entries with no usable identifier.
    """

    business_id = _optional(raw, "place_id") or _optional(raw, "data_id")
    if not business_id:
        logger.warning("Skipping provider result without an id: %r", raw.get("title"))
        return None

    category = _optional(raw, "type")
    return BusinessResult(
        id=str(business_id),
        name=raw.get("title") or "",
        phone=_optional(raw, "phone"),
        address=_optional(raw, "address"),
        website=_optional(raw, "website"),
        description=_optional(raw, "description") or category or NO_DESCRIPTION,
        rating=_optional(raw, "rating"),
        reviews=_optional(raw, "reviews"),
        category=category,
        thumbnail=_optional(raw, "thumbnail"),
    )
