"""Call history: one aggregated record per business that has been called."""
from __future__ import annotations

from .store import (
    EASTERN,
    CallHistoryRepository,
    CallRecord,
    CallResult,
    StoreError,
    eastern_now,
    open_call_history,
)

__all__ = [
    "EASTERN",
    "CallHistoryRepository",
    "CallRecord",
    "CallResult",
    "StoreError",
    "eastern_now",
    "open_call_history",
]
