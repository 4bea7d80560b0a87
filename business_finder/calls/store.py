"""Call history storage - Firestore with local file backend.

One CallRecord per business id. Recording a call either creates the record
or increments it in a single atomic step: a Firestore transaction on the
business document, or a locked read-modify-write of the JSON file.

Firestore layout:
- phone_calls/{document id derived from businessId}

File layout (development and tests):
- <calls_dir>/calls.json  ({businessId: record})
"""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
import json
import logging
import os
from pathlib import Path
import threading
from typing import Any, Callable, Dict, Iterable, List, Optional, Set, Union
from urllib import parse as urlparse
from zoneinfo import ZoneInfo

from firebase_admin import firestore

from ..search.results import NO_DESCRIPTION, BusinessResult

logger = logging.getLogger(__name__)

# Call times are recorded in US Eastern, independent of the host timezone.
EASTERN = ZoneInfo("America/New_York")
CALLED_STATUS = "called"
CALLS_FILE_NAME = "calls.json"

_file_lock = threading.Lock()


class StoreError(RuntimeError):
    """Raised when the call history store cannot be read or written."""


def eastern_now() -> datetime:
    return datetime.now(EASTERN)


def _as_eastern(value: Union[datetime, str, None]) -> Optional[datetime]:
    if value is None or value == "":
        return None
    if isinstance(value, str):
        value = datetime.fromisoformat(value)
    if value.tzinfo is None:
        value = value.replace(tzinfo=EASTERN)
    return value.astimezone(EASTERN)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.astimezone(EASTERN).isoformat() if value else None


@dataclass(slots=True)
class CallRecord:
    """Persisted aggregate of every call made to one business."""

    business_id: str
    business_name: str
    first_called: datetime
    last_called: datetime
    call_count: int
    created_at: datetime
    updated_at: datetime
    phone: Optional[str] = None
    address: Optional[str] = None
    website: Optional[str] = None
    description: Optional[str] = None
    rating: Optional[float] = None
    reviews: Optional[int] = None
    category: Optional[str] = None
    status: str = CALLED_STATUS

    @classmethod
    def first_call(cls, business: BusinessResult, now: datetime) -> "CallRecord":
        return cls(
            business_id=business.id,
            business_name=business.name,
            phone=business.phone,
            address=business.address,
            website=business.website,
            description=business.description,
            rating=business.rating,
            reviews=business.reviews,
            category=business.category,
            first_called=now,
            last_called=now,
            call_count=1,
            created_at=now,
            updated_at=now,
        )

    def to_dict(self) -> Dict[str, Any]:
        """Document shape stored in Firestore (datetimes kept native)."""
        return {
            "businessId": self.business_id,
            "businessName": self.business_name,
            "phone": self.phone,
            "address": self.address,
            "website": self.website,
            "description": self.description,
            "rating": self.rating,
            "reviews": self.reviews,
            "category": self.category,
            "status": self.status,
            "firstCalled": self.first_called,
            "lastCalled": self.last_called,
            "callCount": self.call_count,
            "createdAt": self.created_at,
            "updatedAt": self.updated_at,
        }

    def to_json_dict(self) -> Dict[str, Any]:
        data = self.to_dict()
        for key in ("firstCalled", "lastCalled", "createdAt", "updatedAt"):
            data[key] = _iso(data[key])
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "CallRecord":
        last_called = _as_eastern(data.get("lastCalled"))
        first_called = _as_eastern(data.get("firstCalled")) or last_called
        return cls(
            business_id=str(data["businessId"]),
            business_name=data.get("businessName") or "",
            phone=data.get("phone"),
            address=data.get("address"),
            website=data.get("website"),
            description=data.get("description"),
            rating=data.get("rating"),
            reviews=data.get("reviews"),
            category=data.get("category") or data.get("type"),
            status=data.get("status", CALLED_STATUS),
            first_called=first_called,
            last_called=last_called,
            call_count=int(data.get("callCount", 1)),
            created_at=_as_eastern(data.get("createdAt")) or first_called,
            updated_at=_as_eastern(data.get("updatedAt")) or last_called,
        )

    def to_history_dict(self) -> Dict[str, Any]:
        """Business result shape plus call statistics, as shown in the history tab."""
        result = BusinessResult(
            id=self.business_id,
            name=self.business_name,
            phone=self.phone,
            address=self.address,
            website=self.website,
            description=self.description or NO_DESCRIPTION,
            rating=self.rating,
            reviews=self.reviews,
            category=self.category,
            previously_called=True,
        ).to_dict()
        result.pop("thumbnail")
        result.update(
            {
                "callCount": self.call_count,
                "firstCalled": _iso(self.first_called),
                "lastCalled": _iso(self.last_called),
            }
        )
        return result


@dataclass(slots=True)
class CallResult:
    """Outcome of logging one call."""

    business_id: str
    is_new_record: bool
    call_count: int

    def to_api_dict(self) -> Dict[str, Any]:
        return {
            "businessId": self.business_id,
            "isNewRecord": self.is_new_record,
            "callCount": self.call_count,
        }


def _document_id(business_id: str) -> str:
    # Firestore ids may not contain "/" or be "." / "..".
    return urlparse.quote(business_id, safe="").replace(".", "%2E")


def _apply_call(
    existing: Optional[Dict[str, Any]],
    business: BusinessResult,
    now: datetime,
) -> tuple[Dict[str, Any], CallResult]:
    """Return the field updates for one call event and its outcome.

    For a new business the updates are the full record; for an existing one
    only lastCalled, updatedAt and callCount change.
    """
    if existing is None:
        record = CallRecord.first_call(business, now)
        return record.to_dict(), CallResult(business.id, True, 1)

    previous_last = _as_eastern(existing.get("lastCalled"))
    if previous_last is not None and now < previous_last:
        now = previous_last
    call_count = int(existing.get("callCount", 0)) + 1
    updates = {"lastCalled": now, "updatedAt": now, "callCount": call_count}
    return updates, CallResult(business.id, False, call_count)


def _record_in_transaction(
    transaction,
    doc_ref,
    business: BusinessResult,
    now: datetime,
    timeout: Optional[float] = None,
) -> CallResult:
    """Find-and-increment body run inside a Firestore transaction."""
    snapshot = doc_ref.get(transaction=transaction, timeout=timeout)
    existing = snapshot.to_dict() if snapshot.exists else None
    updates, result = _apply_call(existing, business, now)
    if existing is None:
        transaction.create(doc_ref, updates)
    else:
        transaction.update(doc_ref, updates)
    return result


class CallHistoryRepository:
    """Record calls, list history and flag previously called search results.

    Pass a Firestore client as ``db`` for the production backend; with no
    client the repository reads and writes ``calls.json`` under ``file_dir``.
    ``timeout`` bounds each Firestore read in seconds.
    """

    def __init__(
        self,
        db=None,
        *,
        collection: str = "phone_calls",
        file_dir: Optional[Path] = None,
        clock: Callable[[], datetime] = eastern_now,
        timeout: Optional[float] = None,
    ) -> None:
        if db is None and file_dir is None:
            raise ValueError("Either a Firestore client or a file directory is required")
        self._db = db
        self._collection = collection
        self._file_dir = Path(file_dir) if file_dir is not None else None
        self._clock = clock
        self._timeout = timeout

    @property
    def backend(self) -> str:
        return "firestore" if self._db is not None else "file"

    # ------------------------------------------------------------------
    # Public API
    # ------------------------------------------------------------------
    def record_call(self, business: Union[BusinessResult, Dict[str, Any]]) -> CallResult:
        """Create or increment the call record for ``business``.

        Raises:
            ValueError: if the business has no id.
            StoreError: if the store operation fails.
        """
        if isinstance(business, dict):
            business = BusinessResult.from_dict(business)
        if not business.id:
            raise ValueError("Business id is required")

        now = self._clock()
        try:
            if self._db is not None:
                result = self._record_in_firestore(business, now)
            else:
                result = self._record_in_file(business, now)
        except Exception as exc:
            raise StoreError(f"Failed to record call for {business.id}: {exc}") from exc

        logger.info(
            "Logged call to %s (%s): count=%d new=%s",
            business.id,
            business.name,
            result.call_count,
            result.is_new_record,
        )
        return result

    def list_history(self) -> List[CallRecord]:
        """Return every call record, most recently called first."""
        try:
            if self._db is not None:
                records = self._list_from_firestore()
            else:
                records = self._list_from_file()
        except Exception as exc:
            raise StoreError(f"Failed to load call history: {exc}") from exc

        logger.info("Found %d call history records", len(records))
        return records

    def get_record(self, business_id: str) -> Optional[CallRecord]:
        try:
            if self._db is not None:
                doc_ref = self._calls().document(_document_id(business_id))
                snapshot = doc_ref.get(timeout=self._timeout)
                return CallRecord.from_dict(snapshot.to_dict()) if snapshot.exists else None
            data = self._read_file().get(business_id)
            return CallRecord.from_dict(data) if data else None
        except Exception as exc:
            raise StoreError(f"Failed to load call record for {business_id}: {exc}") from exc

    def annotate_previously_called(
        self, results: Iterable[BusinessResult]
    ) -> List[BusinessResult]:
        """Flag each result whose id already has a call record.

        A failed lookup is logged and every result comes back unflagged.
        """
        results = list(results)
        ids = {result.id for result in results if result.id}
        if not ids:
            return [result.mark_previously_called(False) for result in results]

        try:
            if self._db is not None:
                called = self._called_ids_from_firestore(ids)
            else:
                called = ids & set(self._read_file())
        except Exception as exc:
            logger.warning("Previously-called lookup failed, returning unflagged results: %s", exc)
            return [result.mark_previously_called(False) for result in results]

        return [result.mark_previously_called(result.id in called) for result in results]

    # ------------------------------------------------------------------
    # Firestore backend
    # ------------------------------------------------------------------
    def _calls(self):
        return self._db.collection(self._collection)

    def _record_in_firestore(self, business: BusinessResult, now: datetime) -> CallResult:
        doc_ref = self._calls().document(_document_id(business.id))
        record = firestore.transactional(_record_in_transaction)
        return record(self._db.transaction(), doc_ref, business, now, self._timeout)

    def _list_from_firestore(self) -> List[CallRecord]:
        query = self._calls().order_by("lastCalled", direction=firestore.Query.DESCENDING)
        snapshots = query.stream(timeout=self._timeout)
        return [CallRecord.from_dict(doc.to_dict()) for doc in snapshots]

    def _called_ids_from_firestore(self, ids: Set[str]) -> Set[str]:
        calls = self._calls()
        refs = [calls.document(_document_id(business_id)) for business_id in sorted(ids)]
        called: Set[str] = set()
        for snapshot in self._db.get_all(refs, timeout=self._timeout):
            if snapshot.exists:
                called.add(str((snapshot.to_dict() or {}).get("businessId")))
        return called & ids

    # ------------------------------------------------------------------
    # File backend
    # ------------------------------------------------------------------
    def _calls_file(self) -> Path:
        return self._file_dir / CALLS_FILE_NAME

    def _read_file(self) -> Dict[str, Dict[str, Any]]:
        path = self._calls_file()
        if not path.exists():
            return {}
        with path.open("r", encoding="utf-8") as handle:
            return json.load(handle)

    def _write_file(self, records: Dict[str, Dict[str, Any]]) -> None:
        path = self._calls_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = path.with_suffix(".json.tmp")
        with tmp_path.open("w", encoding="utf-8") as handle:
            json.dump(records, handle, indent=2)
        os.replace(tmp_path, path)

    def _record_in_file(self, business: BusinessResult, now: datetime) -> CallResult:
        with _file_lock:
            records = self._read_file()
            existing = records.get(business.id)
            updates, result = _apply_call(existing, business, now)
            if existing is None:
                records[business.id] = CallRecord.from_dict(updates).to_json_dict()
            else:
                existing.update(
                    {
                        "lastCalled": _iso(updates["lastCalled"]),
                        "updatedAt": _iso(updates["updatedAt"]),
                        "callCount": updates["callCount"],
                    }
                )
            self._write_file(records)
        return result

    def _list_from_file(self) -> List[CallRecord]:
        records = [CallRecord.from_dict(data) for data in self._read_file().values()]
        records.sort(key=lambda record: record.last_called, reverse=True)
        return records


def open_call_history(settings) -> CallHistoryRepository:
    """Build the repository for the configured backend.

    The Firestore backend initializes the shared client if needed; callers
    own its teardown via ``close_firestore_client()``.
    """
    if settings.force_file_storage:
        logger.info("Using file call history store at %s", settings.calls_dir)
        return CallHistoryRepository(file_dir=settings.calls_dir)

    from ..firestore import init_firestore_client

    return CallHistoryRepository(
        init_firestore_client(settings),
        collection=settings.calls_collection,
        timeout=settings.store_timeout_seconds,
    )
