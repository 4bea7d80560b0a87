"""Tests for the call history repository (file backend)."""
from __future__ import annotations

import json
import threading
from datetime import datetime, timedelta

import pytest

from business_finder.calls import (
    EASTERN,
    CallHistoryRepository,
    CallRecord,
    StoreError,
)
from business_finder.search import BusinessResult


class StepClock:
    """Returns a new Eastern timestamp five minutes later on every call."""

    def __init__(self, start: datetime | None = None, step: timedelta = timedelta(minutes=5)):
        self.now = start or datetime(2025, 3, 1, 9, 0, tzinfo=EASTERN)
        self.step = step

    def __call__(self) -> datetime:
        value = self.now
        self.now = self.now + self.step
        return value


def _business(business_id: str, name: str = "Acme Roofing", **extra) -> BusinessResult:
    return BusinessResult(id=business_id, name=name, phone="4045550100", **extra)


@pytest.fixture
def clock():
    return StepClock()


@pytest.fixture
def repo(tmp_path, clock):
    return CallHistoryRepository(file_dir=tmp_path / "calls", clock=clock)


class TestRecordCall:
    def test_first_call_creates_record(self, repo):
        result = repo.record_call(_business("abc123"))

        assert result.business_id == "abc123"
        assert result.is_new_record is True
        assert result.call_count == 1

        record = repo.get_record("abc123")
        assert record.call_count == 1
        assert record.first_called == record.last_called
        assert record.created_at == record.updated_at == record.first_called
        assert record.status == "called"
        assert record.business_name == "Acme Roofing"

    def test_second_call_increments(self, repo):
        repo.record_call(_business("abc123"))
        first = repo.get_record("abc123")

        result = repo.record_call(_business("abc123"))

        assert result.is_new_record is False
        assert result.call_count == 2
        record = repo.get_record("abc123")
        assert record.call_count == 2
        assert record.first_called == first.first_called
        assert record.last_called > first.last_called
        assert record.updated_at == record.last_called
        assert record.created_at == first.created_at

    def test_call_count_increments_by_one_each_time(self, repo):
        counts = [repo.record_call(_business("abc123")).call_count for _ in range(4)]
        assert counts == [1, 2, 3, 4]

    def test_one_record_per_business(self, repo, tmp_path):
        repo.record_call(_business("abc123"))
        repo.record_call(_business("abc123"))
        repo.record_call(_business("xyz789", name="Zip HVAC"))

        stored = json.loads((tmp_path / "calls" / "calls.json").read_text(encoding="utf-8"))
        assert sorted(stored) == ["abc123", "xyz789"]

    def test_accepts_plain_dict(self, repo):
        result = repo.record_call({"id": "abc123", "name": "Acme", "type": "Roofer"})

        assert result.is_new_record is True
        assert repo.get_record("abc123").category == "Roofer"

    def test_missing_id_rejected(self, repo):
        with pytest.raises(ValueError, match="Business id is required"):
            repo.record_call(_business(""))

    def test_timestamps_are_eastern(self, tmp_path):
        repo = CallHistoryRepository(file_dir=tmp_path)
        repo.record_call(_business("abc123"))

        record = repo.get_record("abc123")
        assert str(record.last_called.tzinfo) == "America/New_York"

    def test_clock_going_backwards_keeps_order(self, tmp_path):
        clock = StepClock(step=timedelta(minutes=-5))
        repo = CallHistoryRepository(file_dir=tmp_path, clock=clock)

        repo.record_call(_business("abc123"))
        repo.record_call(_business("abc123"))

        record = repo.get_record("abc123")
        assert record.first_called <= record.last_called

    def test_concurrent_calls_do_not_lose_increments(self, tmp_path):
        repo = CallHistoryRepository(file_dir=tmp_path)
        threads = [
            threading.Thread(target=repo.record_call, args=(_business("abc123"),))
            for _ in range(20)
        ]
        for thread in threads:
            thread.start()
        for thread in threads:
            thread.join()

        assert repo.get_record("abc123").call_count == 20

    def test_unreadable_store_raises_store_error(self, repo, tmp_path):
        calls_dir = tmp_path / "calls"
        calls_dir.mkdir()
        (calls_dir / "calls.json").write_text("{not json", encoding="utf-8")

        with pytest.raises(StoreError, match="abc123"):
            repo.record_call(_business("abc123"))


class TestListHistory:
    def test_empty_history(self, repo):
        assert repo.list_history() == []

    def test_sorted_by_last_called_descending(self, repo):
        repo.record_call(_business("a", name="A"))
        repo.record_call(_business("b", name="B"))
        repo.record_call(_business("c", name="C"))

        assert [r.business_id for r in repo.list_history()] == ["c", "b", "a"]

    def test_recalled_business_moves_to_front(self, repo):
        repo.record_call(_business("a", name="A"))
        repo.record_call(_business("b", name="B"))
        repo.record_call(_business("a", name="A"))

        history = repo.list_history()
        assert [r.business_id for r in history] == ["a", "b"]
        assert history[0].call_count == 2

    def test_history_dict_shape(self, repo):
        repo.record_call(_business("a", name="A", website="https://a.example", rating=4.5))
        record = repo.list_history()[0]

        data = record.to_history_dict()

        assert data["id"] == "a"
        assert data["name"] == "A"
        assert data["website"] == "https://a.example"
        assert data["rating"] == 4.5
        assert data["callCount"] == 1
        assert data["firstCalled"] == data["lastCalled"]
        assert data["lastCalled"].startswith("2025-03-01T09:00:00")
        assert data["lastCalled"].endswith("-05:00")
        assert "status" not in data


class TestAnnotatePreviouslyCalled:
    def test_marks_exactly_called_subset(self, repo):
        repo.record_call(_business("b"))
        results = [
            _business("a", name="A", rating=4.0),
            _business("b", name="B"),
            _business("c", name="C"),
        ]

        annotated = repo.annotate_previously_called(results)

        assert [r.id for r in annotated] == ["a", "b", "c"]
        assert [r.previously_called for r in annotated] == [False, True, False]
        assert annotated[0].rating == 4.0
        assert annotated[1].name == "B"

    def test_empty_results(self, repo):
        assert repo.annotate_previously_called([]) == []

    def test_lookup_failure_returns_unflagged(self, repo, tmp_path):
        calls_dir = tmp_path / "calls"
        calls_dir.mkdir()
        (calls_dir / "calls.json").write_text("garbage", encoding="utf-8")
        results = [_business("a"), _business("b", previously_called=True)]

        annotated = repo.annotate_previously_called(results)

        assert [r.id for r in annotated] == ["a", "b"]
        assert [r.previously_called for r in annotated] == [False, False]


class TestCallRecord:
    def test_round_trip_through_json(self):
        now = datetime(2025, 7, 4, 12, 30, tzinfo=EASTERN)
        record = CallRecord.first_call(_business("abc123"), now)

        restored = CallRecord.from_dict(record.to_json_dict())

        assert restored == record

    def test_naive_timestamps_are_treated_as_eastern(self):
        record = CallRecord.from_dict(
            {
                "businessId": "abc123",
                "businessName": "Acme",
                "firstCalled": "2025-01-10T08:00:00",
                "lastCalled": "2025-01-11T08:00:00",
                "callCount": 3,
            }
        )

        assert record.first_called == datetime(2025, 1, 10, 8, 0, tzinfo=EASTERN)
        assert record.created_at == record.first_called
        assert record.updated_at == record.last_called

    def test_utc_timestamps_converted_to_eastern(self):
        from datetime import timezone

        record = CallRecord.from_dict(
            {
                "businessId": "abc123",
                "lastCalled": datetime(2025, 6, 1, 16, 0, tzinfo=timezone.utc),
            }
        )

        assert record.last_called.hour == 12
        assert str(record.last_called.tzinfo) == "America/New_York"


def test_repository_requires_a_backend():
    with pytest.raises(ValueError):
        CallHistoryRepository()
