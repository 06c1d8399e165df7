"""Tests for the server-side retention sweep."""

from datetime import datetime, timedelta
from unittest.mock import MagicMock

import mongomock
import pytest

from app.jobs.retention import expired_jobs_filter, sweep_expired_jobs

NOW = datetime(2026, 3, 1, 12, 0, 0)


def _job(number: str, status: str, created_minutes_ago: int, completed_minutes_ago: int = None) -> dict:
    completed = NOW - timedelta(minutes=completed_minutes_ago) if completed_minutes_ago is not None else None
    return {
        "job_number": number,
        "status": status,
        "file_key": f"uploads/shop_test01/{number}.pdf",
        "timestamps": {
            "created": NOW - timedelta(minutes=created_minutes_ago),
            "updated": NOW,
            "print_started": None,
            "completed": completed,
        },
    }


@pytest.fixture
def jobs():
    collection = mongomock.MongoClient().printly_test.jobs
    collection.insert_many([
        _job("PRT-0001", "completed", created_minutes_ago=60, completed_minutes_ago=30),
        _job("PRT-0002", "completed", created_minutes_ago=60, completed_minutes_ago=5),
        _job("PRT-0003", "pending", created_minutes_ago=45),
        _job("PRT-0004", "pending", created_minutes_ago=3),
        _job("PRT-0005", "printing", created_minutes_ago=90),
        _job("PRT-0006", "failed", created_minutes_ago=90),
        _job("PRT-0007", "cancelled", created_minutes_ago=90),
    ])
    return collection


def _remaining(collection) -> list:
    return sorted(d["job_number"] for d in collection.find({}))


def test_filter_shape():
    cutoff = NOW - timedelta(minutes=20)
    query = expired_jobs_filter(cutoff)
    assert {"status": "completed", "timestamps.completed": {"$lt": cutoff}} in query["$or"]
    assert {"status": "pending", "timestamps.created": {"$lt": cutoff}} in query["$or"]


def test_sweep_removes_stale_completed_and_pending(jobs):
    store = MagicMock()
    store.delete_objects.side_effect = lambda keys: list(keys)

    result = sweep_expired_jobs(jobs, store, retention_minutes=20, now=NOW)

    assert result == {"jobs_deleted": 2, "files_deleted": 2}
    assert _remaining(jobs) == ["PRT-0002", "PRT-0004", "PRT-0005", "PRT-0006", "PRT-0007"]
    assert sorted(store.delete_objects.call_args.args[0]) == [
        "uploads/shop_test01/PRT-0001.pdf",
        "uploads/shop_test01/PRT-0003.pdf",
    ]


def test_sweep_deletes_records_even_if_blob_store_fails(jobs):
    store = MagicMock()
    store.delete_objects.side_effect = RuntimeError("s3 unavailable")

    result = sweep_expired_jobs(jobs, store, retention_minutes=20, now=NOW)

    assert result == {"jobs_deleted": 2, "files_deleted": 0}
    assert "PRT-0001" not in _remaining(jobs)


def test_second_sweep_finds_nothing(jobs):
    store = MagicMock()
    store.delete_objects.side_effect = lambda keys: list(keys)

    sweep_expired_jobs(jobs, store, retention_minutes=20, now=NOW)
    store.reset_mock()
    result = sweep_expired_jobs(jobs, store, retention_minutes=20, now=NOW)

    assert result == {"jobs_deleted": 0, "files_deleted": 0}
    store.delete_objects.assert_not_called()


class _PickedUpAfterScan:
    """Collection wrapper that starts printing a job right after the sweep scans."""

    def __init__(self, collection, job_number):
        self._collection = collection
        self._job_number = job_number

    def find(self, *args, **kwargs):
        docs = list(self._collection.find(*args, **kwargs))
        self._collection.update_one({"job_number": self._job_number}, {"$set": {"status": "printing"}})
        return docs

    def __getattr__(self, name):
        return getattr(self._collection, name)


def test_job_picked_up_after_scan_is_kept_with_its_file(jobs):
    store = MagicMock()
    store.delete_objects.side_effect = lambda keys: list(keys)

    result = sweep_expired_jobs(_PickedUpAfterScan(jobs, "PRT-0003"), store, retention_minutes=20, now=NOW)

    assert result == {"jobs_deleted": 1, "files_deleted": 1}
    assert "PRT-0003" in _remaining(jobs)
    assert jobs.find_one({"job_number": "PRT-0003"})["status"] == "printing"
    assert store.delete_objects.call_args.args[0] == ["uploads/shop_test01/PRT-0001.pdf"]
