"""Tests for the Celery retention task and its beat schedule."""

from unittest.mock import MagicMock, patch

import mongomock
import pytest

from app.worker import tasks
from app.worker.celery_app import celery_app


def test_beat_schedule_runs_sweep():
    entry = celery_app.conf.beat_schedule["sweep-expired-jobs"]
    assert entry["task"] == "app.worker.tasks.sweep_expired_jobs"
    assert entry["task"] in celery_app.tasks


def test_sweep_task_uses_worker_db_and_blob_store():
    db = mongomock.MongoClient().printly_test
    store = MagicMock()

    with patch.object(tasks, "get_pymongo_db", return_value=db), \
            patch.object(tasks, "get_blob_store", return_value=store):
        result = tasks.sweep_expired_jobs.run()

    assert result == {"jobs_deleted": 0, "files_deleted": 0}


def test_sweep_task_reraises_failures():
    with patch.object(tasks, "get_pymongo_db", side_effect=RuntimeError("mongo down")), \
            patch.object(tasks, "get_blob_store", return_value=MagicMock()):
        with pytest.raises(RuntimeError, match="mongo down"):
            tasks.sweep_expired_jobs.run()
