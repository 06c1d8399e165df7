"""Tests for the agent's disk-backed job queue."""

import json
from datetime import datetime, timedelta

import pytest

from app.agent.local_queue import LocalQueue
from app.jobs.status import InvalidTransition


@pytest.fixture
def queue(tmp_path):
    return LocalQueue(str(tmp_path / "data" / "jobs-queue.json"))


class TestJobs:
    def test_add_is_idempotent_and_newest_first(self, queue, job_snapshot):
        first = job_snapshot("job-1")
        second = job_snapshot("job-2")

        assert queue.add_job(first)
        assert queue.add_job(second)
        assert not queue.add_job(dict(first, status="printing"))

        assert [j["id"] for j in queue.get_all_jobs()] == ["job-2", "job-1"]
        assert queue.get_job("job-1")["status"] == "pending"

    def test_writes_through_to_disk(self, queue, job_snapshot):
        queue.add_job(job_snapshot("job-1"))
        queue.set("shop_id", "shop_test01")

        on_disk = json.loads(queue.path.read_text())
        assert [j["id"] for j in on_disk["jobs"]] == ["job-1"]
        assert on_disk["settings"] == {"shop_id": "shop_test01"}
        assert [p.name for p in queue.path.parent.iterdir()] == ["jobs-queue.json"]

        reopened = LocalQueue(str(queue.path))
        assert reopened.get_job("job-1") is not None
        assert reopened.get("shop_id") == "shop_test01"

    def test_corrupt_file_starts_empty(self, tmp_path):
        path = tmp_path / "jobs-queue.json"
        path.write_text("{not json")
        assert LocalQueue(str(path)).get_all_jobs() == []

    def test_status_updates_follow_the_state_machine(self, queue, job_snapshot):
        queue.add_job(job_snapshot("job-1"))

        printing = queue.update_job_status("job-1", "printing")
        assert printing["status"] == "printing"
        assert printing["timestamps"]["print_started"]

        done = queue.update_job_status("job-1", "completed")
        assert done["timestamps"]["completed"]
        assert done["timestamps"]["updated"] == done["timestamps"]["completed"]

        with pytest.raises(InvalidTransition, match="already completed"):
            queue.update_job_status("job-1", "printing")
        assert queue.get_job("job-1")["status"] == "completed"

    def test_illegal_jump_rejected(self, queue, job_snapshot):
        queue.add_job(job_snapshot("job-1"))
        with pytest.raises(InvalidTransition):
            queue.update_job_status("job-1", "completed")
        assert queue.get_job("job-1")["status"] == "pending"

    def test_unknown_job(self, queue):
        assert queue.update_job_status("nope", "printing") is None
        assert not queue.update_job({"id": "nope"})
        assert not queue.remove_job("nope")

    def test_views_and_counts(self, queue, job_snapshot):
        queue.add_job(job_snapshot("a", status="pending"))
        queue.add_job(job_snapshot("b", status="printing"))
        queue.add_job(job_snapshot("c", status="completed"))
        queue.add_job(job_snapshot("d", status="failed"))

        assert {j["id"] for j in queue.get_pending_jobs()} == {"a", "b"}
        assert [j["id"] for j in queue.get_completed_jobs()] == ["c"]
        assert [j["id"] for j in queue.get_failed_jobs()] == ["d"]
        assert queue.get_job_count() == 4
        assert queue.get_job_count("printing") == 1

    def test_update_and_remove(self, queue, job_snapshot):
        queue.add_job(job_snapshot("a"))
        assert queue.update_job(job_snapshot("a", file_name="renamed.pdf"))
        assert queue.get_job("a")["file_name"] == "renamed.pdf"

        assert queue.remove_job("a")
        assert queue.get_job("a") is None

    def test_returned_jobs_are_copies(self, queue, job_snapshot):
        queue.add_job(job_snapshot("a"))
        queue.get_job("a")["status"] = "failed"
        assert queue.get_job("a")["status"] == "pending"


class TestCleanup:
    def test_only_old_finished_jobs_removed(self, queue, job_snapshot):
        now = datetime(2026, 3, 1, 12, 0)

        def created(hours_ago):
            stamp = (now - timedelta(hours=hours_ago)).isoformat()
            return {"created": stamp, "updated": stamp, "print_started": None, "completed": None}

        queue.add_job(job_snapshot("old-done", status="completed", timestamps=created(25)))
        queue.add_job(job_snapshot("old-failed", status="failed", timestamps=created(30)))
        queue.add_job(job_snapshot("new-done", status="completed", timestamps=created(2)))
        queue.add_job(job_snapshot("ancient-pending", status="pending", timestamps=created(1000)))
        queue.add_job(job_snapshot("old-printing", status="printing", timestamps=created(48)))

        removed = queue.cleanup_old_jobs(24, now=now)

        assert removed == 2
        assert {j["id"] for j in queue.get_all_jobs()} == {"new-done", "ancient-pending", "old-printing"}

    def test_zulu_and_offset_timestamps(self, queue, job_snapshot):
        now = datetime(2026, 3, 1, 12, 0)
        queue.add_job(job_snapshot("z", status="cancelled", timestamps={"created": "2026-02-27T12:00:00Z"}))
        queue.add_job(job_snapshot("o", status="cancelled", timestamps={"created": "2026-03-01T16:30:00+05:30"}))

        assert queue.cleanup_old_jobs(24, now=now) == 1
        assert [j["id"] for j in queue.get_all_jobs()] == ["o"]


class TestSettings:
    def test_set_get_delete(self, queue):
        queue.set("token", "abc")
        assert queue.get("token") == "abc"
        queue.delete("token")
        assert queue.get("token", "none") == "none"

    def test_clear_all(self, queue, job_snapshot):
        queue.add_job(job_snapshot("a"))
        queue.set("token", "abc")

        queue.clear_all()

        assert queue.get_all_jobs() == []
        assert queue.get("token") is None
        assert json.loads(queue.path.read_text()) == {"jobs": [], "settings": {}}
