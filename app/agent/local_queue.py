"""Disk-backed job queue and settings map owned by the printer agent."""

from __future__ import annotations

import json
import logging
import os
import tempfile
import threading
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional

from app.jobs.status import (
    ACTIVE_STATUSES,
    TERMINAL_STATUSES,
    JobStatus,
    ensure_transition,
    timestamp_field,
)

logger = logging.getLogger(__name__)


def _now_iso() -> str:
    return datetime.utcnow().isoformat()


def _parse_timestamp(value: Any) -> datetime:
    """Naive UTC datetime from an ISO string; unreadable values count as very old."""
    if isinstance(value, datetime):
        parsed = value
    else:
        try:
            parsed = datetime.fromisoformat(str(value).replace("Z", "+00:00"))
        except (TypeError, ValueError):
            return datetime.min
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(timezone.utc).replace(tzinfo=None)
    return parsed


class LocalQueue:
    """
    JSON file of the form ``{"jobs": [...], "settings": {...}}``.

    Jobs are the server's job snapshot (keyed by ``id``) and are kept newest
    first. Every mutation is written through immediately with a temp file and
    an atomic rename, so a crash never leaves a half-written queue. A lock
    serializes read-modify-write between the print worker and the background
    sync and realtime tasks.
    """

    def __init__(self, path: str):
        self.path = Path(path)
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._lock = threading.RLock()
        self._data = self._load()

    # ---------- persistence ----------
    def _load(self) -> Dict[str, Any]:
        if not self.path.exists():
            return {"jobs": [], "settings": {}}
        try:
            parsed = json.loads(self.path.read_text(encoding="utf-8"))
        except (OSError, ValueError) as e:
            logger.error(f"Could not read local queue {self.path}, starting empty: {e}")
            return {"jobs": [], "settings": {}}
        return {
            "jobs": parsed.get("jobs") if isinstance(parsed.get("jobs"), list) else [],
            "settings": parsed.get("settings") if isinstance(parsed.get("settings"), dict) else {},
        }

    def _save(self) -> None:
        fd, tmp = tempfile.mkstemp(dir=str(self.path.parent), prefix=".jobs-queue-", suffix=".tmp")
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(self._data, f, indent=2, default=str)
            os.replace(tmp, self.path)
        except BaseException:
            if os.path.exists(tmp):
                os.unlink(tmp)
            raise

    def _index(self, job_id: str) -> int:
        for i, job in enumerate(self._data["jobs"]):
            if job.get("id") == job_id:
                return i
        return -1

    # ---------- reads ----------
    def get_all_jobs(self) -> List[dict]:
        with self._lock:
            return [dict(j) for j in self._data["jobs"]]

    def _with_status(self, statuses) -> List[dict]:
        values = {JobStatus(s).value for s in statuses}
        with self._lock:
            return [dict(j) for j in self._data["jobs"] if j.get("status") in values]

    def get_pending_jobs(self) -> List[dict]:
        """Jobs still needing the operator: pending or printing."""
        return self._with_status(ACTIVE_STATUSES)

    def get_completed_jobs(self) -> List[dict]:
        return self._with_status([JobStatus.completed])

    def get_failed_jobs(self) -> List[dict]:
        return self._with_status([JobStatus.failed])

    def get_job(self, job_id: str) -> Optional[dict]:
        with self._lock:
            i = self._index(job_id)
            return dict(self._data["jobs"][i]) if i >= 0 else None

    def get_job_count(self, status: Optional[str] = None) -> int:
        with self._lock:
            if status is None:
                return len(self._data["jobs"])
            value = JobStatus(status).value
            return sum(1 for j in self._data["jobs"] if j.get("status") == value)

    # ---------- job mutations ----------
    def add_job(self, job: dict) -> bool:
        """Insert a job unless one with the same id exists; the first snapshot wins."""
        with self._lock:
            if self._index(job["id"]) >= 0:
                return False
            self._data["jobs"].insert(0, dict(job))
            self._save()
        logger.info(f"Queued job {job.get('job_number', job['id'])}")
        return True

    def update_job(self, job: dict) -> bool:
        """Replace the stored snapshot with the same id; no-op when absent."""
        with self._lock:
            i = self._index(job["id"])
            if i < 0:
                return False
            self._data["jobs"][i] = dict(job)
            self._save()
        return True

    def update_job_status(self, job_id: str, status: str) -> Optional[dict]:
        """
        Move a local job along the state machine and stamp its timestamps.

        Returns the updated job, or None when the id is unknown. Raises
        InvalidTransition for an illegal move, including any change to a
        job that already finished.
        """
        target = JobStatus(status)
        with self._lock:
            i = self._index(job_id)
            if i < 0:
                return None
            job = dict(self._data["jobs"][i])
            ensure_transition(job.get("status", JobStatus.pending.value), target)

            now = _now_iso()
            timestamps = dict(job.get("timestamps") or {})
            timestamps["updated"] = now
            field = timestamp_field(target)
            if field:
                timestamps[field] = now
            job["status"] = target.value
            job["timestamps"] = timestamps

            self._data["jobs"][i] = job
            self._save()
            return dict(job)

    def remove_job(self, job_id: str) -> bool:
        with self._lock:
            before = len(self._data["jobs"])
            self._data["jobs"] = [j for j in self._data["jobs"] if j.get("id") != job_id]
            removed = len(self._data["jobs"]) != before
            self._save()
        return removed

    def cleanup_old_jobs(self, max_age_hours: float = 24, now: Optional[datetime] = None) -> int:
        """
        Drop finished jobs created before the cutoff.

        Pending and printing jobs are kept whatever their age. Returns how
        many entries were removed.
        """
        cutoff = (now or datetime.utcnow()) - timedelta(hours=max_age_hours)
        terminal = {s.value for s in TERMINAL_STATUSES}

        with self._lock:
            kept = [
                j for j in self._data["jobs"]
                if j.get("status") not in terminal
                or _parse_timestamp((j.get("timestamps") or {}).get("created")) > cutoff
            ]
            removed = len(self._data["jobs"]) - len(kept)
            if removed:
                self._data["jobs"] = kept
                self._save()

        if removed:
            logger.info(f"Cleaned up {removed} old job(s)")
        return removed

    def clear_jobs(self) -> None:
        with self._lock:
            self._data["jobs"] = []
            self._save()

    # ---------- settings ----------
    def get(self, key: str, default: Any = None) -> Any:
        with self._lock:
            return self._data["settings"].get(key, default)

    def set(self, key: str, value: Any) -> None:
        with self._lock:
            self._data["settings"][key] = value
            self._save()

    def delete(self, key: str) -> None:
        with self._lock:
            if key in self._data["settings"]:
                del self._data["settings"][key]
                self._save()

    def clear_settings(self) -> None:
        with self._lock:
            self._data["settings"] = {}
            self._save()

    def clear_all(self) -> None:
        with self._lock:
            self._data = {"jobs": [], "settings": {}}
            self._save()
        logger.info("Local store cleared")
