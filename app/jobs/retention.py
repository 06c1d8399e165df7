"""Server-side retention sweep (sync, runs in the Celery worker)."""

from __future__ import annotations

import logging
from datetime import datetime, timedelta
from typing import Any, Dict, Optional

from app.jobs.status import JobStatus

logger = logging.getLogger(__name__)


def expired_jobs_filter(cutoff: datetime) -> Dict[str, Any]:
    """Completed jobs finished before `cutoff`, and pending jobs nobody picked up since before it."""
    return {
        "$or": [
            {"status": JobStatus.completed.value, "timestamps.completed": {"$lt": cutoff}},
            {"status": JobStatus.pending.value, "timestamps.created": {"$lt": cutoff}},
        ]
    }


def sweep_expired_jobs(
    collection,
    blob_store,
    retention_minutes: int,
    now: Optional[datetime] = None,
) -> Dict[str, int]:
    """
    Delete expired jobs and their source files.

    Each record is deleted with the expiry filter re-applied, so a job that
    moved to printing after the scan is left alone along with its file.
    Blob deletion is best-effort; a storage failure is logged and the job
    records stay removed so the sweep does not retry the same set forever.
    """
    cutoff = (now or datetime.utcnow()) - timedelta(minutes=retention_minutes)
    expired = expired_jobs_filter(cutoff)
    candidates = list(collection.find(expired, {"_id": 1}))
    if not candidates:
        return {"jobs_deleted": 0, "files_deleted": 0}

    removed = []
    for candidate in candidates:
        doc = collection.find_one_and_delete({"_id": candidate["_id"], **expired}, projection={"file_key": 1})
        if doc is not None:
            removed.append(doc)

    files_deleted = 0
    keys = [d["file_key"] for d in removed if d.get("file_key")]
    if keys:
        try:
            files_deleted = len(blob_store.delete_objects(keys))
        except Exception as e:
            logger.warning(f"Retention sweep could not delete {len(keys)} file(s): {e}")

    logger.info(f"Retention sweep removed {len(removed)} job(s), {files_deleted} file(s)")
    return {"jobs_deleted": len(removed), "files_deleted": files_deleted}
