"""Celery tasks (sync)."""

from __future__ import annotations

import logging
from typing import Dict

from app.core.aws import get_blob_store
from app.core.config import get_settings
from app.jobs.mongo_clients import get_pymongo_db
from app.jobs.retention import sweep_expired_jobs as sweep
from app.worker.celery_app import celery_app

logger = logging.getLogger(__name__)


def _jobs_collection():
    return get_pymongo_db()["jobs"]


@celery_app.task(name="app.worker.tasks.sweep_expired_jobs", acks_late=True)
def sweep_expired_jobs() -> Dict[str, int]:
    """
    Remove jobs past the retention window.

    Scheduled by Celery Beat every JOB_SWEEP_INTERVAL_MINUTES. Safe under SQS
    redelivery: a second run finds nothing left to delete.
    """
    settings = get_settings()
    logger.info("Starting expired job sweep")

    try:
        return sweep(_jobs_collection(), get_blob_store(), settings.JOB_RETENTION_MINUTES)
    except Exception as e:
        logger.error(f"Expired job sweep failed: {e}")
        raise
