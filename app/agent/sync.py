"""Reconcile the local queue with the server's pending view."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from app.agent.api_client import PrintlyClient
from app.agent.local_queue import LocalQueue

logger = logging.getLogger(__name__)


@dataclass
class SyncResult:
    jobs: List[dict] = field(default_factory=list)
    added: int = 0
    success: bool = True
    error: Optional[str] = None


async def reconcile(client: PrintlyClient, queue: LocalQueue, shop_id: str) -> SyncResult:
    """
    Merge the server's pending/printing jobs into the local queue by id.

    Only jobs missing locally are added; an entry that already exists is
    left as is, since this agent's own view (e.g. a job it started printing)
    is newer than whatever the server last heard. On any network or auth
    failure nothing is merged and the current local pending set is returned
    with ``success=False``.
    """
    try:
        remote = await client.pending_jobs(shop_id)
    except (httpx.HTTPError, ValueError) as e:
        logger.warning(f"Sync with server failed, staying on local queue: {e}")
        return SyncResult(jobs=queue.get_pending_jobs(), success=False, error=str(e))

    added = sum(1 for job in remote if queue.add_job(job))
    pending = queue.get_pending_jobs()
    logger.info(f"Synced {len(remote)} server job(s), {added} new, {len(pending)} pending locally")
    return SyncResult(jobs=pending, added=added)
