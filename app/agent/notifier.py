"""Best-effort job status notifications to the server."""

from __future__ import annotations

import asyncio
import functools
import logging
from typing import Dict, Optional, Set

from app.agent.api_client import PrintlyClient

logger = logging.getLogger(__name__)


class StatusNotifier:
    """
    Mirror local status changes to the server without waiting on them.

    `notify` schedules the request and returns at once. Failures are logged
    and never reach the caller, so they cannot change a print's outcome.
    Updates for the same job are sent in the order they were made.
    """

    def __init__(self, client: PrintlyClient):
        self.client = client
        self._tasks: Set[asyncio.Task] = set()
        self._last: Dict[str, asyncio.Task] = {}

    def notify(self, job_id: str, status: str) -> asyncio.Task:
        previous = self._last.get(job_id)
        task = asyncio.get_running_loop().create_task(self._send(job_id, status, previous))
        self._last[job_id] = task
        self._tasks.add(task)
        task.add_done_callback(functools.partial(self._done, job_id))
        return task

    def _done(self, job_id: str, task: asyncio.Task) -> None:
        self._tasks.discard(task)
        if self._last.get(job_id) is task:
            del self._last[job_id]

    async def _send(self, job_id: str, status: str, previous: Optional[asyncio.Task]) -> bool:
        if previous is not None:
            await asyncio.wait({previous})
        try:
            await self.client.update_job_status(job_id, status)
        except Exception as e:
            logger.warning(f"Could not report job {job_id} as {status}: {e}")
            return False
        logger.info(f"Reported job {job_id} as {status}")
        return True

    async def drain(self) -> None:
        """Wait for in-flight notifications (used on shutdown and in tests)."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)
